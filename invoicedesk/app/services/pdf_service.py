"""
PDF Service - A4 invoice / quotation rendering.

Responsibilities:
- Fixed-coordinate layout of issuer, client, line-item, totals and terms blocks
- Pagination of long line-item tables
- Logo watermark on every page

All totals must already be present on the invoice; nothing is recomputed here.
"""

import base64
import io
import os
from typing import List, Optional, Tuple, Union

import structlog
from fpdf import FPDF
from fpdf.enums import MethodReturnValue, XPos, YPos

from invoicedesk.app.core.errors import DocumentRenderError
from invoicedesk.app.core.settings import get_settings
from invoicedesk.app.core.time import utc_now
from invoicedesk.app.schemas.invoice import InvoiceBase, LineItem
from invoicedesk.app.schemas.settings import DEFAULT_COMPANY_INFO, CompanyInfo
from invoicedesk.app.services.formatting import format_date, format_inr

logger = structlog.get_logger(__name__)

Logo = Union[bytes, str]

# Layout (points, top-left origin)
PAGE_WIDTH = 595
MARGIN = 40
CONTENT_WIDTH = PAGE_WIDTH - 2 * MARGIN
RIGHT_COL = 380
LINE_HEIGHT = 11
CONTENT_BOTTOM = 740
FOOTER_Y = 755

TITLE_Y = 95
PARTIES_Y = 130
SCOPE_MIN_Y = 230

COLUMNS = [
    ("Sl.", "L"),
    ("Description", "L"),
    ("Duration", "C"),
    ("Qty", "C"),
    ("Unit Price (INR)", "R"),
    ("Total (INR)", "R"),
]
COL_WIDTHS = [35, 180, 80, 45, 90, 85]
TABLE_WIDTH = sum(COL_WIDTHS)
ROW_HEIGHT = 22
DESCRIPTION_WIDTH = COL_WIDTHS[1] - 15
# Tallest row that fits under a repeated table header
MAX_ROW_HEIGHT = CONTENT_BOTTOM - MARGIN - ROW_HEIGHT

TOTALS_LABEL_X = 370
TOTALS_VALUE_X = 475
TOTALS_ROW_HEIGHT = 18

TERMS_RIGHT_X = 300
TERMS_WIDTH = 220

WATERMARK_POSITIONS = [(130, 180), (130, 420), (130, 650)]
WATERMARK_WIDTH = 280
WATERMARK_ANGLE = 25
WATERMARK_OPACITY = 0.04

FOOTER_NOTE = "This is a computer generated document and no signature is required."

PRIMARY = (30, 58, 138)
MUTED = (107, 114, 128)
BLACK = (0, 0, 0)
TEXT = (51, 51, 51)
WHITE = (255, 255, 255)
ROW_SHADE = (248, 250, 252)
GREEN = (5, 150, 105)
RED = (220, 38, 38)
WORDS_BACKGROUND = (254, 243, 199)
WORDS_TEXT = (146, 64, 14)
FOOTER_GREY = (156, 163, 175)

# label colour, value colour, bold
TOTALS_STYLES = {
    "gst": (MUTED, PRIMARY, False),
    "grand_total": (PRIMARY, PRIMARY, True),
    "advance": (GREEN, GREEN, False),
    "balance": (RED, RED, True),
}


def _text(value) -> str:
    # Core PDF fonts only cover Latin-1
    return str("" if value is None else value).encode("latin-1", "replace").decode("latin-1")


def document_label(invoice: InvoiceBase) -> str:
    return "Quotation" if invoice.is_quotation else "Invoice"


def document_title(invoice: InvoiceBase) -> str:
    return "Tax Proposal" if invoice.is_quotation else "Tax Invoice"


def invoice_filename(invoice: InvoiceBase) -> str:
    return f"{document_label(invoice)}_{invoice.reference_number}.pdf"


def download_filename(invoice: InvoiceBase) -> str:
    return f"invoice-{invoice.reference_number or 'draft'}.pdf"


def totals_rows(invoice: InvoiceBase) -> List[Tuple[str, str, str]]:
    """(label, value, style) rows of the totals block, top to bottom."""
    rows = [
        (f"GST ({invoice.gst_rate}%):", format_inr(invoice.gst_amount), "gst"),
        ("GRAND TOTAL", format_inr(invoice.grand_total), "grand_total"),
    ]
    if invoice.advance_payment and invoice.advance_payment > 0:
        rows.append(("Advance Paid", f"- {format_inr(invoice.advance_payment)}", "advance"))
    rows.append(("BALANCE DUE", format_inr(invoice.balance_due), "balance"))
    return rows


def company_with_defaults(company: Optional[CompanyInfo]) -> CompanyInfo:
    values = DEFAULT_COMPANY_INFO.model_dump()
    if company is not None:
        values.update({key: value for key, value in company.model_dump().items() if value})
    return CompanyInfo.model_validate(values)


def resolve_logo(company: Optional[CompanyInfo], logo_path: Optional[str]) -> Optional[Logo]:
    """Image bytes from a data URL in the settings, else the configured logo file, else None."""
    if company is not None and company.logo and company.logo.startswith("data:image"):
        try:
            _, encoded = company.logo.split(",", 1)
            return base64.b64decode(encoded, validate=True)
        except ValueError as exc:
            logger.warning("company_logo_invalid", error=str(exc))
    if logo_path and os.path.exists(logo_path):
        return logo_path
    return None


def _row_height(line_count: int) -> float:
    return max(ROW_HEIGHT, line_count * LINE_HEIGHT + 10)


def _image_source(logo: Logo):
    return io.BytesIO(logo) if isinstance(logo, bytes) else logo


class InvoiceDocument(FPDF):
    def __init__(self, footer_date: str, logo: Optional[Logo] = None):
        super().__init__(orientation="P", unit="pt", format="A4")
        self.footer_date = footer_date
        self.logo = logo
        self.set_margins(MARGIN, MARGIN, MARGIN)
        self.set_auto_page_break(auto=False)

    def header(self):
        # Drawn first so page content sits on top of it
        if self.logo is None:
            return
        for x, y in WATERMARK_POSITIONS:
            with self.local_context(fill_opacity=WATERMARK_OPACITY):
                with self.rotation(WATERMARK_ANGLE, x=x + 150, y=y + 50):
                    self.image(_image_source(self.logo), x=x, y=y, w=WATERMARK_WIDTH)

    def footer(self):
        self.set_font("helvetica", size=8)
        self.set_text_color(*FOOTER_GREY)
        self.set_xy(MARGIN, FOOTER_Y)
        self.cell(CONTENT_WIDTH, 10, FOOTER_NOTE, align="C")
        self.set_xy(MARGIN, FOOTER_Y + 13)
        self.cell(CONTENT_WIDTH, 10, _text(f"Date: {self.footer_date}"), align="C")

    def render(self, invoice: InvoiceBase, company: CompanyInfo) -> None:
        self.set_title(f"{document_title(invoice)} {invoice.reference_number or ''}".strip())
        self.set_creator(company.name or "")
        self.add_page()

        self._issuer_block(company)
        self._title(document_title(invoice))
        y = self._parties(invoice)
        y = self._line_items(invoice.line_items, y)
        y = self._totals(invoice, y)
        y = self._amount_in_words(invoice.amount_in_words, y)
        y = self._terms(invoice, y)
        self._validity(invoice, y)

    # -- blocks -----------------------------------------------------------

    def _issuer_block(self, company: CompanyInfo) -> None:
        if self.logo is not None:
            self.image(_image_source(self.logo), x=MARGIN, y=30, w=120)
        y = 30
        for label, value in (
            ("GSTIN/UIN: ", company.gstin),
            ("STATE: ", company.state),
            ("STATE CODE: ", company.state_code),
            ("PAN: ", company.pan),
        ):
            self._label_value(RIGHT_COL, y, label, value, bold=True)
            y += 13

    def _title(self, title: str) -> None:
        self.set_font("helvetica", "B", 18)
        self.set_text_color(*PRIMARY)
        self.set_xy(MARGIN, TITLE_Y)
        self.cell(CONTENT_WIDTH, 20, title.upper(), align="C")

    def _parties(self, invoice: InvoiceBase) -> float:
        client = invoice.client
        left_width = RIGHT_COL - 10 - MARGIN
        y = PARTIES_Y
        y += self._label_value(MARGIN, y, f"{document_label(invoice)} For: ", client.company_name, bold=True, width=left_width)
        for label, value in (
            ("Name/Attn.: ", client.attention_to),
            ("Address: ", client.address),
            ("Tel: ", client.phone),
            ("Email: ", client.email),
            ("GST No: ", client.gst_no),
        ):
            y += self._label_value(MARGIN, y, label, value, width=left_width)

        self._label_value(RIGHT_COL, PARTIES_Y, "Date: ", format_date(invoice.date), bold=True)
        self._label_value(RIGHT_COL, PARTIES_Y + 14, "Invoice No: ", invoice.reference_number, bold=True)

        scope_y = max(SCOPE_MIN_Y, y + 10)
        self.set_font("helvetica", "B", 11)
        self.set_text_color(*BLACK)
        self.set_xy(MARGIN, scope_y)
        self.cell(CONTENT_WIDTH, 14, "SCOPE OF WORK")
        return scope_y + 18

    def _line_items(self, items: List[LineItem], y: float) -> float:
        y = self._table_header(y)
        for index, item in enumerate(items):
            y = self._line_item_row(index, item, y)
        return y

    def _line_item_row(self, index: int, item: LineItem, y: float) -> float:
        self.set_font("helvetica", size=9)
        lines = self.multi_cell(
            DESCRIPTION_WIDTH, LINE_HEIGHT, _text(item.description), dry_run=True, output=MethodReturnValue.LINES
        ) or [""]
        full_height = _row_height(len(lines))
        if y + full_height > CONTENT_BOTTOM and full_height <= MAX_ROW_HEIGHT:
            y = self._continue_table()

        cells = [
            str(index + 1),
            _text(item.duration),
            str(item.quantity),
            format_inr(item.unit_price),
            format_inr(item.total),
        ]
        # A description taller than a page is split; continuation rows carry only text
        while True:
            if CONTENT_BOTTOM - y < ROW_HEIGHT:
                y = self._continue_table()
            capacity = int((CONTENT_BOTTOM - y - 10) // LINE_HEIGHT)
            chunk, lines = lines[:capacity], lines[capacity:]
            height = _row_height(len(chunk))
            self._draw_row(index, chunk, cells, y, height)
            y += height
            if not lines:
                return y
            cells = [""] * len(cells)
            y = self._continue_table()

    def _draw_row(self, index: int, description: List[str], cells: List[str], y: float, height: float) -> None:
        if index % 2 == 1:
            self.set_fill_color(*ROW_SHADE)
            self.rect(MARGIN, y, TABLE_WIDTH, height, style="F")

        self.set_font("helvetica", size=9)
        self.set_text_color(*TEXT)
        values = [cells[0], None] + cells[1:]
        x = MARGIN
        for column, (value, width) in enumerate(zip(values, COL_WIDTHS)):
            if column == 1:
                for offset, line in enumerate(description):
                    self.set_xy(x + 5, y + 6 + offset * LINE_HEIGHT)
                    self.cell(DESCRIPTION_WIDTH, LINE_HEIGHT, line)
            else:
                self.set_xy(x + 5, y + 6)
                self.cell(width - 10, LINE_HEIGHT, value, align=COLUMNS[column][1])
            x += width

    def _continue_table(self) -> float:
        self.add_page()
        return self._table_header(MARGIN)

    def _table_header(self, y: float) -> float:
        self.set_fill_color(*PRIMARY)
        self.rect(MARGIN, y, TABLE_WIDTH, ROW_HEIGHT, style="F")
        self.set_text_color(*WHITE)
        self.set_font("helvetica", "B", 9)
        x = MARGIN
        for (title, align), width in zip(COLUMNS, COL_WIDTHS):
            self.set_xy(x + 5, y + 7)
            self.cell(width - 10, LINE_HEIGHT, title, align=align)
            x += width
        return y + ROW_HEIGHT

    def _totals(self, invoice: InvoiceBase, y: float) -> float:
        rows = totals_rows(invoice)
        y = self._ensure_space(y + 20, len(rows) * TOTALS_ROW_HEIGHT)
        for label, value, style in rows:
            label_colour, value_colour, bold = TOTALS_STYLES[style]
            self.set_font("helvetica", "B" if bold else "", 10)
            self.set_text_color(*label_colour)
            self.set_xy(TOTALS_LABEL_X, y)
            self.cell(100, 12, label, align="R")
            self.set_text_color(*value_colour)
            self.set_xy(TOTALS_VALUE_X, y)
            self.cell(80, 12, value, align="R")
            y += TOTALS_ROW_HEIGHT
        return y + 10

    def _amount_in_words(self, words: Optional[str], y: float) -> float:
        words = _text(words)
        self.set_font("helvetica", "I", 10)
        lines = self.multi_cell(TABLE_WIDTH - 20, 12, words, dry_run=True, output=MethodReturnValue.LINES)
        height = max(25, len(lines) * 12 + 13)
        y = self._ensure_space(y, height)

        self.set_fill_color(*WORDS_BACKGROUND)
        self.rect(MARGIN, y, TABLE_WIDTH, height, style="F")
        self.set_text_color(*WORDS_TEXT)
        self.set_xy(MARGIN + 10, y + 7)
        self.multi_cell(TABLE_WIDTH - 20, 12, words)
        return y + height + 15

    def _terms(self, invoice: InvoiceBase, y: float) -> float:
        payment = _text(invoice.payment_terms)
        delivery = _text(invoice.delivery_terms)
        self.set_font("helvetica", size=9)
        body_height = LINE_HEIGHT * max(
            len(self.multi_cell(TERMS_WIDTH, LINE_HEIGHT, payment, dry_run=True, output=MethodReturnValue.LINES)),
            len(self.multi_cell(TERMS_WIDTH, LINE_HEIGHT, delivery, dry_run=True, output=MethodReturnValue.LINES)),
        )
        y = self._ensure_space(y, 15 + body_height)

        self._heading(MARGIN, y, "PAYMENT TERMS")
        self._heading(TERMS_RIGHT_X, y, "DELIVERY TERMS")
        y += 15
        self.set_font("helvetica", size=9)
        self.set_text_color(*TEXT)
        self.set_xy(MARGIN, y)
        self.multi_cell(TERMS_WIDTH, LINE_HEIGHT, payment)
        self.set_xy(TERMS_RIGHT_X, y)
        self.multi_cell(TERMS_WIDTH, LINE_HEIGHT, delivery)
        return y + max(body_height, 20) + 15

    def _validity(self, invoice: InvoiceBase, y: float) -> None:
        y = self._ensure_space(y, 30)
        self._heading(MARGIN, y, "VALIDITY")
        if invoice.validity_date:
            self.set_font("helvetica", size=9)
            self.set_text_color(*TEXT)
            self.set_xy(MARGIN, y + 15)
            self.cell(CONTENT_WIDTH, LINE_HEIGHT, _text(f"The above offer is valid till {format_date(invoice.validity_date)}"))

    # -- helpers ----------------------------------------------------------

    def _heading(self, x: float, y: float, text: str) -> None:
        self.set_font("helvetica", "B", 10)
        self.set_text_color(*PRIMARY)
        self.set_xy(x, y)
        self.cell(TERMS_WIDTH, 12, text)

    def _ensure_space(self, y: float, needed: float) -> float:
        if y + needed > CONTENT_BOTTOM:
            self.add_page()
            return MARGIN
        return y

    def _label_value(self, x, y, label, value, bold=False, width=None) -> float:
        """Muted label followed by its value; returns the height used."""
        label = _text(label)
        self.set_font("helvetica", size=9)
        self.set_text_color(*MUTED)
        self.set_xy(x, y)
        label_width = self.get_string_width(label) + 2
        self.cell(label_width, LINE_HEIGHT, label)

        self.set_font("helvetica", "B" if bold else "", 9)
        self.set_text_color(*BLACK)
        available = (width if width is not None else PAGE_WIDTH - MARGIN - x) - label_width
        self.set_xy(x + label_width, y)
        self.multi_cell(available, LINE_HEIGHT, _text(value), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        return max(self.get_y() - y, LINE_HEIGHT) + 3


def build_invoice_document(
    invoice: InvoiceBase, company_info: Optional[CompanyInfo] = None, logo: Optional[Logo] = None
) -> InvoiceDocument:
    document = InvoiceDocument(footer_date=format_date(utc_now().date()), logo=logo)
    document.render(invoice, company_with_defaults(company_info))
    return document


def generate_invoice_pdf(invoice: InvoiceBase, company_info: Optional[CompanyInfo] = None, settings=None) -> bytes:
    """Render the invoice to PDF bytes.

    Raises:
        DocumentRenderError: if any part of the layout fails; no partial output is returned.
    """
    settings = settings or get_settings()
    reference = invoice.reference_number
    try:
        logo = resolve_logo(company_info, settings.logo_path)
        document = build_invoice_document(invoice, company_info, logo)
        pdf_bytes = bytes(document.output())
    except Exception as exc:
        logger.error("pdf_generation_failed", reference_number=reference, error=str(exc))
        raise DocumentRenderError(f"PDF generation failed: {exc}") from exc

    logger.info("pdf_generated", reference_number=reference, pages=document.page_no(), size=len(pdf_bytes))
    return pdf_bytes
