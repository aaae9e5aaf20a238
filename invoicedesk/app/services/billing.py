"""Invoice arithmetic: line totals, GST, grand total, balance due and dashboard figures."""

import random
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Iterable, Optional

from invoicedesk.app.services.amount_words import amount_to_words
from invoicedesk.app.services.formatting import parse_date

if TYPE_CHECKING:
    from invoicedesk.app.schemas.invoice import InvoiceBase, LineItem

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value) -> Decimal:
    if value is None:
        return ZERO
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def line_total(quantity: int | None, unit_price: Decimal | float | None) -> Decimal:
    return to_money(Decimal(quantity or 0) * Decimal(str(unit_price or 0)))


def calculate_subtotal(line_items: Iterable["LineItem"]) -> Decimal:
    total = sum((Decimal(str(item.total)) for item in line_items if item.total is not None), ZERO)
    return to_money(total)


def calculate_gst(subtotal: Decimal, gst_rate: int | Decimal) -> Decimal:
    return to_money(Decimal(str(subtotal)) * Decimal(str(gst_rate)) / Decimal("100"))


def calculate_grand_total(subtotal: Decimal, gst_amount: Decimal) -> Decimal:
    return to_money(Decimal(str(subtotal)) + Decimal(str(gst_amount)))


def calculate_balance_due(grand_total: Decimal, advance_payment: Decimal | None) -> Decimal:
    balance = Decimal(str(grand_total)) - Decimal(str(advance_payment or 0))
    if balance < ZERO:
        balance = ZERO
    return to_money(balance)


@dataclass(frozen=True)
class InvoiceTotals:
    subtotal: Decimal
    gst_amount: Decimal
    grand_total: Decimal
    balance_due: Decimal
    amount_in_words: str


def compute_totals(line_items: Iterable["LineItem"], gst_rate: int, advance_payment: Decimal | None = None) -> InvoiceTotals:
    subtotal = calculate_subtotal(line_items)
    gst_amount = calculate_gst(subtotal, gst_rate)
    grand_total = calculate_grand_total(subtotal, gst_amount)
    balance_due = calculate_balance_due(grand_total, advance_payment)
    return InvoiceTotals(
        subtotal=subtotal,
        gst_amount=gst_amount,
        grand_total=grand_total,
        balance_due=balance_due,
        amount_in_words=words_for_totals(grand_total, balance_due),
    )


def words_for_totals(grand_total: Decimal, balance_due: Decimal) -> str:
    # The words banner states what is still owed, or the full amount when nothing is
    return amount_to_words(balance_due if balance_due > ZERO else grand_total)


def fill_missing_totals(invoice: "InvoiceBase") -> "InvoiceBase":
    """Return a copy with every derived field the payload left out computed.

    Values the client supplied are kept as-is, even when they disagree with the
    line items.
    """
    subtotal = invoice.subtotal if invoice.subtotal is not None else calculate_subtotal(invoice.line_items)
    gst_amount = invoice.gst_amount if invoice.gst_amount is not None else calculate_gst(subtotal, invoice.gst_rate)
    grand_total = (
        invoice.grand_total if invoice.grand_total is not None else calculate_grand_total(subtotal, gst_amount)
    )
    balance_due = (
        invoice.balance_due
        if invoice.balance_due is not None
        else calculate_balance_due(grand_total, invoice.advance_payment)
    )
    amount_in_words = invoice.amount_in_words or words_for_totals(grand_total, balance_due)
    return invoice.model_copy(
        update={
            "subtotal": subtotal,
            "gst_amount": gst_amount,
            "grand_total": grand_total,
            "balance_due": balance_due,
            "amount_in_words": amount_in_words,
        }
    )


def next_reference_number(invoices: Iterable["InvoiceBase"]) -> str:
    numbers = []
    for invoice in invoices:
        try:
            numbers.append(int(str(invoice.reference_number).strip()))
        except (TypeError, ValueError):
            continue
    return str(max(numbers) + 1) if numbers else "1"


def random_reference_number(rng: Optional[random.Random] = None) -> str:
    rng = rng or random
    return f"{rng.randint(1000, 9999)}-{rng.randint(1000, 9999)}"


def dashboard_stats(invoices: Iterable["InvoiceBase"], today: date) -> dict:
    """Headline figures for the dashboard cards. Quotations only count towards total_quotations."""
    stats = {
        "total_invoices": 0,
        "total_quotations": 0,
        "pending_amount": ZERO,
        "paid_amount": ZERO,
        "this_month_revenue": ZERO,
    }
    for invoice in invoices:
        if invoice.is_quotation:
            stats["total_quotations"] += 1
            continue

        stats["total_invoices"] += 1
        grand_total = to_money(invoice.grand_total)
        advance = to_money(invoice.advance_payment)
        stats["paid_amount"] += advance
        if invoice.status != "paid":
            stats["pending_amount"] += grand_total - advance

        invoice_date = parse_date(invoice.date)
        if invoice_date and (invoice_date.year, invoice_date.month) == (today.year, today.month):
            stats["this_month_revenue"] += grand_total

    return stats
