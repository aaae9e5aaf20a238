"""Outbound invoice email over SMTP.

A new connection is opened for every message; nothing is pooled or retried.
"""

import smtplib
from email.message import EmailMessage
from email.utils import formataddr, make_msgid
from pathlib import Path
from typing import Optional

import structlog
from jinja2 import Environment, FileSystemLoader, select_autoescape

from invoicedesk.app.core.errors import EmailError, EmailNotConfiguredError
from invoicedesk.app.core.settings import Settings, get_settings
from invoicedesk.app.core.time import utc_now
from invoicedesk.app.schemas.invoice import InvoiceBase
from invoicedesk.app.services.formatting import format_date, format_inr
from invoicedesk.app.services.pdf_service import document_label, invoice_filename

logger = structlog.get_logger(__name__)

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"

_env = Environment(loader=FileSystemLoader(str(TEMPLATE_DIR)), autoescape=select_autoescape(["html"]))


def recipient_name(invoice: InvoiceBase) -> str:
    client = invoice.client
    return client.attention_to or client.company_name or "Valued Customer"


def email_subject(invoice: InvoiceBase, company_name: str) -> str:
    return f"{document_label(invoice)} #{invoice.reference_number} - {invoice.subject or company_name}"


def render_email_html(invoice: InvoiceBase, company_name: str) -> str:
    template = _env.get_template("invoice_email.html")
    return template.render(
        company_name=company_name,
        doc_type=document_label(invoice),
        reference_number=invoice.reference_number,
        recipient_name=recipient_name(invoice),
        subject=invoice.subject or "Services",
        amount=format_inr(invoice.grand_total),
        date=format_date(invoice.date),
        valid_till=format_date(invoice.validity_date) if invoice.validity_date else None,
        year=utc_now().year,
    )


def build_message(invoice: InvoiceBase, recipient: str, pdf_bytes: bytes, settings: Settings) -> EmailMessage:
    company_name = settings.email_from_name
    doc_type = document_label(invoice)

    message = EmailMessage()
    message["Subject"] = email_subject(invoice, company_name)
    message["From"] = formataddr((company_name, settings.email_user))
    message["To"] = recipient
    message["Message-ID"] = make_msgid(domain=settings.email_user.split("@")[-1])
    message.set_content(
        f"Dear {recipient_name(invoice)},\n\n"
        f"Please find attached your {doc_type.lower()} #{invoice.reference_number}.\n\n"
        f"Best regards,\n{company_name}\n"
    )
    message.add_alternative(render_email_html(invoice, company_name), subtype="html")
    message.add_attachment(pdf_bytes, maintype="application", subtype="pdf", filename=invoice_filename(invoice))
    return message


def _smtp(settings: Settings) -> smtplib.SMTP:
    return smtplib.SMTP(settings.email_host, settings.email_port, timeout=settings.email_timeout)


def _login(server: smtplib.SMTP, settings: Settings) -> None:
    if settings.email_use_tls:
        server.starttls()
    server.login(settings.email_user, settings.email_pass)


def send_invoice_email(
    invoice: InvoiceBase, recipient: str, pdf_bytes: bytes, settings: Optional[Settings] = None
) -> str:
    """Send the invoice PDF to ``recipient`` and return the Message-ID.

    Raises:
        EmailNotConfiguredError: if no SMTP credentials are configured.
        EmailError: if the relay rejects the connection, login or message.
    """
    settings = settings or get_settings()
    if not settings.email_configured:
        raise EmailNotConfiguredError("Email not configured. Please set EMAIL_USER and EMAIL_PASS in .env file.")

    message = build_message(invoice, recipient, pdf_bytes, settings)
    try:
        with _smtp(settings) as server:
            _login(server, settings)
            server.send_message(message)
    except (smtplib.SMTPException, OSError) as exc:
        logger.error(
            "invoice_email_failed",
            reference_number=invoice.reference_number,
            recipient=recipient,
            error=str(exc),
        )
        raise EmailError(str(exc)) from exc

    logger.info(
        "invoice_email_sent",
        reference_number=invoice.reference_number,
        recipient=recipient,
        message_id=message["Message-ID"],
    )
    return message["Message-ID"]


def verify_email_config(settings: Optional[Settings] = None) -> dict:
    """Connect and log in without sending anything."""
    settings = settings or get_settings()
    if not settings.email_configured:
        return {"configured": False, "error": "Email not configured"}
    try:
        with _smtp(settings) as server:
            _login(server, settings)
    except (smtplib.SMTPException, OSError) as exc:
        logger.warning("email_verify_failed", host=settings.email_host, error=str(exc))
        return {"configured": False, "error": str(exc)}
    return {"configured": True}
