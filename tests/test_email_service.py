import smtplib
from decimal import Decimal

import pytest

from invoicedesk.app.core.errors import EmailError, EmailNotConfiguredError
from invoicedesk.app.core.settings import Settings
from invoicedesk.app.schemas.invoice import InvoiceCreate
from invoicedesk.app.services import email_service
from invoicedesk.app.services.email_service import (
    email_subject,
    recipient_name,
    render_email_html,
    send_invoice_email,
    verify_email_config,
)


class FakeSMTP:
    instances = []
    fail_login = False

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port
        self.timeout = timeout
        self.calls = []
        self.sent = []
        FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.calls.append("quit")
        return False

    def starttls(self):
        self.calls.append("starttls")

    def login(self, user, password):
        self.calls.append(("login", user, password))
        if FakeSMTP.fail_login:
            raise smtplib.SMTPAuthenticationError(535, b"Bad credentials")

    def send_message(self, message):
        self.sent.append(message)


@pytest.fixture(autouse=True)
def fake_smtp(monkeypatch):
    FakeSMTP.instances = []
    FakeSMTP.fail_login = False
    monkeypatch.setattr(email_service.smtplib, "SMTP", FakeSMTP)
    return FakeSMTP


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        email_host="smtp.example.com",
        email_port=2525,
        email_user="billing@example.com",
        email_pass="app-password",
    )


def make_invoice(**overrides):
    data = {
        "type": "invoice",
        "reference_number": "77",
        "date": "2024-01-05",
        "subject": "Cloud setup",
        "client": {"companyName": "Acme Pvt Ltd", "attentionTo": "Ravi Kumar"},
        "grand_total": Decimal("123456.5"),
    }
    data.update(overrides)
    return InvoiceCreate.model_validate(data)


def test_recipient_name_fallbacks():
    assert recipient_name(make_invoice()) == "Ravi Kumar"
    assert recipient_name(make_invoice(client={"companyName": "Acme Pvt Ltd"})) == "Acme Pvt Ltd"
    assert recipient_name(make_invoice(client={})) == "Valued Customer"


def test_subject_line():
    assert email_subject(make_invoice(), "Resonira Technologies") == "Invoice #77 - Cloud setup"
    assert email_subject(make_invoice(type="quotation", subject=None), "Resonira Technologies") == (
        "Quotation #77 - Resonira Technologies"
    )


def test_render_email_html():
    html = render_email_html(make_invoice(validity_date="2024-02-01"), "Resonira Technologies")
    assert "Dear Ravi Kumar," in html
    assert "Invoice #77" in html
    assert "1,23,456.50" in html
    assert "05 Jan 2024" in html
    assert "Valid Till" in html and "01 Feb 2024" in html


def test_render_email_html_without_validity_and_escaped():
    html = render_email_html(make_invoice(subject="<b>Hack</b>"), "Resonira Technologies")
    assert "Valid Till" not in html
    assert "<b>Hack</b>" not in html


def test_send_invoice_email(fake_smtp, settings):
    message_id = send_invoice_email(make_invoice(), "client@example.com", b"%PDF-1.4 fake", settings)

    server = fake_smtp.instances[0]
    assert (server.host, server.port, server.timeout) == ("smtp.example.com", 2525, 30)
    assert server.calls == ["starttls", ("login", "billing@example.com", "app-password"), "quit"]

    message = server.sent[0]
    assert message["Message-ID"] == message_id
    assert message["Subject"] == "Invoice #77 - Cloud setup"
    assert "billing@example.com" in message["From"]
    attachment = next(message.iter_attachments())
    assert attachment.get_filename() == "Invoice_77.pdf"
    assert attachment.get_content_type() == "application/pdf"
    assert attachment.get_content() == b"%PDF-1.4 fake"
    assert message.get_body(preferencelist=("html",)) is not None


def test_send_without_credentials_raises(fake_smtp):
    with pytest.raises(EmailNotConfiguredError):
        send_invoice_email(make_invoice(), "client@example.com", b"%PDF", Settings(_env_file=None, email_user=None))
    assert fake_smtp.instances == []


def test_smtp_failure_propagates_as_email_error(fake_smtp, settings):
    fake_smtp.fail_login = True
    with pytest.raises(EmailError):
        send_invoice_email(make_invoice(), "client@example.com", b"%PDF", settings)
    assert len(fake_smtp.instances) == 1


def test_verify_email_config(fake_smtp, settings):
    assert verify_email_config(settings) == {"configured": True}
    assert fake_smtp.instances[0].sent == []

    fake_smtp.fail_login = True
    result = verify_email_config(settings)
    assert result["configured"] is False
    assert "Bad credentials" in result["error"]


def test_verify_email_config_unconfigured():
    result = verify_email_config(Settings(_env_file=None, email_user=None, email_pass=None))
    assert result == {"configured": False, "error": "Email not configured"}
