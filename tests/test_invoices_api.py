import pytest
from fastapi.testclient import TestClient

from invoicedesk.app.core.settings import Settings, get_settings
from invoicedesk.app.main import app
from invoicedesk.app.models.invoice import Invoice as InvoiceModel
from invoicedesk.app.models.invoice_item import InvoiceItem
from invoicedesk.app.services import email_service
from invoicedesk.app.storage import JsonStorage, SqlStorage, get_storage


class FakeSMTP:
    sent = []

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        return False

    def starttls(self):
        pass

    def login(self, user, password):
        pass

    def send_message(self, message):
        FakeSMTP.sent.append(message)


@pytest.fixture(autouse=True, params=["json", "sql"])
def storage(request, tmp_path):
    if request.param == "json":
        store = JsonStorage(tmp_path / "data")
    else:
        store = SqlStorage.from_url(f"sqlite:///{tmp_path / 'invoices.db'}")
    settings = Settings(
        _env_file=None,
        email_user="billing@example.com",
        email_pass="app-password",
        logo_path=str(tmp_path / "missing-logo.png"),
    )
    app.dependency_overrides[get_storage] = lambda: store
    app.dependency_overrides[get_settings] = lambda: settings
    yield store
    app.dependency_overrides.clear()
    if request.param == "sql":
        store.engine.dispose()


@pytest.fixture
def fake_smtp(monkeypatch):
    FakeSMTP.sent = []
    monkeypatch.setattr(email_service.smtplib, "SMTP", FakeSMTP)
    return FakeSMTP


def invoice_payload(**overrides):
    payload = {
        "type": "invoice",
        "referenceNumber": "101",
        "date": "2024-01-05",
        "subject": "Website redesign",
        "client": {"companyName": "Acme Pvt Ltd", "attentionTo": "Ravi Kumar", "email": "ravi@example.com"},
        "lineItems": [
            {"id": "1", "description": "Design", "quantity": 1, "unitPrice": 1000},
            {"id": "2", "description": "Build", "quantity": 2, "unitPrice": 250},
        ],
        "gstRate": 18,
        "advancePayment": 0,
        "status": "draft",
    }
    payload.update(overrides)
    return payload


def create_invoice(client: TestClient, **overrides) -> str:
    response = client.post("/api/invoices", json=invoice_payload(**overrides))
    assert response.status_code == 201
    return response.json()["id"]


def test_create_and_get_invoice():
    client = TestClient(app)
    response = client.post("/api/invoices", json=invoice_payload())
    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["id"].isdigit()

    fetched = client.get(f"/api/invoices/{body['id']}").json()
    assert fetched["referenceNumber"] == "101"
    assert fetched["client"]["companyName"] == "Acme Pvt Ltd"
    assert fetched["subtotal"] == 1500
    assert fetched["gstAmount"] == 270
    assert fetched["grandTotal"] == 1770
    assert fetched["balanceDue"] == 1770
    assert fetched["amountInWords"] == "One Thousand Seven Hundred and Seventy Rupees Only"
    assert fetched["lineItems"][1]["total"] == 500
    assert fetched["createdAt"] and fetched["updatedAt"]


def test_client_supplied_totals_are_stored_as_sent():
    client = TestClient(app)
    invoice_id = create_invoice(client, subtotal=1, gstAmount=2, grandTotal=3, balanceDue=3, amountInWords="Three")
    fetched = client.get(f"/api/invoices/{invoice_id}").json()
    assert (fetched["subtotal"], fetched["grandTotal"], fetched["amountInWords"]) == (1, 3, "Three")


def test_create_with_client_id_and_duplicate():
    client = TestClient(app)
    assert create_invoice(client, id="custom-1") == "custom-1"
    response = client.post("/api/invoices", json=invoice_payload(id="custom-1"))
    assert response.status_code == 409


def test_back_to_back_creates_get_distinct_ids():
    client = TestClient(app)
    ids = {create_invoice(client) for _ in range(3)}
    assert len(ids) == 3


def test_list_invoices():
    client = TestClient(app)
    create_invoice(client, referenceNumber="1")
    create_invoice(client, referenceNumber="2", type="quotation")
    response = client.get("/api/invoices")
    assert response.status_code == 200
    assert sorted(invoice["referenceNumber"] for invoice in response.json()) == ["1", "2"]


def test_get_unknown_invoice_returns_404():
    client = TestClient(app)
    response = client.get("/api/invoices/does-not-exist")
    assert response.status_code == 404
    assert response.json()["detail"] == "Invoice not found"


def test_update_invoice():
    client = TestClient(app)
    invoice_id = create_invoice(client)
    response = client.put(
        f"/api/invoices/{invoice_id}",
        json={"status": "paid", "lineItems": [{"id": "9", "description": "Retainer", "quantity": 1, "unitPrice": 99}]},
    )
    assert response.status_code == 200
    assert response.json() == {"success": True}

    fetched = client.get(f"/api/invoices/{invoice_id}").json()
    assert fetched["status"] == "paid"
    assert [item["description"] for item in fetched["lineItems"]] == ["Retainer"]
    assert fetched["lineItems"][0]["quantity"] == 1
    assert fetched["client"]["attentionTo"] == "Ravi Kumar"
    # Stored totals are not recomputed on update
    assert fetched["grandTotal"] == 1770


def test_update_and_delete_unknown_invoice_return_404():
    client = TestClient(app)
    assert client.put("/api/invoices/nope", json={"status": "sent"}).status_code == 404
    assert client.delete("/api/invoices/nope").status_code == 404


def test_update_rejects_unknown_status():
    client = TestClient(app)
    invoice_id = create_invoice(client)
    assert client.put(f"/api/invoices/{invoice_id}", json={"status": "archived"}).status_code == 422


def test_delete_invoice():
    client = TestClient(app)
    invoice_id = create_invoice(client)
    response = client.delete(f"/api/invoices/{invoice_id}")
    assert response.status_code == 200
    assert response.json() == {"success": True}
    assert client.get(f"/api/invoices/{invoice_id}").status_code == 404


def test_stats_and_next_reference():
    client = TestClient(app)
    create_invoice(client, referenceNumber="7", advancePayment=770)
    create_invoice(client, referenceNumber="12", type="quotation")

    stats = client.get("/api/invoices/stats").json()
    assert stats["totalInvoices"] == 1
    assert stats["totalQuotations"] == 1
    assert stats["pendingAmount"] == 1000
    assert stats["paidAmount"] == 770

    assert client.get("/api/invoices/next-reference").json() == {"referenceNumber": "13"}


def test_send_requires_recipient(fake_smtp):
    client = TestClient(app)
    invoice_id = create_invoice(client)
    response = client.post(f"/api/invoices/{invoice_id}/send", json={})
    assert response.status_code == 400
    assert fake_smtp.sent == []


def test_send_unknown_invoice_returns_404(fake_smtp):
    client = TestClient(app)
    response = client.post("/api/invoices/nope/send", json={"recipientEmail": "client@example.com"})
    assert response.status_code == 404


def test_send_invoice_emails_pdf(fake_smtp):
    client = TestClient(app)
    invoice_id = create_invoice(client)
    response = client.post(f"/api/invoices/{invoice_id}/send", json={"recipientEmail": "client@example.com"})
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["messageId"]
    assert body["message"] == "Invoice sent successfully to client@example.com"

    message = fake_smtp.sent[0]
    assert message["To"] == "client@example.com"
    assert message["Subject"] == "Invoice #101 - Website redesign"
    attachment = next(message.iter_attachments())
    assert attachment.get_filename() == "Invoice_101.pdf"
    assert attachment.get_content().startswith(b"%PDF")


def test_send_prefers_invoice_from_body(fake_smtp):
    client = TestClient(app)
    invoice_id = create_invoice(client)
    edited = invoice_payload(referenceNumber="555", type="quotation")
    response = client.post(
        f"/api/invoices/{invoice_id}/send",
        json={"recipientEmail": "client@example.com", "invoice": edited},
    )
    assert response.status_code == 200
    assert fake_smtp.sent[0]["Subject"].startswith("Quotation #555")


def test_send_without_email_config_returns_500(fake_smtp):
    app.dependency_overrides[get_settings] = lambda: Settings(_env_file=None, email_user=None, email_pass=None)
    client = TestClient(app)
    invoice_id = create_invoice(client)
    response = client.post(f"/api/invoices/{invoice_id}/send", json={"recipientEmail": "client@example.com"})
    assert response.status_code == 500
    assert "Email not configured" in response.json()["detail"]


def test_send_direct_download_returns_pdf():
    client = TestClient(app)
    response = client.post("/api/invoices/send-direct", json={"invoice": invoice_payload(), "download": True})
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.headers["content-disposition"] == "attachment; filename=invoice-101.pdf"
    assert response.content.startswith(b"%PDF")


def test_send_direct_download_without_reference_uses_draft():
    client = TestClient(app)
    response = client.post(
        "/api/invoices/send-direct",
        json={"invoice": invoice_payload(referenceNumber=None), "download": True},
    )
    assert response.headers["content-disposition"] == "attachment; filename=invoice-draft.pdf"


def test_send_direct_validation(fake_smtp):
    client = TestClient(app)
    assert client.post("/api/invoices/send-direct", json={}).status_code == 400
    assert client.post("/api/invoices/send-direct", json={"invoice": invoice_payload()}).status_code == 400


def test_send_direct_emails(fake_smtp):
    client = TestClient(app)
    response = client.post(
        "/api/invoices/send-direct",
        json={"invoice": invoice_payload(), "recipientEmail": "client@example.com"},
    )
    assert response.status_code == 200
    assert len(fake_smtp.sent) == 1


def test_email_status_not_configured():
    app.dependency_overrides[get_settings] = lambda: Settings(_env_file=None, email_user=None, email_pass=None)
    client = TestClient(app)
    assert client.get("/api/invoices/email/status").json() == {"configured": False, "error": "Email not configured"}


def test_email_status_configured(fake_smtp):
    client = TestClient(app)
    assert client.get("/api/invoices/email/status").json() == {"configured": True}


def test_storage_failure_returns_500_with_message(storage):
    if isinstance(storage, JsonStorage):
        (storage.data_dir / "invoices.json").write_text("[{", encoding="utf-8")
        expected = "Could not read invoices.json"
    else:
        InvoiceItem.__table__.drop(storage.engine)
        InvoiceModel.__table__.drop(storage.engine)
        expected = "Database error"
    client = TestClient(app)
    response = client.get("/api/invoices")
    assert response.status_code == 500
    assert response.json()["detail"].startswith(expected)
