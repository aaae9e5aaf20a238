"""Invoice and quotation routes."""

from typing import List

import structlog
from fastapi import APIRouter, Depends, HTTPException, Response, status

from invoicedesk.app.core.settings import Settings, get_settings
from invoicedesk.app.core.time import epoch_millis_id, utc_now, utc_now_iso
from invoicedesk.app.schemas.invoice import (
    Invoice,
    InvoiceBase,
    InvoiceCreate,
    InvoiceStats,
    InvoiceUpdate,
    SendDirectRequest,
    SendInvoiceRequest,
)
from invoicedesk.app.services.billing import dashboard_stats, fill_missing_totals, next_reference_number
from invoicedesk.app.services.email_service import send_invoice_email, verify_email_config
from invoicedesk.app.services.pdf_service import document_label, download_filename, generate_invoice_pdf
from invoicedesk.app.storage import Storage, get_storage

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/invoices", tags=["invoices"])


def _get_invoice_or_404(storage: Storage, invoice_id: str) -> Invoice:
    invoice = storage.invoices.get_by_id(invoice_id)
    if not invoice:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invoice not found")
    return invoice


def _new_invoice_id(storage: Storage) -> str:
    candidate = int(epoch_millis_id())
    # Two creates within the same millisecond get consecutive ids
    while storage.invoices.get_by_id(str(candidate)) is not None:
        candidate += 1
    return str(candidate)


def _email_invoice(invoice: InvoiceBase, recipient: str, storage: Storage, settings: Settings) -> dict:
    invoice = fill_missing_totals(invoice)
    pdf_bytes = generate_invoice_pdf(invoice, storage.settings.get(), settings)
    message_id = send_invoice_email(invoice, recipient, pdf_bytes, settings)
    return {
        "success": True,
        "messageId": message_id,
        "message": f"{document_label(invoice)} sent successfully to {recipient}",
    }


@router.get("/stats", response_model=InvoiceStats)
def get_invoice_stats(storage: Storage = Depends(get_storage)):
    return dashboard_stats(storage.invoices.get_all(), utc_now().date())


@router.get("/next-reference")
def get_next_reference(storage: Storage = Depends(get_storage)):
    return {"referenceNumber": next_reference_number(storage.invoices.get_all())}


@router.get("/email/status")
def get_email_status(settings: Settings = Depends(get_settings)):
    return verify_email_config(settings)


@router.post("/send-direct")
def send_direct(
    payload: SendDirectRequest,
    storage: Storage = Depends(get_storage),
    settings: Settings = Depends(get_settings),
):
    """Render an unsaved invoice and either download it or email it."""
    if payload.invoice is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invoice data is required")

    if payload.download:
        invoice = fill_missing_totals(payload.invoice)
        pdf_bytes = generate_invoice_pdf(invoice, storage.settings.get(), settings)
        return Response(
            content=pdf_bytes,
            media_type="application/pdf",
            headers={"Content-Disposition": f"attachment; filename={download_filename(invoice)}"},
        )

    if not payload.recipient_email:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Recipient email is required")
    return _email_invoice(payload.invoice, payload.recipient_email, storage, settings)


@router.get("", response_model=List[Invoice])
def list_invoices(storage: Storage = Depends(get_storage)):
    return storage.invoices.get_all()


@router.get("/{invoice_id}", response_model=Invoice)
def get_invoice(invoice_id: str, storage: Storage = Depends(get_storage)):
    return _get_invoice_or_404(storage, invoice_id)


@router.post("", status_code=status.HTTP_201_CREATED)
def create_invoice(payload: InvoiceCreate, storage: Storage = Depends(get_storage)):
    if payload.id and storage.invoices.get_by_id(payload.id) is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Invoice {payload.id} already exists")

    invoice_id = payload.id or _new_invoice_id(storage)
    now = utc_now_iso()
    data = fill_missing_totals(payload).model_dump(exclude={"id"})
    invoice = storage.invoices.create(Invoice(id=invoice_id, created_at=now, updated_at=now, **data))

    logger.info("invoice_created", invoice_id=invoice.id, type=invoice.type, reference_number=invoice.reference_number)
    return {"success": True, "id": invoice.id}


@router.put("/{invoice_id}")
def update_invoice(invoice_id: str, payload: InvoiceUpdate, storage: Storage = Depends(get_storage)):
    changes = payload.model_dump(exclude_unset=True)
    # Nested objects are replaced whole, not merged field by field
    if "client" in changes:
        changes["client"] = payload.client.model_dump()
    if "line_items" in changes:
        changes["line_items"] = [item.model_dump() for item in payload.line_items]

    updated = storage.invoices.update(invoice_id, changes)
    if updated is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invoice not found")

    logger.info("invoice_updated", invoice_id=invoice_id, fields=sorted(changes))
    return {"success": True}


@router.delete("/{invoice_id}")
def delete_invoice(invoice_id: str, storage: Storage = Depends(get_storage)):
    if not storage.invoices.delete(invoice_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invoice not found")
    logger.info("invoice_deleted", invoice_id=invoice_id)
    return {"success": True}


@router.post("/{invoice_id}/send")
def send_invoice(
    invoice_id: str,
    payload: SendInvoiceRequest,
    storage: Storage = Depends(get_storage),
    settings: Settings = Depends(get_settings),
):
    if not payload.recipient_email:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Recipient email is required")

    # An edited but unsaved copy in the body takes precedence over the stored one
    invoice = payload.invoice or _get_invoice_or_404(storage, invoice_id)
    return _email_invoice(invoice, payload.recipient_email, storage, settings)
