"""Invoice schemas."""

from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import EmailStr, Field, model_validator

from invoicedesk.app.schemas.base import CamelModel, Money
from invoicedesk.app.services.billing import line_total

InvoiceType = Literal["quotation", "invoice"]
InvoiceStatus = Literal["draft", "sent", "accepted", "rejected", "paid"]


class ClientInfo(CamelModel):
    company_name: Optional[str] = None
    attention_to: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    gst_no: Optional[str] = None


class LineItem(CamelModel):
    id: Optional[str] = None
    description: str = ""
    duration: Optional[str] = None
    quantity: int = 1
    unit_price: Money = Decimal("0")
    total: Optional[Money] = None

    @model_validator(mode="after")
    def _default_total(self):
        if self.total is None:
            self.total = line_total(self.quantity, self.unit_price)
        return self


class InvoiceBase(CamelModel):
    type: InvoiceType = "invoice"
    reference_number: Optional[str] = None
    date: Optional[str] = None
    validity_date: Optional[str] = None
    subject: Optional[str] = None
    description: Optional[str] = None
    prepared_by: Optional[str] = None
    prepared_by_email: Optional[str] = None
    client: ClientInfo = Field(default_factory=ClientInfo)
    line_items: List[LineItem] = Field(default_factory=list)

    subtotal: Optional[Money] = None
    gst_rate: int = 18
    gst_amount: Optional[Money] = None
    grand_total: Optional[Money] = None
    advance_payment: Money = Decimal("0")
    balance_due: Optional[Money] = None
    amount_in_words: Optional[str] = None

    payment_terms: Optional[str] = None
    delivery_terms: Optional[str] = None
    status: InvoiceStatus = "draft"

    @property
    def is_quotation(self) -> bool:
        return self.type == "quotation"


class InvoiceCreate(InvoiceBase):
    id: Optional[str] = None


class InvoiceUpdate(InvoiceBase):
    """Partial update; only the fields present in the request are applied."""


class Invoice(InvoiceBase):
    id: str
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class InvoiceStats(CamelModel):
    total_invoices: int
    total_quotations: int
    pending_amount: Money
    paid_amount: Money
    this_month_revenue: Money


class SendInvoiceRequest(CamelModel):
    recipient_email: Optional[EmailStr] = None
    invoice: Optional[InvoiceCreate] = None


class SendDirectRequest(CamelModel):
    invoice: Optional[InvoiceCreate] = None
    recipient_email: Optional[EmailStr] = None
    download: bool = False
