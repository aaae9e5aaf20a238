"""Invoice / quotation model."""

from sqlalchemy import JSON, Column, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from invoicedesk.app.core.time import utc_now_iso
from invoicedesk.app.db.base_class import Base


class Invoice(Base):
    __tablename__ = "invoices"

    id = Column(String(64), primary_key=True, index=True)
    type = Column(String(20), default="invoice", nullable=False)
    reference_number = Column(String(64), nullable=True, index=True)
    date = Column(String(40), nullable=True)
    validity_date = Column(String(40), nullable=True)
    subject = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    prepared_by = Column(String(255), nullable=True)
    prepared_by_email = Column(String(255), nullable=True)
    client = Column(JSON, nullable=True)

    subtotal = Column(Numeric(14, 2), nullable=True)
    gst_rate = Column(Integer, default=18, nullable=False)
    gst_amount = Column(Numeric(14, 2), nullable=True)
    grand_total = Column(Numeric(14, 2), nullable=True)
    advance_payment = Column(Numeric(14, 2), default=0, nullable=False)
    balance_due = Column(Numeric(14, 2), nullable=True)
    amount_in_words = Column(Text, nullable=True)

    payment_terms = Column(Text, nullable=True)
    delivery_terms = Column(Text, nullable=True)
    status = Column(String(20), default="draft", nullable=False)

    created_at = Column(String(40), default=utc_now_iso, nullable=False, index=True)
    updated_at = Column(String(40), default=utc_now_iso, onupdate=utc_now_iso, nullable=False)

    line_items = relationship(
        "InvoiceItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceItem.position",
    )
