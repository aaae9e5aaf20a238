"""Line item rows belonging to an invoice."""

from sqlalchemy import Column, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from invoicedesk.app.db.base_class import Base


class InvoiceItem(Base):
    __tablename__ = "invoice_items"

    pk = Column(Integer, primary_key=True, autoincrement=True)
    # Client-side identifier; only unique within its invoice
    id = Column(String(64), nullable=True)
    invoice_id = Column(String(64), ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    description = Column(Text, nullable=True)
    duration = Column(String(100), nullable=True)
    quantity = Column(Integer, nullable=False, default=1)
    unit_price = Column(Numeric(14, 2), nullable=False, default=0)
    total = Column(Numeric(14, 2), nullable=True)

    invoice = relationship("Invoice", back_populates="line_items")
