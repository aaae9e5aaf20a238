"""Issuer (company) details. The table holds at most one row."""

from sqlalchemy import Column, Integer, String, Text

from invoicedesk.app.core.time import utc_now_iso
from invoicedesk.app.db.base_class import Base


class CompanySettings(Base):
    __tablename__ = "company_settings"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=True)
    gstin = Column(String(32), nullable=True)
    state = Column(String(100), nullable=True)
    state_code = Column(String(10), nullable=True)
    pan = Column(String(20), nullable=True)
    sales_phone = Column(String(50), nullable=True)
    support_phone = Column(String(50), nullable=True)
    email = Column(String(255), nullable=True)
    address = Column(Text, nullable=True)
    logo = Column(Text, nullable=True)
    updated_at = Column(String(40), default=utc_now_iso, onupdate=utc_now_iso, nullable=False)
