"""Company settings schemas."""

from typing import Optional

from invoicedesk.app.schemas.base import CamelModel


class CompanyInfo(CamelModel):
    name: Optional[str] = None
    gstin: Optional[str] = None
    state: Optional[str] = None
    state_code: Optional[str] = None
    pan: Optional[str] = None
    sales_phone: Optional[str] = None
    support_phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    logo: Optional[str] = None
    updated_at: Optional[str] = None


DEFAULT_COMPANY_INFO = CompanyInfo(
    name="RESONIRA TECHNOLOGIES",
    gstin="36ABMFR2520B1ZJ",
    state="Telangana",
    state_code="36",
    pan="ABMFR2520B",
    sales_phone="+919154289324",
    support_phone="",
    email="info@resonira.com",
    address="Telangana, India",
)
