from invoicedesk.app.db.base_class import Base

# Import models to register metadata for Base.metadata.create_all
from invoicedesk.app.models.invoice import Invoice  # noqa: F401
from invoicedesk.app.models.invoice_item import InvoiceItem  # noqa: F401
from invoicedesk.app.models.company_settings import CompanySettings  # noqa: F401
from invoicedesk.app.models.user import User  # noqa: F401
