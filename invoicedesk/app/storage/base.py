"""Storage contract shared by the SQL and JSON-file backends.

Repositories speak in pydantic schemas. ``update`` methods take a snake_case
mapping of the fields to change, as produced by
``model_dump(exclude_unset=True)``.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from invoicedesk.app.core.security import verify_password
from invoicedesk.app.schemas.invoice import Invoice
from invoicedesk.app.schemas.settings import CompanyInfo
from invoicedesk.app.schemas.user import UserRecord


class InvoiceRepository(ABC):
    @abstractmethod
    def get_all(self) -> List[Invoice]:
        """All invoices and quotations, newest first."""

    @abstractmethod
    def get_by_id(self, invoice_id: str) -> Optional[Invoice]: ...

    @abstractmethod
    def create(self, invoice: Invoice) -> Invoice: ...

    @abstractmethod
    def update(self, invoice_id: str, changes: Dict[str, Any]) -> Optional[Invoice]:
        """Apply changes; a ``line_items`` entry replaces every line item. None when missing."""

    @abstractmethod
    def delete(self, invoice_id: str) -> bool: ...

    def find_one(self, **fields: Any) -> Optional[Invoice]:
        for invoice in self.get_all():
            if all(getattr(invoice, key, None) == value for key, value in fields.items()):
                return invoice
        return None

    def count(self) -> int:
        return len(self.get_all())


class SettingsRepository(ABC):
    @abstractmethod
    def get(self) -> Optional[CompanyInfo]: ...

    @abstractmethod
    def update(self, changes: Dict[str, Any]) -> CompanyInfo:
        """Create the settings record on first write, merge into it afterwards."""

    @abstractmethod
    def count(self) -> int: ...


class UserRepository(ABC):
    @abstractmethod
    def get_all(self) -> List[UserRecord]: ...

    @abstractmethod
    def get_by_id(self, user_id: str) -> Optional[UserRecord]: ...

    @abstractmethod
    def get_by_email(self, email: str) -> Optional[UserRecord]:
        """Case-insensitive lookup."""

    @abstractmethod
    def create(self, email: str, password: str, name: Optional[str] = None) -> UserRecord: ...

    @abstractmethod
    def update(self, user_id: str, changes: Dict[str, Any]) -> Optional[UserRecord]:
        """A ``password`` entry is hashed before it is stored."""

    def count(self) -> int:
        return len(self.get_all())

    def authenticate(self, email: str, password: str) -> Optional[UserRecord]:
        user = self.get_by_email(email)
        if not verify_password(password, user.password_hash if user else None):
            return None
        return user


class Storage(ABC):
    kind: str

    invoices: InvoiceRepository
    settings: SettingsRepository
    users: UserRepository

    @abstractmethod
    def describe(self) -> Dict[str, Any]:
        """Snapshot for the full health check."""
