"""Flat-file storage: one pretty-printed JSON array per collection.

Every write rewrites the whole file without locking, so concurrent writers to
the same collection race and the last one wins.
"""

import json
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog

from invoicedesk.app.core.errors import StorageError
from invoicedesk.app.core.security import get_password_hash
from invoicedesk.app.core.time import utc_now_iso
from invoicedesk.app.schemas.invoice import Invoice
from invoicedesk.app.schemas.settings import CompanyInfo
from invoicedesk.app.schemas.user import UserRecord
from invoicedesk.app.storage.base import InvoiceRepository, SettingsRepository, Storage, UserRepository

logger = structlog.get_logger(__name__)


class JsonCollection:
    def __init__(self, data_dir: Path, name: str):
        self.name = name
        self.path = data_dir / f"{name}.json"

    def exists(self) -> bool:
        return self.path.exists()

    def read(self) -> List[Dict[str, Any]]:
        if not self.path.exists():
            return []
        try:
            with self.path.open("r", encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, ValueError) as exc:
            logger.error("json_collection_read_failed", collection=self.name, path=str(self.path), error=str(exc))
            raise StorageError(f"Could not read {self.name}.json: {exc}") from exc
        if isinstance(data, dict):
            # Older settings files held a bare object
            return [data] if data else []
        return data if isinstance(data, list) else []

    def write(self, records: List[Dict[str, Any]]) -> None:
        try:
            with self.path.open("w", encoding="utf-8") as fh:
                json.dump(records, fh, indent=2, ensure_ascii=False)
        except OSError as exc:
            logger.error("json_collection_write_failed", collection=self.name, path=str(self.path), error=str(exc))
            raise StorageError(f"Could not write {self.name}.json: {exc}") from exc


def _dump(model) -> Dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True)


class JsonInvoiceRepository(InvoiceRepository):
    def __init__(self, collection: JsonCollection):
        self.collection = collection

    def get_all(self) -> List[Invoice]:
        invoices = [Invoice.model_validate(record) for record in self.collection.read()]
        invoices.sort(key=lambda invoice: invoice.created_at or "", reverse=True)
        return invoices

    def get_by_id(self, invoice_id: str) -> Optional[Invoice]:
        for record in self.collection.read():
            if record.get("id") == invoice_id:
                return Invoice.model_validate(record)
        return None

    def create(self, invoice: Invoice) -> Invoice:
        records = self.collection.read()
        records.append(_dump(invoice))
        self.collection.write(records)
        return invoice

    def update(self, invoice_id: str, changes: Dict[str, Any]) -> Optional[Invoice]:
        records = self.collection.read()
        for index, record in enumerate(records):
            if record.get("id") != invoice_id:
                continue
            merged = Invoice.model_validate(record).model_dump()
            merged.update(changes)
            merged["id"] = invoice_id
            merged["updated_at"] = utc_now_iso()
            updated = Invoice.model_validate(merged)
            records[index] = _dump(updated)
            self.collection.write(records)
            return updated
        return None

    def delete(self, invoice_id: str) -> bool:
        records = self.collection.read()
        remaining = [record for record in records if record.get("id") != invoice_id]
        if len(remaining) == len(records):
            return False
        self.collection.write(remaining)
        return True

    def count(self) -> int:
        return len(self.collection.read())


class JsonSettingsRepository(SettingsRepository):
    def __init__(self, collection: JsonCollection):
        self.collection = collection

    def get(self) -> Optional[CompanyInfo]:
        records = self.collection.read()
        if not records:
            return None
        return CompanyInfo.model_validate(records[0])

    def update(self, changes: Dict[str, Any]) -> CompanyInfo:
        records = self.collection.read()
        current = records[0] if records else {}
        merged = CompanyInfo.model_validate(current).model_dump()
        merged.update(changes)
        merged["updated_at"] = utc_now_iso()
        settings = CompanyInfo.model_validate(merged)
        # Always a single-element array on disk
        self.collection.write([settings.model_dump(mode="json", by_alias=True, exclude_none=True)])
        return settings

    def count(self) -> int:
        return len(self.collection.read())


class JsonUserRepository(UserRepository):
    def __init__(self, collection: JsonCollection):
        self.collection = collection

    def get_all(self) -> List[UserRecord]:
        return [UserRecord.model_validate(record) for record in self.collection.read()]

    def get_by_id(self, user_id: str) -> Optional[UserRecord]:
        for record in self.collection.read():
            if record.get("id") == user_id:
                return UserRecord.model_validate(record)
        return None

    def get_by_email(self, email: str) -> Optional[UserRecord]:
        wanted = email.strip().lower()
        for record in self.collection.read():
            if (record.get("email") or "").lower() == wanted:
                return UserRecord.model_validate(record)
        return None

    def create(self, email: str, password: str, name: Optional[str] = None) -> UserRecord:
        now = utc_now_iso()
        user = UserRecord(
            id=uuid.uuid4().hex,
            email=email.strip().lower(),
            name=name,
            password_hash=get_password_hash(password),
            created_at=now,
            updated_at=now,
        )
        records = self.collection.read()
        records.append(_dump(user))
        self.collection.write(records)
        return user

    def update(self, user_id: str, changes: Dict[str, Any]) -> Optional[UserRecord]:
        records = self.collection.read()
        for index, record in enumerate(records):
            if record.get("id") != user_id:
                continue
            merged = UserRecord.model_validate(record).model_dump()
            merged.update(_user_changes(changes))
            merged["updated_at"] = utc_now_iso()
            user = UserRecord.model_validate(merged)
            records[index] = _dump(user)
            self.collection.write(records)
            return user
        return None

    def count(self) -> int:
        return len(self.collection.read())


def _user_changes(changes: Dict[str, Any]) -> Dict[str, Any]:
    values = {key: value for key, value in changes.items() if key in ("name", "email")}
    if values.get("email"):
        values["email"] = values["email"].strip().lower()
    if changes.get("password"):
        values["password_hash"] = get_password_hash(changes["password"])
    return values


class JsonStorage(Storage):
    kind = "json"

    def __init__(self, data_dir):
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self._collections = {
            name: JsonCollection(self.data_dir, name) for name in ("invoices", "settings", "users")
        }
        self.invoices = JsonInvoiceRepository(self._collections["invoices"])
        self.settings = JsonSettingsRepository(self._collections["settings"])
        self.users = JsonUserRepository(self._collections["users"])

    def describe(self) -> Dict[str, Any]:
        return {
            "status": "ok",
            "type": "json-file-storage",
            "path": str(self.data_dir),
            "files": {name: collection.exists() for name, collection in self._collections.items()},
            "counts": {
                "invoices": self.invoices.count(),
                "users": self.users.count(),
                "hasSettings": self.settings.count() > 0,
            },
        }
