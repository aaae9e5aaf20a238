"""Relational storage on SQLAlchemy.

Each repository call runs in its own session and commits once, so an invoice
update and the replacement of its line items land in a single transaction.
"""

import uuid
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, selectinload, sessionmaker

from invoicedesk.app.core.errors import StorageError
from invoicedesk.app.core.security import get_password_hash
from invoicedesk.app.core.time import utc_now_iso
from invoicedesk.app.db.base import Base
from invoicedesk.app.db.session import create_db_engine, create_session_factory
from invoicedesk.app.models.company_settings import CompanySettings
from invoicedesk.app.models.invoice import Invoice as InvoiceModel
from invoicedesk.app.models.invoice_item import InvoiceItem
from invoicedesk.app.models.user import User
from invoicedesk.app.schemas.invoice import Invoice
from invoicedesk.app.schemas.settings import CompanyInfo
from invoicedesk.app.schemas.user import UserRecord
from invoicedesk.app.storage.base import InvoiceRepository, SettingsRepository, Storage, UserRepository

INVOICE_FIELDS = [column.name for column in InvoiceModel.__table__.columns]
SETTINGS_FIELDS = [column.name for column in CompanySettings.__table__.columns if column.name != "id"]
USER_FIELDS = [column.name for column in User.__table__.columns]

logger = structlog.get_logger(__name__)


@contextmanager
def _session(session_factory: sessionmaker):
    """Session scope that reports database failures as StorageError."""
    try:
        with session_factory() as db:
            yield db
    except SQLAlchemyError as exc:
        logger.error("sql_storage_failed", error=str(exc))
        raise StorageError(f"Database error: {exc}") from exc


def _settings_to_schema(row: CompanySettings) -> CompanyInfo:
    return CompanyInfo.model_validate({field: getattr(row, field) for field in SETTINGS_FIELDS})


def _user_to_schema(row: User) -> UserRecord:
    return UserRecord.model_validate({field: getattr(row, field) for field in USER_FIELDS})


def _invoice_to_schema(row: InvoiceModel) -> Invoice:
    data = {field: getattr(row, field) for field in INVOICE_FIELDS}
    data["client"] = row.client or {}
    data["line_items"] = [
        {
            "id": item.id,
            "description": item.description or "",
            "duration": item.duration,
            "quantity": item.quantity,
            "unit_price": item.unit_price,
            "total": item.total,
        }
        for item in row.line_items
    ]
    return Invoice.model_validate(data)


def _line_item_rows(line_items: List[Dict[str, Any]]) -> List[InvoiceItem]:
    return [
        InvoiceItem(
            id=item.get("id"),
            position=position,
            description=item.get("description"),
            duration=item.get("duration"),
            quantity=item.get("quantity") or 0,
            unit_price=item.get("unit_price") or 0,
            total=item.get("total"),
        )
        for position, item in enumerate(line_items)
    ]


class SqlInvoiceRepository(InvoiceRepository):
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def get_all(self) -> List[Invoice]:
        with _session(self._session_factory) as db:
            rows = (
                db.query(InvoiceModel)
                .options(selectinload(InvoiceModel.line_items))
                .order_by(InvoiceModel.created_at.desc(), InvoiceModel.id.desc())
                .all()
            )
            return [_invoice_to_schema(row) for row in rows]

    def get_by_id(self, invoice_id: str) -> Optional[Invoice]:
        with _session(self._session_factory) as db:
            row = db.get(InvoiceModel, invoice_id)
            return _invoice_to_schema(row) if row else None

    def create(self, invoice: Invoice) -> Invoice:
        data = invoice.model_dump()
        line_items = data.pop("line_items")
        with _session(self._session_factory) as db:
            row = InvoiceModel(**{field: data[field] for field in INVOICE_FIELDS if data.get(field) is not None})
            row.line_items = _line_item_rows(line_items)
            db.add(row)
            db.commit()
            db.refresh(row)
            return _invoice_to_schema(row)

    def update(self, invoice_id: str, changes: Dict[str, Any]) -> Optional[Invoice]:
        changes = dict(changes)
        line_items = changes.pop("line_items", None)
        with _session(self._session_factory) as db:
            row = db.get(InvoiceModel, invoice_id)
            if row is None:
                return None
            for field, value in changes.items():
                if field in INVOICE_FIELDS and field != "id":
                    setattr(row, field, value)
            if line_items is not None:
                # delete-orphan cascade drops the old rows in the same commit
                row.line_items = _line_item_rows(line_items)
            row.updated_at = utc_now_iso()
            db.commit()
            db.refresh(row)
            return _invoice_to_schema(row)

    def delete(self, invoice_id: str) -> bool:
        with _session(self._session_factory) as db:
            row = db.get(InvoiceModel, invoice_id)
            if row is None:
                return False
            db.delete(row)
            db.commit()
            return True

    def count(self) -> int:
        with _session(self._session_factory) as db:
            return db.query(InvoiceModel).count()


class SqlSettingsRepository(SettingsRepository):
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def get(self) -> Optional[CompanyInfo]:
        with _session(self._session_factory) as db:
            row = db.query(CompanySettings).order_by(CompanySettings.id).first()
            return _settings_to_schema(row) if row else None

    def update(self, changes: Dict[str, Any]) -> CompanyInfo:
        with _session(self._session_factory) as db:
            row = db.query(CompanySettings).order_by(CompanySettings.id).first()
            if row is None:
                row = CompanySettings()
                db.add(row)
            for field, value in changes.items():
                if field in SETTINGS_FIELDS:
                    setattr(row, field, value)
            row.updated_at = utc_now_iso()
            db.commit()
            db.refresh(row)
            return _settings_to_schema(row)

    def count(self) -> int:
        with _session(self._session_factory) as db:
            return db.query(CompanySettings).count()


class SqlUserRepository(UserRepository):
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def get_all(self) -> List[UserRecord]:
        with _session(self._session_factory) as db:
            return [_user_to_schema(row) for row in db.query(User).order_by(User.created_at).all()]

    def get_by_id(self, user_id: str) -> Optional[UserRecord]:
        with _session(self._session_factory) as db:
            row = db.get(User, user_id)
            return _user_to_schema(row) if row else None

    def get_by_email(self, email: str) -> Optional[UserRecord]:
        with _session(self._session_factory) as db:
            row = _query_by_email(db, email).first()
            return _user_to_schema(row) if row else None

    def create(self, email: str, password: str, name: Optional[str] = None) -> UserRecord:
        with _session(self._session_factory) as db:
            row = User(
                id=uuid.uuid4().hex,
                email=email.strip().lower(),
                name=name,
                password_hash=get_password_hash(password),
            )
            db.add(row)
            db.commit()
            db.refresh(row)
            return _user_to_schema(row)

    def update(self, user_id: str, changes: Dict[str, Any]) -> Optional[UserRecord]:
        with _session(self._session_factory) as db:
            row = db.get(User, user_id)
            if row is None:
                return None
            if changes.get("name") is not None:
                row.name = changes["name"]
            if changes.get("email"):
                row.email = changes["email"].strip().lower()
            if changes.get("password"):
                row.password_hash = get_password_hash(changes["password"])
            row.updated_at = utc_now_iso()
            db.commit()
            db.refresh(row)
            return _user_to_schema(row)

    def count(self) -> int:
        with _session(self._session_factory) as db:
            return db.query(User).count()


def _query_by_email(db: Session, email: str):
    return db.query(User).filter(func.lower(User.email) == email.strip().lower())


class SqlStorage(Storage):
    kind = "sql"

    def __init__(self, engine: Engine):
        self.engine = engine
        session_factory = create_session_factory(engine)
        self.invoices = SqlInvoiceRepository(session_factory)
        self.settings = SqlSettingsRepository(session_factory)
        self.users = SqlUserRepository(session_factory)

    @classmethod
    def from_url(cls, database_url: str) -> "SqlStorage":
        """Connect and create missing tables; raises if the database is unreachable."""
        engine = create_db_engine(database_url)
        Base.metadata.create_all(bind=engine)
        return cls(engine)

    def describe(self) -> Dict[str, Any]:
        return {
            "status": "ok",
            "type": "sql",
            "dialect": self.engine.dialect.name,
            "counts": {
                "invoices": self.invoices.count(),
                "users": self.users.count(),
                "hasSettings": self.settings.count() > 0,
            },
        }
