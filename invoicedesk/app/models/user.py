from sqlalchemy import Column, String

from invoicedesk.app.core.time import utc_now_iso
from invoicedesk.app.db.base_class import Base


class User(Base):
    __tablename__ = "users"

    id = Column(String(64), primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=True)
    password_hash = Column(String(255), nullable=True)
    created_at = Column(String(40), default=utc_now_iso, nullable=False)
    updated_at = Column(String(40), default=utc_now_iso, onupdate=utc_now_iso, nullable=False)
