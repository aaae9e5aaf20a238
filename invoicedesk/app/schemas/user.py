"""User schemas used for login and profile responses."""

from typing import Optional

from pydantic import Field

from invoicedesk.app.schemas.base import CamelModel


class UserRecord(CamelModel):
    """Stored user, including the password hash. Never returned by the API."""

    id: str
    email: str
    name: Optional[str] = None
    password_hash: Optional[str] = Field(default=None, repr=False)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class UserRead(CamelModel):
    id: str
    email: str
    name: Optional[str] = None
    updated_at: Optional[str] = None


class UserProfileUpdate(CamelModel):
    name: Optional[str] = None
    email: Optional[str] = None
    current_password: Optional[str] = None
    new_password: Optional[str] = None


class LoginRequest(CamelModel):
    """Payload for login attempts; presence is checked by the route for a 400."""

    email: Optional[str] = None
    password: Optional[str] = None
