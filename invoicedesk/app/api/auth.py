"""Login and profile endpoints."""

import structlog
from fastapi import APIRouter, Depends, HTTPException, status

from invoicedesk.app.core.security import verify_password
from invoicedesk.app.schemas.user import LoginRequest, UserProfileUpdate, UserRead, UserRecord
from invoicedesk.app.storage import Storage, get_storage

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _public_user(user: UserRecord) -> UserRead:
    return UserRead(**user.model_dump(exclude={"password_hash", "created_at"}))


def _get_user_or_404(storage: Storage, user_id: str) -> UserRecord:
    user = storage.users.get_by_id(user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


@router.post("/login")
def login(credentials: LoginRequest, storage: Storage = Depends(get_storage)):
    if not credentials.email or not credentials.password:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email and password are required")

    user = storage.users.authenticate(credentials.email, credentials.password)
    if user is None:
        logger.info("login_failed", email=credentials.email)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")

    logger.info("login_succeeded", user_id=user.id)
    return {"success": True, "user": _public_user(user)}


@router.get("/profile/{user_id}", response_model=UserRead)
def get_profile(user_id: str, storage: Storage = Depends(get_storage)):
    return _public_user(_get_user_or_404(storage, user_id))


@router.put("/profile/{user_id}")
def update_profile(user_id: str, profile: UserProfileUpdate, storage: Storage = Depends(get_storage)):
    user = _get_user_or_404(storage, user_id)

    changes = {}
    if profile.name:
        changes["name"] = profile.name
    if profile.email and profile.email.strip().lower() != user.email:
        other = storage.users.get_by_email(profile.email)
        if other is not None and other.id != user.id:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email is already in use")
        changes["email"] = profile.email

    if profile.new_password:
        if not profile.current_password:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Current password is required to set new password",
            )
        if not verify_password(profile.current_password, user.password_hash):
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Current password is incorrect")
        changes["password"] = profile.new_password

    updated = storage.users.update(user.id, changes)
    logger.info("profile_updated", user_id=user.id, fields=sorted(changes))
    return {"success": True, "user": _public_user(updated)}
