"""Liveness and dependency health checks."""

from fastapi import APIRouter, Depends

from invoicedesk.app.core.settings import Settings, get_settings
from invoicedesk.app.core.time import utc_now_iso
from invoicedesk.app.storage import Storage, get_storage

router = APIRouter(prefix="/api/health", tags=["health"])


@router.get("")
def health_check():
    return {"status": "ok", "timestamp": utc_now_iso()}


@router.get("/full")
def full_health_check(storage: Storage = Depends(get_storage), settings: Settings = Depends(get_settings)):
    checks = {
        "status": "ok",
        "timestamp": utc_now_iso(),
        "services": {
            "backend": {"status": "ok", "port": settings.port, "version": settings.api_version},
            "database": {"status": "unknown"},
            "email": {"status": "configured" if settings.email_configured else "not_configured"},
        },
    }
    try:
        checks["services"]["database"] = storage.describe()
    except Exception as exc:
        checks["status"] = "degraded"
        checks["services"]["database"] = {"status": "error", "error": str(exc)}
    return checks
