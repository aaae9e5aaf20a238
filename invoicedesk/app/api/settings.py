"""Company settings routes."""

import structlog
from fastapi import APIRouter, Depends

from invoicedesk.app.schemas.settings import CompanyInfo
from invoicedesk.app.storage import Storage, get_storage

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/settings", tags=["settings"])


@router.get("")
def get_company_settings(storage: Storage = Depends(get_storage)):
    company = storage.settings.get()
    if company is None:
        return {}
    return company.model_dump(mode="json", by_alias=True, exclude_none=True)


@router.put("")
def update_company_settings(payload: CompanyInfo, storage: Storage = Depends(get_storage)):
    changes = payload.model_dump(exclude_unset=True, exclude={"updated_at"})
    storage.settings.update(changes)
    logger.info("company_settings_updated", fields=sorted(changes))
    return {"success": True}
