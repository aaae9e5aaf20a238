import os

import structlog

from invoicedesk.app.core.settings import Settings
from invoicedesk.app.schemas.settings import DEFAULT_COMPANY_INFO
from invoicedesk.app.storage import Storage

logger = structlog.get_logger(__name__)


def ensure_defaults(storage: Storage, settings: Settings) -> None:
    """
    Create the default admin user and company settings when the store has none.
    Skips execution when running under pytest to avoid altering test expectations.
    """
    if os.getenv("PYTEST_CURRENT_TEST") or not settings.seed_defaults:
        return

    if storage.users.count() == 0:
        user = storage.users.create(
            email=settings.default_admin_email,
            password=settings.default_admin_password,
            name=settings.default_admin_name,
        )
        logger.info("default_admin_created", user_id=user.id, email=user.email)

    if storage.settings.get() is None:
        storage.settings.update(DEFAULT_COMPANY_INFO.model_dump(exclude_none=True))
        logger.info("default_company_settings_created", name=DEFAULT_COMPANY_INFO.name)
