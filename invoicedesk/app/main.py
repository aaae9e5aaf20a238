# InvoiceDesk backend entrypoint: REST API for invoices, quotations and company settings.

import time

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from invoicedesk.app.api import auth, health, invoices, settings as settings_api
from invoicedesk.app.core.dev_seed import ensure_defaults
from invoicedesk.app.core.errors import InvoiceDeskError, invoicedesk_error_handler
from invoicedesk.app.core.logging import configure_logging
from invoicedesk.app.core.settings import get_settings
from invoicedesk.app.storage import get_storage

logger = structlog.get_logger(__name__)

settings = get_settings()
app = FastAPI(title=settings.app_name, version=settings.api_version)

# The frontend may be served from any origin
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(InvoiceDeskError, invoicedesk_error_handler)

app.include_router(invoices.router)
app.include_router(settings_api.router)
app.include_router(auth.router)
app.include_router(health.router)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    logger.info(
        "request_handled",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round((time.perf_counter() - started) * 1000, 1),
    )
    return response


@app.get("/")
def read_root():
    return {"app": settings.app_name, "status": "ok"}


@app.on_event("startup")
def start_up():
    configure_logging(settings.log_level, settings.environment)
    storage = get_storage()
    logger.info(
        "invoicedesk_started",
        storage=storage.kind,
        email_configured=settings.email_configured,
        port=settings.port,
    )
    ensure_defaults(storage, settings)


if __name__ == "__main__":
    uvicorn.run("invoicedesk.app.main:app", host="0.0.0.0", port=settings.port)
