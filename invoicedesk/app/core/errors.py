"""Application error types mapped to HTTP status codes by the API layer."""

from fastapi import Request, status
from fastapi.responses import JSONResponse


class InvoiceDeskError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class StorageError(InvoiceDeskError):
    pass


class DocumentRenderError(InvoiceDeskError):
    pass


class EmailError(InvoiceDeskError):
    pass


class EmailNotConfiguredError(EmailError):
    pass


async def invoicedesk_error_handler(request: Request, exc: InvoiceDeskError) -> JSONResponse:
    # Messages are passed through as-is; this is an internal tool
    return JSONResponse(status_code=exc.status_code, content={"detail": str(exc)})
