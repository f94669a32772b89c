from fastapi import FastAPI, Request, status
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.core.logger import get_logger

logger = get_logger(__name__)

# Endpoints whose malformed bodies answer 400 {error, details} instead of 422
BULK_PATH_SUFFIXES = ('/bulk-delete', '/generate-messages', '/guess-gender')


class InvalidRequestError(Exception):
    """Malformed bulk request body, rejected before any persistence happens."""

    def __init__(self, error: str, details: str, status_code: int = status.HTTP_400_BAD_REQUEST):
        super().__init__(f"{error}: {details}")
        self.error = error
        self.details = details
        self.status_code = status_code


class BulkOperationError(Exception):
    """Unexpected infrastructure failure while running a bulk lead operation."""

    def __init__(self, details: str):
        super().__init__(details)
        self.details = details


async def invalid_request_handler(request: Request, exc: InvalidRequestError) -> JSONResponse:
    logger.warning(
        f"Rejected {request.method} {request.url.path}: {exc.details}",
        extra={'component': 'api', 'error': exc.error}
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.error, "details": exc.details}
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Bulk endpoints reject bodies that are not JSON objects with 400; others keep FastAPI's 422."""
    if not request.url.path.rstrip('/').endswith(BULK_PATH_SUFFIXES):
        return await request_validation_exception_handler(request, exc)
    return await invalid_request_handler(
        request,
        InvalidRequestError("Invalid request", "Request body must be a JSON object")
    )


async def bulk_operation_error_handler(request: Request, exc: BulkOperationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error", "details": exc.details}
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(InvalidRequestError, invalid_request_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(BulkOperationError, bulk_operation_error_handler)
