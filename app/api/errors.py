"""
Exception handlers: every domain failure becomes `{"ok": false, "message": ...}`.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.services.errors import (
    TRY_AGAIN_MESSAGE,
    RecordStoreError,
    SuggestionServiceError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def _error(status: int, message: str) -> JSONResponse:
    return JSONResponse({"ok": False, "message": message}, status_code=status)


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return _error(422, exc.message)


async def record_store_error_handler(request: Request, exc: RecordStoreError) -> JSONResponse:
    logger.warning(
        "Store error on %s %s (table=%s op=%s): %s",
        request.method,
        request.url.path,
        exc.table,
        exc.operation,
        exc.message,
    )
    return _error(502, exc.message)


async def suggestion_error_handler(request: Request, exc: SuggestionServiceError) -> JSONResponse:
    # details were logged where the call failed; the user only sees "try again"
    logger.info("Suggestion failure on %s: %s", request.url.path, exc.message)
    return _error(502, TRY_AGAIN_MESSAGE)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(RecordStoreError, record_store_error_handler)
    app.add_exception_handler(SuggestionServiceError, suggestion_error_handler)
