# storefront/api/responses.py
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from requests import RequestException

from storefront.domain.exceptions import (
    ConflictError,
    IllegalStateError,
    NotFoundError,
    StoreError,
    StorefrontError,
    ValidationError,
)
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

# first match wins, subclasses before their parents
_STATUS_CODES: list[tuple[type[StorefrontError], int]] = [
    (ValidationError, 400),
    (NotFoundError, 404),
    (IllegalStateError, 400),
    (ConflictError, 409),
    (StoreError, 500),
]


def ok(data=None) -> dict:
    if isinstance(data, BaseModel):
        data = data.model_dump(mode="json")
    elif isinstance(data, list):
        data = [d.model_dump(mode="json") if isinstance(d, BaseModel) else d for d in data]
    return {"success": True, "data": data}


def error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def status_code_for(exc: StorefrontError) -> int:
    for exc_type, code in _STATUS_CODES:
        if isinstance(exc, exc_type):
            return code
    return 500


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(StorefrontError)
    async def storefront_error(request: Request, exc: StorefrontError):
        code = status_code_for(exc)
        if code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc!r}")
        return error(code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def request_validation_error(request: Request, exc: RequestValidationError):
        fields = ", ".join(".".join(str(p) for p in e["loc"][1:]) or e["msg"] for e in exc.errors())
        return error(400, f"Invalid request: {fields}")

    @app.exception_handler(RequestException)
    async def upstream_error(request: Request, exc: RequestException):
        logger.error(f"Product service unavailable: {exc}")
        return error(502, "Product service unavailable")
