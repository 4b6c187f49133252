import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from pos.log import get_request_id

logger = logging.getLogger(__name__)


class PosError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(PosError):
    status_code = 400


class InvalidItemError(ValidationError):
    pass


class ProductNotFoundError(PosError):
    status_code = 400

    def __init__(self, product_id: str):
        super().__init__(f"product not found: {product_id}")
        self.product_id = product_id


class InsufficientPaymentError(PosError):
    status_code = 400


class NotFoundError(PosError):
    status_code = 404


class InvalidStateError(PosError):
    status_code = 409


class ConflictError(PosError):
    """Unique name taken, or the row is still referenced elsewhere."""
    status_code = 409


class PersistenceError(PosError):
    status_code = 500


def _failure(status_code: int, kind: str, message: str, **extra) -> JSONResponse:
    body = {"success": False, "error": kind, "message": message, **extra}
    rid = get_request_id()
    if rid:
        body["request_id"] = rid
    return JSONResponse(status_code=status_code, content=body)


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(PosError)
    async def _pos_error(request: Request, exc: PosError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return _failure(exc.status_code, type(exc).__name__, exc.message)

    @app.exception_handler(RequestValidationError)
    async def _request_validation(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        where = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = first.get("msg", "invalid request")
        if where:
            message = f"{where}: {message}"
        return _failure(400, "ValidationError", message)

    @app.exception_handler(SQLAlchemyError)
    async def _persistence(request: Request, exc: SQLAlchemyError):
        logger.exception("persistence failure on %s %s", request.method, request.url.path, exc_info=exc)
        return _failure(500, "PersistenceError", "persistence failure")
