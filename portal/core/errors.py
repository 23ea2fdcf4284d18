"""Error taxonomy for the hardware ledger and the JSON error responses.

Every rejection the ledger can produce is a ``LedgerError`` subclass that knows
its HTTP status and the extra fields the client needs (for example the
current ``available`` count after a refused checkout). The handlers at the
bottom turn these, plus FastAPI's own exceptions, into ``{"error": ...}``
bodies so the browser client only has to look in one place.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger("portal.errors")


class LedgerError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST
    # Hardware set the rejection concerns, when there is one.
    name: str | None = None

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def details(self) -> dict[str, Any]:
        return {}


class InvalidRequestError(LedgerError):
    """Malformed input rejected before anything touches storage."""


class HardwareNotFound(InvalidRequestError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, name: str) -> None:
        super().__init__("Hardware not found")
        self.name = name


class CapacityExceeded(LedgerError):
    def __init__(self, name: str, available: int) -> None:
        super().__init__(f"Insufficient hardware. Available: {available}")
        self.name = name
        self.available = available

    def details(self) -> dict[str, Any]:
        return {"available": self.available}


class UnderflowExceeded(LedgerError):
    def __init__(self, name: str, checked_out: int) -> None:
        super().__init__("Cannot check in more than checked out.")
        self.name = name
        self.checked_out = checked_out

    def details(self) -> dict[str, Any]:
        return {"checkedOut": self.checked_out}


class StorageUnavailable(LedgerError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    def __init__(self, message: str = "Hardware storage unavailable, try again") -> None:
        super().__init__(message)


class ErrorEnvelope(JSONResponse):
    def __init__(
        self,
        *,
        status_code: int,
        message: str,
        details: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        payload: dict[str, Any] = {"error": message}
        if details:
            payload.update(details)
        super().__init__(payload, status_code=status_code, headers=headers)


def error_payload(exc: LedgerError) -> dict[str, Any]:
    return {"error": exc.message, **exc.details()}


async def ledger_exception_handler(request: Request, exc: LedgerError):
    logger.info(
        "ledger.rejected",
        extra={"extra_data": {"status": exc.status_code, "error": exc.message, "hardware": exc.name}},
    )
    return ErrorEnvelope(status_code=exc.status_code, message=exc.message, details=exc.details())


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    detail = exc.detail
    if isinstance(detail, dict):
        return JSONResponse(detail, status_code=exc.status_code, headers=exc.headers)
    message = detail if isinstance(detail, str) and detail else "Error"
    return ErrorEnvelope(status_code=exc.status_code, message=message, headers=exc.headers)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]
    return ErrorEnvelope(
        status_code=status.HTTP_400_BAD_REQUEST,
        message="Validation failed",
        details={"details": errors},
    )
