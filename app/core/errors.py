"""
Custom exception hierarchy for the Wealth Observatory API.

Rule: every HTTP error has a machine-readable `code` string so clients
can branch on it without parsing English messages.
"""
from __future__ import annotations

from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status


# ---------------------------------------------------------------------------
# Exception classes
# ---------------------------------------------------------------------------

class ObservatoryException(Exception):
    """Base class for all application-level errors."""
    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ):
        self.message = message
        self.details = details or {}
        self.headers = headers
        super().__init__(message)

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ConfigurationError(ObservatoryException):
    code = "CONFIGURATION_ERROR"


class CronMisconfiguredError(ObservatoryException):
    code = "CRON_MISCONFIGURED"

    def __init__(self, min_length: int):
        super().__init__(
            message="Server configuration error.",
            details={"reason": f"CRON_SECRET is unset or shorter than {min_length} characters"},
        )


class UnauthorizedError(ObservatoryException):
    http_status = status.HTTP_401_UNAUTHORIZED
    code = "UNAUTHORIZED"

    def __init__(self):
        super().__init__(message="Unauthorized.")


class RateLimitExceededError(ObservatoryException):
    http_status = status.HTTP_429_TOO_MANY_REQUESTS
    code = "RATE_LIMITED"

    def __init__(self, retry_after: int):
        super().__init__(
            message=f"Rate limit exceeded. Retry in {retry_after}s.",
            details={"retry_after": retry_after},
            headers={"Retry-After": str(retry_after)},
        )


class FeedUnavailableError(ObservatoryException):
    http_status = status.HTTP_502_BAD_GATEWAY
    code = "FEED_UNAVAILABLE"


class InvalidFeedRecordError(ObservatoryException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "INVALID_FEED_RECORD"


class UpdateFailedError(ObservatoryException):
    code = "UPDATE_FAILED"

    def __init__(
        self,
        message: str,
        records_created: int,
        records_updated: int,
        records_failed: int,
    ):
        super().__init__(
            message=message,
            details={
                "success": False,
                "recordsCreated": records_created,
                "recordsUpdated": records_updated,
                "recordsFailed": records_failed,
            },
        )


class EntityNotFoundError(ObservatoryException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "ENTITY_NOT_FOUND"

    def __init__(self, slug: str):
        super().__init__(
            message=f"No tracked entity with slug '{slug}'.",
            details={"slug": slug},
        )


class InvalidDayCountError(ObservatoryException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "INVALID_DAY_COUNT"

    def __init__(self, days: Any, max_days: int):
        super().__init__(
            message=f"Invalid days parameter: {days!r}. Must be an integer between 1 and {max_days}.",
            details={"days": str(days), "min": 1, "max": max_days},
        )


class InvalidDateRangeError(ObservatoryException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "INVALID_DATE_RANGE"

    def __init__(self, start: Any, end: Any, max_days: int):
        super().__init__(
            message=(
                f"Invalid date range {start}..{end}. The end must not precede the "
                f"start and the range may cover at most {max_days} days."
            ),
            details={"start": str(start), "end": str(end), "max_days": max_days},
        )


class InvalidCatalogEntryError(ObservatoryException):
    code = "INVALID_CATALOG_ENTRY"

    def __init__(self, cost: Any, name: str | None = None):
        super().__init__(
            message=f"Unit cost must be positive, got {cost}"
                    + (f" for '{name}'" if name else "") + ".",
            details={"cost": str(cost), **({"name": name} if name else {})},
        )


class InvalidLuxuryPurchaseError(ObservatoryException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "INVALID_LUXURY_PURCHASE"


class EmptyCatalogError(ObservatoryException):
    code = "EMPTY_CATALOG"

    def __init__(self, region: str):
        super().__init__(
            message=(
                f"No active unit costs found for default region '{region}'. "
                "Run migrations to seed the catalog."
            ),
            details={"region": region},
        )


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

async def observatory_exception_handler(
    request: Request, exc: ObservatoryException
) -> JSONResponse:
    return JSONResponse(
        status_code=exc.http_status,
        content=exc.to_dict(),
        headers=exc.headers,
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return structured 422 with machine-readable field errors."""
    field_errors = []
    for error in exc.errors():
        field_errors.append({
            "field": ".".join(str(loc) for loc in error["loc"] if loc != "body"),
            "message": error["msg"],
            "type": error["type"],
        })
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "code": "VALIDATION_ERROR",
            "message": "Request validation failed.",
            "details": {"errors": field_errors},
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred.",
        },
    )
