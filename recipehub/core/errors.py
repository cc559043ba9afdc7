"""Error taxonomy and the JSON error envelope."""

import logging
from typing import Any, Dict, Optional
from uuid import uuid4

from starlette.exceptions import HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.requests import Request

from recipehub.core.logging import get_request_id


class AppError(Exception):
    code = "APP_ERROR"
    status_code = 500

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
        request_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        self.request_id = request_id
        self.details = details or {}


class ValidationError(AppError, ValueError):
    code = "VALIDATION_ERROR"
    status_code = 400


class UnauthenticatedError(AppError):
    code = "UNAUTHENTICATED"
    status_code = 401


class EntitlementInactiveError(AppError):
    """Paid plan whose subscription is not active."""
    code = "SUBSCRIPTION_REQUIRED"
    status_code = 403


class PlanUpgradeRequiredError(AppError):
    code = "PLAN_UPGRADE_REQUIRED"
    status_code = 403


class NotFoundError(AppError, ValueError):
    code = "NOT_FOUND"
    status_code = 404


class ConflictError(AppError):
    code = "CONFLICT"
    status_code = 409


class QuotaExceededError(AppError):
    """Monthly request limit reached."""
    code = "LIMIT_EXCEEDED"
    status_code = 429


class RateLimitError(AppError):
    code = "RATE_LIMITED"
    status_code = 429


class UpstreamProviderError(AppError):
    """Generation or billing provider failed or returned unusable output."""
    code = "UPSTREAM_PROVIDER_ERROR"
    status_code = 502


class WebhookSignatureInvalidError(AppError):
    code = "WEBHOOK_SIGNATURE_INVALID"
    status_code = 400


class BillingDisabledError(AppError):
    code = "BILLING_DISABLED"
    status_code = 503


def _extract_request_id(request: Request, fallback: Optional[str] = None) -> str:
    return (
        getattr(request.state, "request_id", None)
        or get_request_id()
        or fallback
        or str(uuid4())
    )


def _error_payload(code: str, message: str, request_id: str, details: Optional[Dict[str, Any]] = None) -> dict:
    payload = {
        "success": False,
        "message": message,
        "code": code,
        "request_id": request_id,
    }
    if details:
        payload.update(details)
    return payload


async def app_error_handler(request: Request, exc: AppError):
    rid = exc.request_id or _extract_request_id(request)
    payload = _error_payload(exc.code, exc.message, rid, exc.details)
    logger = logging.getLogger("recipehub")
    log_level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
    logger.log(
        log_level,
        "app.error",
        extra={"request_id": rid, "error_code": exc.code, "error_message": exc.message, "status": exc.status_code},
    )
    response = JSONResponse(status_code=exc.status_code, content=payload)
    response.headers["x-request-id"] = rid
    return response


async def validation_error_handler(request: Request, exc: RequestValidationError):
    rid = _extract_request_id(request)
    fields = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
            "message": err.get("msg", "invalid value"),
        }
        for err in exc.errors()
    ]
    payload = _error_payload(ValidationError.code, "Validation error", rid, {"details": fields})
    logger = logging.getLogger("recipehub")
    logger.warning("validation.error", extra={"request_id": rid, "error_code": ValidationError.code, "status": 400})
    response = JSONResponse(status_code=400, content=payload)
    response.headers["x-request-id"] = rid
    return response


async def http_error_handler(request: Request, exc: HTTPException):
    rid = _extract_request_id(request)
    code = "NOT_FOUND" if exc.status_code == 404 else "HTTP_ERROR"
    message = exc.detail if isinstance(exc.detail, str) and exc.detail else "HTTP error"
    payload = _error_payload(code, message, rid)
    logger = logging.getLogger("recipehub")
    logger.warning("http.error", extra={"request_id": rid, "error_code": code, "status": exc.status_code})
    response = JSONResponse(status_code=exc.status_code, content=payload)
    response.headers["x-request-id"] = rid
    return response


async def unhandled_exception_handler(request: Request, exc: Exception):
    rid = _extract_request_id(request)
    logger = logging.getLogger("recipehub")
    logger.error("unhandled.exception", exc_info=exc, extra={"request_id": rid, "error_code": "INTERNAL_ERROR"})
    payload = _error_payload("INTERNAL_ERROR", "Internal server error", rid)
    response = JSONResponse(status_code=500, content=payload)
    response.headers["x-request-id"] = rid
    return response
