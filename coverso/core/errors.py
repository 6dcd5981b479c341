"""Error normalization and handlers."""

import logging
from typing import Optional
from uuid import uuid4

from fastapi import HTTPException
from fastapi.responses import JSONResponse
from starlette.requests import Request

from coverso.core.logging import get_request_id


class AppError(Exception):
    code = "app_error"
    status_code = 500

    def __init__(self, message: str, *, code: Optional[str] = None, status_code: Optional[int] = None, request_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        self.request_id = request_id


# User input errors

class ValidationError(AppError, ValueError):
    code = "validation_error"
    status_code = 400


class UnauthorizedError(AppError):
    code = "unauthorized"
    status_code = 401


class NotFoundError(AppError, ValueError):
    code = "not_found"
    status_code = 404


# Entitlement gates

class OnboardingRequiredError(AppError):
    """Profile exists (or is missing) without completed onboarding."""
    code = "onboarding_required"
    status_code = 409


class QuotaExceededError(AppError):
    code = "quota_exceeded"
    status_code = 403


# Recoverable integration errors

class ProfileUnavailableError(AppError):
    code = "profile_unavailable"
    status_code = 503


class DocumentsUnavailableError(AppError):
    code = "documents_unavailable"
    status_code = 503


class DiscountUnavailableError(AppError):
    code = "discount_unavailable"
    status_code = 503


class GenerationFailedError(AppError):
    code = "generation_failed"
    status_code = 502


class PaymentIncompleteError(AppError):
    """Payment failed or needs further action; the attempt can be retried."""
    code = "payment_incomplete"
    status_code = 402


class BillingUnavailableError(AppError):
    code = "billing_disabled"
    status_code = 503


# Fatal-to-attempt errors: the client restarts the flow from the beginning

class SubscriptionCreationError(AppError):
    code = "subscription_creation_failed"
    status_code = 502


class CheckoutSessionNotFoundError(AppError):
    code = "checkout_session_not_found"
    status_code = 404


def _extract_request_id(request: Request, fallback: Optional[str] = None) -> str:
    return (
        getattr(request.state, "request_id", None)
        or get_request_id()
        or fallback
        or str(uuid4())
    )


def _error_payload(code: str, message: str, request_id: str) -> dict:
    return {
        "error": {"code": code, "message": message, "request_id": request_id},
        "detail": message,
    }


async def app_error_handler(request: Request, exc: AppError):
    rid = exc.request_id or _extract_request_id(request)
    payload = _error_payload(exc.code, exc.message, rid)
    logger = logging.getLogger("coverso")
    log_level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
    logger.log(
        log_level,
        "app.error",
        extra={"request_id": rid, "error_code": exc.code, "error_message": exc.message, "status": exc.status_code},
    )
    response = JSONResponse(status_code=exc.status_code, content=payload)
    response.headers["x-request-id"] = rid
    return response


async def http_error_handler(request: Request, exc: HTTPException):
    rid = _extract_request_id(request)
    code = "not_found" if exc.status_code == 404 else "http_error"
    message = exc.detail if exc.detail else "HTTP error"
    payload = _error_payload(code, message, rid)
    logger = logging.getLogger("coverso")
    logger.warning("http.error", extra={"request_id": rid, "error_code": code, "status": exc.status_code})
    response = JSONResponse(status_code=exc.status_code, content=payload)
    response.headers["x-request-id"] = rid
    return response


async def unhandled_exception_handler(request: Request, exc: Exception):
    rid = _extract_request_id(request)
    logger = logging.getLogger("coverso")
    logger.error("unhandled.exception", exc_info=True, extra={"request_id": rid, "error_code": "internal_error"})
    payload = _error_payload("internal_error", "Unexpected error", rid)
    response = JSONResponse(status_code=500, content=payload)
    response.headers["x-request-id"] = rid
    return response
