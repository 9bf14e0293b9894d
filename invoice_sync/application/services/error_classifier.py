"""
Error classification for provider calls.

Every failure raised while talking to a mail provider is labelled either
``transient`` (record it, keep going) or ``auth-fatal`` (pause the
integration, stop the pass). Adapters normally hand us a ``ProviderError``,
but the classifier also copes with raw SDK exceptions and OAuth error
payloads so that nothing unexpected can escape as an unclassified error.
"""

from typing import Any

from invoice_sync.domain.exceptions import ProviderError, ProviderErrorKind
from invoice_sync.shared.enums import ErrorClass

AUTH_FATAL_STATUSES = frozenset({401, 403})

AUTH_FATAL_MARKERS = (
    "invalid_grant",
    "invalid_token",
    "unauthorized",
    "unauthorized_client",
    "authentication_failed",
    "token_expired",
)


def _status_of(error: Any) -> int | None:
    """Best-effort HTTP status from the shapes used by google, httpx and our own errors"""
    if isinstance(error, dict):
        status = error.get("status") or error.get("status_code")
        return status if isinstance(status, int) else None

    for attr in ("status", "status_code"):
        value = getattr(error, attr, None)
        if isinstance(value, int):
            return value

    # httpx.HTTPStatusError
    response = getattr(error, "response", None)
    value = getattr(response, "status_code", None)
    if isinstance(value, int):
        return value

    # googleapiclient.errors.HttpError
    resp = getattr(error, "resp", None)
    value = getattr(resp, "status", None)
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.isdigit():
        return int(value)
    return None


def _code_of(error: Any) -> str:
    if isinstance(error, dict):
        code = error.get("error") or error.get("code") or ""
        return code if isinstance(code, str) else ""
    code = getattr(error, "code", None)
    return code if isinstance(code, str) else ""


def _payload_message(payload: Any) -> str | None:
    """Walk the error payload shapes used by OAuth, Google and Graph"""
    if isinstance(payload, str):
        return payload or None
    if not isinstance(payload, dict):
        return None

    # OAuth: {"error": "invalid_grant", "error_description": "..."}
    description = payload.get("error_description")
    if isinstance(description, str) and description:
        return description

    error = payload.get("error")
    # Graph: {"error": {"code": "...", "message": "..."}}
    # Google: {"error": {"errors": [{"message": "..."}], "message": "..."}}
    if isinstance(error, dict):
        nested = error.get("errors")
        if isinstance(nested, list) and nested and isinstance(nested[0], dict):
            message = nested[0].get("message")
            if isinstance(message, str) and message:
                return message
        message = error.get("message")
        if isinstance(message, str) and message:
            return message
    if isinstance(error, str) and error:
        return error

    errors = payload.get("errors")
    if isinstance(errors, list) and errors and isinstance(errors[0], dict):
        message = errors[0].get("message")
        if isinstance(message, str) and message:
            return message

    message = payload.get("message")
    if isinstance(message, str) and message:
        return message
    return None


def extract_message(error: Any, fallback: str) -> str:
    """Human-readable message for any error; never raises"""
    try:
        if isinstance(error, ProviderError):
            return error.message or _payload_message(error.raw) or fallback

        message = _payload_message(error)
        if message:
            return message

        raw = getattr(error, "raw", None)
        message = _payload_message(raw)
        if message:
            return message

        if isinstance(error, BaseException):
            text = str(error).strip()
            if text:
                return text
    except Exception:
        return fallback
    return fallback


def classify(error: Any) -> ErrorClass:
    """Label a provider-call failure as transient or auth-fatal"""
    if isinstance(error, ProviderError):
        if error.kind == ProviderErrorKind.AUTH_EXPIRED:
            return ErrorClass.AUTH_FATAL
        # Adapter already decided; a 403 quota error stays transient
        if error.kind in (ProviderErrorKind.RATE_LIMITED, ProviderErrorKind.NOT_FOUND):
            return ErrorClass.TRANSIENT

    status = _status_of(error)
    if status in AUTH_FATAL_STATUSES:
        return ErrorClass.AUTH_FATAL

    code = _code_of(error).lower()
    message = extract_message(error, "").lower()
    for marker in AUTH_FATAL_MARKERS:
        if marker in code or marker in message:
            return ErrorClass.AUTH_FATAL

    if "auth" in message and "fail" in message:
        return ErrorClass.AUTH_FATAL

    return ErrorClass.TRANSIENT
