"""Typed errors raised by the eAccounting client.

Every failure in the transport, token manager and resource clients surfaces as
an `ApiError` subclass. Nothing here retries; callers decide.
"""

from __future__ import annotations

import json
from typing import Any

# OAuth2 token endpoint error codes that mean "re-authenticate".
_OAUTH_AUTH_ERRORS = {
    "invalid_grant",
    "invalid_client",
    "unauthorized_client",
    "invalid_token",
    "access_denied",
}


class ApiError(RuntimeError):
    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        field_errors: dict[str, list[str]] | None = None,
        body: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.field_errors = field_errors or {}
        self.body = body

    def __str__(self) -> str:
        if self.status_code is None:
            return self.message
        return f"HTTP {self.status_code}: {self.message}"


class ValidationError(ApiError):
    pass


class NotFound(ApiError):
    pass


class AuthError(ApiError):
    pass


class RateLimited(ApiError):
    def __init__(self, message: str, *, retry_after: float | None = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.retry_after = retry_after


class NetworkError(ApiError):
    pass


class UnknownServerError(ApiError):
    pass


class ConfigurationError(ApiError):
    pass


def error_from_response(
    status_code: int,
    text: str | None,
    *,
    retry_after: str | None = None,
) -> ApiError:
    """Classify a non-2xx response into the matching `ApiError` subclass."""

    payload = _parse_json(text)
    message = _extract_message(payload) or f"HTTP {status_code}"
    field_errors = _extract_field_errors(payload)
    kwargs: dict[str, Any] = {
        "status_code": status_code,
        "field_errors": field_errors,
        "body": text,
    }

    oauth_code = payload.get("error") if isinstance(payload, dict) else None
    if status_code in (401, 403) or oauth_code in _OAUTH_AUTH_ERRORS:
        return AuthError(message, **kwargs)
    if status_code == 404:
        return NotFound(message, **kwargs)
    if status_code == 429:
        return RateLimited(message, retry_after=_parse_retry_after(retry_after), **kwargs)
    if status_code in (400, 422) or (400 <= status_code < 500 and field_errors):
        return ValidationError(message, **kwargs)
    return UnknownServerError(message, **kwargs)


def _parse_json(text: str | None) -> Any:
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return None


def _extract_message(payload: Any) -> str | None:
    if not isinstance(payload, dict):
        return None
    for key in ("message", "Message", "error_description", "DeveloperErrorMessage", "error"):
        value = payload.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _extract_field_errors(payload: Any) -> dict[str, list[str]]:
    if not isinstance(payload, dict):
        return {}

    out: dict[str, list[str]] = {}
    for key in ("errors", "fieldErrors"):
        raw = payload.get(key)
        if not isinstance(raw, dict):
            continue
        for field, messages in raw.items():
            if isinstance(messages, str):
                out.setdefault(str(field), []).append(messages)
            elif isinstance(messages, list):
                out.setdefault(str(field), []).extend(str(m) for m in messages)

    # Visma style: [{"Field": "Name", "Message": "Required"}]
    items = payload.get("ValidationErrors")
    if isinstance(items, list):
        for item in items:
            if not isinstance(item, dict):
                continue
            field = item.get("Field") or item.get("field") or ""
            msg = item.get("Message") or item.get("message") or ""
            if field and msg:
                out.setdefault(str(field), []).append(str(msg))
    return out


def _parse_retry_after(value: str | None) -> float | None:
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None
