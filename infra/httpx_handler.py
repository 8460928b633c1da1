"""
httpx failure -> infra.exceptions.

The ingestor answers failures with a JSON body of the form
{"error": <kind>, "detail": <str or list of {"loc", "msg"}>}, plus
"status": "failed" when storage is down. The body is folded into the
exception message so the syncer log shows why a round was rejected.
"""

from typing import Optional, Type

import httpx

from infra.exceptions import (
    AuthorizationError,
    FatalValidationError,
    InfraConnectionError,
    ServiceUnavailableError,
    ValidationError,
)


def map_httpx_error_to_exception(exc: httpx.HTTPError, context: str) -> BaseException:
    """Map an httpx error to the exception the caller should raise."""
    match exc:
        case httpx.ConnectError():
            error = InfraConnectionError(f"{context}: connection failed")
        case httpx.TimeoutException():
            error = InfraConnectionError(f"{context}: timeout")
        case httpx.RemoteProtocolError():
            error = InfraConnectionError(f"{context}: protocol error")
        case httpx.LocalProtocolError():
            error = FatalValidationError(f"{context}: protocol error")
        case httpx.NetworkError():
            error = InfraConnectionError(f"{context}: network error")
        case httpx.HTTPStatusError():
            status = exc.response.status_code
            error_cls = map_httpx_status_to_exception(status, context)
            reason = describe_error_body(exc.response)
            message = f"{context}: http status {status}"
            error = error_cls(f"{message}: {reason}" if reason else message)
        case _:
            error = FatalValidationError(f"{context}: {exc}")
    error.__cause__ = exc
    return error


def map_httpx_status_to_exception(status: int, context: str) -> Type[BaseException]:
    """Map HTTP status codes to exceptions (switch-case)."""
    match status:
        case 401 | 403:
            return AuthorizationError
        case 400 | 422:
            return ValidationError
        case 404 | 405:
            return FatalValidationError
        case 429:
            return ServiceUnavailableError
        case 500 | 502 | 503 | 504:
            return ServiceUnavailableError
        case _:
            return FatalValidationError


def describe_error_body(response: httpx.Response) -> Optional[str]:
    """Human-readable reason from an ingestor error body, if it has one."""
    try:
        body = response.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None

    detail = body.get("detail")
    if isinstance(detail, list):
        # request validation: one entry per rejected field
        parts = []
        for item in detail:
            if isinstance(item, dict):
                loc = ".".join(str(p) for p in item.get("loc", ()))
                parts.append(f"{loc}: {item.get('msg', '')}" if loc else str(item.get("msg", "")))
            else:
                parts.append(str(item))
        detail = "; ".join(parts)

    kind = body.get("error")
    if body.get("status") == "failed":
        kind = f"{kind or 'request'} failed"
    if kind and detail:
        return f"{kind} ({detail})"
    return kind or detail or None
