"""Backend-side error mapping.

Backends attach retry metadata via BackendError so the retrying client can
decide deterministically without substring matching on SDK messages.
"""

from __future__ import annotations

import asyncio
import re
from typing import Any

import httpx

from tldw.errors import BackendError, RateLimitError, _walk_exception_chain

RETRYABLE_STATUS_CODES: frozenset[int] = frozenset({408, 409, 429, 500, 502, 503, 504})

_PROTO_DURATION_RE = re.compile(r"^(\d+(?:\.\d+)?)s$")


def extract_status_code(exc: BaseException) -> int | None:
    """Walk the exception chain to find an HTTP status code."""
    for e in _walk_exception_chain(exc):
        for attr in ("status_code", "code", "status"):
            value = getattr(e, attr, None)
            if isinstance(value, int) and 100 <= value <= 599:
                return value
        response = getattr(e, "response", None)
        value = getattr(response, "status_code", None)
        if isinstance(value, int) and 100 <= value <= 599:
            return value
    return None


def _retry_info_seconds(exc: BaseException) -> float | None:
    """Read a Google RetryInfo ``retryDelay`` (e.g. ``"8s"``) from error details."""
    details: Any = getattr(exc, "details", None)
    if not isinstance(details, dict):
        return None
    error: Any = details.get("error")
    if not isinstance(error, dict):
        return None
    entries: Any = error.get("details")
    if not isinstance(entries, list):
        return None
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        at_type = entry.get("@type", "")
        if not isinstance(at_type, str) or "RetryInfo" not in at_type:
            continue
        delay_raw = entry.get("retryDelay")
        if isinstance(delay_raw, str) and (m := _PROTO_DURATION_RE.match(delay_raw)):
            return float(m.group(1))
    return None


def _retry_after_header(exc: BaseException) -> float | None:
    headers: Any = getattr(getattr(exc, "response", None), "headers", None)
    if headers is None or not hasattr(headers, "get"):
        return None
    raw = headers.get("Retry-After")
    if not isinstance(raw, str) or not raw.strip():
        return None
    try:
        seconds = float(raw)
    except ValueError:
        return None
    return seconds if seconds >= 0 else None


def extract_retry_after_s(exc: BaseException) -> float | None:
    """Walk the exception chain to find a retry-after delay in seconds."""
    for e in _walk_exception_chain(exc):
        value = getattr(e, "retry_after", None)
        if isinstance(value, (int, float)) and value >= 0:
            return float(value)
        header = _retry_after_header(e)
        if header is not None:
            return header
        retry_info = _retry_info_seconds(e)
        if retry_info is not None:
            return retry_info
    return None


def _auth_hint(status_code: int | None, cause: str) -> str | None:
    lowered = cause.lower()
    if status_code in {401, 403} or (
        status_code == 400 and ("api key" in lowered or "api_key" in lowered)
    ):
        return "Check credentials (set GEMINI_API_KEY or Config.api_key)."
    return None


def wrap_backend_error(
    exc: BaseException,
    *,
    provider: str,
    message: str | None = None,
) -> BackendError:
    """Map SDK exceptions into BackendError with stable retry metadata."""
    if isinstance(exc, asyncio.CancelledError):
        raise exc

    if isinstance(exc, BackendError):
        if exc.provider is None:
            exc.provider = provider
        return exc

    status_code = extract_status_code(exc)
    retry_after_s = extract_retry_after_s(exc)

    retryable = retry_after_s is not None
    if isinstance(status_code, int) and status_code in RETRYABLE_STATUS_CODES:
        retryable = True
    elif any(
        isinstance(e, (httpx.TimeoutException, httpx.RequestError, TimeoutError))
        for e in _walk_exception_chain(exc)
    ):
        retryable = True
    elif status_code is None:
        # Unclassified SDK failure; let the attempt budget bound it.
        retryable = True

    err_cls: type[BackendError] = RateLimitError if status_code == 429 else BackendError
    status_note = f" (status={status_code})" if isinstance(status_code, int) else ""
    msg = message or f"{provider} generate failed"
    cause = str(exc)
    return err_cls(
        f"{msg}{status_note}: {cause}" if cause else f"{msg}{status_note}",
        hint=_auth_hint(status_code, cause),
        retryable=retryable,
        status_code=status_code,
        retry_after_s=retry_after_s,
        provider=provider,
    )
