"""Shared retry policy for HTTP-backed providers."""

from __future__ import annotations

import logging
from collections.abc import Callable

import httpx
from tenacity import RetryCallState, wait_exponential

from topicgraph.error_codes import ErrorCode
from topicgraph.exceptions import ProviderError

_WAIT_NORMAL = wait_exponential(min=1, max=10)
_WAIT_RATE_LIMIT = wait_exponential(min=2, max=30)


class RetryableProviderError(ProviderError):
    """A provider failure worth retrying (429, 5xx, transport errors)."""

    def __init__(
        self,
        provider: str,
        message: str,
        *,
        rate_limited: bool = False,
        retry_after_s: float | None = None,
        error_code: ErrorCode | str | None = None,
    ) -> None:
        super().__init__(provider, message, error_code=error_code)
        self.rate_limited = bool(rate_limited)
        self.retry_after_s = retry_after_s


def wait_retry(state: RetryCallState) -> float:
    exc = state.outcome.exception() if state.outcome else None
    if isinstance(exc, RetryableProviderError):
        if exc.retry_after_s is not None:
            return min(60.0, max(0.0, exc.retry_after_s))
        if exc.rate_limited:
            return _WAIT_RATE_LIMIT(state)
    return _WAIT_NORMAL(state)


def log_retry(logger: logging.Logger, kind: str) -> Callable[[RetryCallState], None]:
    def _log(state: RetryCallState) -> None:
        exc = state.outcome.exception() if state.outcome else None
        provider = kind
        model = None
        if state.args:
            provider = getattr(state.args[0], "provider", provider)
            model = getattr(state.args[0], "model", None)
        wait_s = state.next_action.sleep if state.next_action else None
        logger.warning(
            "%s retrying (provider=%s, model=%s, attempt=%s, wait_s=%s, error=%s)",
            kind,
            provider,
            model,
            state.attempt_number,
            wait_s,
            exc,
        )

    return _log


def format_http_error(response: httpx.Response, body: bytes | None) -> str:
    status = response.status_code
    reason = response.reason_phrase
    detail = body.decode("utf-8", errors="replace").strip() if body else ""
    if detail:
        if len(detail) > 2000:
            detail = detail[:2000] + "..."
        return f"HTTP {status} {reason}: {detail}"
    return f"HTTP {status} {reason}"


def _retry_after(response: httpx.Response) -> float | None:
    raw = str(response.headers.get("retry-after") or "").strip()
    try:
        return float(raw) if raw else None
    except ValueError:
        return None


def raise_for_status(
    provider: str,
    response: httpx.Response,
    body: bytes | None,
    *,
    error_code: ErrorCode,
) -> None:
    """Map an HTTP error status to a (retryable) ProviderError."""
    if response.status_code < 400:
        return
    message = format_http_error(response, body)
    if response.status_code == 429 or response.status_code >= 500:
        raise RetryableProviderError(
            provider,
            message,
            rate_limited=response.status_code == 429,
            retry_after_s=_retry_after(response),
            error_code=error_code,
        )
    raise ProviderError(provider, message, error_code=error_code)
