"""Typed failures raised by the generation pipeline."""

from __future__ import annotations

from concurrent.futures import TimeoutError as FuturesTimeoutError
from enum import Enum
from typing import Any, Optional


class ErrorKind(str, Enum):
    RATE_LIMIT = "rate_limit"
    TIMEOUT = "timeout"
    AUTH = "auth"
    NOT_FOUND = "not_found"
    OTHER = "other"


class GenerationError(RuntimeError):
    """Base class for classified failures of a text-generation call."""

    kind: ErrorKind = ErrorKind.OTHER
    retryable: bool = False


class RateLimitError(GenerationError):
    kind = ErrorKind.RATE_LIMIT
    retryable = True

    def __init__(self, message: str, retry_after: Optional[float] = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class GenerationTimeoutError(GenerationError):
    kind = ErrorKind.TIMEOUT


class AuthenticationError(GenerationError):
    kind = ErrorKind.AUTH


class ModelUnavailableError(GenerationError):
    kind = ErrorKind.NOT_FOUND


class ProviderError(GenerationError):
    kind = ErrorKind.OTHER


class ResponseParseError(ValueError):
    """Raised when no parsing strategy recovers an object from model output."""


_RATE_LIMIT_MARKERS = ("429", "too many requests", "rate limit", "quota", "resource exhausted", "resource_exhausted")
_TIMEOUT_MARKERS = ("timeout", "timed out", "deadline exceeded", "etimedout")
_AUTH_MARKERS = ("401", "403", "api key", "api_key", "unauthenticated", "permission denied", "authentication")
_NOT_FOUND_MARKERS = ("404", "not found", "is not supported", "unsupported model")


def _status_code(exc: BaseException) -> Optional[int]:
    for attr in ("status_code", "code", "status"):
        value: Any = getattr(exc, attr, None)
        if value is None or isinstance(value, bool):
            continue
        try:
            return int(value)
        except (TypeError, ValueError):
            continue
    response = getattr(exc, "response", None)
    status = getattr(response, "status_code", None)
    if isinstance(status, int):
        return status
    return None


def _retry_after_seconds(exc: BaseException) -> Optional[float]:
    explicit = getattr(exc, "retry_after", None)
    if isinstance(explicit, (int, float)) and not isinstance(explicit, bool):
        return float(explicit)
    headers = getattr(getattr(exc, "response", None), "headers", None)
    if headers is None:
        return None
    try:
        raw = headers.get("retry-after") or headers.get("Retry-After")
    except AttributeError:
        return None
    if raw is None:
        return None
    try:
        return max(0.0, float(raw))
    except (TypeError, ValueError):
        return None


def classify_error(exc: BaseException) -> GenerationError:
    """Map an SDK/transport exception onto the pipeline's error taxonomy.

    Already-classified errors are returned unchanged. The original exception is
    attached as ``__cause__`` of the classified one.
    """

    if isinstance(exc, GenerationError):
        return exc

    message = str(exc) or exc.__class__.__name__
    lowered = message.lower()
    status = _status_code(exc)

    classified: GenerationError
    if status == 429:
        classified = RateLimitError(message, retry_after=_retry_after_seconds(exc))
    elif isinstance(exc, (TimeoutError, FuturesTimeoutError)) or status in (408, 504):
        classified = GenerationTimeoutError(message)
    elif status in (401, 403):
        classified = AuthenticationError(message)
    elif status == 404:
        classified = ModelUnavailableError(message)
    elif any(m in lowered for m in _RATE_LIMIT_MARKERS):
        classified = RateLimitError(message, retry_after=_retry_after_seconds(exc))
    elif any(m in lowered for m in _TIMEOUT_MARKERS):
        classified = GenerationTimeoutError(message)
    elif any(m in lowered for m in _AUTH_MARKERS):
        # Gemini reports a bad key as 400 INVALID_ARGUMENT
        classified = AuthenticationError(message)
    elif any(m in lowered for m in _NOT_FOUND_MARKERS):
        classified = ModelUnavailableError(message)
    else:
        classified = ProviderError(message)
    classified.__cause__ = exc
    return classified


__all__ = [
    "AuthenticationError",
    "ErrorKind",
    "GenerationError",
    "GenerationTimeoutError",
    "ModelUnavailableError",
    "ProviderError",
    "RateLimitError",
    "ResponseParseError",
    "classify_error",
]
