"""Error taxonomy for the design-to-code pipeline.

Every error carries a short machine-readable ``kind`` and a remediation
``hint`` for the caller. ``retryable`` tells the retry loop whether another
attempt with the same input can succeed.

Hierarchy:
    Design2CodeError
    ├── FetchError (status)            remote call failed
    │   ├── AuthError                  401/403, bad token or key
    │   ├── NotFoundError              404
    │   └── RateLimitError             429, carries retry_after
    ├── ValidationError                empty/malformed caller input
    ├── GenerationError
    │   ├── SafetyBlockError           generation service refused
    │   ├── TruncationError            output hit max tokens
    │   ├── EmptyResponseError         no generated text
    │   ├── TokenBudgetExceededError   irreducible after full degradation
    │   └── GenerationFailure          retries or strategy ladder exhausted
    └── InvalidGeneratedCodeError      returned text is not source code
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence


class Design2CodeError(Exception):
    """Base error. Subclasses set ``kind``, ``default_hint`` and ``retryable``."""

    kind = "error"
    default_hint = "Try again in a few moments."
    retryable = False

    def __init__(self, message: str, *, hint: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.hint = hint or self.default_hint

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "message": self.message, "hint": self.hint}


# ---------------------------------------------------------------------------
# Remote call failures
# ---------------------------------------------------------------------------


class FetchError(Design2CodeError):
    """A remote call failed. ``status`` is the HTTP status, None for
    transport-level failures (timeout, connection reset)."""

    kind = "fetch_error"
    default_hint = "Check your connection and try again in a few moments."

    def __init__(
        self,
        message: str,
        *,
        status: Optional[int] = None,
        hint: Optional[str] = None,
    ):
        super().__init__(message, hint=hint)
        self.status = status

    @property
    def retryable(self) -> bool:  # type: ignore[override]
        return self.status is None or self.status >= 500

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["status"] = self.status
        return data


class AuthError(FetchError):
    kind = "auth_error"
    default_hint = "Check that the access token / API key is valid and has read access."

    @property
    def retryable(self) -> bool:  # type: ignore[override]
        return False


class NotFoundError(FetchError):
    kind = "not_found"
    default_hint = "Check the file key and node ids, and that the file is shared with you."

    @property
    def retryable(self) -> bool:  # type: ignore[override]
        return False


class RateLimitError(FetchError):
    kind = "rate_limited"
    default_hint = "Wait before retrying, or process fewer components at once."

    def __init__(
        self,
        message: str,
        *,
        status: Optional[int] = 429,
        retry_after: Optional[float] = None,
        hint: Optional[str] = None,
    ):
        super().__init__(message, status=status, hint=hint)
        self.retry_after = retry_after

    @property
    def retryable(self) -> bool:  # type: ignore[override]
        return True

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["retry_after"] = self.retry_after
        return data


# ---------------------------------------------------------------------------
# Caller input
# ---------------------------------------------------------------------------


class ValidationError(Design2CodeError):
    kind = "invalid_input"
    default_hint = "Check the request parameters and try again."


# ---------------------------------------------------------------------------
# Generation failures
# ---------------------------------------------------------------------------


class GenerationError(Design2CodeError):
    kind = "generation_error"
    default_hint = "Try a simpler component first."


class SafetyBlockError(GenerationError):
    kind = "safety_blocked"
    default_hint = "Rename components or remove text content that may trip safety filters."


class TruncationError(GenerationError):
    kind = "truncated"
    default_hint = "Reduce component complexity or raise the output token limit."


class EmptyResponseError(GenerationError):
    kind = "empty_response"
    default_hint = "Try again; if it persists, reduce component complexity."
    retryable = True


class TokenBudgetExceededError(GenerationError):
    kind = "token_budget_exceeded"
    default_hint = "Reduce component complexity: remove child elements or split the component."

    def __init__(self, message: str, *, tokens: int = 0, budget: int = 0, hint: Optional[str] = None):
        super().__init__(message, hint=hint)
        self.tokens = tokens
        self.budget = budget


class GenerationFailure(GenerationError):
    """Retries or the strategy ladder were exhausted.

    ``causes`` keeps the individual failures in the order they happened.
    """

    kind = "generation_failed"
    default_hint = "Wait before retrying, or reduce component complexity."

    def __init__(
        self,
        message: str,
        *,
        attempts: int = 0,
        causes: Optional[Sequence[BaseException]] = None,
        hint: Optional[str] = None,
    ):
        super().__init__(message, hint=hint)
        self.attempts = attempts
        self.causes: List[BaseException] = list(causes or [])

    @property
    def last_error(self) -> Optional[BaseException]:
        return self.causes[-1] if self.causes else None

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["attempts"] = self.attempts
        data["causes"] = [
            c.to_dict() if isinstance(c, Design2CodeError) else {"kind": "error", "message": str(c)}
            for c in self.causes
        ]
        return data


class InvalidGeneratedCodeError(Design2CodeError):
    kind = "invalid_generated_code"
    default_hint = "Regenerate; the service returned text that is not source code."


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def classify_http_status(
    status: int,
    message: str,
    retry_after: Optional[float] = None,
) -> FetchError | ValidationError:
    """Map an HTTP error status onto the taxonomy."""
    if status in (401, 403):
        return AuthError(message, status=status)
    if status == 404:
        return NotFoundError(message, status=status)
    if status == 429:
        return RateLimitError(message, status=status, retry_after=retry_after)
    if status == 400:
        return ValidationError(message)
    return FetchError(message, status=status)


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """Parse a Retry-After header given in seconds; dates are ignored."""
    if not value:
        return None
    try:
        return max(0.0, float(value))
    except (TypeError, ValueError):
        return None


def is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, Design2CodeError) and bool(exc.retryable)
