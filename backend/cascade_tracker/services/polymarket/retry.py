"""Retry/backoff policy for Gamma API requests."""

from pydantic import BaseModel, ConfigDict, Field


class RetryPolicy(BaseModel):
    """Exponential backoff with a small fixed attempt count.

    Attempt numbers are 1-based: the wait after the first failed attempt is
    ``base_delay_seconds``, then it grows by ``backoff_factor`` per attempt
    (1s, 2s, 4s with the defaults), capped at ``max_delay_seconds``.
    """

    max_attempts: int = Field(default=3, ge=1)
    base_delay_seconds: float = Field(default=1.0, ge=0)
    backoff_factor: float = Field(default=2.0, ge=1)
    max_delay_seconds: float = Field(default=30.0, ge=0)

    model_config = ConfigDict(frozen=True)

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after the given failed attempt."""
        if attempt < 1:
            raise ValueError(f"attempt must be >= 1, got {attempt}")
        delay = self.base_delay_seconds * (self.backoff_factor ** (attempt - 1))
        return min(delay, self.max_delay_seconds)

    def should_retry(self, attempt: int) -> bool:
        """True if another attempt is allowed after ``attempt`` failed."""
        return attempt < self.max_attempts

    @staticmethod
    def is_retryable_status(status_code: int) -> bool:
        return status_code == 429 or status_code >= 500


NO_RETRY = RetryPolicy(max_attempts=1, base_delay_seconds=0.0)
