"""
Retry policy for transient HTTP failures.

The policy is explicit state: a frozen ``RetryPolicy`` built from the client
options, and a ``RetryState`` that the transport advances after every failed
attempt. Retry decisions are made from status codes, never from message text.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .config import ClientOptions

RETRYABLE_STATUS_CODES: frozenset[int] = frozenset({429, 500, 502, 503, 504})


def is_retryable_status(status_code: int) -> bool:
    return status_code in RETRYABLE_STATUS_CODES


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry policy with optional exponential backoff.

    ``max_attempts`` counts retries after the first attempt, so a request is
    sent at most ``max_attempts + 1`` times.
    """

    max_attempts: int = 3
    initial_delay: float = 1.0
    use_exponential_backoff: bool = True
    max_delay: float = 10.0

    def __post_init__(self) -> None:
        if self.max_attempts < 0:
            raise ValueError("RetryPolicy.max_attempts must be >= 0")
        if self.initial_delay < 0:
            raise ValueError("RetryPolicy.initial_delay must be >= 0")
        if self.max_delay < 0:
            raise ValueError("RetryPolicy.max_delay must be >= 0")

    @classmethod
    def from_options(cls, options: ClientOptions) -> RetryPolicy:
        return cls(
            max_attempts=options.max_retry_attempts,
            initial_delay=options.retry_delay,
            use_exponential_backoff=options.use_exponential_backoff,
            max_delay=options.max_retry_delay,
        )

    def start(self) -> RetryState:
        return RetryState(attempt=0, delay=self.initial_delay)

    def delays(self) -> list[float]:
        """The full schedule of waits this policy would perform."""
        state = self.start()
        result = []
        while not state.exhausted(self):
            result.append(state.delay)
            state = state.advance(self)
        return result


@dataclass(frozen=True)
class RetryState:
    """Position within a retry schedule."""

    attempt: int
    delay: float

    def exhausted(self, policy: RetryPolicy) -> bool:
        return self.attempt >= policy.max_attempts

    def advance(self, policy: RetryPolicy) -> RetryState:
        """State after waiting ``delay`` and retrying once more."""
        delay = self.delay
        if policy.use_exponential_backoff:
            delay = min(delay * 2, policy.max_delay)
        return RetryState(attempt=self.attempt + 1, delay=delay)
