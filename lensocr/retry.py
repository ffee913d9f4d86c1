"""Retry policy for one submit call."""

from __future__ import annotations

import random
from dataclasses import dataclass

from lensocr.constants import DEFAULT_MAX_ATTEMPTS
from lensocr.errors import ProtocolError, ProtocolErrorKind

RETRYABLE_KINDS = frozenset(
    {ProtocolErrorKind.TRANSPORT, ProtocolErrorKind.RATE_LIMITED, ProtocolErrorKind.SESSION_EXPIRED}
)
SESSION_RESET_KINDS = frozenset({ProtocolErrorKind.RATE_LIMITED, ProtocolErrorKind.SESSION_EXPIRED})


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    base_delay_sec: float = 0.5
    max_delay_sec: float = 8.0
    jitter_sec: float = 0.25

    def backoff(self, attempt: int) -> float:
        """Delay before the attempt following ``attempt`` (1-based): exponential, capped, jittered."""
        delay = min(self.max_delay_sec, self.base_delay_sec * (2 ** max(0, attempt - 1)))
        return delay + random.uniform(0.0, self.jitter_sec)


def is_retryable(error: ProtocolError) -> bool:
    return error.kind in RETRYABLE_KINDS


def suggests_session_expiry(error: ProtocolError) -> bool:
    return error.kind in SESSION_RESET_KINDS
