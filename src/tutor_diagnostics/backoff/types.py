"""Retry backoff policies."""

from dataclasses import dataclass


@dataclass(frozen=True)
class BackoffConfig:
    """Exponential backoff: ``initial_delay * multiplier**n`` seconds, capped at ``max_delay``"""

    initial_delay: float = 1.0
    max_delay: float = 30.0
    multiplier: float = 2.0
    max_attempts: int = 5


# 0.5s, 1s, 2s between the four attempts
PREFERENCE_SYNC_BACKOFF = BackoffConfig(
    initial_delay=0.5,
    max_delay=3.0,
    multiplier=2.0,
    max_attempts=4,
)

__all__ = ["BackoffConfig", "PREFERENCE_SYNC_BACKOFF"]
