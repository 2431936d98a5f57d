"""Exponential retry delays."""

import logging

from .types import BackoffConfig

logger = logging.getLogger(__name__)


class DelayCalculator:
    """Turns a failed attempt number into the wait before the next attempt."""

    @staticmethod
    def calculate_base_delay(config: BackoffConfig, attempt: int) -> float:
        """Delay after failed *attempt* (1-based): ``initial * multiplier**(attempt-1)``, capped at ``max_delay``."""
        exponent = max(attempt, 1) - 1
        return min(config.initial_delay * config.multiplier**exponent, config.max_delay)

    @classmethod
    def calculate_full_delay(cls, config: BackoffConfig, attempt: int, operation: str) -> float:
        delay = cls.calculate_base_delay(config, attempt)
        logger.debug("Retrying %s after attempt %d in %.2fs", operation, attempt, delay)
        return delay


__all__ = ["DelayCalculator"]
