"""Retry backoff policy used by the preference sync queue."""

from .delay_calculator import DelayCalculator
from .types import PREFERENCE_SYNC_BACKOFF, BackoffConfig

__all__ = ["BackoffConfig", "DelayCalculator", "PREFERENCE_SYNC_BACKOFF"]
