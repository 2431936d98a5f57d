"""Helpers for the diagnostics preference vault."""

from .failure_classifier import classify_storage_failure, format_failure_message
from .store import RECORD_KEY, JsonFilePreferenceStore, PreferenceStore

__all__ = [
    "JsonFilePreferenceStore",
    "PreferenceStore",
    "RECORD_KEY",
    "classify_storage_failure",
    "format_failure_message",
]
