"""Helpers for loading fallback configuration values."""

from .dotenv_loader import DotenvLoader

__all__ = ["DotenvLoader"]
