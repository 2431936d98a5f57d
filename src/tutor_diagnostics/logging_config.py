"""
Logging setup for the diagnostics service.

One call configures the root logger with:
- a console handler (DEBUG, or WARNING-only with bare messages in user-friendly mode)
- an optional ``<log_directory>/<service_name>.log`` file at INFO, truncated on
  start unless ``LOG_APPEND`` is truthy
"""

import logging
import logging.handlers
import sys
import threading
from pathlib import Path
from typing import List, Optional

from .config import env_bool

_config_lock = threading.Lock()
_MODULE_LOGGER = logging.getLogger(__name__)
_DETAILED_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)-7s [%(name)s] %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_DEFAULT_LOG_SUBDIRECTORY = "logs"
_NOISY_LOGGERS = ("aiohttp", "asyncio", "urllib3")


def _is_console_handler(handler: logging.Handler) -> bool:
    return isinstance(handler, logging.StreamHandler) and not isinstance(handler, logging.FileHandler)


def _already_configured(root_logger: logging.Logger, service_name: Optional[str]) -> bool:
    handlers = root_logger.handlers
    if not any(_is_console_handler(handler) for handler in handlers):
        return False
    if service_name is None:
        return True
    return any(isinstance(handler, logging.FileHandler) for handler in handlers)


def _release_handlers(root_logger: logging.Logger) -> None:
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        try:
            handler.close()
        except OSError as exc:  # Best-effort cleanup operation  # policy_guard: allow-silent-handler
            _MODULE_LOGGER.debug("Closing log handler %r failed: %s", handler, exc)


def _console_handler(user_friendly: bool) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    if user_friendly:
        handler.setFormatter(logging.Formatter("%(message)s"))
        handler.setLevel(logging.WARNING)
    else:
        handler.setFormatter(logging.Formatter(_DETAILED_FORMAT, _DATE_FORMAT))
        handler.setLevel(logging.DEBUG)
    return handler


def _file_handler(service_name: str, log_directory: Optional[Path]) -> logging.Handler:
    directory = log_directory if log_directory is not None else Path.cwd() / _DEFAULT_LOG_SUBDIRECTORY
    directory.mkdir(parents=True, exist_ok=True)
    mode = "a" if env_bool("LOG_APPEND", or_value=False) else "w"
    handler = logging.handlers.WatchedFileHandler(directory / f"{service_name}.log", mode=mode)
    handler.setFormatter(logging.Formatter(_DETAILED_FORMAT, _DATE_FORMAT))
    handler.setLevel(logging.INFO)
    return handler


def setup_logging(
    service_name: Optional[str] = None,
    *,
    log_directory: Optional[Path] = None,
    user_friendly: bool = False,
) -> None:
    """Configure root logging once; repeated calls with the same shape are no-ops."""
    with _config_lock:
        root_logger = logging.getLogger()
        if _already_configured(root_logger, service_name):
            return

        _release_handlers(root_logger)
        handlers: List[logging.Handler] = [_console_handler(user_friendly)]
        if service_name:
            handlers.append(_file_handler(service_name, log_directory))
        for handler in handlers:
            root_logger.addHandler(handler)
        root_logger.setLevel(logging.INFO)

        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)


__all__ = ["setup_logging"]
