"""Utilities for running the diagnostics service with consistent shutdown handling."""

from __future__ import annotations

import asyncio
import logging
import signal
from pathlib import Path
from typing import Any, Callable, Coroutine, Optional

from .backend_supervisor import BackendEntryResolver
from .config import DiagnosticsSettings
from .context import DiagnosticsContext
from .logging_config import setup_logging

logger = logging.getLogger(__name__)

ServiceFactory = Callable[[], Coroutine[Any, Any, None]]

SERVICE_NAME = "tutor_diagnostics"
LOG_SUBDIRECTORY = "logs"

_STOP_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def run_async_service(
    factory: ServiceFactory,
    *,
    service_name: str,
    log_directory: Optional[Path] = None,
    configure_logging: bool = True,
    shutdown_message: Optional[str] = None,
) -> None:
    """Run an async service with consistent Ctrl+C handling.

    Args:
        factory: Callable returning the coroutine to execute.
        service_name: Identifier used for logging configuration.
        log_directory: Directory for the service log file.
        configure_logging: Whether to configure logging via ``setup_logging``.
        shutdown_message: Optional custom message when interrupted.
    """
    if configure_logging:
        setup_logging(service_name, log_directory=log_directory)

    try:
        asyncio.run(factory())
    except KeyboardInterrupt:  # Expected exception in operation  # policy_guard: allow-silent-handler
        if shutdown_message:
            logger.info(shutdown_message)
        else:
            logger.info("%s service interrupted by user", service_name)


def _install_stop_handlers(loop: asyncio.AbstractEventLoop, stop_event: asyncio.Event) -> None:
    for sig in _STOP_SIGNALS:
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except (NotImplementedError, RuntimeError):  # policy_guard: allow-silent-handler
            # Not available on Windows event loops or outside the main thread.
            logger.debug("Signal handler for %s not installed", sig)


def _remove_stop_handlers(loop: asyncio.AbstractEventLoop) -> None:
    for sig in _STOP_SIGNALS:
        try:
            loop.remove_signal_handler(sig)
        except (NotImplementedError, RuntimeError):  # policy_guard: allow-silent-handler
            logger.debug("Signal handler for %s not removed", sig)


async def serve_diagnostics(context: DiagnosticsContext, stop_event: Optional[asyncio.Event] = None) -> None:
    """Start the diagnostics subsystem and keep it alive until a stop signal arrives."""
    stop_event = stop_event or asyncio.Event()
    loop = asyncio.get_running_loop()
    _install_stop_handlers(loop, stop_event)
    try:
        async with context:
            logger.info("Diagnostics subsystem running (state: %s)", context.supervisor.state.status.value)
            await stop_event.wait()
            logger.info("Stop requested; shutting down diagnostics subsystem")
    finally:
        _remove_stop_handlers(loop)


def run_diagnostics_service(
    settings: DiagnosticsSettings,
    *,
    resolve_backend_entry: BackendEntryResolver,
    service_name: str = SERVICE_NAME,
    configure_logging: bool = True,
) -> None:
    """Run the diagnostics subsystem in the foreground until SIGINT or SIGTERM."""

    def factory() -> Coroutine[Any, Any, None]:
        context = DiagnosticsContext.create(settings, resolve_backend_entry=resolve_backend_entry)
        return serve_diagnostics(context)

    run_async_service(
        factory,
        service_name=service_name,
        log_directory=settings.diagnostics_directory / LOG_SUBDIRECTORY,
        configure_logging=configure_logging,
        shutdown_message="Diagnostics subsystem interrupted by user",
    )


__all__ = ["ServiceFactory", "run_async_service", "run_diagnostics_service", "serve_diagnostics"]
