"""Error dialog seam between the supervisor and whatever UI hosts it."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

logger = logging.getLogger(__name__)

DEVELOPMENT_DETAIL = "Check the terminal running the desktop shell or the backend workspace for additional logs."


@dataclass(frozen=True)
class DialogRequest:
    title: str
    message: str
    blocking: bool = False
    detail: Optional[str] = None


class ErrorDialogPresenter(Protocol):
    def show_error(self, request: DialogRequest) -> None: ...


class LoggingDialogPresenter:
    """Presenter used when no UI is attached; dialogs become log records."""

    def show_error(self, request: DialogRequest) -> None:
        level = logging.ERROR if request.blocking else logging.WARNING
        logger.log(level, "%s: %s", request.title, request.message)
        if request.detail:
            logger.log(level, "%s", request.detail)


__all__ = ["DEVELOPMENT_DETAIL", "DialogRequest", "ErrorDialogPresenter", "LoggingDialogPresenter"]
