"""Injected logging collaborator used by the probe, reclaimer, validator and sweeper."""

from __future__ import annotations

import logging
from typing import Optional, Protocol

__all__ = ["LogSink", "LoggingSink", "resolve_sink"]

_DEFAULT_LOGGER_NAME = "OptCache.CacheRepair"


class LogSink(Protocol):
    """Fire-and-forget destination for repair messages."""

    def log(self, message: str, error: Optional[BaseException] = None) -> None:  # pragma: no cover
        """Record ``message``, optionally with the exception that caused it."""


class LoggingSink:
    """Forward repair messages to a stdlib :class:`logging.Logger`.

    Plain messages go out at ``level``; messages carrying an error go out at
    ``error_level`` with the exception attached so formatters render the
    traceback.
    """

    def __init__(
        self,
        logger: Optional[logging.Logger] = None,
        *,
        level: int = logging.INFO,
        error_level: int = logging.WARNING,
    ) -> None:
        self.logger = logger or logging.getLogger(_DEFAULT_LOGGER_NAME)
        self.level = level
        self.error_level = error_level

    def log(self, message: str, error: Optional[BaseException] = None) -> None:
        if error is None:
            self.logger.log(self.level, message)
            return
        self.logger.log(
            self.error_level,
            "%s: %s",
            message,
            error,
            exc_info=(type(error), error, error.__traceback__),
        )

    def __repr__(self) -> str:
        return f"LoggingSink(logger={self.logger.name!r})"


def resolve_sink(sink: Optional[LogSink]) -> LogSink:
    """Return ``sink`` or the default :class:`LoggingSink`."""

    return sink if sink is not None else LoggingSink()
