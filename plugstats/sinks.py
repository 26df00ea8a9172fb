"""Logging sinks backed by the stdlib logging module."""
from __future__ import annotations

import logging
from collections.abc import Callable


def logging_sinks(
    log: logging.Logger | None = None,
) -> tuple[Callable[[str, BaseException], None], Callable[[str], None]]:
    """Return (error_sink, info_sink) writing to the given logger.

    Errors go out at WARNING with the exception attached, so a failing
    telemetry endpoint never shows up as an ERROR in the host's logs.
    """
    log = log or logging.getLogger("plugstats")

    def error_sink(message: str, exc: BaseException) -> None:
        log.warning(message, exc_info=(type(exc), exc, exc.__traceback__))

    def info_sink(message: str) -> None:
        log.info(message)

    return error_sink, info_sink
