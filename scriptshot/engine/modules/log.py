"""
Log module for script engine: log(msg), log.info, log.warn, log.error, log.debug.

Every message is kept in the run's line buffer and emitted through logging.
Sink failures never reach the script.
"""

import logging
from typing import Any

logger = logging.getLogger("scriptshot.script")
_log = logging.getLogger(__name__)


class _LogModule:
    """Callable `log` object. log(msg) logs at INFO."""

    __slots__ = ("_extra", "_lines", "_logger")

    def __init__(
        self,
        *,
        lines: list[str],
        logger_instance: logging.Logger | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        self._lines = lines
        self._logger = logger_instance or logger
        self._extra = extra or {}

    def _emit(self, level: int, msg: Any) -> None:
        try:
            text = str(msg)
            self._lines.append(text)
            self._logger.log(level, "%s", text, extra=self._extra)
        except Exception as e:
            _log.debug("script log sink failed: %s", e)

    def __call__(self, msg: Any) -> None:
        self._emit(logging.INFO, msg)

    def info(self, msg: Any) -> None:
        self._emit(logging.INFO, msg)

    def warn(self, msg: Any) -> None:
        self._emit(logging.WARNING, msg)

    def error(self, msg: Any) -> None:
        self._emit(logging.ERROR, msg)

    def debug(self, msg: Any) -> None:
        self._emit(logging.DEBUG, msg)


def make_log_module(
    *,
    lines: list[str],
    logger_instance: logging.Logger | None = None,
    extra: dict[str, Any] | None = None,
) -> _LogModule:
    """Build the `log` object. lines collects every message for the run result."""
    return _LogModule(lines=lines, logger_instance=logger_instance, extra=extra)
