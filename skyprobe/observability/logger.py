"""Loguru-style logger backed by stdlib logging + rich.

Usage::

    from skyprobe.observability.logger import logger

    log = logger.bind(component="gce")
    log.info("VM running: {vm}", vm="instance-1")

Records are routed to the stdlib logger named after the calling module, under
the ``skyprobe`` root. Nothing is emitted until handlers are attached with
``logger.add`` (see :mod:`skyprobe.observability.logging`).
"""

from __future__ import annotations

import logging
import logging.handlers
import os
import sys
from typing import TextIO

from rich.console import Console
from rich.logging import RichHandler

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

ROOT_LOGGER_NAME = "skyprobe"

_root = logging.getLogger(ROOT_LOGGER_NAME)
_root.addHandler(logging.NullHandler())
_root.setLevel(TRACE)
_root.propagate = False

_disabled: set[str] = set()

FILE_FORMAT = (
    "%(asctime)s.%(msecs)03d | %(levelname)-8s | "
    "%(name)s:%(funcName)s:%(lineno)d%(context)s - %(message)s"
)


def _format_message(msg: str, args: tuple[object, ...], kwargs: dict[str, object]) -> str:
    if kwargs:
        return msg.format(**kwargs)
    if args:
        return msg.format(*args)
    return msg


def _format_context(extras: dict[str, object]) -> str:
    if not extras:
        return ""
    return " [" + " ".join(f"{k}={v}" for k, v in extras.items()) + "]"


class BoundLogger:
    """Logger carrying a fixed set of context fields."""

    __slots__ = ("_extras",)

    def __init__(self, extras: dict[str, object] | None = None) -> None:
        self._extras = extras or {}

    def bind(self, **kwargs: object) -> BoundLogger:
        return BoundLogger({**self._extras, **kwargs})

    def _log(self, level: int, message: str, /, *args: object, **kwargs: object) -> None:
        exc_info = kwargs.pop("exc_info", False)
        # caller of trace()/debug()/...; only the frame, no source context
        frame = sys._getframe(2)
        module = frame.f_globals.get("__name__", ROOT_LOGGER_NAME)
        if any(module == p or module.startswith(p + ".") for p in _disabled):
            return
        lib_logger = logging.getLogger(module)
        if not lib_logger.isEnabledFor(level):
            return
        filename = frame.f_code.co_filename
        record = lib_logger.makeRecord(
            name=lib_logger.name,
            level=level,
            fn=filename,
            lno=frame.f_lineno,
            msg=_format_message(message, args, kwargs),
            args=(),
            exc_info=sys.exc_info() if exc_info else None,
            func=frame.f_code.co_name,
        )
        record.filename = os.path.basename(filename)
        record.extras = self._extras  # type: ignore[attr-defined]
        record.context = _format_context(self._extras)  # type: ignore[attr-defined]
        lib_logger.handle(record)

    def trace(self, message: str, /, *args: object, **kwargs: object) -> None:
        self._log(TRACE, message, *args, **kwargs)

    def debug(self, message: str, /, *args: object, **kwargs: object) -> None:
        self._log(logging.DEBUG, message, *args, **kwargs)

    def info(self, message: str, /, *args: object, **kwargs: object) -> None:
        self._log(logging.INFO, message, *args, **kwargs)

    def warning(self, message: str, /, *args: object, **kwargs: object) -> None:
        self._log(logging.WARNING, message, *args, **kwargs)

    def error(self, message: str, /, *args: object, **kwargs: object) -> None:
        self._log(logging.ERROR, message, *args, **kwargs)

    def exception(self, message: str, /, *args: object, **kwargs: object) -> None:
        kwargs["exc_info"] = True
        self._log(logging.ERROR, message, *args, **kwargs)


def _ensure_context(record: logging.LogRecord) -> bool:
    if not hasattr(record, "context"):
        record.context = ""  # type: ignore[attr-defined]
    return True


_handler_counter = 0
_handlers: dict[int, logging.Handler] = {}


def _level_number(level: str) -> int:
    if level.upper() == "TRACE":
        return TRACE
    return getattr(logging, level.upper(), logging.DEBUG)


def _make_file_handler(path: str, *, level: int, max_bytes: int, backup_count: int) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        path,
        maxBytes=max_bytes,
        backupCount=backup_count,
    )
    handler.setLevel(level)
    handler.addFilter(_ensure_context)
    handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    return handler


def _make_console_handler(stream: TextIO, level: int) -> logging.Handler:
    handler = RichHandler(
        level=level,
        console=Console(file=stream),
        show_time=True,
        show_level=True,
        show_path=True,
        markup=False,
        rich_tracebacks=True,
    )
    handler.setLevel(level)
    return handler


class LoguruCompat:
    """Module-level facade mirroring the loguru ``logger`` object."""

    def __init__(self) -> None:
        self._bound = BoundLogger()

    def bind(self, **kwargs: object) -> BoundLogger:
        return self._bound.bind(**kwargs)

    def trace(self, message: str, /, *args: object, **kwargs: object) -> None:
        self._bound.trace(message, *args, **kwargs)

    def debug(self, message: str, /, *args: object, **kwargs: object) -> None:
        self._bound.debug(message, *args, **kwargs)

    def info(self, message: str, /, *args: object, **kwargs: object) -> None:
        self._bound.info(message, *args, **kwargs)

    def warning(self, message: str, /, *args: object, **kwargs: object) -> None:
        self._bound.warning(message, *args, **kwargs)

    def error(self, message: str, /, *args: object, **kwargs: object) -> None:
        self._bound.error(message, *args, **kwargs)

    def exception(self, message: str, /, *args: object, **kwargs: object) -> None:
        self._bound.exception(message, *args, **kwargs)

    def add(
        self,
        sink: str | TextIO,
        *,
        level: str = "DEBUG",
        max_bytes: int = 50 * 1024 * 1024,
        backup_count: int = 10,
    ) -> int:
        """Attach a console (stream) or rotating file (path) sink; returns its id."""
        global _handler_counter
        numeric_level = _level_number(level)

        match sink:
            case str() as path:
                handler = _make_file_handler(
                    path,
                    level=numeric_level,
                    max_bytes=max_bytes,
                    backup_count=backup_count,
                )
            case stream:
                handler = _make_console_handler(stream, numeric_level)

        _root.addHandler(handler)
        _handler_counter += 1
        _handlers[_handler_counter] = handler
        return _handler_counter

    def remove(self, handler_id: int | None = None) -> None:
        if handler_id is None:
            for h in list(_handlers.values()):
                _root.removeHandler(h)
                h.close()
            _handlers.clear()
            return
        if h := _handlers.pop(handler_id, None):
            _root.removeHandler(h)
            h.close()

    def enable(self, name: str = ROOT_LOGGER_NAME) -> None:
        _disabled.discard(name)

    def disable(self, name: str = ROOT_LOGGER_NAME) -> None:
        _disabled.add(name)


logger = LoguruCompat()
