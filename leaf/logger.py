"""Levelled logging to a stream or to daily files, with a process-wide default logger."""

from __future__ import annotations

import os
import sys
import threading
import time
from contextlib import suppress
from datetime import datetime, timedelta
from enum import IntEnum
from typing import IO, Any


class Level(IntEnum):
    """Severity levels, from least to most severe."""

    DEBUG = 0
    RELEASE = 1
    ERROR = 2
    FATAL = 3

    @property
    def prefix(self) -> str:
        return f"[{self.name.lower()}] "


def _parse_level(level: str | Level) -> Level:
    if isinstance(level, Level):
        return level
    if isinstance(level, str):
        try:
            return Level[level.upper()]
        except KeyError:
            pass
    raise ValueError(f"unknown level: {level}")


def _format(fmt: str, args: tuple[Any, ...]) -> str:
    if not args:
        return fmt
    try:
        return fmt.replace("%v", "%s") % args
    except (TypeError, ValueError):
        return f"{fmt} {' '.join(map(str, args))}"


def _file_name(t: datetime) -> str:
    return t.strftime("%Y-%m-%d") + ".log"


def _err_file_name(t: datetime) -> str:
    return t.strftime("%Y-%m-%d") + ".err.log"


def get_base_file(pathname: str) -> tuple[IO[str], IO[str]]:
    """Open today's log and error-log files in pathname, creating the directory if needed."""
    if not pathname:
        raise ValueError("create log failed, log pathname is empty")
    if not os.path.exists(pathname):
        os.mkdir(pathname)
    now = datetime.now()
    base = open(os.path.join(pathname, _file_name(now)), "a", encoding="utf-8")
    try:
        err = open(os.path.join(pathname, _err_file_name(now)), "a", encoding="utf-8")
    except OSError:
        base.close()
        raise
    return base, err


class Logger:
    """Writes messages at or above a level; errors also go to a separate file when logging to files."""

    def __init__(
        self,
        level: str | Level = "debug",
        pathname: str = "",
        stream: IO[str] | None = None,
    ) -> None:
        self.level = _parse_level(level)
        self._lock = threading.Lock()
        self._stream = stream
        self._base_file: IO[str] | None = None
        self._err_file: IO[str] | None = None
        self._closed = False
        if pathname:
            self._base_file, self._err_file = get_base_file(pathname)

    def _target(self) -> IO[str]:
        if self._base_file is not None:
            return self._base_file
        return self._stream if self._stream is not None else sys.stdout

    def _emit(self, level: Level, fmt: str, args: tuple[Any, ...]) -> None:
        if level < self.level:
            return
        with self._lock:
            if self._closed:
                raise RuntimeError("logger closed")
            message = level.prefix + _format(fmt, args)
            if not message.endswith("\n"):
                message += "\n"
            line = f"{datetime.now():%Y/%m/%d %H:%M:%S} {message}"
            target = self._target()
            target.write(line)
            target.flush()
            if self._err_file is not None and level == Level.ERROR:
                self._err_file.write(line)
                self._err_file.flush()
        if level == Level.FATAL:
            raise SystemExit(1)

    def _reopen(self, base: IO[str], err: IO[str]) -> None:
        with self._lock:
            old = (self._base_file, self._err_file)
            self._base_file, self._err_file = base, err
            self._closed = False
        for f in old:
            if f is not None:
                with suppress(OSError):
                    f.close()

    def debug(self, fmt: str, *args: Any) -> None:
        self._emit(Level.DEBUG, fmt, args)

    def release(self, fmt: str, *args: Any) -> None:
        self._emit(Level.RELEASE, fmt, args)

    def error(self, fmt: str, *args: Any) -> None:
        self._emit(Level.ERROR, fmt, args)

    def fatal(self, fmt: str, *args: Any) -> None:
        """Log and exit the process with status 1."""
        self._emit(Level.FATAL, fmt, args)

    def close(self) -> None:
        """Close the log files; further logging raises RuntimeError."""
        with self._lock:
            for f in (self._base_file, self._err_file):
                if f is not None:
                    with suppress(OSError):
                        f.close()
            self._base_file = None
            self._err_file = None
            self._closed = True


_g_logger = Logger("debug")


def export(logger: Logger | None) -> None:
    """Make logger the process-wide default; None is ignored."""
    global _g_logger
    if logger is not None:
        _g_logger = logger


def debug(fmt: str, *args: Any) -> None:
    _g_logger.debug(fmt, *args)


def release(fmt: str, *args: Any) -> None:
    _g_logger.release(fmt, *args)


def error(fmt: str, *args: Any) -> None:
    _g_logger.error(fmt, *args)


def fatal(fmt: str, *args: Any) -> None:
    _g_logger.fatal(fmt, *args)


def close() -> None:
    _g_logger.close()


def refresh_log(pathname: str, log_days: int) -> threading.Thread:
    """Start a daemon thread that switches the default logger to new daily files after midnight.

    When log_days is positive, the files from log_days ago are removed at each switch.
    """

    def rotate() -> None:
        base, err = get_base_file(pathname)
        if log_days > 0:
            old = datetime.now() - timedelta(days=log_days)
            for name in (_file_name(old), _err_file_name(old)):
                with suppress(OSError):
                    os.remove(os.path.join(pathname, name))
        _g_logger._reopen(base, err)

    def loop() -> None:
        try:
            while True:
                now = datetime.now()
                nxt = (now + timedelta(days=1)).replace(
                    hour=0, minute=0, second=0, microsecond=0
                )
                time.sleep((nxt - now).total_seconds())
                rotate()
        except (OSError, ValueError) as exc:
            _g_logger.error("%v,system will try again in 30 seconds", exc)
            time.sleep(30)
            rotate()

    thread = threading.Thread(target=loop, daemon=True, name="leaf-log-refresh")
    thread.start()
    return thread