"""A buffered log file that rolls over to a new path as time passes."""

from __future__ import annotations

import glob
import os
import sys
import threading
from contextlib import suppress
from datetime import datetime, timedelta, timezone, tzinfo
from typing import IO

from leaf.conv import env_string, get_file_path
from leaf.fileutil import get_dir_path, path_exists, tail_file

_TIME_TOKENS = ("%Y", "%m", "%d", "%H", "%M")
_TIME_GLOBS = (
    "[0-9][0-9][0-9][0-9]",
    "[0-9][0-9]",
    "[0-9][0-9]",
    "[0-9][0-9]",
    "[0-9][0-9]",
)

_FLUSH_LINES = 100
_FLUSH_MIN_LINES = 4
_FLUSH_BYTES = 1024 * 1024
_TICK = 0.1
_CHECK_EVERY = 10


def _shanghai() -> tzinfo:
    try:
        from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
    except ImportError:  # pragma: no cover
        return timezone(timedelta(hours=8))
    try:
        return ZoneInfo("Asia/Shanghai")
    except (ZoneInfoNotFoundError, ValueError):
        return timezone(timedelta(hours=8))


class TimeRotateFile:
    """Appends to a file whose name carries %Y %m %d %H %M, keeping at most max_file_cnt old files.

    Writes are buffered and flushed by a background thread every 100 ms, or
    at once when many lines or a large amount of data has piled up.
    """

    def __init__(self, path_fmt: str, max_file_cnt: int) -> None:
        self.path_fmt = env_string(path_fmt)
        self.max_file_cnt = max_file_cnt
        self.locale: tzinfo = _shanghai()
        self._buf = bytearray()
        self._lock = threading.RLock()
        self._cur_path = ""
        self._cur_file: IO[bytes] | None = None
        self._lines = 0
        self._stopped = threading.Event()
        self._closed = False
        self.flush()
        self._thread = threading.Thread(target=self._routine, daemon=True)
        self._thread.start()

    def __enter__(self) -> TimeRotateFile:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()

    def _routine(self) -> None:
        idle = 0
        while not self._stopped.wait(_TICK):
            try:
                if not self._buf:
                    idle += 1
                    if idle % _CHECK_EVERY == 0:
                        self._check_file()
                    continue
                self.flush()
            except OSError as exc:
                print(datetime.now(), "TimeRotateFile flush fail", exc, file=sys.stderr)

    def write(self, data: bytes | str) -> None:
        """Buffer data (text is encoded as UTF-8) for the current file."""
        if isinstance(data, str):
            data = data.encode("utf-8")
        with self._lock:
            if self._closed:
                raise ValueError("write to closed TimeRotateFile")
            self._buf += data
            self._lines += 1
            due = self._lines > _FLUSH_LINES or (
                self._lines > _FLUSH_MIN_LINES and len(self._buf) > _FLUSH_BYTES
            )
        if due:
            self.flush()

    def _dated_path(self) -> str:
        return get_file_path(self.path_fmt, self.locale)

    def _check_file(self) -> None:
        with self._lock:
            if self._closed:
                return
            filename = self._dated_path()
            if filename == self._cur_path:
                return
            if self._cur_file is not None:
                self._cur_file.close()
                self._cur_file = None
            if not path_exists(filename):
                dirpath = get_dir_path(filename)
                if dirpath and not path_exists(dirpath):
                    os.makedirs(dirpath, exist_ok=True)
            self._cur_file = open(filename, "ab")
            self._cur_path = filename
            self._check_file_num()

    def _check_file_num(self) -> None:
        pattern = self.path_fmt
        for token, part in zip(_TIME_TOKENS, _TIME_GLOBS):
            pattern = pattern.replace(token, part)
        matches = glob.glob(pattern)
        keep = self.max_file_cnt + 1
        if len(matches) <= keep:
            return

        def age(path: str) -> tuple[int, str]:
            try:
                return int(os.stat(path).st_mtime), path
            except OSError:
                return 0, path

        ordered = sorted(matches, key=age)
        for path in ordered[: len(matches) - keep + 1]:
            with suppress(OSError):
                os.remove(path)

    def flush(self) -> None:
        """Write buffered data to the file for the current time."""
        with self._lock:
            if not self._buf and self._cur_path:
                return
            self._lines = 0
            self._check_file()
            if self._cur_file is None:
                return
            try:
                self._cur_file.write(self._buf)
                self._cur_file.flush()
            finally:
                self._buf.clear()

    def peek_end(self, size: int) -> bytes | None:
        """Last size bytes of the current file, or None if there is no file yet."""
        if self._cur_path:
            return tail_file(self._cur_path, size)
        return None

    def cleanup(self) -> None:
        """Flush, stop the background thread and close the file."""
        self.flush()
        self._stopped.set()
        if self._thread is not threading.current_thread():
            self._thread.join()
        with self._lock:
            self._closed = True
            if self._cur_file is not None:
                self._cur_file.close()
                self._cur_file = None