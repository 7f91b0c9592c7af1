"""Application record logs: key=value or JSON lines written to time-rotated files."""

from __future__ import annotations

import os
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from leaf.conv import map_to_str, to_json, to_string
from leaf.guidgen import new_v4
from leaf.rotating import TimeRotateFile


@dataclass
class GameRecordLog:
    """One played round."""

    id: int = 0
    sub_anm: str = ""
    did: str = ""
    pkg_name: str = ""
    match_id: str = ""
    play_type: str = ""
    room_type: str = ""
    score: float = 0.0
    uid: str = ""
    player_bet: float = 0.0
    prize: int = 0
    tax: float = 0.0
    flag_info: str = ""
    game_info: str = ""
    ext: str = ""
    star_time: int = 0
    end_time: str = ""
    ctime: str = ""
    personal_withdraw_value: int = 0
    log_id: str = ""
    currency_type: int = 0
    pot_win: int = 0


@dataclass
class EventLog:
    """One user event."""

    id: int = 0
    uid: str = ""
    did: str = ""
    event_name: str = ""
    personal_withdraw_value: int = 0
    event_value: str = ""


def _json_line(body: Any) -> bytes:
    encoded = to_json(body)
    return (encoded + "\n").encode("utf-8") if encoded else b""


def wa_format(body: Mapping[str, Any]) -> bytes:
    """Sorted 'key=value' pairs joined by backticks, ending in a newline."""
    line = "`".join(f"{k}={to_string(body[k])}" for k in sorted(body))
    return (line + "\n").encode("utf-8")


def json_format(body: Mapping[str, Any]) -> bytes:
    """A JSON line for a mapping."""
    return _json_line(body)


def json_struct_format(body: Any) -> bytes:
    """A JSON line for any encodable value, such as a record dataclass."""
    return _json_line(body)


class AppLog:
    """Writes records to a rotating file, or to standard output when path_fmt is empty."""

    def __init__(self, path_fmt: str, max_files: int) -> None:
        self.fmt_handler: Callable[[Mapping[str, Any]], bytes] = wa_format
        self.struct_fmt_handler: Callable[[Any], bytes] = json_struct_format
        self._path_fmt = path_fmt
        self._max_files = max_files
        self._ext_files: dict[str, TimeRotateFile] = {}
        self._lock = threading.Lock()
        self._file: TimeRotateFile | None = None
        if path_fmt:
            self._file = TimeRotateFile(path_fmt, max_files)
            self.write_handler: Callable[[bytes], None] = self._file.write
        else:
            self.write_handler = self._print

    @staticmethod
    def _print(b: bytes) -> None:
        print(b.decode("utf-8", "replace"))

    def update_max_file_cnt(self, cnt: int) -> None:
        if self._file is None:
            raise ValueError("application log has no file")
        self._file.max_file_cnt = cnt

    def flush(self) -> None:
        if self._file is not None:
            self._file.flush()

    def peek_end(self, size: int) -> bytes | None:
        """Last size bytes of the current file, or None."""
        if self._file is not None:
            return self._file.peek_end(size)
        return None

    def cleanup(self) -> None:
        """Flush and close the main file and every prefixed file."""
        if self._file is not None:
            self._file.cleanup()
        with self._lock:
            extra = list(self._ext_files.values())
        for f in extra:
            f.cleanup()

    def log_bytes(self, b: bytes) -> None:
        self.write_handler(b)

    def log_string(self, line: str) -> None:
        self.write_handler((line + "\n").encode("utf-8"))

    def log_map(self, minfo: Mapping[str, str]) -> None:
        self.write_handler((map_to_str(minfo, "`", "=") + "\n").encode("utf-8"))

    def _get_file(self, prefix: str) -> TimeRotateFile:
        with self._lock:
            existing = self._ext_files.get(prefix)
            if existing is not None:
                return existing
            fields = self._path_fmt.split("/")
            fields[-1] = prefix + fields[-1]
            f = TimeRotateFile("/".join(fields), self._max_files)
            self._ext_files[prefix] = f
            return f

    def log_bytes_spec(self, prefix: str, b: bytes) -> None:
        """Write to the file whose name carries prefix."""
        self._get_file(prefix).write(b)

    def log_map_spec(self, prefix: str, minfo: Mapping[str, str]) -> None:
        """Write a key=value line to the file whose name carries prefix."""
        self._get_file(prefix).write((map_to_str(minfo, "`", "=") + "\n").encode("utf-8"))

    def log(self, body: Mapping[str, Any] | None) -> None:
        if not body:
            return
        self.write_handler(self.fmt_handler(body))

    def log_struct(self, body: Any) -> None:
        if body is None:
            return
        self.write_handler(self.struct_fmt_handler(body))

    def game_record(self, body: GameRecordLog | None) -> None:
        if body is None:
            return
        self.write_handler(_json_line(body))

    def event_record(self, body: EventLog | None) -> None:
        if body is None:
            return
        self.write_handler(_json_line(body))


def _default_config() -> tuple[str, int]:
    serv_name = os.environ.get("ServName")
    if serv_name is None:
        serv_name = os.getcwd().split("/")[-1]
    return "~/logs/apps/game/" + serv_name + "_%Y%m%d%H.log", 24


_app_logger: AppLog | None = None


def game_logger() -> AppLog:
    """The process-wide application log, created with defaults on first use."""
    global _app_logger
    if _app_logger is None:
        _app_logger = AppLog(*_default_config())
    return _app_logger


def app_log_export(logger: AppLog | None) -> None:
    """Make logger the process-wide application log; None is ignored."""
    global _app_logger
    if logger is not None:
        _app_logger = logger


def game_record(body: GameRecordLog) -> None:
    """Stamp body with a fresh log id and write it to the process-wide application log."""
    target = game_logger()
    body.log_id = str(new_v4())
    target.game_record(body)