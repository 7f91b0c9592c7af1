"""Process-wide framework settings."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class Config:
    """Settings read by the logging, console and cluster parts of the framework."""

    len_stack_buf: int = 4096

    # log
    log_level: str = ""
    log_path: str = ""
    log_flag: int = 0
    log_days: int = 0

    # console
    console_port: int = 0
    console_prompt: str = "Leaf# "
    profile_path: str = ""

    # cluster
    listen_addr: str = ""
    conn_addrs: list[str] = field(default_factory=list)
    pending_write_num: int = 0

    # application log, e.g. "~/logs/apps/game/serverName_%Y%m%d%H.log"
    app_log_path_fmt: str = ""
    app_max_files: int = 0


settings = Config()