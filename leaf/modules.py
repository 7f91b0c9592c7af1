"""Application modules: initialised in order, run in their own threads, destroyed in reverse."""

from __future__ import annotations

import threading
import traceback
from dataclasses import dataclass, field

from leaf import logger as log
from leaf.conf import settings


class Module:
    """A part of an application with its own run loop."""

    def on_init(self) -> None:
        """Called before any module starts running."""

    def on_destroy(self) -> None:
        """Called after the module's run has returned."""

    def run(self, close_sig: threading.Event) -> None:
        """The module's main loop; must return once close_sig is set."""
        close_sig.wait()


@dataclass
class _Entry:
    mi: Module
    close_sig: threading.Event = field(default_factory=threading.Event)
    thread: threading.Thread | None = None


def _destroy(mi: Module) -> None:
    try:
        mi.on_destroy()
    except Exception as exc:
        limit = settings.len_stack_buf
        if limit > 0:
            log.error("%v", f"{exc}: {traceback.format_exc()[:limit]}")
        else:
            log.error("%v", exc)


class Registry:
    """An ordered set of modules started and stopped together."""

    def __init__(self) -> None:
        self._entries: list[_Entry] = []

    def register(self, mi: Module) -> None:
        self._entries.append(_Entry(mi))

    def init(self) -> None:
        """Initialise every module in order, then start each one's run in its own thread."""
        for entry in self._entries:
            entry.mi.on_init()
        for entry in self._entries:
            entry.thread = threading.Thread(
                target=entry.mi.run, args=(entry.close_sig,), daemon=True
            )
            entry.thread.start()

    def destroy(self) -> None:
        """In reverse order, signal each module, wait for its run to end and destroy it."""
        for entry in reversed(self._entries):
            entry.close_sig.set()
            if entry.thread is not None:
                entry.thread.join()
            _destroy(entry.mi)


_default = Registry()


def register(mi: Module) -> None:
    _default.register(mi)


def init() -> None:
    _default.init()


def destroy() -> None:
    _default.destroy()