"""Run work in background threads and hand its callbacks back to the owning thread."""

from __future__ import annotations

import queue
import threading
import traceback
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass

from leaf import logger as log
from leaf.conf import settings

Callback = Callable[[], None]


def _describe(exc: BaseException) -> str:
    limit = settings.len_stack_buf
    if limit > 0:
        return f"{exc}: {traceback.format_exc()[:limit]}"
    return str(exc)


class Spawner:
    """Starts functions in threads; their callbacks queue on chan_cb for the owner to run.

    One spawner belongs to one thread. A length of 0 gives a queue without a bound.
    """

    def __init__(self, length: int = 0) -> None:
        self.chan_cb: queue.Queue[Callback | None] = queue.Queue(maxsize=max(length, 0))
        self._pending = 0

    def _finish(self, f: Callback, cb: Callback | None) -> None:
        try:
            f()
        except Exception as exc:
            log.error("%v", _describe(exc))
        finally:
            self.chan_cb.put(cb)

    def go(self, f: Callback, cb: Callback | None = None) -> None:
        """Run f in a new thread; cb is queued on chan_cb when f ends."""
        self._pending += 1
        threading.Thread(target=self._finish, args=(f, cb), daemon=True).start()

    def cb(self, cb: Callback | None) -> None:
        """Run a callback taken from chan_cb; errors are logged."""
        try:
            if cb is not None:
                cb()
        except Exception as exc:
            log.error("%v", _describe(exc))
        finally:
            self._pending -= 1

    def close(self) -> None:
        """Wait for every started function and run its callback."""
        while self._pending > 0:
            self.cb(self.chan_cb.get())

    def idle(self) -> bool:
        return self._pending == 0

    def new_linear_context(self) -> LinearContext:
        """A context whose functions run one after another in the order given."""
        return LinearContext(self)


@dataclass
class _LinearGo:
    f: Callback
    cb: Callback | None


class LinearContext:
    """Runs functions in background threads strictly one at a time, in submission order."""

    def __init__(self, spawner: Spawner) -> None:
        self._spawner = spawner
        self._queue: deque[_LinearGo] = deque()
        self._queue_lock = threading.Lock()
        self._exec_lock = threading.Lock()

    def _run_next(self) -> None:
        with self._exec_lock:
            with self._queue_lock:
                item = self._queue.popleft()
            self._spawner._finish(item.f, item.cb)

    def go(self, f: Callback, cb: Callback | None = None) -> None:
        """Queue f after the earlier ones; cb goes to the spawner's chan_cb when f ends."""
        self._spawner._pending += 1
        with self._queue_lock:
            self._queue.append(_LinearGo(f, cb))
        threading.Thread(target=self._run_next, daemon=True).start()