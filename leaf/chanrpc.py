"""Call functions owned by one thread from other threads, through a call queue.

A Server owns a set of registered functions and a queue of pending calls; the
thread that owns the server takes calls from ``chan_call`` and runs them with
``Server.exec``. A Client sends calls to a server either synchronously, waiting
for the result, or asynchronously, receiving results on ``chan_async_ret`` and
running the callbacks with ``Client.cb`` in its own thread.
"""

from __future__ import annotations

import queue
import threading
import time
import traceback
from collections.abc import Callable, Hashable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from leaf import logger as log
from leaf.conf import settings

_POLL = 0.01


class ChanRPCError(RuntimeError):
    """Raised when a call cannot be delivered or the called function failed."""


class Ret(Enum):
    """What a registered function returns: nothing, one value, or a list of values."""

    NONE = 0
    ONE = 1
    MANY = 2


@dataclass
class CallInfo:
    """One pending call on a server."""

    f: Callable[..., Any]
    args: tuple[Any, ...]
    kind: Ret
    chan_ret: queue.Queue[RetInfo] | None = None
    cb: Callable[..., Any] | None = None


@dataclass
class RetInfo:
    """The outcome of a call, with the callback that should receive it."""

    ret: Any = None
    err: ChanRPCError | None = None
    cb: Callable[..., Any] | None = None
    kind: Ret = Ret.NONE


def _describe(exc: BaseException) -> str:
    """Message for a caught exception, with a trace when stack output is enabled."""
    limit = settings.len_stack_buf
    if limit > 0:
        return f"{exc}: {traceback.format_exc()[:limit]}"
    return str(exc)


def _shape(kind: Ret, value: Any) -> Any:
    if kind is Ret.NONE:
        return None
    if kind is Ret.ONE:
        return value
    return [] if value is None else list(value)


class Server:
    """Registered functions and the queue of calls waiting for them.

    A length of 0 gives a queue without a bound.
    """

    def __init__(self, length: int = 0) -> None:
        self._functions: dict[Hashable, tuple[Callable[..., Any], Ret]] = {}
        self.chan_call: queue.Queue[CallInfo] = queue.Queue(maxsize=max(length, 0))
        self._lock = threading.Lock()
        self._closed = False

    def register(self, id: Hashable, f: Callable[..., Any], ret: Ret = Ret.NONE) -> None:
        """Register f under id; do this before any call is made."""
        if not callable(f):
            raise TypeError(f"function id {id}: definition of function is invalid")
        kind = Ret(ret)
        if id in self._functions:
            raise ValueError(f"function id {id}: already registered")
        self._functions[id] = (f, kind)

    def _lookup(self, id: Hashable) -> tuple[Callable[..., Any], Ret] | None:
        return self._functions.get(id)

    def _push(self, ci: CallInfo, block: bool) -> None:
        while True:
            with self._lock:
                if self._closed:
                    raise ChanRPCError("send on closed channel")
                try:
                    self.chan_call.put_nowait(ci)
                    return
                except queue.Full:
                    if not block:
                        raise ChanRPCError("chanrpc channel full") from None
            time.sleep(_POLL)

    @staticmethod
    def _ret(ci: CallInfo, ri: RetInfo) -> None:
        if ci.chan_ret is None:
            return
        ri.cb = ci.cb
        ri.kind = ci.kind
        ci.chan_ret.put(ri)

    def exec(self, ci: CallInfo) -> None:
        """Run one call and deliver its result; failures are logged and returned as errors."""
        try:
            ret = _shape(ci.kind, ci.f(*ci.args))
        except Exception as exc:
            message = _describe(exc)
            self._ret(ci, RetInfo(err=ChanRPCError(str(exc))))
            log.error("%v", message)
            return
        self._ret(ci, RetInfo(ret=ret))

    def go(self, id: Hashable, *args: Any) -> None:
        """Queue a call whose result nobody waits for; unknown ids and a closed server are ignored."""
        entry = self._lookup(id)
        if entry is None:
            return
        f, kind = entry
        try:
            self._push(CallInfo(f=f, args=args, kind=kind), block=True)
        except ChanRPCError:
            pass

    def call0(self, id: Hashable, *args: Any) -> None:
        return self.open(0).call0(id, *args)

    def call1(self, id: Hashable, *args: Any) -> Any:
        return self.open(0).call1(id, *args)

    def call_n(self, id: Hashable, *args: Any) -> list[Any]:
        return self.open(0).call_n(id, *args)

    def close(self) -> None:
        """Refuse further calls and answer every queued one with an error."""
        with self._lock:
            self._closed = True
        while True:
            try:
                ci = self.chan_call.get_nowait()
            except queue.Empty:
                return
            self._ret(ci, RetInfo(err=ChanRPCError("chanrpc server closed")))

    def open(self, length: int = 0) -> Client:
        """A new client attached to this server."""
        client = Client(length)
        client.attach(self)
        return client


def _exec_cb(ri: RetInfo) -> None:
    try:
        if ri.cb is None:
            raise ChanRPCError("callback function not found")
        if ri.kind is Ret.NONE:
            ri.cb(ri.err)
        elif ri.kind is Ret.ONE:
            ri.cb(ri.ret, ri.err)
        else:
            ri.cb([] if ri.ret is None else ri.ret, ri.err)
    except Exception as exc:
        log.error("%v", _describe(exc))


class Client:
    """Sends calls to an attached server; allows at most length pending asynchronous calls."""

    def __init__(self, length: int = 0) -> None:
        self._server: Server | None = None
        self._chan_sync_ret: queue.Queue[RetInfo] = queue.Queue(maxsize=1)
        self._capacity = max(length, 0)
        self.chan_async_ret: queue.Queue[RetInfo] = queue.Queue(maxsize=self._capacity)
        self._pending = 0

    def attach(self, server: Server) -> None:
        self._server = server

    def _lookup(self, id: Hashable, kind: Ret) -> tuple[Server, Callable[..., Any]]:
        server = self._server
        if server is None:
            raise ChanRPCError("server not attached")
        entry = server._lookup(id)
        if entry is None:
            raise ChanRPCError(f"function id {id}: function not registered")
        f, registered = entry
        if registered is not kind:
            raise ChanRPCError(f"function id {id}: return type mismatch")
        return server, f

    def _sync(self, id: Hashable, args: tuple[Any, ...], kind: Ret) -> Any:
        server, f = self._lookup(id, kind)
        server._push(
            CallInfo(f=f, args=args, kind=kind, chan_ret=self._chan_sync_ret), block=True
        )
        ri = self._chan_sync_ret.get()
        if ri.err is not None:
            raise ri.err
        return ri.ret

    def call0(self, id: Hashable, *args: Any) -> None:
        """Call a function that returns nothing and wait for it."""
        self._sync(id, args, Ret.NONE)

    def call1(self, id: Hashable, *args: Any) -> Any:
        """Call a function that returns one value and wait for it."""
        return self._sync(id, args, Ret.ONE)

    def call_n(self, id: Hashable, *args: Any) -> list[Any]:
        """Call a function that returns a list and wait for it."""
        return self._sync(id, args, Ret.MANY)

    def _async(
        self, id: Hashable, args: tuple[Any, ...], callback: Callable[..., Any], kind: Ret
    ) -> None:
        try:
            server, f = self._lookup(id, kind)
            server._push(
                CallInfo(
                    f=f, args=args, kind=kind, chan_ret=self.chan_async_ret, cb=callback
                ),
                block=False,
            )
        except ChanRPCError as err:
            self.chan_async_ret.put(RetInfo(err=err, cb=callback, kind=kind))

    def async_call(
        self,
        id: Hashable,
        *args: Any,
        callback: Callable[..., Any],
        ret: Ret = Ret.NONE,
    ) -> None:
        """Queue a call; its result arrives on chan_async_ret and is handled by cb.

        The callback takes (err) for Ret.NONE, (value, err) for Ret.ONE and
        (values, err) for Ret.MANY.
        """
        if not callable(callback):
            raise TypeError("definition of callback function is invalid")
        kind = Ret(ret)
        if self._pending >= self._capacity:
            _exec_cb(RetInfo(err=ChanRPCError("too many calls"), cb=callback, kind=kind))
            return
        self._async(id, args, callback, kind)
        self._pending += 1

    def cb(self, ri: RetInfo) -> None:
        """Run the callback of a result taken from chan_async_ret."""
        self._pending -= 1
        _exec_cb(ri)

    def close(self) -> None:
        """Wait for and handle every pending asynchronous result."""
        while self._pending > 0:
            self.cb(self.chan_async_ret.get())

    def idle(self) -> bool:
        return self._pending == 0