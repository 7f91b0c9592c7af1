import queue
import threading

import pytest

from leaf.chanrpc import ChanRPCError, Client, Ret, Server


def _make_server(length=10):
    s = Server(length)
    s.register("f0", lambda *args: None)
    s.register("f1", lambda *args: 1, Ret.ONE)
    s.register("fn", lambda *args: [1, 2, 3], Ret.MANY)
    s.register("add", lambda a, b: a + b, Ret.ONE)
    return s


@pytest.fixture
def server():
    s = _make_server()
    stop = threading.Event()

    def loop():
        while not stop.is_set():
            try:
                ci = s.chan_call.get(timeout=0.02)
            except queue.Empty:
                continue
            s.exec(ci)

    t = threading.Thread(target=loop, daemon=True)
    t.start()
    yield s
    stop.set()
    t.join()


def test_sync_calls(server):
    c = server.open(10)
    assert c.call0("f0") is None
    assert c.call1("f1") == 1
    rn = c.call_n("fn")
    assert (rn[0], rn[1], rn[2]) == (1, 2, 3)
    assert c.call1("add", 1, 2) == 3


def test_server_shortcuts(server):
    assert server.call1("add", 1, 2) == 3
    assert server.call_n("fn") == [1, 2, 3]
    assert server.call0("f0") is None


def test_async_calls(server):
    c = server.open(10)
    results = []
    c.async_call("f0", callback=lambda err: results.append(("f0", err)))
    c.async_call("f1", callback=lambda ret, err: results.append(ret), ret=Ret.ONE)
    c.async_call(
        "fn", callback=lambda ret, err: results.append((ret[0], ret[1], ret[2])), ret=Ret.MANY
    )
    c.async_call("add", 1, 2, callback=lambda ret, err: results.append(ret), ret=Ret.ONE)
    assert not c.idle()
    for _ in range(4):
        c.cb(c.chan_async_ret.get(timeout=5))
    assert results == [("f0", None), 1, (1, 2, 3), 3]
    assert c.idle()


def test_go_runs_function(server):
    seen = []

    server.register("mark", lambda value: seen.append(value))
    server.register("seen", lambda: list(seen), Ret.ONE)
    server.go("mark", 5)
    # Calls are executed in order, so the queued go call has run first.
    assert server.call1("seen") == [5]


def test_go_unknown_id_is_ignored():
    s = Server(1)
    s.go("missing", 1)
    assert s.chan_call.empty()


def test_function_not_registered(server):
    with pytest.raises(ChanRPCError, match="function not registered"):
        server.open(0).call0("missing")


def test_return_type_mismatch(server):
    with pytest.raises(ChanRPCError, match="return type mismatch"):
        server.open(0).call0("f1")


def test_server_not_attached():
    with pytest.raises(ChanRPCError, match="server not attached"):
        Client(1).call1("f1")


def test_function_error_is_returned(server):
    def boom():
        raise ValueError("bad input")

    server.register("boom", boom)
    with pytest.raises(ChanRPCError, match="bad input"):
        server.call0("boom")


def test_register_twice_rejected():
    s = Server(1)
    s.register("f", lambda: None)
    with pytest.raises(ValueError, match="already registered"):
        s.register("f", lambda: None)


def test_register_not_callable_rejected():
    with pytest.raises(TypeError, match="definition of function is invalid"):
        Server(1).register("f", 42)


def test_too_many_calls(server):
    c = Client(0)
    c.attach(server)
    errors = []
    c.async_call("f1", callback=lambda ret, err: errors.append(str(err)), ret=Ret.ONE)
    assert errors == ["too many calls"]
    assert c.idle()


def test_async_mismatch_delivered_as_error(server):
    c = server.open(2)
    errors = []
    c.async_call("f1", callback=lambda err: errors.append(str(err)))
    c.cb(c.chan_async_ret.get(timeout=5))
    assert errors == ["function id f1: return type mismatch"]


def test_channel_full():
    s = _make_server(1)
    c = s.open(5)
    errors = []
    c.async_call("f0", callback=lambda err: errors.append(err))
    c.async_call("f0", callback=lambda err: errors.append(str(err)))
    c.cb(c.chan_async_ret.get(timeout=5))
    assert errors == ["chanrpc channel full"]


def test_close_answers_queued_calls():
    s = _make_server(5)
    c = s.open(5)
    errors = []
    c.async_call("f1", callback=lambda ret, err: errors.append((ret, str(err))), ret=Ret.ONE)
    s.close()
    c.close()
    assert errors == [(None, "chanrpc server closed")]
    assert c.idle()


def test_call_after_close():
    s = _make_server(5)
    s.close()
    with pytest.raises(ChanRPCError, match="closed"):
        s.call1("f1")


def test_callback_error_still_counts(server):
    c = server.open(3)

    def bad(err):
        raise RuntimeError("callback failed")

    c.async_call("f0", callback=bad)
    c.close()
    assert c.idle()


def test_client_close_waits_for_results(server):
    c = server.open(3)
    results = []
    c.async_call("add", 2, 3, callback=lambda ret, err: results.append(ret), ret=Ret.ONE)
    c.async_call("fn", callback=lambda ret, err: results.append(ret), ret=Ret.MANY)
    c.close()
    assert results == [5, [1, 2, 3]]