import threading

from leaf import modules
from leaf.modules import Module, Registry


class Recorder(Module):
    def __init__(self, name, events, lock, fail_destroy=False):
        self.name = name
        self.events = events
        self.lock = lock
        self.fail_destroy = fail_destroy
        self.signal = None
        self.started = threading.Event()

    def _add(self, what):
        with self.lock:
            self.events.append(f"{what} {self.name}")

    def on_init(self):
        self._add("init")

    def run(self, close_sig):
        self.signal = close_sig
        self.started.set()
        close_sig.wait()
        self._add("stopped")

    def on_destroy(self):
        self._add("destroy")
        if self.fail_destroy:
            raise RuntimeError("destroy failed")


def _make(names, **kwargs):
    events, lock = [], threading.Lock()
    return events, [Recorder(n, events, lock, **kwargs) for n in names]


def test_init_in_order_and_destroy_in_reverse():
    events, (a, b) = _make(["a", "b"])
    reg = Registry()
    reg.register(a)
    reg.register(b)
    reg.init()
    assert events[:2] == ["init a", "init b"]
    assert a.started.wait(5) and b.started.wait(5)
    assert not a.signal.is_set()
    assert not b.signal.is_set()
    reg.destroy()
    assert a.signal.is_set()
    assert b.signal.is_set()
    assert events[2:] == ["stopped b", "destroy b", "stopped a", "destroy a"]


def test_run_receives_signal_that_is_set_on_destroy():
    events, (a,) = _make(["a"])
    reg = Registry()
    reg.register(a)
    reg.init()
    reg.destroy()
    assert a.signal.is_set()
    assert events.index("stopped a") < events.index("destroy a")


def test_failing_destroy_does_not_stop_others():
    events, (a, b) = _make(["a", "b"], fail_destroy=True)
    reg = Registry()
    reg.register(a)
    reg.register(b)
    reg.init()
    reg.destroy()
    assert a.signal.is_set()
    assert b.signal.is_set()
    assert "destroy a" in events
    assert "destroy b" in events


def test_default_run_returns_on_signal():
    destroyed = []

    class Plain(Module):
        signal = None
        returned = False

        def run(self, close_sig):
            self.signal = close_sig
            super().run(close_sig)
            self.returned = True

        def on_destroy(self):
            destroyed.append(self.returned)

    p = Plain()
    reg = Registry()
    reg.register(p)
    reg.init()
    reg.destroy()
    assert p.signal.is_set()
    assert destroyed == [True]


def test_module_level_registry():
    events, (a,) = _make(["solo"])
    modules.register(a)
    modules.init()
    modules.destroy()
    assert a.signal.is_set()
    assert events == ["init solo", "stopped solo", "destroy solo"]