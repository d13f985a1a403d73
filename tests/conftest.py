"""
Shared fixtures.

Time is always injected: engines and monitors under test read a
manually advanced millisecond clock, never the wall clock.
"""

import pytest

from render_diagnostics import EngineConfig, RenderDiagnosticEngine


class FakeClock:
    """Manually advanced millisecond clock."""
    
    def __init__(self, start: float = 1_000_000.0):
        self.now = start
    
    def __call__(self) -> float:
        return self.now
    
    def advance(self, ms: float) -> float:
        self.now += ms
        return self.now


class FakeHandle:
    def __init__(self, delay: float, callback):
        self.delay = delay
        self.callback = callback
        self.cancelled = False
    
    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Records call_later requests; fire() runs the pending ones."""
    
    def __init__(self):
        self.handles: list[FakeHandle] = []
    
    def call_later(self, delay, callback, *args):
        handle = FakeHandle(delay, lambda: callback(*args))
        self.handles.append(handle)
        return handle
    
    @property
    def pending(self) -> list[FakeHandle]:
        return [h for h in self.handles if not h.cancelled and h.callback is not None]
    
    def fire(self) -> int:
        fired = 0
        for handle in self.pending:
            callback, handle.callback = handle.callback, None
            callback()
            fired += 1
        return fired


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def make_engine(clock):
    """Factory for initialized engines on the fake clock."""
    def factory(**options) -> RenderDiagnosticEngine:
        options.setdefault("compaction_interval_ms", 0)
        engine = RenderDiagnosticEngine(EngineConfig(**options), clock=clock)
        return engine.init()
    return factory


@pytest.fixture
def engine(make_engine) -> RenderDiagnosticEngine:
    return make_engine()
