"""Pytest configuration and shared fixtures."""
import pytest

import promptnest.config as config_module
from promptnest import (
    ContainmentCoordinator,
    ContainmentConfig,
    HostItem,
    InMemoryHostList,
    InMemorySettingsStore,
    RecordingNotifier,
    RelationStore,
)


class ManualTimer:
    """Timer handle returned by ManualScheduler."""

    def __init__(self, due, callback):
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualScheduler:
    """Scheduler driven by a fake clock: nothing fires until advance() is called."""

    def __init__(self):
        self.now = 0.0
        self._timers = []

    def call_later(self, delay, callback):
        timer = ManualTimer(self.now + delay, callback)
        self._timers.append(timer)
        return timer

    @property
    def pending(self):
        return [t for t in self._timers if not t.cancelled]

    def advance(self, seconds):
        """Move the clock forward, firing due timers in order (including ones they schedule)."""
        target = self.now + seconds
        while True:
            due = [t for t in self.pending if t.due <= target]
            if not due:
                break
            timer = min(due, key=lambda t: t.due)
            self._timers.remove(timer)
            self.now = timer.due
            timer.callback()
        self.now = target
        self._timers = self.pending

    def run_all(self, limit=100):
        """Fire timers until none remain (bounded, to catch self-rescheduling loops)."""
        for _ in range(limit):
            if not self.pending:
                return
            next_due = min(t.due for t in self.pending)
            self.advance(next_due - self.now)
        raise AssertionError("timers kept rescheduling themselves")


@pytest.fixture(autouse=True)
def reset_current_config():
    """Isolate the thread-local config between tests."""
    original = getattr(config_module._current_config_context, 'value', None)
    config_module.clear_current_config()

    yield

    config_module._current_config_context.value = original


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def store():
    return RelationStore()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def settings():
    return InMemorySettingsStore()


@pytest.fixture
def host():
    """Five prompt items; 'chat_history' is a marker item that cannot be grouped."""
    return InMemoryHostList([
        "main",
        "persona",
        "scenario",
        "jailbreak",
        HostItem("chat_history", eligible=False),
    ])


@pytest.fixture
def config():
    return ContainmentConfig(debounce_seconds=0.2, settle_seconds=0.1)


@pytest.fixture
def coordinator(host, settings, notifier, scheduler, config):
    """Initialized coordinator with its settle window already elapsed."""
    coord = ContainmentCoordinator(host, settings=settings, notifier=notifier, scheduler=scheduler, config=config)
    coord.initialize()
    scheduler.run_all()
    notifier.clear()
    return coord
