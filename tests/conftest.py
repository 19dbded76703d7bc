"""Shared test fixtures for tuitop."""

import threading
from queue import Queue

import pytest

from tuitop.events import EventChannel
from tuitop.models import ProcessSnapshot
from tuitop.monitor import RawInput


def make_process(
    pid: int = 1,
    name: str = "proc",
    cpu_usage: float = 0.0,
    ram_usage: int = 0,
) -> ProcessSnapshot:
    """Create a ProcessSnapshot for testing."""
    return ProcessSnapshot(pid=pid, name=name, cpu_usage=cpu_usage, ram_usage=ram_usage)


class FakeProvider:
    """MetricsProvider returning canned data and counting refreshes."""

    minimum_interval = 0.01

    def __init__(self, processes=None, uptime: int = 42) -> None:
        self.processes = list(processes or [])
        self.uptime_seconds = uptime
        self.refresh_count = 0
        self.refreshed = threading.Event()

    def refresh(self) -> None:
        self.refresh_count += 1
        self.refreshed.set()

    def uptime(self) -> int:
        return self.uptime_seconds

    def list_processes(self) -> list[ProcessSnapshot]:
        return list(self.processes)


class FakeInputSource:
    """InputSource backed by a queue the test writes to."""

    def __init__(self) -> None:
        self.queue: Queue[RawInput | None] = Queue()

    def push(self, raw: RawInput | None) -> None:
        self.queue.put(raw)

    def read_next_event(self) -> RawInput | None:
        return self.queue.get(timeout=5.0)


@pytest.fixture
def channel() -> EventChannel:
    """A fresh, open event channel."""
    return EventChannel()


@pytest.fixture
def fake_provider() -> FakeProvider:
    """Provider with two processes and an uptime of 42 seconds."""
    return FakeProvider(
        processes=[
            make_process(pid=5, name="beta", cpu_usage=10.0, ram_usage=2048),
            make_process(pid=2, name="alpha", cpu_usage=90.0, ram_usage=1024),
        ]
    )
