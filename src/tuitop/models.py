"""Data models for tuitop."""

from dataclasses import dataclass
from enum import Enum


@dataclass(slots=True, frozen=True)
class ProcessSnapshot:
    """Immutable snapshot of a process state."""

    pid: int
    name: str
    cpu_usage: float  # 0.0 - 100.0 * core_count
    ram_usage: int  # Bytes


@dataclass(slots=True, frozen=True)
class SystemSnapshot:
    """Immutable snapshot of overall system state."""

    uptime: int = 0  # Seconds since boot


def _cmp(a, b) -> int:
    if a < b:
        return -1
    if a > b:
        return 1
    # Equal, or incomparable (NaN)
    return 0


class Comparator(Enum):
    """Named comparison strategies, one per sortable column."""

    PID = "pid"
    NAME = "name"
    CPU = "cpu"
    MEMORY = "mem"

    def compare(self, a: ProcessSnapshot, b: ProcessSnapshot) -> int:
        """Return -1, 0 or 1 ordering ``a`` relative to ``b``."""
        if self is Comparator.PID:
            return _cmp(a.pid, b.pid)
        if self is Comparator.NAME:
            return _cmp(a.name, b.name)
        if self is Comparator.CPU:
            return _cmp(a.cpu_usage, b.cpu_usage)
        return _cmp(a.ram_usage, b.ram_usage)


@dataclass(slots=True, frozen=True)
class Column:
    """A sortable, displayable process attribute."""

    id: str
    title: str
    comparator: Comparator


COLUMNS: tuple[Column, ...] = (
    Column(id="pid", title="PID", comparator=Comparator.PID),
    Column(id="name", title="NAME", comparator=Comparator.NAME),
    Column(id="cpu", title="CPU%", comparator=Comparator.CPU),
    Column(id="mem", title="MEM", comparator=Comparator.MEMORY),
)
