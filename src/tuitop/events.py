"""Events and the channel carrying them from producer threads to the UI loop."""

import threading
from dataclasses import dataclass
from enum import Enum
from queue import Empty, SimpleQueue
from typing import Union

from tuitop.models import ProcessSnapshot, SystemSnapshot


class KeyKind(Enum):
    """Kind of key signal reported by the terminal."""

    PRESS = "press"
    REPEAT = "repeat"
    RELEASE = "release"


@dataclass(slots=True, frozen=True)
class KeyEvent:
    """A key signal, named with Textual key names ("q", "up", "left", ...)."""

    code: str
    kind: KeyKind = KeyKind.PRESS


@dataclass(slots=True, frozen=True)
class InputEvent:
    """A key event read from the terminal."""

    key: KeyEvent


@dataclass(slots=True, frozen=True)
class ProcessesEvent:
    """A fresh process list from one sampling cycle."""

    processes: tuple[ProcessSnapshot, ...]


@dataclass(slots=True, frozen=True)
class SystemInfoEvent:
    """A fresh system snapshot from one sampling cycle."""

    info: SystemSnapshot


Event = Union[InputEvent, ProcessesEvent, SystemInfoEvent]


class EventChannel:
    """
    Multi-producer, single-consumer event queue.

    Producers call send() from any thread and never block. The consumer
    calls drain() to take everything currently queued without waiting.
    Once closed, sends are dropped and reported as failed.
    """

    def __init__(self) -> None:
        """Initialize an open, empty channel."""
        self._queue: SimpleQueue[Event] = SimpleQueue()
        self._closed = threading.Event()

    @property
    def closed(self) -> bool:
        """Whether the consumer has gone away."""
        return self._closed.is_set()

    def send(self, event: Event) -> bool:
        """
        Enqueue an event.

        Returns:
            False if the channel is closed and the event was dropped.
        """
        if self._closed.is_set():
            return False
        self._queue.put(event)
        return True

    def drain(self) -> list[Event]:
        """Return all pending events in FIFO order, or [] if none are queued."""
        events: list[Event] = []
        while True:
            try:
                events.append(self._queue.get_nowait())
            except Empty:
                break
        return events

    def close(self) -> None:
        """Mark the consumer as gone. Safe to call more than once."""
        self._closed.set()
