"""Application state and the event loop that owns it."""

from collections.abc import Callable
from dataclasses import dataclass, field

import structlog

from tuitop.events import (
    Event,
    EventChannel,
    InputEvent,
    KeyEvent,
    KeyKind,
    ProcessesEvent,
    SystemInfoEvent,
)
from tuitop.models import COLUMNS, ProcessSnapshot, SystemSnapshot
from tuitop.sort import sort_processes

log = structlog.get_logger()

KEY_QUIT = "q"
KEY_DOWN = "down"
KEY_UP = "up"
KEY_PREV_COLUMN = "left"
KEY_NEXT_COLUMN = "right"
KEY_TOGGLE_DIRECTION = "s"


@dataclass
class AppState:
    """
    Authoritative UI state.

    Only the event loop mutates it. ``processes`` is always ordered by
    ``(sort_column, sort_desc)`` and ``selected_index``, when set, always
    points into ``processes``.
    """

    exit: bool = False
    processes: list[ProcessSnapshot] = field(default_factory=list)
    system_info: SystemSnapshot = field(default_factory=SystemSnapshot)
    selected_index: int | None = None
    sort_column: int = 0
    sort_desc: bool = True

    def resort(self) -> None:
        """Re-apply the current sort key to the process list."""
        self.processes = sort_processes(self.processes, self.sort_column, self.sort_desc)

    def clamp_selection(self) -> None:
        """Pull the selection back into range after the list changed size."""
        if self.selected_index is None:
            return
        if not self.processes:
            self.selected_index = None
        elif self.selected_index >= len(self.processes):
            self.selected_index = len(self.processes) - 1


def handle_key(state: AppState, key: KeyEvent) -> None:
    """Apply a single key event to the state."""
    if key.kind is not KeyKind.PRESS:
        return

    code = key.code
    if code == KEY_QUIT:
        state.exit = True
    elif code == KEY_DOWN:
        if not state.processes:
            return
        if state.selected_index is None:
            state.selected_index = 0
        else:
            state.selected_index = min(state.selected_index + 1, len(state.processes) - 1)
    elif code == KEY_UP:
        if not state.processes:
            return
        if state.selected_index is None:
            state.selected_index = 0
        else:
            state.selected_index = max(state.selected_index - 1, 0)
    elif code == KEY_PREV_COLUMN:
        state.sort_column = (state.sort_column - 1) % len(COLUMNS)
        state.resort()
    elif code == KEY_NEXT_COLUMN:
        state.sort_column = (state.sort_column + 1) % len(COLUMNS)
        state.resort()
    elif code == KEY_TOGGLE_DIRECTION:
        state.sort_desc = not state.sort_desc
        state.resort()


def apply_event(state: AppState, event: Event) -> None:
    """Merge one event into the state."""
    if isinstance(event, InputEvent):
        handle_key(state, event.key)
    elif isinstance(event, ProcessesEvent):
        state.processes = list(event.processes)
        state.resort()
        state.clamp_selection()
    elif isinstance(event, SystemInfoEvent):
        state.system_info = event.info


def handle_events(state: AppState, channel: EventChannel) -> int:
    """
    Drain every pending event from the channel into the state.

    Returns:
        Number of events applied (0 when nothing was pending).
    """
    events = channel.drain()
    for event in events:
        apply_event(state, event)
    return len(events)


class EventLoop:
    """
    Single consumer of the event channel.

    Each tick drains all pending events into the state, then renders once.
    """

    def __init__(
        self,
        state: AppState,
        channel: EventChannel,
        render: Callable[[AppState], None],
    ) -> None:
        self.state = state
        self._channel = channel
        self._render = render

    def tick(self) -> bool:
        """
        Run one drain-and-render pass.

        Returns:
            False without draining or rendering if the loop has already exited.
        """
        if self.state.exit:
            return False
        handle_events(self.state, self._channel)
        self._render(self.state)
        return True

    def run(self) -> None:
        """Tick until the state asks to exit, then close the channel."""
        while self.tick():
            pass
        self._channel.close()
        log.info("event_loop_stopped")
