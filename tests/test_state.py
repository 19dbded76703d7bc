"""Tests for AppState transitions and the event loop."""

from dataclasses import replace

import pytest

from conftest import make_process
from tuitop.events import InputEvent, KeyEvent, KeyKind, ProcessesEvent, SystemInfoEvent
from tuitop.models import COLUMNS, SystemSnapshot
from tuitop.state import AppState, EventLoop, apply_event, handle_events, handle_key

PID, NAME, CPU, MEM = range(4)


def press(state: AppState, code: str) -> None:
    handle_key(state, KeyEvent(code))


def pids(state: AppState) -> list[int]:
    return [p.pid for p in state.processes]


@pytest.fixture
def three_processes() -> AppState:
    state = AppState()
    apply_event(
        state,
        ProcessesEvent(tuple(make_process(pid=p) for p in (1, 2, 3))),
    )
    return state


class TestAppStateDefaults:
    """Tests for the initial state."""

    def test_defaults(self):
        """Test AppState starts empty, on column 0, descending."""
        state = AppState()
        assert state.exit is False
        assert state.processes == []
        assert state.system_info == SystemSnapshot(uptime=0)
        assert state.selected_index is None
        assert state.sort_column == 0
        assert state.sort_desc is True


class TestHandleKey:
    """Tests for key handling."""

    def test_quit(self):
        """Test q sets exit."""
        state = AppState()
        press(state, "q")
        assert state.exit is True

    @pytest.mark.parametrize("kind", [KeyKind.RELEASE, KeyKind.REPEAT])
    def test_non_press_ignored(self, kind):
        """Test release and repeat signals change nothing."""
        state = AppState()
        handle_key(state, KeyEvent("q", kind))
        handle_key(state, KeyEvent("right", kind))
        assert state == AppState()

    def test_unknown_key_ignored(self, three_processes):
        """Test unbound keys change nothing."""
        before = replace(three_processes, processes=list(three_processes.processes))
        press(three_processes, "x")
        press(three_processes, "enter")
        assert three_processes == before

    def test_left_wraps(self):
        """Test left from column 0 wraps to the last column."""
        state = AppState(sort_column=0)
        press(state, "left")
        assert state.sort_column == len(COLUMNS) - 1 == 3

    def test_right_wraps(self):
        """Test right from the last column wraps to 0."""
        state = AppState(sort_column=3)
        press(state, "right")
        assert state.sort_column == 0

    def test_sort_column_stays_in_range(self):
        """Test any run of left/right presses stays within the column set."""
        state = AppState()
        for code in ["left", "left", "right", "left"] * 5 + ["right"] * 9:
            press(state, code)
            assert 0 <= state.sort_column < len(COLUMNS)

    def test_toggle_direction(self):
        """Test s toggles the sort direction."""
        state = AppState()
        press(state, "s")
        assert state.sort_desc is False
        press(state, "s")
        assert state.sort_desc is True

    def test_down_selection_clamps(self, three_processes):
        """Test down selects 0 first, then advances and stops at the end."""
        state = three_processes
        press(state, "down")
        assert state.selected_index == 0
        press(state, "down")
        assert state.selected_index == 1
        press(state, "down")
        press(state, "down")
        assert state.selected_index == 2

    def test_up_selection_clamps(self, three_processes):
        """Test up selects 0 first and never goes negative."""
        state = three_processes
        press(state, "up")
        assert state.selected_index == 0
        press(state, "up")
        assert state.selected_index == 0

        state.selected_index = 2
        press(state, "up")
        assert state.selected_index == 1

    def test_selection_on_empty_list(self):
        """Test up/down with no processes leave selection unset."""
        state = AppState()
        press(state, "down")
        press(state, "up")
        assert state.selected_index is None

    def test_sort_change_resorts_immediately(self):
        """Test changing the sort key re-sorts the current list."""
        state = AppState(sort_column=PID, sort_desc=False)
        apply_event(
            state,
            ProcessesEvent(
                (make_process(pid=5, cpu_usage=10.0), make_process(pid=2, cpu_usage=90.0))
            ),
        )
        assert pids(state) == [2, 5]

        press(state, "s")
        assert pids(state) == [5, 2]

        # pid -> name -> cpu
        press(state, "right")
        press(state, "right")
        press(state, "s")
        assert state.sort_column == CPU
        assert state.sort_desc is False
        assert pids(state) == [5, 2]
        assert [p.cpu_usage for p in state.processes] == [10.0, 90.0]


class TestApplyEvent:
    """Tests for applying producer events."""

    def test_processes_event_sorts_with_current_key(self):
        """Test a new process list is sorted before it is stored."""
        state = AppState(sort_column=MEM, sort_desc=True)
        apply_event(
            state,
            ProcessesEvent(
                (
                    make_process(pid=1, ram_usage=10),
                    make_process(pid=2, ram_usage=30),
                    make_process(pid=3, ram_usage=20),
                )
            ),
        )
        assert pids(state) == [2, 3, 1]

    def test_empty_process_list_clears_selection(self, three_processes):
        """Test an empty list never leaves the selection out of range."""
        three_processes.selected_index = 2
        apply_event(three_processes, ProcessesEvent(()))
        assert three_processes.processes == []
        assert three_processes.selected_index is None

    def test_shrinking_list_clamps_selection(self, three_processes):
        """Test a shorter list pulls the selection back to the last row."""
        three_processes.selected_index = 2
        apply_event(three_processes, ProcessesEvent((make_process(pid=9),)))
        assert three_processes.selected_index == 0

    def test_growing_list_keeps_selection(self, three_processes):
        """Test selection is kept when still in range."""
        three_processes.selected_index = 1
        apply_event(
            three_processes,
            ProcessesEvent(tuple(make_process(pid=p) for p in range(10))),
        )
        assert three_processes.selected_index == 1

    def test_system_info_replaced(self):
        """Test SystemInfo events replace the snapshot."""
        state = AppState()
        apply_event(state, SystemInfoEvent(SystemSnapshot(uptime=100)))
        assert state.system_info.uptime == 100

    def test_system_info_and_processes_commute(self):
        """Test the two sampler events give the same state in either order."""
        procs = ProcessesEvent((make_process(pid=3), make_process(pid=8)))
        info = SystemInfoEvent(SystemSnapshot(uptime=7))

        a = AppState()
        apply_event(a, procs)
        apply_event(a, info)

        b = AppState()
        apply_event(b, info)
        apply_event(b, procs)

        assert a == b


class TestHandleEvents:
    """Tests for draining the channel into the state."""

    def test_drains_all_pending(self, channel):
        """Test every queued event is applied in one call."""
        state = AppState()
        channel.send(ProcessesEvent((make_process(pid=1), make_process(pid=2))))
        channel.send(SystemInfoEvent(SystemSnapshot(uptime=3)))
        channel.send(InputEvent(KeyEvent("down")))

        assert handle_events(state, channel) == 3
        assert state.selected_index == 0
        assert state.system_info.uptime == 3
        assert channel.drain() == []

    def test_zero_events(self, channel):
        """Test draining nothing applies nothing."""
        state = AppState()
        assert handle_events(state, channel) == 0


class TestEventLoop:
    """Tests for EventLoop."""

    def test_empty_tick_renders_once_and_changes_nothing(self, channel):
        """Test a tick with no events leaves state intact and renders once."""
        state = AppState(sort_column=2, sort_desc=False, selected_index=0)
        state.processes = [make_process(pid=4)]
        before = replace(state, processes=list(state.processes))
        renders = []

        loop = EventLoop(state, channel, renders.append)
        assert loop.tick() is True

        assert state == before
        assert renders == [state]

    def test_tick_renders_after_drain(self, channel):
        """Test the render pass sees the drained state."""
        seen = []
        state = AppState()
        loop = EventLoop(state, channel, lambda s: seen.append(s.system_info.uptime))

        channel.send(SystemInfoEvent(SystemSnapshot(uptime=11)))
        channel.send(SystemInfoEvent(SystemSnapshot(uptime=12)))
        loop.tick()

        assert seen == [12]

    def test_no_drain_or_render_after_exit(self, channel):
        """Test ticks after exit do nothing."""
        renders = []
        state = AppState()
        loop = EventLoop(state, channel, renders.append)

        channel.send(InputEvent(KeyEvent("q")))
        assert loop.tick() is True
        assert state.exit is True
        assert len(renders) == 1

        channel.send(SystemInfoEvent(SystemSnapshot(uptime=99)))
        assert loop.tick() is False
        assert len(renders) == 1
        assert state.system_info.uptime == 0

    def test_run_until_quit_closes_channel(self, channel):
        """Test run() stops on quit and closes the channel."""
        renders = []
        state = AppState()
        loop = EventLoop(state, channel, renders.append)

        channel.send(ProcessesEvent((make_process(pid=1),)))
        channel.send(InputEvent(KeyEvent("q")))
        loop.run()

        assert state.exit is True
        assert renders
        assert channel.closed
        assert channel.send(InputEvent(KeyEvent("down"))) is False
