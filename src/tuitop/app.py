"""tuitop - Main Textual application."""

import os
import sys
from queue import Queue

import structlog
from rich.text import Text
from textual import events
from textual.app import App, ComposeResult
from textual.containers import Container
from textual.css.query import NoMatches
from textual.widgets import DataTable, Static

from tuitop.config import Config
from tuitop.events import EventChannel, KeyKind
from tuitop.logging import configure as configure_logging
from tuitop.models import COLUMNS, ProcessSnapshot, SystemSnapshot
from tuitop.monitor import (
    BackgroundSampler,
    InputSampler,
    MetricsProvider,
    PsutilProvider,
    RawInput,
    RawKey,
    RawOther,
    spawn_samplers,
)
from tuitop.state import AppState, EventLoop

log = structlog.get_logger()


def format_time(seconds: int) -> str:
    """Format an uptime as "D days, HH:MM:SS"."""
    days, seconds = divmod(seconds, 86400)
    hours, seconds = divmod(seconds, 3600)
    minutes, seconds = divmod(seconds, 60)
    unit = "day" if days == 1 else "days"
    return f"{days} {unit}, {hours:02d}:{minutes:02d}:{seconds:02d}"


def format_memory(size: int) -> str:
    """Format bytes as megabytes."""
    return f"{size / 1024 / 1024:.2f} MB"


class TextualInputSource:
    """
    InputSource fed from the Textual app's message handlers.

    Textual owns the terminal and reads it on its own driver thread; the app
    pushes what it receives here so the InputSampler can block on it.
    """

    def __init__(self) -> None:
        self._queue: Queue[RawInput | None] = Queue()

    def push(self, raw: RawInput) -> None:
        self._queue.put(raw)

    def read_next_event(self) -> RawInput | None:
        return self._queue.get()

    def close(self) -> None:
        """Unblock the reader; it will see None."""
        self._queue.put(None)


class SystemInfoPanel(Static):
    """Header panel with system-wide information."""

    DEFAULT_CSS = """
    SystemInfoPanel {
        height: 5;
        border: round $primary;
        padding: 0 1;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        """Initialize SystemInfoPanel."""
        super().__init__(*args, **kwargs)
        self._text = ""

    def on_mount(self) -> None:
        self.border_title = " System "
        self.show_info(SystemSnapshot())

    def show_info(self, info: SystemSnapshot) -> None:
        """Display a system snapshot."""
        text = f"Uptime: {format_time(info.uptime)}"
        if text != self._text:
            self._text = text
            self.update(text)


class ProcessTable(Container):
    """Container for the process data table."""

    DEFAULT_CSS = """
    ProcessTable {
        height: 1fr;
        border: round $primary;
        padding: 1 2;
    }

    ProcessTable > DataTable > .datatable--header {
        background: rgb(100, 133, 88);
        text-style: bold;
    }

    ProcessTable > DataTable > .datatable--cursor {
        background: blue;
        text-style: bold;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        """Initialize ProcessTable."""
        super().__init__(*args, **kwargs)
        self._shown_processes: list[ProcessSnapshot] | None = None
        self._shown_sort: tuple[int, bool] | None = None

    def compose(self) -> ComposeResult:
        """Compose the process table."""
        table = DataTable(id="process-table", cursor_type="row")
        # Selection is driven by AppState, not by the table's own bindings
        table.can_focus = False
        yield table

    def on_mount(self) -> None:
        """Set the border title when mounted."""
        self.border_title = " TuiTop Process Manager "

    def show_state(self, state: AppState) -> None:
        """Project the state onto the table without modifying it."""
        table = self.query_one("#process-table", DataTable)
        sort_key = (state.sort_column, state.sort_desc)

        if sort_key != self._shown_sort:
            table.clear(columns=True)
            for i, column in enumerate(COLUMNS):
                title = column.title
                if i == state.sort_column:
                    title += "↓" if state.sort_desc else "↑"
                table.add_column(title, key=column.id)
            self.border_subtitle = self._key_hints(state.sort_desc)
            self._shown_sort = sort_key
            self._shown_processes = None

        if state.processes is not self._shown_processes:
            table.clear()
            table.add_rows(self._row(proc) for proc in state.processes)
            self._shown_processes = state.processes

        table.show_cursor = state.selected_index is not None
        if state.selected_index is not None:
            table.move_cursor(row=state.selected_index)

    @staticmethod
    def _row(proc: ProcessSnapshot) -> tuple[Text, ...]:
        return (
            Text(str(proc.pid)),
            Text(proc.name),
            Text(f"{proc.cpu_usage:.2f}"),
            Text(format_memory(proc.ram_usage)),
        )

    @staticmethod
    def _key_hints(sort_desc: bool) -> str:
        direction = " Sort Asc " if sort_desc else " Sort Desc "
        return (
            " Quit [b blue]<q>[/] -"
            " Select [b blue]<↑, ↓>[/] -"
            " Sort by [b blue]<←, →>[/] -"
            f"{direction}[b blue]<s>[/] "
        )


class TuitopApp(App):
    """Main tuitop application."""

    TITLE = "tuitop"
    SUB_TITLE = "Terminal Process Monitor"

    CSS = """
    Screen {
        layout: vertical;
    }
    """

    def __init__(
        self,
        config: Config | None = None,
        provider: MetricsProvider | None = None,
    ) -> None:
        """Initialize the TuitopApp."""
        super().__init__()
        self._config = config or Config()
        self._provider = provider
        self.event_channel = EventChannel()
        self.app_state = AppState()
        self.ui_loop = EventLoop(self.app_state, self.event_channel, self.render_state)
        self.input_source = TextualInputSource()
        self._input_sampler: InputSampler | None = None
        self._sampler: BackgroundSampler | None = None

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield SystemInfoPanel(id="system-info")
        yield ProcessTable(id="processes")

    def on_mount(self) -> None:
        """Start the producer threads and the event loop timer."""
        provider = self._provider or PsutilProvider()
        self._input_sampler, self._sampler = spawn_samplers(
            self.event_channel,
            provider,
            self.input_source,
            interval=self._config.sampling.interval,
        )
        self.set_interval(self._config.ui.refresh_interval, self._tick)

    def on_key(self, event: events.Key) -> None:
        """Hand key presses to the input sampler."""
        self.input_source.push(RawKey(code=event.key, kind=KeyKind.PRESS))

    def on_resize(self, event: events.Resize) -> None:
        self.input_source.push(RawOther("resize"))

    def on_mouse_down(self, event: events.MouseDown) -> None:
        self.input_source.push(RawOther("mouse"))

    def on_app_focus(self, event: events.AppFocus) -> None:
        self.input_source.push(RawOther("focus"))

    def on_app_blur(self, event: events.AppBlur) -> None:
        self.input_source.push(RawOther("blur"))

    def _tick(self) -> None:
        """Drain pending events and redraw; leave once the state asks to."""
        if not self.ui_loop.tick():
            return
        if self.app_state.exit:
            self.shutdown_producers()
            self.exit()

    def render_state(self, state: AppState) -> None:
        """Render pass: update widgets from the state."""
        try:
            self.query_one("#system-info", SystemInfoPanel).show_info(state.system_info)
            self.query_one(ProcessTable).show_state(state)
        except NoMatches:
            pass  # Not mounted yet

    def shutdown_producers(self) -> None:
        """Close the channel and ask the producer threads to finish."""
        self.event_channel.close()
        self.input_source.close()
        if self._sampler is not None:
            self._sampler.stop(timeout=1.0)
            self._sampler = None
        log.info("producers_stopped")


def main() -> None:
    """Entry point for tuitop application."""
    try:
        config = Config.load()
    except ValueError as e:
        print(f"tuitop: {e}", file=sys.stderr)
        sys.exit(2)

    log_path = configure_logging(config)
    log.info("tuitop_starting", pid=os.getpid(), log_path=str(log_path))

    app = TuitopApp(config)
    try:
        app.run()
    finally:
        app.shutdown_producers()

    sys.exit(app.return_code or 0)


if __name__ == "__main__":
    main()
