"""Producer threads feeding the event channel: system sampling and terminal input."""

import threading
import time
from dataclasses import dataclass
from typing import Protocol, Union

import psutil
import structlog

from tuitop.events import EventChannel, InputEvent, KeyEvent, KeyKind, ProcessesEvent, SystemInfoEvent
from tuitop.models import ProcessSnapshot, SystemSnapshot

log = structlog.get_logger()

# Per-process CPU percentages computed over a shorter window are mostly noise.
MINIMUM_CPU_UPDATE_INTERVAL = 0.2

UNKNOWN_NAME = "<unknown>"


class MetricsProvider(Protocol):
    """Source of process and system metrics."""

    minimum_interval: float

    def refresh(self) -> None: ...

    def uptime(self) -> int: ...

    def list_processes(self) -> list[ProcessSnapshot]: ...


def clean_name(name: str | bytes | None) -> str:
    """Return a printable UTF-8 process name, decoding invalid bytes lossily."""
    if name is None:
        return UNKNOWN_NAME
    if isinstance(name, bytes):
        return name.decode("utf-8", errors="replace")
    try:
        # psutil hands undecodable bytes back as lone surrogates
        return name.encode("utf-8", errors="surrogateescape").decode("utf-8", errors="replace")
    except UnicodeError:
        return name.encode("utf-8", errors="replace").decode("utf-8")


class PsutilProvider:
    """
    MetricsProvider backed by psutil.

    psutil reports per-process CPU usage relative to the previous call on the
    same Process object, so the constructor primes those counters and
    refresh() waits out whatever is left of ``minimum_interval`` since the
    previous refresh before collecting again.
    """

    minimum_interval = MINIMUM_CPU_UPDATE_INTERVAL

    _ATTRS = ["pid", "name", "cpu_percent", "memory_info"]

    def __init__(self) -> None:
        """Initialize the provider and prime CPU counters."""
        self._processes: list[ProcessSnapshot] = []
        self._last_refresh: float | None = None
        self.refresh()

    def refresh(self) -> None:
        """
        Re-enumerate processes and cache the result.

        Blocks until ``minimum_interval`` has passed since the previous
        refresh finished.
        """
        if self._last_refresh is not None:
            remaining = self.minimum_interval - (time.monotonic() - self._last_refresh)
            if remaining > 0:
                time.sleep(remaining)
        self._processes = self._collect_processes()
        self._last_refresh = time.monotonic()

    def uptime(self) -> int:
        """Seconds since boot."""
        return max(0, int(time.time() - psutil.boot_time()))

    def list_processes(self) -> list[ProcessSnapshot]:
        """Processes found by the latest refresh()."""
        return list(self._processes)

    def _collect_processes(self) -> list[ProcessSnapshot]:
        """
        Collect snapshots of all running processes.

        Processes that vanish, turn into zombies or deny access mid-walk are
        left out of this cycle.
        """
        processes: list[ProcessSnapshot] = []

        for proc in psutil.process_iter(attrs=self._ATTRS):
            try:
                info = proc.info
                mem_info = info.get("memory_info")
                processes.append(
                    ProcessSnapshot(
                        pid=info["pid"],
                        name=clean_name(info.get("name")),
                        cpu_usage=info.get("cpu_percent") or 0.0,
                        ram_usage=mem_info.rss if mem_info else 0,
                    )
                )
            except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
                continue

        return processes


class BackgroundSampler:
    """
    Periodically samples a MetricsProvider on a daemon thread.

    Every cycle sends one ProcessesEvent followed by one SystemInfoEvent.
    The thread ends on stop() or as soon as the channel refuses a send.
    """

    def __init__(
        self,
        channel: EventChannel,
        provider: MetricsProvider,
        interval: float = 1.0,
    ) -> None:
        """
        Initialize the BackgroundSampler.

        Args:
            channel: Channel to send snapshot events to.
            provider: Metrics source to sample.
            interval: Seconds between cycles, never below the provider's minimum.
        """
        self._channel = channel
        self._provider = provider
        self._interval = max(provider.minimum_interval, interval)
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def interval(self) -> float:
        """Get the current sampling interval."""
        return self._interval

    @interval.setter
    def interval(self, value: float) -> None:
        """Set the sampling interval."""
        self._interval = max(self._provider.minimum_interval, value)

    @property
    def is_running(self) -> bool:
        """Check if the sampler thread is running."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the sampling thread."""
        if self.is_running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._poll_loop,
            daemon=True,
            name="BackgroundSampler",
        )
        self._thread.start()
        log.info("sampler_started", interval=self._interval)

    def stop(self, timeout: float | None = 5.0) -> None:
        """
        Stop the sampling thread.

        Args:
            timeout: How long to wait for thread to stop (seconds).
        """
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    def sample_once(self) -> bool:
        """
        Run one sampling cycle.

        Returns:
            False if the channel is closed.
        """
        self._provider.refresh()
        info = SystemSnapshot(uptime=self._provider.uptime())
        processes = tuple(self._provider.list_processes())

        if not self._channel.send(ProcessesEvent(processes)):
            return False
        return self._channel.send(SystemInfoEvent(info))

    def _poll_loop(self) -> None:
        """Main polling loop running in the background thread."""
        while not self._stop_event.is_set():
            try:
                if not self.sample_once():
                    log.debug("sampler_send_failed")
                    break
            except Exception:
                # A bad cycle is skipped; the next one starts from scratch
                log.exception("sampler_cycle_failed")

            self._stop_event.wait(timeout=self._interval)

        log.info("sampler_stopped")


@dataclass(slots=True, frozen=True)
class RawKey:
    """A key signal as read from the terminal."""

    code: str
    kind: KeyKind = KeyKind.PRESS


@dataclass(slots=True, frozen=True)
class RawOther:
    """Any non-key terminal event (resize, mouse, focus)."""

    description: str = ""


RawInput = Union[RawKey, RawOther]


class InputSource(Protocol):
    """Blocking source of raw terminal events."""

    def read_next_event(self) -> RawInput | None:
        """Block for the next event; None once the source is closed."""
        ...


class InputSampler:
    """Forwards key events from an InputSource to the channel on a daemon thread."""

    def __init__(self, channel: EventChannel, source: InputSource) -> None:
        self._channel = channel
        self._source = source
        self._thread: threading.Thread | None = None

    @property
    def is_running(self) -> bool:
        """Check if the reader thread is running."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the reader thread."""
        if self.is_running:
            return

        self._thread = threading.Thread(
            target=self._read_loop,
            daemon=True,
            name="InputSampler",
        )
        self._thread.start()

    def join(self, timeout: float | None = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout=timeout)

    def _read_loop(self) -> None:
        while True:
            try:
                raw = self._source.read_next_event()
            except Exception:
                log.exception("input_read_failed")
                return

            if raw is None:
                log.debug("input_source_closed")
                return
            if not isinstance(raw, RawKey):
                continue
            if not self._channel.send(InputEvent(KeyEvent(code=raw.code, kind=raw.kind))):
                log.debug("input_send_failed")
                return


def spawn_samplers(
    channel: EventChannel,
    provider: MetricsProvider,
    source: InputSource,
    interval: float = 1.0,
) -> tuple[InputSampler, BackgroundSampler]:
    """Start both producer threads feeding ``channel``."""
    input_sampler = InputSampler(channel, source)
    input_sampler.start()

    background = BackgroundSampler(channel, provider, interval=interval)
    background.start()

    return input_sampler, background
