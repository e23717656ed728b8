"""Poll scheduler - the sample/map/render/publish loop

One QTimer drives periodic cycles; refresh requests arriving while a
cycle runs set a single pending flag, so at most one extra cycle follows
the current one. Cycles are strictly sequential, which keeps tray
publishes in completion order.

Source errors still complete the cycle: the error is shown as the
Disconnected or Unknown bucket.
"""

from enum import Enum
from typing import Optional

from PySide6.QtCore import QObject, QTimer, Signal

from .models import Bucket, DeviceStatus, IconKey, ThemeStyle
from ..device.status_source import DeviceStatusSource, SampleResult
from ..icons.asset_cache import IconAssetCache
from ..icons.bucket_mapper import DEFAULT_UNKNOWN_BUCKET, map_status
from ..ui.system_tray.tray_controller import TrayController
from ..utils import CacheError, SourceError, SourceErrorKind, app_logger

# Errors that mean "the tool itself is unusable", which widen the interval
BACKOFF_KINDS = (SourceErrorKind.TOOL_NOT_FOUND, SourceErrorKind.TIMEOUT)


class PollState(Enum):
    IDLE = "idle"
    SAMPLING = "sampling"
    MAPPING = "mapping"
    RENDERING = "rendering"
    PUBLISHING = "publishing"


def status_for_error(error: SourceError) -> DeviceStatus:
    """Status shown for a failed sample"""
    if error.kind == SourceErrorKind.PARSE_FAILURE:
        return DeviceStatus.unknown()
    return DeviceStatus.disconnected()


class PollScheduler(QObject):
    """Drives DeviceStatusSource -> map_status -> IconAssetCache -> TrayController

    Signals:
        state_changed(PollState)
        status_updated(DeviceStatus): every completed sample
        cycle_finished(IconKey): key the cycle resolved to
        critical_battery(int): charge dropped into the critical bucket
    """

    state_changed = Signal(object)
    status_updated = Signal(object)
    cycle_finished = Signal(object)
    critical_battery = Signal(int)

    def __init__(
        self,
        source: DeviceStatusSource,
        cache: IconAssetCache,
        tray: TrayController,
        interval_seconds: float = 30,
        max_interval_seconds: float = 300,
        backoff_enabled: bool = True,
        style: ThemeStyle = ThemeStyle.LIGHT,
        accent: str = "",
        unknown_bucket: Bucket = DEFAULT_UNKNOWN_BUCKET,
        parent: Optional[QObject] = None,
    ):
        super().__init__(parent)
        self._source = source
        self._cache = cache
        self._tray = tray

        self._base_interval_ms = int(interval_seconds * 1000)
        self._max_interval_ms = max(int(max_interval_seconds * 1000), self._base_interval_ms)
        self._interval_ms = self._base_interval_ms
        self._backoff_enabled = backoff_enabled

        self._style = style
        self._accent = accent
        self._unknown_bucket = unknown_bucket

        self._state = PollState.IDLE
        self._pending = False
        self._running = False
        self._cycle_count = 0

        self._last_status: Optional[DeviceStatus] = None
        self._last_key: Optional[IconKey] = None

        self._timer = QTimer(self)
        self._timer.timeout.connect(self.request_refresh)

    # ==================== Control ====================

    def start(self) -> None:
        """Start the timer and run the first cycle right away"""
        if self._running:
            return
        self._running = True
        self._timer.start(self._interval_ms)
        app_logger.log_scheduler_event("Polling started", {"interval_ms": self._interval_ms})
        self.request_refresh()

    def stop(self) -> None:
        """Stop scheduling; a cycle in flight finishes without publishing"""
        self._running = False
        self._pending = False
        self._timer.stop()
        app_logger.log_scheduler_event("Polling stopped", {"cycles": self._cycle_count})

    def request_refresh(self) -> None:
        """Run a cycle now, or once after the current one if busy"""
        if not self._running:
            return
        if self._state != PollState.IDLE:
            if not self._pending:
                app_logger.log_scheduler_event("Refresh coalesced", {"state": self._state.value})
            self._pending = True
            return
        self._begin_cycle()

    def set_style(self, style: ThemeStyle, accent: str = "") -> None:
        """Change the icon style; takes effect on the next cycle"""
        self._style = style
        self._accent = accent

    # ==================== Properties ====================

    @property
    def state(self) -> PollState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def pending(self) -> bool:
        return self._pending

    @property
    def interval_ms(self) -> int:
        return self._interval_ms

    @property
    def cycle_count(self) -> int:
        return self._cycle_count

    @property
    def last_status(self) -> Optional[DeviceStatus]:
        return self._last_status

    @property
    def last_key(self) -> Optional[IconKey]:
        return self._last_key

    # ==================== Cycle ====================

    def _set_state(self, state: PollState) -> None:
        self._state = state
        self.state_changed.emit(state)

    def _begin_cycle(self) -> None:
        self._cycle_count += 1
        self._set_state(PollState.SAMPLING)
        try:
            self._source.sample(self._on_sample)
        except Exception as e:
            app_logger.log_error(e, "poll_sample")
            self._finish_cycle()

    def _on_sample(self, result: SampleResult) -> None:
        if not self._running:
            self._finish_cycle()
            return

        try:
            self._process(result)
        except Exception as e:
            app_logger.log_error(e, "poll_cycle")
        finally:
            self._finish_cycle()

    def _process(self, result: SampleResult) -> None:
        if isinstance(result, SourceError):
            app_logger.log_recoverable(result, "sample_battery", {"tool": self._source.tool})
            status = status_for_error(result)
            self._adjust_backoff(result)
        else:
            status = result
            self._adjust_backoff(None)

        self._set_state(PollState.MAPPING)
        key = map_status(status, self._style, self._accent, self._unknown_bucket)
        previous = self._last_key
        self._last_status = status
        self._last_key = key
        self.status_updated.emit(status)

        self._set_state(PollState.RENDERING)
        try:
            icon_path = self._cache.ensure(key)
        except CacheError as e:
            app_logger.log_recoverable(e, "ensure_icon", {"icon_key": key.icon_name})
            icon_path = None

        self._set_state(PollState.PUBLISHING)
        if icon_path is None:
            self._tray.show_error_state(key)
        else:
            self._tray.publish(icon_path, key)
        self._tray.update_status(status)

        if key.bucket == Bucket.CRITICAL and (previous is None or previous.bucket != Bucket.CRITICAL):
            self.critical_battery.emit(status.battery_percent if status.battery_percent is not None else 0)

        self.cycle_finished.emit(key)

    def _finish_cycle(self) -> None:
        self._set_state(PollState.IDLE)
        if self._pending and self._running:
            self._pending = False
            self._begin_cycle()

    # ==================== Backoff ====================

    def _adjust_backoff(self, error: Optional[SourceError]) -> None:
        if error is None:
            interval = self._base_interval_ms
        elif self._backoff_enabled and error.kind in BACKOFF_KINDS:
            interval = min(self._interval_ms * 2, self._max_interval_ms)
        else:
            return

        if interval == self._interval_ms:
            return

        app_logger.log_scheduler_event(
            "Polling interval changed", {"from_ms": self._interval_ms, "to_ms": interval}
        )
        self._interval_ms = interval
        if self._timer.isActive():
            self._timer.start(interval)
        else:
            self._timer.setInterval(interval)
