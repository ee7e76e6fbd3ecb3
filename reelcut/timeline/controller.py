"""Timeline controller — the editing state behind the player and edit controls.

Composes a Clock, the trim range and the delete/extract SelectionMode for a
single asset. Every public operation is total: bad input produces a rejected
OperationResult and leaves the state untouched, nothing here raises for
ordinary user input. Observers registered with ``subscribe`` receive
``(event, TimelineSnapshot)`` after each change.

Not thread-safe; callers sharing one controller must serialize access.
"""

import logging
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Callable

from reelcut.manifest import EditKind, EditRequest
from reelcut.models import TimeRange
from reelcut.timeline.clock import Clock
from reelcut.timeline.ranges import (
    DEFAULT_TRIM_LENGTH,
    MIN_RANGE_WIDTH,
    clamp,
    clamp_to_duration,
    is_finite_number,
    is_wide_enough,
    normalize,
    percent_of,
)
from reelcut.timeline.selection import (
    Idle,
    Ready,
    Selecting,
    SelectionKind,
    SelectionMode,
)

logger = logging.getLogger(__name__)


class Rejection(str, Enum):
    INVALID_INPUT = "invalid_input"
    OUT_OF_RANGE = "out_of_range"
    STALE_SELECTION = "stale_selection"
    ILLEGAL_COMMIT = "illegal_commit"
    NO_DURATION = "no_duration"
    PROCESSOR_FAILED = "processor_failed"


class TrimEdge(str, Enum):
    START = "start"
    END = "end"


@dataclass(frozen=True)
class OperationResult:
    accepted: bool
    reason: Rejection | None = None
    message: str = ""
    value: Any = None

    def __bool__(self) -> bool:
        return self.accepted


def _ok(value: Any = None) -> OperationResult:
    return OperationResult(accepted=True, value=value)


def _reject(reason: Rejection, message: str) -> OperationResult:
    logger.debug("Rejected (%s): %s", reason.value, message)
    return OperationResult(accepted=False, reason=reason, message=message)


_COMMIT_KINDS = {
    SelectionKind.DELETE: EditKind.DELETE_RANGE,
    SelectionKind.EXTRACT: EditKind.EXTRACT_RANGE,
}


@dataclass(frozen=True)
class TimelineSnapshot:
    """Everything a view needs to render the timeline, computed at one instant."""

    current_time: float
    duration: float
    trim_start: float
    trim_end: float
    mode: str
    selection_start: float | None
    delete_range: tuple[float, float] | None
    extract_range: tuple[float, float] | None
    trim_start_percent: float
    trim_end_percent: float
    current_time_percent: float
    is_current_time_in_trim_range: bool
    delete_range_percent: tuple[float, float]
    extract_range_percent: tuple[float, float]
    can_split_at_current_time: bool
    can_split_at_midpoint: bool

    def to_dict(self) -> dict:
        return asdict(self)


Observer = Callable[[str, TimelineSnapshot], None]
Processor = Callable[[EditRequest], None]


class TimelineController:
    def __init__(
        self,
        processor: Processor | None = None,
        min_width: float = MIN_RANGE_WIDTH,
        default_trim_length: float = DEFAULT_TRIM_LENGTH,
    ) -> None:
        self.clock = Clock()
        self.selection = SelectionMode(min_width=min_width)
        self.min_width = min_width
        self.default_trim_length = default_trim_length
        self.trim = TimeRange(start=0.0, end=0.0)
        self.source: str | None = None
        self._processor = processor
        self._observers: list[Observer] = []

    # --- Observers ---

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def _notify(self, event: str) -> None:
        if not self._observers:
            return
        snap = self.snapshot()
        for observer in list(self._observers):
            observer(event, snap)

    def _emit(self, request: EditRequest) -> OperationResult | None:
        """Hand ``request`` to the processor; a rejection if it raised."""
        logger.info("Emitting %s request: %s", request.kind.value, request.to_dict())
        if self._processor is None:
            return None
        try:
            self._processor(request)
        except Exception as e:
            logger.exception("Processor failed on %s request", request.kind.value)
            return _reject(Rejection.PROCESSOR_FAILED, str(e) or type(e).__name__)
        return None

    # --- Asset lifecycle ---

    def load_asset(self, duration_hint=None, source: str | None = None) -> OperationResult:
        self.clock.reset()
        self.selection.clear()
        self.trim = TimeRange(start=0.0, end=0.0)
        self.source = source
        if duration_hint is not None and self.clock.set_duration(duration_hint):
            self.trim = TimeRange(start=0.0, end=min(self.default_trim_length, self.clock.duration))
        self._notify("asset_loaded")
        return _ok()

    def on_duration_reported(self, duration) -> OperationResult:
        if not self.clock.set_duration(duration):
            return _reject(Rejection.INVALID_INPUT, "Duration must be a positive finite number")
        d = self.clock.duration
        self._fit_trim(d)
        discarded = self.selection.revalidate(d)
        if discarded is not None:
            logger.debug(
                "Discarded stale selection %.3f-%.3f after duration changed to %.3f",
                discarded.start, discarded.end, d,
            )
            self._notify("selection_discarded")
        self._notify("duration")
        return _ok(d)

    def _fit_trim(self, duration: float) -> None:
        trim = self.trim
        if trim.end <= trim.start:
            # No trim yet: the asset was loaded without a duration.
            self.trim = TimeRange(start=0.0, end=min(self.default_trim_length, duration))
            return
        if trim.end <= duration:
            return
        end = min(duration, self.default_trim_length)
        fitted = clamp_to_duration(TimeRange(start=trim.start, end=end), duration)
        if fitted is None or not is_wide_enough(fitted.width, self.min_width):
            fitted = TimeRange(start=0.0, end=end)
        self.trim = fitted

    # --- Playhead ---

    def on_timeline_click(self, t) -> OperationResult:
        if not is_finite_number(t):
            return _reject(Rejection.INVALID_INPUT, "Click time must be a finite number")
        if not self.clock.has_duration:
            return _reject(Rejection.NO_DURATION, "Duration is not known yet")
        if self.selection.is_armed:
            t = clamp(float(t), 0.0, self.clock.duration)
            self.selection.click(t)
            self._notify("selection")
            return _ok(t)
        self.clock.seek(t)
        self._notify("seek")
        return _ok(self.clock.current_time)

    def seek(self, t) -> OperationResult:
        if not is_finite_number(t):
            return _reject(Rejection.INVALID_INPUT, "Seek time must be a finite number")
        if not self.clock.seek(t):
            return _reject(Rejection.NO_DURATION, "Duration is not known yet")
        self._notify("seek")
        return _ok(self.clock.current_time)

    def skip(self, delta) -> OperationResult:
        if not is_finite_number(delta):
            return _reject(Rejection.INVALID_INPUT, "Skip amount must be a finite number")
        return self.seek(self.clock.current_time + delta)

    def jump_to_trim_start(self) -> OperationResult:
        return self.seek(self.trim.start)

    def jump_to_trim_end(self) -> OperationResult:
        return self.seek(self.trim.end)

    # --- Trim ---

    def set_trim(self, start, end) -> OperationResult:
        if not (is_finite_number(start) and is_finite_number(end)):
            return _reject(Rejection.INVALID_INPUT, "Trim bounds must be finite numbers")
        if not self.clock.has_duration:
            return _reject(Rejection.NO_DURATION, "Duration is not known yet")
        start, end = normalize(float(start), float(end))
        if not is_wide_enough(end - start, self.min_width):
            return _reject(
                Rejection.INVALID_INPUT,
                f"Trim range must be at least {self.min_width}s wide",
            )
        fitted = clamp_to_duration(TimeRange(start=start, end=end), self.clock.duration)
        if fitted is None or not is_wide_enough(fitted.width, self.min_width):
            return _reject(Rejection.OUT_OF_RANGE, "Trim range falls outside the clip")
        self.trim = fitted
        self._notify("trim")
        return _ok(fitted)

    def adjust_trim(self, edge, delta) -> OperationResult:
        try:
            edge = TrimEdge(edge)
        except ValueError:
            return _reject(Rejection.INVALID_INPUT, f"Unknown trim edge: {edge!r}")
        if not is_finite_number(delta):
            return _reject(Rejection.INVALID_INPUT, "Adjustment must be a finite number")
        if not self.clock.has_duration:
            return _reject(Rejection.NO_DURATION, "Duration is not known yet")

        start, end = self.trim.start, self.trim.end
        if edge == TrimEdge.START:
            start = max(0.0, min(start + delta, end - self.min_width))
        else:
            end = min(self.clock.duration, max(end + delta, start + self.min_width))
        self.trim = TimeRange(start=start, end=end)
        self._notify("trim")
        return _ok(self.trim)

    def request_trim(self) -> OperationResult:
        if not self.clock.has_duration:
            return _reject(Rejection.NO_DURATION, "Duration is not known yet")
        if not is_wide_enough(self.trim.width, self.min_width):
            return _reject(Rejection.INVALID_INPUT, "Trim range is empty")
        failed = self._emit(EditRequest(
            kind=EditKind.TRIM, source=self.source,
            start=self.trim.start, end=self.trim.end,
        ))
        return failed or _ok(self.trim)

    # --- Split ---

    def _can_split(self, t: float) -> bool:
        return 0 < t < self.clock.duration

    @property
    def can_split_at_current_time(self) -> bool:
        return self._can_split(self.clock.current_time)

    @property
    def can_split_at_midpoint(self) -> bool:
        return self._can_split(self.clock.duration / 2)

    def _split(self, t: float) -> OperationResult:
        if not self._can_split(t):
            return _reject(Rejection.OUT_OF_RANGE, "Split point must fall inside the clip")
        failed = self._emit(EditRequest(kind=EditKind.SPLIT, source=self.source, at=t))
        return failed or _ok(t)

    def split_at_current_time(self) -> OperationResult:
        return self._split(self.clock.current_time)

    def split_at_midpoint(self) -> OperationResult:
        return self._split(self.clock.duration / 2)

    # --- Delete / extract selection ---

    def _request_mode(self, kind: SelectionKind) -> OperationResult:
        previous = self.selection.state
        self.selection.request(kind)
        if not isinstance(previous, Idle) and previous.kind != kind:
            logger.debug("Entering %s mode cancelled %s selection", kind.value, previous.kind.value)
        self._notify("mode")
        return _ok(self.mode)

    def request_delete_mode(self) -> OperationResult:
        return self._request_mode(SelectionKind.DELETE)

    def request_extract_mode(self) -> OperationResult:
        return self._request_mode(SelectionKind.EXTRACT)

    def _commit(self, kind: SelectionKind) -> OperationResult:
        state = self.selection.state
        if not isinstance(state, Ready) or state.kind != kind:
            return _reject(Rejection.ILLEGAL_COMMIT, f"No {kind.value} range is ready to commit")
        rng = state.range
        if rng.end > self.clock.duration:
            self.selection.clear()
            self._notify("selection_discarded")
            return _reject(Rejection.STALE_SELECTION, "Selection no longer fits the clip")
        failed = self._emit(EditRequest(
            kind=_COMMIT_KINDS[kind], source=self.source,
            start=rng.start, end=rng.end,
        ))
        self.selection.commit(kind)
        if failed is not None:
            self._notify("commit_failed")
            return failed
        self._notify("commit")
        return _ok(rng)

    def commit_delete_range(self) -> OperationResult:
        return self._commit(SelectionKind.DELETE)

    def commit_extract_range(self) -> OperationResult:
        return self._commit(SelectionKind.EXTRACT)

    def cancel_selection(self) -> OperationResult:
        if self.selection.clear():
            self._notify("cancel")
        return _ok(self.mode)

    # --- Derived values ---

    @property
    def mode(self) -> str:
        state = self.selection.state
        if isinstance(state, Selecting):
            return f"selecting_{state.kind.value}"
        if isinstance(state, Ready):
            return f"{state.kind.value}_ready"
        return "idle"

    def _ready_range(self, kind: SelectionKind) -> TimeRange | None:
        state = self.selection.state
        if isinstance(state, Ready) and state.kind == kind:
            return state.range
        return None

    @property
    def delete_range(self) -> TimeRange | None:
        return self._ready_range(SelectionKind.DELETE)

    @property
    def extract_range(self) -> TimeRange | None:
        return self._ready_range(SelectionKind.EXTRACT)

    @property
    def selection_start(self) -> float | None:
        state = self.selection.state
        if isinstance(state, Selecting):
            return state.start
        return None

    def _range_percent(self, kind: SelectionKind) -> tuple[float, float]:
        d = self.clock.duration
        state = self.selection.state
        if isinstance(state, Ready) and state.kind == kind:
            return (percent_of(state.range.start, d), percent_of(state.range.end, d))
        if isinstance(state, Selecting) and state.kind == kind and state.start is not None:
            # In progress: span from the first click to the playhead.
            a, b = normalize(state.start, self.clock.current_time)
            return (percent_of(a, d), percent_of(b, d))
        return (0.0, 0.0)

    @property
    def delete_range_percent(self) -> tuple[float, float]:
        return self._range_percent(SelectionKind.DELETE)

    @property
    def extract_range_percent(self) -> tuple[float, float]:
        return self._range_percent(SelectionKind.EXTRACT)

    @property
    def trim_start_percent(self) -> float:
        return percent_of(self.trim.start, self.clock.duration)

    @property
    def trim_end_percent(self) -> float:
        return percent_of(self.trim.end, self.clock.duration)

    @property
    def current_time_percent(self) -> float:
        return percent_of(self.clock.current_time, self.clock.duration)

    @property
    def is_current_time_in_trim_range(self) -> bool:
        return self.trim.start <= self.clock.current_time <= self.trim.end

    @property
    def trim_duration(self) -> float:
        return self.trim.width

    def snapshot(self) -> TimelineSnapshot:
        def _pair(rng: TimeRange | None):
            return None if rng is None else (rng.start, rng.end)

        return TimelineSnapshot(
            current_time=self.clock.current_time,
            duration=self.clock.duration,
            trim_start=self.trim.start,
            trim_end=self.trim.end,
            mode=self.mode,
            selection_start=self.selection_start,
            delete_range=_pair(self.delete_range),
            extract_range=_pair(self.extract_range),
            trim_start_percent=self.trim_start_percent,
            trim_end_percent=self.trim_end_percent,
            current_time_percent=self.current_time_percent,
            is_current_time_in_trim_range=self.is_current_time_in_trim_range,
            delete_range_percent=self.delete_range_percent,
            extract_range_percent=self.extract_range_percent,
            can_split_at_current_time=self.can_split_at_current_time,
            can_split_at_midpoint=self.can_split_at_midpoint,
        )
