"""Selection-mode state machine for delete/extract range picking.

Both kinds of range share one state object, so a delete selection and an
extract selection can never be in progress at the same time: arming one
discards whatever the other had collected.

    Idle --request(k)--> Selecting(k, None) --click(t)--> Selecting(k, t)
    Selecting(k, s) --click(t)--> Ready(k, normalize(s, t))   (or Idle if too narrow)
    Ready(k, r) --commit(k)--> Idle   (r is handed to the caller)
    any --clear()--> Idle
"""

from dataclasses import dataclass
from enum import Enum

from reelcut.models import TimeRange
from reelcut.timeline.ranges import MIN_RANGE_WIDTH, is_valid, normalize


class SelectionKind(str, Enum):
    DELETE = "delete"
    EXTRACT = "extract"


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Selecting:
    """Armed: waiting for clicks. ``start`` is None until the first click."""

    kind: SelectionKind
    start: float | None = None


@dataclass(frozen=True)
class Ready:
    """A complete, normalized range waiting to be committed or cleared."""

    kind: SelectionKind
    range: TimeRange


SelectionState = Idle | Selecting | Ready

IDLE = Idle()


class SelectionMode:
    def __init__(self, min_width: float = MIN_RANGE_WIDTH) -> None:
        self.min_width = min_width
        self.state: SelectionState = IDLE

    @property
    def kind(self) -> SelectionKind | None:
        if isinstance(self.state, Idle):
            return None
        return self.state.kind

    @property
    def is_armed(self) -> bool:
        return isinstance(self.state, Selecting)

    def request(self, kind: SelectionKind) -> SelectionState:
        self.state = Selecting(kind=SelectionKind(kind))
        return self.state

    def click(self, t: float) -> bool:
        """Feed a timeline click. Returns False if the click was not consumed."""
        state = self.state
        if not isinstance(state, Selecting):
            return False
        if state.start is None:
            self.state = Selecting(kind=state.kind, start=t)
            return True
        start, end = normalize(state.start, t)
        rng = TimeRange(start=start, end=end)
        if is_valid(rng, self.min_width):
            self.state = Ready(kind=state.kind, range=rng)
        else:
            self.state = IDLE
        return True

    def commit(self, kind: SelectionKind) -> TimeRange | None:
        state = self.state
        if not isinstance(state, Ready) or state.kind != kind:
            return None
        self.state = IDLE
        return state.range

    def clear(self) -> bool:
        """Return to Idle. Returns False if there was nothing to clear."""
        if isinstance(self.state, Idle):
            return False
        self.state = IDLE
        return True

    def revalidate(self, duration: float) -> TimeRange | None:
        """Drop selection progress that no longer fits ``duration``.

        Returns the discarded range when a Ready selection was dropped.
        """
        state = self.state
        if isinstance(state, Ready):
            rng = state.range
            if rng.end > duration or not is_valid(rng, self.min_width):
                self.state = IDLE
                return rng
        elif isinstance(state, Selecting) and state.start is not None:
            if state.start > duration:
                self.state = Selecting(kind=state.kind)
        return None
