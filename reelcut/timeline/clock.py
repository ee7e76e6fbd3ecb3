"""Playhead and duration for the asset being edited."""

from typing import Callable

from reelcut.timeline.ranges import clamp, is_finite_number

ClockObserver = Callable[[str, float], None]


class Clock:
    """Single source of truth for ``current_time`` and ``duration``.

    A duration of 0 means the asset's length is not known yet. Observers are
    called with ``("duration", d)`` or ``("time", t)`` after each successful
    change.
    """

    def __init__(self) -> None:
        self.current_time = 0.0
        self.duration = 0.0
        self._observers: list[ClockObserver] = []

    def subscribe(self, observer: ClockObserver) -> Callable[[], None]:
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def _notify(self, event: str, value: float) -> None:
        for observer in list(self._observers):
            observer(event, value)

    @property
    def has_duration(self) -> bool:
        return self.duration > 0

    def reset(self) -> None:
        self.current_time = 0.0
        self.duration = 0.0

    def set_duration(self, duration) -> bool:
        if not is_finite_number(duration) or duration <= 0:
            return False
        self.duration = float(duration)
        clamped = clamp(self.current_time, 0.0, self.duration)
        moved = clamped != self.current_time
        self.current_time = clamped
        self._notify("duration", self.duration)
        if moved:
            self._notify("time", self.current_time)
        return True

    def seek(self, t) -> bool:
        if not self.has_duration or not is_finite_number(t):
            return False
        self.current_time = clamp(float(t), 0.0, self.duration)
        self._notify("time", self.current_time)
        return True
