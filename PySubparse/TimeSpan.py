from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from PySubparse.Helpers.Localization import _
from PySubparse.Helpers.Time import MillisecondsToTimedelta, TimedeltaToMilliseconds

@dataclass(frozen=True, order=True)
class TimeSpan:
    """
    Half-open interval [start, end) in whole milliseconds.

    Spans are immutable: edits create a new span rather than modifying an existing one.
    A span whose end equals its start is open-ended, meaning the source format did not specify a duration.
    """
    start : int
    end : int

    def __post_init__(self) -> None:
        if isinstance(self.start, bool) or isinstance(self.end, bool) or not isinstance(self.start, int) or not isinstance(self.end, int):
            raise TypeError(_("TimeSpan bounds must be integer milliseconds"))
        if self.start < 0:
            raise ValueError(_("TimeSpan start cannot be negative ({start})").format(start=self.start))
        if self.end < self.start:
            raise ValueError(_("TimeSpan end ({end}) is before start ({start})").format(start=self.start, end=self.end))

    @property
    def duration(self) -> int:
        return self.end - self.start

    @property
    def is_open_ended(self) -> bool:
        return self.end == self.start

    @property
    def start_timedelta(self) -> timedelta:
        return MillisecondsToTimedelta(self.start)

    @property
    def end_timedelta(self) -> timedelta:
        return MillisecondsToTimedelta(self.end)

    def contains(self, milliseconds : int) -> bool:
        return self.start <= milliseconds < self.end

    def shifted(self, offset : int) -> TimeSpan:
        """
        Return a new span moved by offset milliseconds
        """
        return TimeSpan(self.start + offset, self.end + offset)

    def with_start(self, start : int) -> TimeSpan:
        return TimeSpan(start, self.end)

    def with_end(self, end : int) -> TimeSpan:
        return TimeSpan(self.start, end)

    @classmethod
    def FromTimedelta(cls, start : timedelta, end : timedelta) -> TimeSpan:
        return cls(TimedeltaToMilliseconds(start), TimedeltaToMilliseconds(end))

    def __str__(self) -> str:
        return f"[{self.start}ms, {self.end}ms)"
