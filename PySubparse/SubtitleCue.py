from __future__ import annotations

from typing import Any

from PySubparse.StyledText import StyledText
from PySubparse.TimeSpan import TimeSpan

class SubtitleCue:
    """
    A single timed subtitle: a span, styled text and an opaque per-cue metadata remainder.

    The metadata holds whatever the source format attaches to a cue that has no generic
    representation (raw SSA fields, SubRip coordinates, VobSub packet offsets...).
    Handlers read their own keys back when writing and ignore the rest.
    """
    def __init__(self, span : TimeSpan, text : StyledText|None = None, metadata : dict[str, Any]|None = None):
        if not isinstance(span, TimeSpan):
            raise TypeError("span must be a TimeSpan")
        self.span : TimeSpan = span
        self.text : StyledText = text if text is not None else StyledText()
        self.metadata : dict[str, Any] = metadata or {}

    @classmethod
    def Construct(cls, start : int, end : int, text : StyledText|str|None = None, metadata : dict[str, Any]|None = None) -> SubtitleCue:
        """
        Build a cue from millisecond times and either a plain string or StyledText
        """
        styled = text if isinstance(text, StyledText) else StyledText.FromPlain(text)
        return cls(TimeSpan(start, end), styled, dict(metadata) if metadata else None)

    @property
    def start(self) -> int:
        return self.span.start

    @property
    def end(self) -> int:
        return self.span.end

    @property
    def duration(self) -> int:
        return self.span.duration

    @property
    def plain_text(self) -> str:
        return self.text.plain_text

    def copy(self) -> SubtitleCue:
        return SubtitleCue(self.span, self.text, dict(self.metadata))

    def __eq__(self, other : object) -> bool:
        if isinstance(other, SubtitleCue):
            return self.span == other.span and self.text == other.text
        return NotImplemented

    __hash__ = None # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"SubtitleCue({self.span}, {self.text!r})"

    def __str__(self) -> str:
        return f"{self.span} {self.text.raw_text}"
