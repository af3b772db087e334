from __future__ import annotations

import bisect
import logging

from PySubparse.PreservedContext import PreservedContext
from PySubparse.StyledText import StyledText
from PySubparse.SubtitleCue import SubtitleCue
from PySubparse.SubtitleError import SubtitleParseError
from PySubparse.TimeSpan import TimeSpan

class SubtitleDocument:
    """
    Format-agnostic container for subtitle cues and format-specific preserved context.

    Attributes:
        cues (list[SubtitleCue]): Cues ordered by start time
        context (PreservedContext|None): Data needed to write the file back in its source format
        errors (list[SubtitleParseError]): Records that could not be parsed and were skipped
        detected_format (str|None): Extension of the format the document was parsed from (e.g. '.ass')

    The cue list should be edited through the methods below. The context belongs to the file handlers
    and is not meant to be modified by callers.
    """

    def __init__(self, cues : list[SubtitleCue]|None = None, context : PreservedContext|None = None, errors : list[SubtitleParseError]|None = None, detected_format : str|None = None):
        self.cues : list[SubtitleCue] = cues or []
        self.context : PreservedContext|None = context
        self.errors : list[SubtitleParseError] = errors or []
        self.detected_format : str|None = detected_format

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    def sort_cues(self) -> None:
        """
        Sort cues by start time. The sort is stable, so cues starting together keep their order.
        """
        self.cues.sort(key=lambda cue: cue.span.start)

    def add_cue(self, cue : SubtitleCue) -> int:
        """
        Insert a cue in start time order, after any cues with the same start. Returns the index.
        """
        starts = [existing.span.start for existing in self.cues]
        index = bisect.bisect_right(starts, cue.span.start)
        self.cues.insert(index, cue)
        return index

    def insert_cue(self, index : int, cue : SubtitleCue) -> None:
        self.cues.insert(index, cue)

    def remove_cue(self, index : int) -> SubtitleCue:
        cue = self.cues.pop(index)
        logging.debug(f"Removed cue {index}: {cue}")
        return cue

    def replace_span(self, index : int, span : TimeSpan) -> None:
        if not isinstance(span, TimeSpan):
            raise TypeError("span must be a TimeSpan")
        self.cues[index].span = span

    def replace_text(self, index : int, text : StyledText|str) -> None:
        self.cues[index].text = text if isinstance(text, StyledText) else StyledText.FromPlain(text)

    def __len__(self) -> int:
        return len(self.cues)

    def __iter__(self):
        return iter(self.cues)

    def __getitem__(self, index : int) -> SubtitleCue:
        return self.cues[index]

    def __repr__(self) -> str:
        context_name = type(self.context).__name__ if self.context is not None else None
        return f"SubtitleDocument({len(self.cues)} cues, context={context_name}, errors={len(self.errors)})"
