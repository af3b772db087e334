from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import TypeAlias

import regex

from PySubparse.Helpers.Localization import _

@dataclass(frozen=True)
class PlainText:
    """A run of ordinary characters. Line breaks are always '\\n'."""
    text : str

@dataclass(frozen=True)
class FormatToken:
    """
    An inline formatting code carried verbatim from the source, e.g. an SSA override block.

    `syntax` identifies the tokenizer that produced it, so writers can tell their own tokens from foreign ones.
    """
    raw : str
    syntax : str

@dataclass(frozen=True)
class BinaryData:
    """An undecoded bitmap subtitle packet"""
    data : bytes

    def __repr__(self) -> str:
        return f"BinaryData(<{len(self.data)} bytes>)"

Segment : TypeAlias = PlainText | FormatToken | BinaryData

class StyledText:
    """
    Immutable sequence of text segments.

    Adjacent plain runs are merged and empty plain runs are discarded on construction,
    so two StyledText instances compare equal whenever they render the same content.
    """
    __slots__ = ('_segments',)

    def __init__(self, segments : Iterable[Segment]|None = None):
        self._segments : tuple[Segment, ...] = _normalise(segments or [])

    @classmethod
    def FromPlain(cls, text : str|None) -> StyledText:
        return cls([PlainText(text)] if text else [])

    @classmethod
    def FromBinary(cls, data : bytes) -> StyledText:
        return cls([BinaryData(bytes(data))])

    @property
    def segments(self) -> tuple[Segment, ...]:
        return self._segments

    @property
    def plain_text(self) -> str:
        """Concatenated plain runs, without any formatting tokens"""
        return ''.join(segment.text for segment in self._segments if isinstance(segment, PlainText))

    @property
    def raw_text(self) -> str:
        """Plain runs and token text in order. Binary segments are omitted."""
        parts = []
        for segment in self._segments:
            if isinstance(segment, PlainText):
                parts.append(segment.text)
            elif isinstance(segment, FormatToken):
                parts.append(segment.raw)
        return ''.join(parts)

    @property
    def has_binary(self) -> bool:
        return any(isinstance(segment, BinaryData) for segment in self._segments)

    @property
    def has_tokens(self) -> bool:
        return any(isinstance(segment, FormatToken) for segment in self._segments)

    @property
    def binary_payload(self) -> bytes|None:
        """The payload of a bitmap cue, or None if the text is not a single binary segment"""
        if len(self._segments) == 1 and isinstance(self._segments[0], BinaryData):
            return self._segments[0].data
        return None

    @property
    def is_empty(self) -> bool:
        return not self._segments

    def replace_plain(self, index : int, text : str) -> StyledText:
        """
        Return a copy with the plain run at index replaced. Formatting tokens cannot be replaced.
        """
        segments = list(self._segments)
        if not isinstance(segments[index], PlainText):
            raise ValueError(_("Segment {index} is not plain text and cannot be edited").format(index=index))

        segments[index] = PlainText(text)
        return StyledText(segments)

    def insert_plain(self, index : int, text : str) -> StyledText:
        """
        Return a copy with a new plain run inserted before the segment at index
        """
        segments = list(self._segments)
        segments.insert(index, PlainText(text))
        return StyledText(segments)

    def tokens_for_syntax(self, syntax : str) -> StyledText:
        """
        Return a copy keeping only tokens produced by the given syntax
        """
        return StyledText(segment for segment in self._segments if not isinstance(segment, FormatToken) or segment.syntax == syntax)

    def __iter__(self) -> Iterator[Segment]:
        return iter(self._segments)

    def __len__(self) -> int:
        return len(self._segments)

    def __getitem__(self, index : int) -> Segment:
        return self._segments[index]

    def __eq__(self, other : object) -> bool:
        if isinstance(other, StyledText):
            return self._segments == other._segments
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._segments)

    def __repr__(self) -> str:
        return f"StyledText({list(self._segments)!r})"

    def __str__(self) -> str:
        return self.raw_text

def TokenizeText(raw : str, token_pattern : regex.Pattern, syntax : str, line_break : str|None = None) -> StyledText:
    """
    Split raw subtitle text into plain runs and opaque format tokens.

    Every match of token_pattern becomes a FormatToken, everything between matches is plain text.
    If line_break is given, it is replaced by '\\n' in the plain runs.
    """
    segments : list[Segment] = []
    last_end = 0
    for match in token_pattern.finditer(raw):
        if match.start() > last_end:
            segments.append(PlainText(_decode_breaks(raw[last_end:match.start()], line_break)))
        segments.append(FormatToken(match.group(0), syntax))
        last_end = match.end()

    if last_end < len(raw):
        segments.append(PlainText(_decode_breaks(raw[last_end:], line_break)))

    return StyledText(segments)

def _decode_breaks(text : str, line_break : str|None) -> str:
    return text.replace(line_break, '\n') if line_break else text

def _normalise(segments : Iterable[Segment]) -> tuple[Segment, ...]:
    result : list[Segment] = []
    for segment in segments:
        if not isinstance(segment, (PlainText, FormatToken, BinaryData)):
            raise TypeError(_("Unsupported segment type: {type}").format(type=type(segment).__name__))

        if isinstance(segment, PlainText):
            if not segment.text:
                continue
            if result and isinstance(result[-1], PlainText):
                result[-1] = PlainText(result[-1].text + segment.text)
                continue

        result.append(segment)

    return tuple(result)
