"""
Format-specific data that has no place in the generic cue model.

Each parser fills in the context class for its own format and each writer reads back only
its own context class. The union is closed: a writer given another format's context
discards it rather than trying to interpret it.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar, TypeAlias

from PySubparse.TimeSpan import TimeSpan

@dataclass
class TextContext:
    """Encoding details shared by every format with a textual component"""
    FORMAT : ClassVar[str] = ''

    encoding : str = 'utf-8'
    bom : bool = False
    newline : str = '\n'

@dataclass(frozen=True)
class SSAStyle:
    """A named style definition, kept as the raw `Style:` line"""
    name : str
    raw : str

    @property
    def fields(self) -> list[str]:
        _, _, values = self.raw.partition(':')
        return [value.strip() for value in values.split(',')]

@dataclass
class SSASection:
    """A non-event section of an SSA/ASS file, kept line for line"""
    header : str
    lines : list[str] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.header.strip()[1:-1].strip()

@dataclass
class SSAContext(TextContext):
    FORMAT : ClassVar[str] = 'ssa'

    preamble : list[str] = field(default_factory=list)
    sections : list[SSASection] = field(default_factory=list)
    styles : dict[str, SSAStyle] = field(default_factory=dict)
    event_section_index : int = 0
    events_header : str = '[Events]'
    events_format : str = ''
    # Lines of the events section in file order, with the number of each parsed Dialogue event in its place
    event_layout : list[str|int] = field(default_factory=list)
    format_position : int = 0
    trailing_newline : bool = True

    @property
    def field_names(self) -> list[str]:
        _, _, names = self.events_format.partition(':')
        return [name.strip() for name in names.split(',')]

    @property
    def comments(self) -> list[str]:
        """Lines of the events section after the Format line that are not Dialogue events"""
        return [entry for entry in self.event_layout[self.format_position + 1:] if isinstance(entry, str)]

    @property
    def script_info(self) -> dict[str, str]:
        """The [Script Info] header as an ordered key/value table. Comments are not included."""
        info : dict[str, str] = {}
        for section in self.sections:
            if section.name.lower() != 'script info':
                continue
            for line in section.lines:
                stripped = line.strip()
                if not stripped or stripped.startswith(';') or stripped.startswith('!:'):
                    continue
                key, separator, value = stripped.partition(':')
                if separator:
                    info[key.strip()] = value.strip()
        return info

    def get_info(self, key : str, default : str|None = None) -> str|None:
        return self.script_info.get(key, default)

    @property
    def header_comments(self) -> list[str]:
        """Comment lines from the non-event sections"""
        return [line for section in self.sections for line in section.lines if line.lstrip().startswith((';', '!:'))]

@dataclass
class SrtContext(TextContext):
    FORMAT : ClassVar[str] = 'srt'

@dataclass
class MicroDVDContext(TextContext):
    FORMAT : ClassVar[str] = 'microdvd'

@dataclass(frozen=True)
class IndexRecord:
    """One `timestamp: ..., filepos: ...` entry of a VobSub index"""
    span : TimeSpan
    packet_offset : int

@dataclass
class VobSubContext(TextContext):
    FORMAT : ClassVar[str] = 'vobsub'

    header_lines : list[str] = field(default_factory=list)
    palette : list[int] = field(default_factory=list)
    records : list[IndexRecord] = field(default_factory=list)
    # Index lines from the first record on, with the number of each record in its place
    layout : list[str|int] = field(default_factory=list)
    stream : bytes = b''
    packets : dict[int, int] = field(default_factory=dict)

    def packet_bytes(self, offset : int) -> bytes:
        """The raw physical bytes of the packet run starting at offset"""
        length = self.packets.get(offset)
        if length is None:
            raise KeyError(offset)
        return self.stream[offset:offset + length]

PreservedContext : TypeAlias = SSAContext | SrtContext | MicroDVDContext | VobSubContext
