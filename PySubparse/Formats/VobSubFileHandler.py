import logging

import regex

from PySubparse.Helpers.Localization import _
from PySubparse.Helpers.Packets import PackPayload, UnpackPayload, ValidatePacketSize
from PySubparse.Helpers.Text import MergeLayout, SplitLines
from PySubparse.Helpers.Time import SplitMilliseconds
from PySubparse.PreservedContext import IndexRecord, VobSubContext
from PySubparse.StyledText import StyledText
from PySubparse.SubtitleCue import SubtitleCue
from PySubparse.SubtitleDocument import SubtitleDocument
from PySubparse.SubtitleError import (
    InvalidConfigurationError,
    MalformedRecordError,
    SubtitleEncodingError,
    TruncatedStreamError,
)
from PySubparse.SubtitleFileHandler import SubtitleFileHandler
from PySubparse.TimeSpan import TimeSpan

_TIMESTAMP_LINE_PATTERN = regex.compile(r'^\s*timestamp:\s*(\d+):(\d{2}):(\d{2}):(\d{3})\s*,\s*filepos:\s*([0-9A-Fa-f]+)\s*$', regex.IGNORECASE)
_PALETTE_PATTERN = regex.compile(r'^\s*palette:\s*(.*)$', regex.IGNORECASE)
_SNIFF_PATTERN = regex.compile(r'^(?:#\s*VobSub index file|timestamp:\s*\d)', regex.MULTILINE | regex.IGNORECASE)

DEFAULT_PALETTE = [
    0x000000, 0xf0f0f0, 0xcccccc, 0x999999, 0x3333fa, 0x1111bb, 0xfa3333, 0xbb1111,
    0x33fa33, 0x11bb11, 0xfafa33, 0xbbbb11, 0xfa33fa, 0xbb11bb, 0x33fafa, 0x11bbbb,
]

def FormatPalette(palette : list[int]) -> str:
    return ', '.join(f"{colour:06x}" for colour in palette)

DEFAULT_HEADER = [
    "# VobSub index file, v7 (do not modify this line!)",
    "size: 720x480",
    "org: 0, 0",
    "scale: 100%, 100%",
    "alpha: 100%",
    "smooth: OFF",
    "fadein/out: 0, 0",
    "align: OFF at LEFT TOP",
    "time offset: 0",
    "forced subs: OFF",
    f"palette: {FormatPalette(DEFAULT_PALETTE)}",
    "custom colors: OFF, tridx: 0000, colors: 000000, 000000, 000000, 000000",
    "langidx: 0",
    "id: en, index: 0",
]

def FormatIndexTimestamp(milliseconds : int) -> str:
    hours, minutes, seconds, millis = SplitMilliseconds(milliseconds)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}:{millis:03d}"

class VobSubFileHandler(SubtitleFileHandler):
    """
    File handler for VobSub bitmap subtitles, a text index (.idx) and a packetised image stream (.sub).

    Each index record gives a start time and the offset of a packet run in the stream. The image packets
    are not decoded, each cue carries its reassembled payload as a single binary segment.
    The index has no end times, so each cue ends where the next one starts and the last cue is open-ended.
    """

    SUPPORTED_EXTENSIONS = {'.idx': 10}
    CONTEXT_TYPE = VobSubContext

    def sniff(self, content : bytes) -> bool:
        return bool(_SNIFF_PATTERN.search(self.sniff_text(content)))

    def parse_bytes(self, data : bytes, companion : bytes|None = None) -> SubtitleDocument:
        """
        Parse an index file together with its companion stream.

        Raises:
            InvalidConfigurationError: If the companion stream is not provided
        """
        if companion is None:
            raise InvalidConfigurationError(_("A VobSub index can only be parsed together with its .sub stream"))

        return self.parse_pair(data, companion)

    def compose_bytes(self, document : SubtitleDocument) -> tuple[bytes, bytes]: # type: ignore[override]
        return self.compose_pair(document)

    def parse_pair(self, idx_data : bytes, sub_data : bytes) -> SubtitleDocument:
        """
        Parse the index and extract the payload of every record from the stream.

        A record whose packets are truncated or corrupt is skipped and reported in the document errors.
        """
        content, decoded = self.decode(idx_data)
        context : VobSubContext = self.create_context(decoded) # type: ignore[assignment]
        context.stream = bytes(sub_data)

        document = SubtitleDocument(context=context, detected_format='.idx')

        entries = self._parse_index(content, context, document)
        order = sorted(range(len(entries)), key=lambda index: entries[index][0])
        spans = self._compute_spans(entries, order)

        context.records = [IndexRecord(spans[index], offset) for index, (_start, offset, _line) in enumerate(entries)]

        last_index = order[-1] if order else None
        for index in order:
            offset = entries[index][1]
            try:
                payload, consumed = UnpackPayload(context.stream, offset)
            except TruncatedStreamError as e:
                e.record_index = index
                self.report_error(document, e)
                continue

            context.packets[offset] = consumed

            metadata = { 'packet_offset': offset, 'record_index': index }
            if index == last_index:
                metadata['duration_unknown'] = True

            document.cues.append(SubtitleCue(spans[index], StyledText.FromBinary(payload), metadata))

        logging.debug(f"Parsed {len(document.cues)} VobSub cues from {len(entries)} index records ({len(document.errors)} errors)")
        return document

    def compose_pair(self, document : SubtitleDocument, packet_size : int|None = None) -> tuple[bytes, bytes]:
        """
        Pack every cue payload into a new stream and write an index pointing at the new offsets.

        Returns:
            tuple[bytes, bytes]: The index file and the stream

        Raises:
            SubtitleEncodingError: If a cue does not carry exactly one binary payload
        """
        packet_size = ValidatePacketSize(packet_size if packet_size is not None else self.settings.get_int('packet_size'))

        context = self.get_context(document)
        newline = self.get_newline(context)

        if isinstance(context, VobSubContext):
            lines = list(context.header_lines)
            layout = context.layout
            record_ids : list[int|None] = [cue.metadata.get('record_index') for cue in document.cues]
        else:
            lines = list(DEFAULT_HEADER)
            layout = []
            record_ids = [None] * len(document.cues)

        # Records keep their place among track switches and comments, new cues follow the cue before them
        stream = bytearray()
        for entry in MergeLayout(layout, record_ids, insert_at=0):
            if isinstance(entry, str):
                lines.append(entry)
                continue

            cue = document.cues[entry]
            payload = cue.text.binary_payload
            if payload is None:
                raise SubtitleEncodingError(_("Cue {index} has no bitmap payload and cannot be written as VobSub").format(index=entry + 1))

            offset = len(stream)
            stream += PackPayload(payload, packet_size)
            lines.append(f"timestamp: {FormatIndexTimestamp(cue.start)}, filepos: {offset:09x}")

        idx_data = self.encode(''.join(line + newline for line in lines), context)
        return idx_data, bytes(stream)

    def _parse_index(self, content : str, context : VobSubContext, document : SubtitleDocument) -> list[tuple[int, int, int]]:
        """
        Split the index into the header and the layout of records and lines that follow it.
        Returns (start, offset, line number) for each record.
        """
        entries : list[tuple[int, int, int]] = []
        seen_timestamp = False

        lines, _trailing = SplitLines(content)
        for line_number, line in enumerate(lines, 1):
            if line.lstrip().lower().startswith('timestamp:'):
                seen_timestamp = True
                try:
                    entries.append(self._parse_timestamp_line(line, line_number))
                    context.layout.append(len(entries) - 1)
                except MalformedRecordError as e:
                    self.report_error(document, e)
                continue

            if seen_timestamp:
                context.layout.append(line)
                continue

            context.header_lines.append(line)
            palette_match = _PALETTE_PATTERN.match(line)
            if palette_match:
                try:
                    context.palette = [int(colour.strip(), 16) for colour in palette_match.group(1).split(',')]
                except ValueError as e:
                    self.report_error(document, MalformedRecordError(_("Invalid palette"), line_number, line, e))

        return entries

    def _parse_timestamp_line(self, line : str, line_number : int) -> tuple[int, int, int]:
        match = _TIMESTAMP_LINE_PATTERN.match(line)
        if not match:
            raise MalformedRecordError(_("Expected 'timestamp: HH:MM:SS:mmm, filepos: offset', found {line}").format(line=line.strip()), line_number, line)

        hours, minutes, seconds, millis = (int(value) for value in match.groups()[:4])
        if minutes > 59 or seconds > 59:
            raise MalformedRecordError(_("Invalid timestamp: {line}").format(line=line.strip()), line_number, line)

        start = ((hours * 60 + minutes) * 60 + seconds) * 1000 + millis
        return start, int(match.group(5), 16), line_number

    def _compute_spans(self, entries : list[tuple[int, int, int]], order : list[int]) -> list[TimeSpan]:
        """
        Each record ends where the next one in time order starts. The last one has no known end.
        """
        spans : list[TimeSpan|None] = [None] * len(entries)
        for position, index in enumerate(order):
            start = entries[index][0]
            end = entries[order[position + 1]][0] if position + 1 < len(order) else start
            spans[index] = TimeSpan(start, end)
        return spans # type: ignore[return-value]
