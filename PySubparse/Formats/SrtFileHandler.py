import logging
from collections.abc import Iterator

import regex
import srt # type: ignore

from PySubparse.Helpers.Localization import _
from PySubparse.Helpers.Text import SplitLines
from PySubparse.Helpers.Time import MillisecondsToTimedelta, TimedeltaToMilliseconds
from PySubparse.PreservedContext import SrtContext, TextContext
from PySubparse.SubtitleCue import SubtitleCue
from PySubparse.SubtitleDocument import SubtitleDocument
from PySubparse.SubtitleError import MalformedRecordError, SubtitleEncodingError
from PySubparse.SubtitleFileHandler import TextSubtitleFileHandler
from PySubparse.TimeSpan import TimeSpan

_INDEX_PATTERN = regex.compile(r'^\s*\d+\s*$')
_TIMING_PATTERN = regex.compile(r'^\s*(\d+:\d{1,2}:\d{1,2}[,.]\d{3})\s*-->\s*(\d+:\d{1,2}:\d{1,2}[,.]\d{3})(.*)$')
_SNIFF_PATTERN = regex.compile(r'^\d+[ \t]*\r?\n\s*\d+:\d{1,2}:\d{1,2}[,.]\d{3}\s*-->')

class SrtFileHandler(TextSubtitleFileHandler):
    """
    File handler for SubRip (SRT) subtitles.

    Records are parsed one at a time so that a malformed record is skipped without losing the rest of the file.
    Composition goes through the srt library.
    """

    SUPPORTED_EXTENSIONS = {'.srt': 10}
    CONTEXT_TYPE = SrtContext

    def sniff(self, content : bytes) -> bool:
        return bool(_SNIFF_PATTERN.match(self.sniff_text(content)))

    def parse_string(self, content : str, context : TextContext|None = None) -> SubtitleDocument:
        """
        Parse SRT content. Index numbers are not retained, cues are renumbered on output.
        """
        srt_context = self.create_context(context)
        document = SubtitleDocument(context=srt_context, detected_format='.srt')

        lines, _trailing = SplitLines(content)
        for line_number, block in self._split_records(lines):
            try:
                document.cues.append(self._parse_record(block, line_number))
            except MalformedRecordError as e:
                self.report_error(document, e)

        document.sort_cues()
        return document

    def compose(self, document : SubtitleDocument) -> str:
        """
        Compose the document as SRT, numbering cues from 1 in document order.
        Format tokens from other formats are dropped.
        """
        context = self.get_context(document)
        newline = self.get_newline(context)

        srt_items = []
        for index, cue in enumerate(document.cues, 1):
            text = self.get_writable_text(cue, index).plain_text
            self._check_text(text, index)

            srt_items.append(srt.Subtitle(
                index=index,
                start=MillisecondsToTimedelta(cue.start),
                end=MillisecondsToTimedelta(cue.end),
                content=text,
                proprietary=cue.metadata.get('proprietary', '')
            ))

        logging.debug(f"Composed {len(srt_items)} SRT records")
        return srt.compose(srt_items, reindex=False, strict=False, eol=newline)

    def _split_records(self, lines : list[str]) -> Iterator[tuple[int, list[str]]]:
        """
        Group lines into records separated by blank lines, yielding the line number of each record
        """
        block : list[str] = []
        start_line = 0
        for line_number, line in enumerate(lines, 1):
            if line.strip():
                if not block:
                    start_line = line_number
                block.append(line)
            elif block:
                yield start_line, block
                block = []

        if block:
            yield start_line, block

    def _parse_record(self, block : list[str], line_number : int) -> SubtitleCue:
        raw = '\n'.join(block)

        if not _INDEX_PATTERN.match(block[0]):
            raise MalformedRecordError(_("Invalid subtitle index: {index}").format(index=block[0].strip()), line_number, raw)

        if len(block) < 2:
            raise MalformedRecordError(_("Missing timing line"), line_number, raw)

        match = _TIMING_PATTERN.match(block[1])
        if not match:
            raise MalformedRecordError(_("Invalid timing line: {line}").format(line=block[1].strip()), line_number + 1, raw)

        try:
            start = TimedeltaToMilliseconds(srt.srt_timestamp_to_timedelta(match.group(1)))
            end = TimedeltaToMilliseconds(srt.srt_timestamp_to_timedelta(match.group(2)))
            span = TimeSpan(start, end)
        except (ValueError, srt.SRTParseError) as e:
            raise MalformedRecordError(str(e), line_number + 1, raw, e)

        metadata = {
            'index': int(block[0]),
            'proprietary': match.group(3).strip()
        }

        return SubtitleCue.Construct(span.start, span.end, '\n'.join(block[2:]), metadata)

    def _check_text(self, text : str, index : int) -> None:
        if '\r' in text:
            raise SubtitleEncodingError(_("Cue {index}: text contains a carriage return").format(index=index))

        if text and any(not line.strip() for line in text.split('\n')):
            raise SubtitleEncodingError(_("Cue {index}: a blank line inside the text would end the record").format(index=index))
