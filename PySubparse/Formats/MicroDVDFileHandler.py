import logging

import regex

from PySubparse.Helpers.Localization import _
from PySubparse.Helpers.Packets import IsPacketStream
from PySubparse.Helpers.Text import SplitLines
from PySubparse.Helpers.Time import FramesToTime, TimeToFrames, ValidateFramerate
from PySubparse.PreservedContext import MicroDVDContext, TextContext
from PySubparse.StyledText import FormatToken, PlainText, StyledText, TokenizeText
from PySubparse.SubtitleCue import SubtitleCue
from PySubparse.SubtitleDocument import SubtitleDocument
from PySubparse.SubtitleError import MalformedRecordError, SubtitleEncodingError, UnsupportedFormatError
from PySubparse.SubtitleFileHandler import TextSubtitleFileHandler
from PySubparse.TimeSpan import TimeSpan

# Control codes such as {y:i} or {c:$0000FF}. Upper case codes apply to every line of the cue.
_TOKEN_PATTERN = regex.compile(r'\{[A-Za-z]:[^}]*\}')
_LINE_PATTERN = regex.compile(r'^\{(\d+)\}\{(\d+)\}(.*)$')
_SNIFF_PATTERN = regex.compile(r'^\{\d+\}\{\d+\}')

_LINE_BREAK = '|'

class MicroDVDFileHandler(TextSubtitleFileHandler):
    """
    File handler for MicroDVD subtitles, one `{start}{end}text` line per cue with times in frames.

    A framerate is needed to convert frames to milliseconds, either passed to parse/compose
    or configured with the `framerate` setting.
    """

    SUPPORTED_EXTENSIONS = {'.sub': 5}
    CONTEXT_TYPE = MicroDVDContext
    TOKEN_SYNTAX = 'microdvd'

    def get_framerate(self, fps : float|None = None) -> float:
        """
        The framerate to use, from the argument or the handler settings

        Raises:
            InvalidConfigurationError: If no valid framerate is available
        """
        return ValidateFramerate(fps if fps is not None else self.settings.get_float('framerate'))

    def sniff(self, content : bytes) -> bool:
        return not IsPacketStream(content) and bool(_SNIFF_PATTERN.match(self.sniff_text(content)))

    def parse_bytes(self, data : bytes, fps : float|None = None) -> SubtitleDocument:
        """
        Raises:
            UnsupportedFormatError: If the data is a VobSub image stream, which shares the .sub extension
        """
        if IsPacketStream(data):
            raise UnsupportedFormatError(_("This .sub file is a VobSub image stream, parse its .idx index with the stream as companion"))

        framerate = self.get_framerate(fps)
        content, context = self.decode(data)
        document = self.parse_string(content, context, fps=framerate)
        logging.debug(f"Parsed {len(document.cues)} MicroDVD cues at {framerate} fps ({len(document.errors)} errors)")
        return document

    def compose_bytes(self, document : SubtitleDocument, fps : float|None = None) -> bytes:
        content = self.compose(document, fps=self.get_framerate(fps))
        return self.encode(content, self.get_own_context(document))

    def parse_string(self, content : str, context : TextContext|None = None, fps : float|None = None) -> SubtitleDocument:
        """
        Parse MicroDVD content. Blank lines are ignored, any other line that is not a valid cue is a malformed record.
        """
        framerate = self.get_framerate(fps)
        document = SubtitleDocument(context=self.create_context(context), detected_format='.sub')

        lines, _trailing = SplitLines(content)
        for line_number, line in enumerate(lines, 1):
            if not line.strip():
                continue

            try:
                document.cues.append(self._parse_line(line, line_number, framerate))
            except MalformedRecordError as e:
                self.report_error(document, e)

        document.sort_cues()
        return document

    def compose(self, document : SubtitleDocument, fps : float|None = None) -> str:
        """
        Compose the document as MicroDVD, converting times to frames at the given framerate
        """
        framerate = self.get_framerate(fps)
        newline = self.get_newline(self.get_context(document))

        output = []
        for index, cue in enumerate(document.cues, 1):
            text = self._render_text(self.get_writable_text(cue, index), index)
            start_frame = TimeToFrames(cue.start, framerate)
            end_frame = TimeToFrames(cue.end, framerate)
            output.append(f"{{{start_frame}}}{{{end_frame}}}{text}")

        return ''.join(line + newline for line in output)

    def _parse_line(self, line : str, line_number : int, fps : float) -> SubtitleCue:
        match = _LINE_PATTERN.match(line)
        if not match:
            raise MalformedRecordError(_("Expected {{start}}{{end}}text, found {line}").format(line=line), line_number, line)

        start_frame, end_frame, raw_text = int(match.group(1)), int(match.group(2)), match.group(3)
        if end_frame < start_frame:
            raise MalformedRecordError(_("End frame {end} is before start frame {start}").format(start=start_frame, end=end_frame), line_number, line)

        span = TimeSpan(FramesToTime(start_frame, fps), FramesToTime(end_frame, fps))
        text = TokenizeText(raw_text, _TOKEN_PATTERN, self.TOKEN_SYNTAX, line_break=_LINE_BREAK)
        return SubtitleCue(span, text)

    def _render_text(self, text : StyledText, index : int) -> str:
        parts = []
        for segment in text:
            if isinstance(segment, PlainText):
                if _LINE_BREAK in segment.text or '\r' in segment.text:
                    raise SubtitleEncodingError(_("Cue {index}: text cannot contain '|' or a carriage return in MicroDVD").format(index=index))
                parts.append(segment.text.replace('\n', _LINE_BREAK))
            elif isinstance(segment, FormatToken):
                parts.append(segment.raw)

        rendered = ''.join(parts)
        if TokenizeText(rendered, _TOKEN_PATTERN, self.TOKEN_SYNTAX, line_break=_LINE_BREAK) != text:
            raise SubtitleEncodingError(_("Cue {index}: text would not read back unchanged as MicroDVD: {text}").format(index=index, text=repr(rendered)))

        return rendered
