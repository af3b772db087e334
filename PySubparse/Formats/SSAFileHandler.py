import logging

import pysubs2
import pysubs2.time
import regex
from pysubs2.formats.substation import SubstationFormat

from PySubparse.Helpers.Localization import _
from PySubparse.Helpers.Text import MergeLayout, SplitLines
from PySubparse.PreservedContext import SSAContext, SSASection, SSAStyle, TextContext
from PySubparse.StyledText import FormatToken, PlainText, StyledText, TokenizeText
from PySubparse.SubtitleCue import SubtitleCue
from PySubparse.SubtitleDocument import SubtitleDocument
from PySubparse.SubtitleError import MalformedRecordError, SubtitleEncodingError, SubtitleParseError
from PySubparse.SubtitleFileHandler import TextSubtitleFileHandler
from PySubparse.TimeSpan import TimeSpan

# Override blocks such as {\i1} or {\pos(10,10)} are opaque tokens
_TOKEN_PATTERN = regex.compile(r'\{[^{}]*\}')
_SECTION_PATTERN = regex.compile(r'^\s*\[([^\]]+)\]\s*$')
_TIMESTAMP_PATTERN = regex.compile(r'^\s*(\d+):(\d{1,2}):(\d{1,2})(?:[.:](\d{1,3}))?\s*$')
_SNIFF_PATTERN = regex.compile(r'^\s*\[(?:Script Info|V4\+? Styles|Events)\]', regex.MULTILINE | regex.IGNORECASE)

_LINE_BREAK = '\\N'

# Values for event fields of cues that were not parsed from an SSA file
_DEFAULT_FIELD_VALUES = {
    'layer': '0',
    'marked': 'Marked=0',
    'marginl': '0',
    'marginr': '0',
    'marginv': '0',
}

def ParseSSATimestamp(timestamp : str) -> int:
    """
    Parse an SSA timestamp (H:MM:SS.cc) to milliseconds.
    A colon is accepted before the fraction, and the fraction may have one to three digits.
    """
    match = _TIMESTAMP_PATTERN.match(timestamp)
    if not match:
        raise ValueError(_("Invalid timestamp: {timestamp}").format(timestamp=timestamp))

    hours, minutes, seconds, fraction = match.groups()
    if int(minutes) > 59 or int(seconds) > 59:
        raise ValueError(_("Invalid timestamp: {timestamp}").format(timestamp=timestamp))

    milliseconds = int(fraction) * 10 ** (3 - len(fraction)) if fraction else 0
    return pysubs2.time.make_time(h=int(hours), m=int(minutes), s=int(seconds), ms=milliseconds)

class SSAFileHandler(TextSubtitleFileHandler):
    """
    File handler for SubStation Alpha (SSA/ASS) subtitles.

    Events are parsed according to the section's Format line. Every other section,
    the styles and any comments are kept line for line so that an unmodified document
    is written back byte for byte.
    """

    SUPPORTED_EXTENSIONS = {'.ass': 10, '.ssa': 10}
    CONTEXT_TYPE = SSAContext
    TOKEN_SYNTAX = 'ssa'

    def sniff(self, content : bytes) -> bool:
        return bool(_SNIFF_PATTERN.search(self.sniff_text(content)))

    def parse_string(self, content : str, context : TextContext|None = None) -> SubtitleDocument:
        """
        Parse SSA/ASS content into a document with an SSAContext.

        Raises:
            SubtitleParseError: If there is no [Events] section or its Format line is missing or invalid
        """
        ssa_context : SSAContext = self.create_context(context) # type: ignore[assignment]
        lines, ssa_context.trailing_newline = SplitLines(content)

        document = SubtitleDocument(context=ssa_context)

        event_lines : list[tuple[int, str]] = []
        current : SSASection|None = None
        in_events = False
        seen_events = False

        for line_number, line in enumerate(lines, 1):
            section_match = _SECTION_PATTERN.match(line)
            if section_match:
                name = section_match.group(1).strip().lower()
                if name == 'events':
                    if not seen_events:
                        ssa_context.events_header = line
                        ssa_context.event_section_index = len(ssa_context.sections)
                        seen_events = True
                    else:
                        event_lines.append((line_number, line))
                    in_events = True
                    current = None
                else:
                    current = SSASection(header=line)
                    ssa_context.sections.append(current)
                    in_events = False
                continue

            if in_events:
                event_lines.append((line_number, line))
            elif current is not None:
                current.lines.append(line)
                if line.lstrip().lower().startswith('style:'):
                    style = SSAStyle(name=line.partition(':')[2].split(',')[0].strip(), raw=line)
                    ssa_context.styles[style.name] = style
            else:
                ssa_context.preamble.append(line)

        if not seen_events:
            raise SubtitleParseError(_("No [Events] section found"))

        self._parse_events(document, ssa_context, event_lines)

        document.sort_cues()
        document.detected_format = self._detect_extension(ssa_context)
        return document

    def compose(self, document : SubtitleDocument) -> str:
        """
        Compose the document as SSA/ASS, re-emitting the preserved sections around the events.
        Documents without SSA context get a default header and style.
        """
        context = self.get_context(document)
        if not isinstance(context, SSAContext):
            context = self._default_context()

        newline = self.get_newline(context)

        output : list[str] = list(context.preamble)
        for index, section in enumerate(context.sections):
            if index == context.event_section_index:
                output.extend(self._compose_events(document, context))
            output.append(section.header)
            output.extend(section.lines)

        if context.event_section_index >= len(context.sections):
            output.extend(self._compose_events(document, context))

        logging.debug(f"Composed {len(document.cues)} SSA events")

        result = newline.join(output)
        return result + newline if context.trailing_newline else result

    def _parse_events(self, document : SubtitleDocument, context : SSAContext, event_lines : list[tuple[int, str]]) -> None:
        """
        Parse the Dialogue events. Every other line keeps its place in the event layout.
        """
        keys = [_event_key(line) for _line_number, line in event_lines]
        if 'format' not in keys:
            raise SubtitleParseError(_("The [Events] section has no Format line"))

        format_position = keys.index('format')
        format_line_number, context.events_format = event_lines[format_position]
        field_positions = self._parse_format(context.field_names, format_line_number)

        for position, ((line_number, line), key) in enumerate(zip(event_lines, keys)):
            if position == format_position:
                context.format_position = len(context.event_layout)

            if key != 'dialogue':
                context.event_layout.append(line)
                continue

            try:
                cue = self._parse_dialogue(line, line_number, field_positions, len(context.field_names))
            except MalformedRecordError as e:
                self.report_error(document, e)
                continue

            cue.metadata['event_index'] = len(document.cues)
            context.event_layout.append(len(document.cues))
            document.cues.append(cue)

    def _parse_format(self, field_names : list[str], line_number : int) -> dict[str, int]:
        """
        Locate the named fields in the events Format line.
        Start, End and Text must each appear exactly once and Text must be last.
        """
        names = [name.lower() for name in field_names]
        for required in ('start', 'end', 'text'):
            if names.count(required) != 1:
                raise SubtitleParseError(_("Line {line}: events Format must list '{field}' exactly once").format(line=line_number, field=required.capitalize()))

        if names[-1] != 'text':
            raise SubtitleParseError(_("Line {line}: Text must be the last field of the events Format").format(line=line_number))

        return { name: index for index, name in enumerate(names) }

    def _parse_dialogue(self, line : str, line_number : int, field_positions : dict[str, int], field_count : int) -> SubtitleCue:
        colon = line.index(':')
        body = line[colon + 1:]
        fields_start = colon + 1 + len(body) - len(body.lstrip())
        prefix = line[:fields_start]

        fields = line[fields_start:].split(',', field_count - 1)
        if len(fields) != field_count:
            raise MalformedRecordError(_("Expected {expected} fields, found {found}").format(expected=field_count, found=len(fields)), line_number, line)

        try:
            start = ParseSSATimestamp(fields[field_positions['start']])
            end = ParseSSATimestamp(fields[field_positions['end']])
            span = TimeSpan(start, end)
        except ValueError as e:
            raise MalformedRecordError(str(e), line_number, line, e)

        text = TokenizeText(fields[field_positions['text']], _TOKEN_PATTERN, self.TOKEN_SYNTAX, line_break=_LINE_BREAK)

        metadata = { 'fields': fields, 'prefix': prefix }
        if 'style' in field_positions:
            metadata['style'] = fields[field_positions['style']].strip()

        return SubtitleCue(span, text, metadata)

    def _compose_events(self, document : SubtitleDocument, context : SSAContext) -> list[str]:
        field_names = context.field_names
        positions = { name.lower(): index for index, name in enumerate(field_names) }

        rendered = []
        for index, cue in enumerate(document.cues, 1):
            fields = self._compose_fields(cue, index, field_names, positions)
            rendered.append(cue.metadata.get('prefix', 'Dialogue: ') + ','.join(fields))

        # Parsed events keep their place among comments, new cues follow the cue before them
        record_ids : list[int|None] = [cue.metadata.get('event_index') for cue in document.cues]
        merged = MergeLayout(context.event_layout, record_ids, insert_at=context.format_position + 1)

        lines = [context.events_header]
        lines.extend(rendered[entry] if isinstance(entry, int) else entry for entry in merged)
        return lines

    def _compose_fields(self, cue : SubtitleCue, index : int, field_names : list[str], positions : dict[str, int]) -> list[str]:
        original = cue.metadata.get('fields')
        if isinstance(original, list) and len(original) == len(field_names):
            fields = [str(value) for value in original]
        else:
            fields = [_DEFAULT_FIELD_VALUES.get(name.lower(), '') for name in field_names]

        start_index, end_index, text_index = positions['start'], positions['end'], positions['text']
        fields[start_index] = _render_timestamp(fields[start_index], cue.start)
        fields[end_index] = _render_timestamp(fields[end_index], cue.end)

        if 'style' in positions:
            # The raw field keeps its padding unless the style was changed
            current = fields[positions['style']]
            style = cue.metadata.get('style') or current.strip() or 'Default'
            if current.strip() != style:
                fields[positions['style']] = style

        for field_index, value in enumerate(fields):
            if field_index != text_index and (',' in value or '\n' in value or '\r' in value):
                raise SubtitleEncodingError(_("Cue {index}: field {field} cannot contain a comma or line break").format(index=index, field=field_names[field_index]))

        fields[text_index] = self._render_text(self.get_writable_text(cue, index), index)
        return fields

    def _render_text(self, text : StyledText, index : int) -> str:
        parts = []
        for segment in text:
            if isinstance(segment, PlainText):
                if '\r' in segment.text:
                    raise SubtitleEncodingError(_("Cue {index}: text contains a carriage return").format(index=index))
                parts.append(segment.text.replace('\n', _LINE_BREAK))
            elif isinstance(segment, FormatToken):
                parts.append(segment.raw)

        rendered = ''.join(parts)
        if TokenizeText(rendered, _TOKEN_PATTERN, self.TOKEN_SYNTAX, line_break=_LINE_BREAK) != text:
            raise SubtitleEncodingError(_("Cue {index}: text would not read back unchanged as SSA: {text}").format(index=index, text=repr(rendered)))

        return rendered

    def _default_context(self) -> SSAContext:
        """
        Header, default style and events format for documents that were not parsed from SSA
        """
        default_file = pysubs2.SSAFile().to_string('ass')
        document = self.parse_string(default_file)
        context = document.context
        assert isinstance(context, SSAContext)
        return context

    def _detect_extension(self, context : SSAContext) -> str:
        script_type = (context.get_info('ScriptType') or '').lower()
        if script_type == 'v4.00':
            return '.ssa'
        if script_type == 'v4.00+':
            return '.ass'
        if any(section.name.lower() == 'v4 styles' for section in context.sections):
            return '.ssa'
        return '.ass'

def _render_timestamp(original : str, milliseconds : int) -> str:
    """Keep the original timestamp text if it still denotes the same time"""
    try:
        if ParseSSATimestamp(original) == milliseconds:
            return original
    except ValueError:
        pass
    return SubstationFormat.ms_to_timestamp(milliseconds)

def _event_key(line : str) -> str:
    key, separator, _rest = line.partition(':')
    return key.strip().lower() if separator else ''
