import unittest

from PySubparse.Formats.SSAFileHandler import ParseSSATimestamp, SSAFileHandler
from PySubparse.Helpers.TestCases import SubtitleDocumentTestCase
from PySubparse.Helpers.Tests import (
    log_input_expected_error,
    log_input_expected_result,
    skip_if_debugger_attached,
)
from PySubparse.PreservedContext import SrtContext, SSAContext
from PySubparse.StyledText import FormatToken, PlainText, StyledText
from PySubparse.SubtitleCue import SubtitleCue
from PySubparse.SubtitleDocument import SubtitleDocument
from PySubparse.SubtitleError import MalformedRecordError, SubtitleEncodingError, SubtitleParseError
from PySubparse.TimeSpan import TimeSpan

demo_ssa = """[Script Info]
Title: Demo
ScriptType: v4.00+

[V4+ Styles]
Format: Name, Fontname, Fontsize
Style: Default,Arial,20

[Events]
Format: Start, End, Style, Text
Dialogue: 0:00:01.00,0:00:03.00,Default,Hello {\\i1}world{\\i0}
"""

full_ssa = """[Script Info]
; A comment in the header
Title: Test Subtitles
ScriptType: v4.00+
PlayResX: 1920
Unknown Key: kept as is

[V4+ Styles]
Format: Name, Fontname, Fontsize, PrimaryColour, SecondaryColour, OutlineColour, BackColour, Bold, Italic, Underline, StrikeOut, ScaleX, ScaleY, Spacing, Angle, BorderStyle, Outline, Shadow, Alignment, MarginL, MarginR, MarginV, Encoding
Style: Default,Arial,50,&H00FFFFFF,&H0000FFFF,&H00000000,&H00000000,0,0,0,0,100,100,0,0,1,2,0,2,30,30,30,1
Style: Sign,Arial,40,&H00FFFFFF,&H0000FFFF,&H00000000,&H00000000,0,0,0,0,100,100,0,0,1,2,0,8,30,30,30,1

[Events]
Format: Layer, Start, End, Style, Name, MarginL, MarginR, MarginV, Effect, Text
Dialogue: 0,0:00:04.00,0:00:06.50,Default,,0,0,0,,Second line\\Nwith a break
Dialogue: 0,0:00:01.50,0:00:03.00,Default,Alice,0,0,0,,First line, with a comma
Dialogue: 1,0:00:04.00,0:00:05.00,Sign,,0,0,0,,{\\an8}Sign text
Comment: 0,0:00:00.00,0:00:00.00,Default,,0,0,0,,Note for the typesetter

[Fonts]
fontname: example.ttf
"""

class TestSSAFileHandler(SubtitleDocumentTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.handler = SSAFileHandler()

    def test_GetFileExtensions(self):
        self.assertLoggedEqual("extensions", ['.ass', '.ssa'], self.handler.get_file_extensions())

    def test_DemoExample(self):
        document = self.handler.parse_bytes(demo_ssa.encode('utf-8'))

        self.assertLoggedEqual("cue count", 1, len(document.cues))
        cue = document.cues[0]
        self.assertLoggedEqual("span", TimeSpan(1000, 3000), cue.span)

        expected_segments = [PlainText("Hello "), FormatToken("{\\i1}", "ssa"), PlainText("world"), FormatToken("{\\i0}", "ssa")]
        self.assertLoggedSequenceEqual("segments", expected_segments, list(cue.text))
        self.assertLoggedEqual("style", "Default", cue.metadata['style'])

        context = document.context
        self.assertIsInstance(context, SSAContext)
        assert isinstance(context, SSAContext)
        self.assertLoggedEqual("title", "Demo", context.get_info('Title'))
        self.assertLoggedSequenceEqual("styles", ['Default'], list(context.styles.keys()))
        self.assertEqual(document.detected_format, '.ass')

        output = self.handler.compose_bytes(document).decode('utf-8')
        self.assertIn("Dialogue: 0:00:01.00,0:00:03.00,Default,Hello {\\i1}world{\\i0}", output)
        self.assertLoggedEqual("byte identical", demo_ssa, output)

    def test_ParseFull(self):
        document = self.handler.parse_bytes(full_ssa.encode('utf-8'))

        self.assertLoggedEqual("cue count", 3, len(document.cues))
        self.assertFalse(document.has_errors)

        starts = [cue.start for cue in document.cues]
        self.assertLoggedSequenceEqual("sorted starts", [1500, 4000, 4000], starts)

        first, second, third = document.cues
        self.assertLoggedEqual("comma in text", "First line, with a comma", first.plain_text)
        self.assertLoggedEqual("line break", "Second line\nwith a break", second.plain_text)
        self.assertLoggedEqual("equal start keeps file order", "Sign text", third.plain_text)
        self.assertLoggedEqual("sign style", "Sign", third.metadata['style'])
        self.assertEqual(third.text[0], FormatToken("{\\an8}", "ssa"))
        self.assertEqual(first.metadata['fields'][4], "Alice")

        context = document.context
        assert isinstance(context, SSAContext)
        self.assertLoggedSequenceEqual("comments", ["Comment: 0,0:00:00.00,0:00:00.00,Default,,0,0,0,,Note for the typesetter", ""], context.comments)
        self.assertLoggedEqual("unknown header key", "kept as is", context.get_info('Unknown Key'))
        self.assertLoggedSequenceEqual("header comments", ["; A comment in the header"], context.header_comments)
        self.assertLoggedSequenceEqual("styles", ['Default', 'Sign'], list(context.styles.keys()))
        self.assertEqual(context.styles['Sign'].fields[18], '8')
        self.assertLoggedSequenceEqual("sections", ['Script Info', 'V4+ Styles', 'Fonts'], [section.name for section in context.sections])

    def test_WritePreservesSections(self):
        document = self.handler.parse_bytes(full_ssa.encode('utf-8'))
        output = self.handler.compose_bytes(document).decode('utf-8')

        lines = output.split('\n')
        self.assertLoggedEqual("events before fonts", True, lines.index('[Events]') < lines.index('[Fonts]'))
        self.assertIn("; A comment in the header", lines)
        self.assertIn("Unknown Key: kept as is", lines)
        self.assertIn("fontname: example.ttf", lines)
        self.assertIn("Dialogue: 0,0:00:01.50,0:00:03.00,Default,Alice,0,0,0,,First line, with a comma", lines)
        self.assertIn("Comment: 0,0:00:00.00,0:00:00.00,Default,,0,0,0,,Note for the typesetter", lines)

        self.assertLoggedTrue("comment after dialogue", lines.index("Comment: 0,0:00:00.00,0:00:00.00,Default,,0,0,0,,Note for the typesetter") > lines.index("Dialogue: 1,0:00:04.00,0:00:05.00,Sign,,0,0,0,,{\\an8}Sign text"))

        reparsed = self.handler.parse_bytes(output.encode('utf-8'))
        self.assert_same_cues(reparsed, document)
        self.assertLoggedEqual("stable output", output, self.handler.compose_bytes(reparsed).decode('utf-8'))

    def test_EditCue(self):
        document = self.handler.parse_bytes(demo_ssa.encode('utf-8'))

        document.replace_span(0, TimeSpan(1500, 3250))
        document.replace_text(0, document.cues[0].text.replace_plain(2, "there"))

        output = self.handler.compose_bytes(document).decode('utf-8')
        expected_line = "Dialogue: 0:00:01.50,0:00:03.25,Default,Hello {\\i1}there{\\i0}"
        log_input_expected_result("edited line", expected_line, output.splitlines()[-1])
        self.assertEqual(output.splitlines()[-1], expected_line)
        self.assertIn("Title: Demo", output)

    def test_CommentsKeepTheirPlace(self):
        content = """[Events]
Format: Layer, Start, End, Style, Name, MarginL, MarginR, MarginV, Effect, Text
Comment: 0,0:00:00.50,0:00:01.00,Default,,0,0,0,,Note before the first line
Dialogue: 0,0:00:01.00,0:00:02.00,Default,,0,0,0,,First
; Section break
Dialogue: 0,0:00:05.00,0:00:06.00,Default,,0,0,0,,Later
"""
        data = content.encode('utf-8')
        document = self.handler.parse_bytes(data)

        self.assertLoggedEqual("byte identical", data, self.handler.compose_bytes(document))

        document.add_cue(SubtitleCue.Construct(3000, 4000, "Inserted"))
        lines = self.handler.compose_bytes(document).decode('utf-8').splitlines()

        self.assertLoggedEqual("comment stays first", 2, lines.index("Comment: 0,0:00:00.50,0:00:01.00,Default,,0,0,0,,Note before the first line"))
        self.assertLoggedEqual("inserted after its predecessor", "Dialogue: 0,0:00:03.00,0:00:04.00,Default,,0,0,0,,Inserted", lines[4])
        self.assertLoggedEqual("section break kept", "; Section break", lines[5])

        document.remove_cue(0)
        lines = self.handler.compose_bytes(document).decode('utf-8').splitlines()
        self.assertLoggedSequenceEqual("leading cue after the format line", [
            "Dialogue: 0,0:00:03.00,0:00:04.00,Default,,0,0,0,,Inserted",
            "Comment: 0,0:00:00.50,0:00:01.00,Default,,0,0,0,,Note before the first line",
            "; Section break",
            "Dialogue: 0,0:00:05.00,0:00:06.00,Default,,0,0,0,,Later",
        ], lines[2:])

    def test_DialogueBeforeFormat(self):
        content = """[Events]
Dialogue: 0,0:00:01.00,0:00:02.00,Default,,0,0,0,,Before the format line
Format: Layer, Start, End, Style, Name, MarginL, MarginR, MarginV, Effect, Text
Dialogue: 0,0:00:03.00,0:00:04.00,Default,,0,0,0,,After the format line
"""
        data = content.encode('utf-8')
        document = self.handler.parse_bytes(data)

        self.assertLoggedSequenceEqual("cues", ["Before the format line", "After the format line"], [cue.plain_text for cue in document.cues])
        self.assertFalse(document.has_errors)
        self.assertLoggedEqual("byte identical", data, self.handler.compose_bytes(document))

    def test_StylePadding(self):
        content = """[Events]
Format: Layer, Start, End, Style, Name, MarginL, MarginR, MarginV, Effect, Text
Dialogue: 0,0:00:01.00,0:00:02.00, Default,,0,0,0,,Padded style
"""
        data = content.encode('utf-8')
        document = self.handler.parse_bytes(data)

        self.assertLoggedEqual("style name", "Default", document.cues[0].metadata['style'])
        self.assertLoggedEqual("byte identical", data, self.handler.compose_bytes(document))

        document.cues[0].metadata['style'] = "Sign"
        output = self.handler.compose_bytes(document).decode('utf-8')
        self.assertIn("Dialogue: 0,0:00:01.00,0:00:02.00,Sign,,0,0,0,,Padded style", output)

    def test_ShiftedTimestamps(self):
        document = self.handler.parse_bytes(demo_ssa.encode('utf-8'))
        document.replace_span(0, document.cues[0].span.shifted(500))
        document.add_cue(SubtitleCue.Construct(3723456, 3724004, "Rounded"))

        output = self.handler.compose_bytes(document).decode('utf-8')
        self.assertIn("Dialogue: 0:00:01.50,0:00:03.50,Default,Hello {\\i1}world{\\i0}", output)
        self.assertIn("Dialogue: 1:02:03.46,1:02:04.00,Default,Rounded", output)

    def test_PartialFailure(self):
        content = """[Script Info]
Title: Partial

[Events]
Format: Layer, Start, End, Style, Name, MarginL, MarginR, MarginV, Effect, Text
Dialogue: 0,0:00:01.00,0:00:02.00,Default,,0,0,0,,Valid one
Dialogue: 0,0:00:xx.00,0:00:03.00,Default,,0,0,0,,Bad timestamp
Dialogue: 0,0:00:04.00,0:00:05.00,Default,,0,0,0,,Valid two
"""
        document = self.handler.parse_bytes(content.encode('utf-8'))

        self.assertLoggedEqual("cue count", 2, len(document.cues))
        self.assertLoggedEqual("error count", 1, len(document.errors))

        error = document.errors[0]
        self.assertIsInstance(error, MalformedRecordError)
        assert isinstance(error, MalformedRecordError)
        self.assertLoggedEqual("error line", 7, error.line_number)
        self.assertIn("Bad timestamp", error.raw or "")

    def test_MalformedRecords(self):
        header = "[Events]\nFormat: Layer, Start, End, Style, Name, MarginL, MarginR, MarginV, Effect, Text\n"
        cases = [
            "Dialogue: 0,0:00:01.00,0:00:02.00",
            "Dialogue: 0,0:00:03.00,0:00:02.00,Default,,0,0,0,,End before start",
            "Dialogue: 0,0:61:00.00,0:62:00.00,Default,,0,0,0,,Minutes out of range",
        ]

        for line in cases:
            with self.subTest(line=line):
                document = self.handler.parse_bytes((header + line + "\n").encode('utf-8'))
                log_input_expected_result(line, 1, len(document.errors))
                self.assertEqual(len(document.cues), 0)
                self.assertEqual(len(document.errors), 1)
                self.assertIsInstance(document.errors[0], MalformedRecordError)

    def test_FatalErrors(self):
        if skip_if_debugger_attached("FatalErrors"):
            return

        cases = [
            "[Script Info]\nTitle: No events\n",
            "[Events]\nDialogue: 0,0:00:01.00,0:00:02.00,Default,,0,0,0,,No format\n",
            "[Events]\nComment: just a comment\n",
            "[Events]\nFormat: Start, Text, End\n",
            "[Events]\nFormat: Start, End, Start, Text\n",
            "[Events]\nFormat: Layer, Start, Style, Text\n",
        ]

        for content in cases:
            with self.subTest(content=content):
                with self.assertRaises(SubtitleParseError) as e:
                    self.handler.parse_bytes(content.encode('utf-8'))
                log_input_expected_error(content.splitlines()[-1], SubtitleParseError, e.exception)
                self.assertNotIsInstance(e.exception, MalformedRecordError)

    def test_PreservesBOMAndNewlines(self):
        data = b'\xef\xbb\xbf' + demo_ssa.replace('\n', '\r\n').encode('utf-8')
        document = self.handler.parse_bytes(data)

        context = document.context
        assert isinstance(context, SSAContext)
        self.assertLoggedTrue("bom", context.bom)
        self.assertLoggedEqual("newline", '\r\n', context.newline)
        self.assertLoggedEqual("byte identical", data, self.handler.compose_bytes(document))

    def test_FallbackEncoding(self):
        content = demo_ssa.replace("world", "wörld")
        data = content.encode('iso-8859-1')
        document = self.handler.parse_bytes(data)

        context = document.context
        assert isinstance(context, SSAContext)
        self.assertLoggedEqual("encoding", 'iso-8859-1', context.encoding)
        self.assertLoggedEqual("text", "Hello wörld", document.cues[0].plain_text)
        self.assertLoggedEqual("byte identical", data, self.handler.compose_bytes(document))

    def test_NewDocument(self):
        document = SubtitleDocument([
            SubtitleCue.Construct(1000, 2500, "Hello\nWorld"),
            SubtitleCue.Construct(3000, 4000, "Styled", {'style': 'Default'}),
        ])

        output = self.handler.compose_bytes(document).decode('utf-8')

        self.assertIn("[Script Info]", output)
        self.assertIn("[V4+ Styles]", output)
        self.assertIn("Style: Default,", output)
        self.assertIn("Format: Layer, Start, End, Style, Name, MarginL, MarginR, MarginV, Effect, Text", output)

        expected_line = "Dialogue: 0,0:00:01.00,0:00:02.50,Default,,0,0,0,,Hello\\NWorld"
        log_input_expected_result("generated line", True, expected_line in output)
        self.assertIn(expected_line, output)

        reparsed = self.handler.parse_bytes(output.encode('utf-8'))
        self.assert_same_cues(reparsed, document)

    def test_ForeignContextDiscarded(self):
        document = SubtitleDocument([SubtitleCue.Construct(0, 1000, "From SRT")], context=SrtContext(encoding='utf-8', bom=True))

        with self.assertLogs(level='INFO') as logs:
            output = self.handler.compose_bytes(document)

        self.assertLoggedTrue("discard logged", any("Discarding" in message for message in logs.output))
        self.assertFalse(output.startswith(b'\xef\xbb\xbf'))
        self.assertIn(b"From SRT", output)

    def test_ForeignTokensDropped(self):
        text = StyledText([FormatToken("{y:i}", "microdvd"), PlainText("Italic"), FormatToken("{\\b1}", "ssa"), PlainText(" bold")])
        document = SubtitleDocument([SubtitleCue(TimeSpan(0, 1000), text)])

        output = self.handler.compose_bytes(document).decode('utf-8')
        self.assertIn(",Italic{\\b1} bold", output)
        self.assertNotIn("{y:i}", output)

    def test_EncodingErrors(self):
        if skip_if_debugger_attached("EncodingErrors"):
            return

        cases = [
            ("braces in plain text", SubtitleCue.Construct(0, 1000, "Not {a} token")),
            ("escaped break in plain text", SubtitleCue.Construct(0, 1000, "Literal \\N")),
            ("carriage return", SubtitleCue.Construct(0, 1000, "Line\rbreak")),
            ("bitmap cue", SubtitleCue(TimeSpan(0, 1000), StyledText.FromBinary(b'\x00\x01'))),
            ("comma in style", SubtitleCue.Construct(0, 1000, "Text", {'style': 'Bad,Style'})),
        ]

        for description, cue in cases:
            with self.subTest(description=description):
                with self.assertRaises(SubtitleEncodingError) as e:
                    self.handler.compose_bytes(SubtitleDocument([cue]))
                log_input_expected_error(description, SubtitleEncodingError, e.exception)

    def test_UnencodableCharacter(self):
        document = self.handler.parse_bytes(demo_ssa.encode('utf-8'))
        document.replace_text(0, "Snowman ☃")

        context = document.context
        assert isinstance(context, SSAContext)
        context.encoding = 'ascii'

        with self.assertRaises(SubtitleEncodingError) as e:
            self.handler.compose_bytes(document)
        log_input_expected_error("snowman in ascii", SubtitleEncodingError, e.exception)

    def test_Sniff(self):
        self.assertLoggedTrue("ass content", self.handler.sniff(demo_ssa.encode('utf-8')))
        self.assertLoggedTrue("bom", self.handler.sniff(b'\xef\xbb\xbf' + demo_ssa.encode('utf-8')))
        self.assertFalse(self.handler.sniff(b"1\n00:00:01,000 --> 00:00:02,000\nHello\n"))

class TestSSATimestamps(SubtitleDocumentTestCase):
    def test_ParseTimestamps(self):
        cases = [
            ("0:00:01.00", 1000),
            ("0:00:01.5", 1500),
            ("0:00:01:50", 1500),
            ("1:02:03.456", 3723456),
            ("10:00:00.01", 36000010),
            (" 0:00:02.00 ", 2000),
        ]

        for timestamp, expected in cases:
            with self.subTest(timestamp=timestamp):
                result = ParseSSATimestamp(timestamp)
                log_input_expected_result(timestamp, expected, result)
                self.assertEqual(result, expected)

    def test_InvalidTimestamps(self):
        for timestamp in ("", "abc", "0:00", "0:61:00.00", "0:00:60.00", "-0:00:01.00"):
            with self.subTest(timestamp=timestamp):
                with self.assertRaises(ValueError):
                    ParseSSATimestamp(timestamp)

if __name__ == '__main__':
    unittest.main()
