import unittest

import regex

from PySubparse.Helpers.TestCases import LoggedTestCase
from PySubparse.StyledText import BinaryData, FormatToken, PlainText, StyledText, TokenizeText
from PySubparse.SubtitleCue import SubtitleCue
from PySubparse.TimeSpan import TimeSpan

_SSA_TOKENS = regex.compile(r'\{[^{}]*\}')

class TestStyledText(LoggedTestCase):
    def test_Normalisation(self):
        text = StyledText([PlainText("Hello "), PlainText(""), PlainText("world"), FormatToken("{\\i1}", "ssa"), PlainText("")])

        self.assertLoggedSequenceEqual("segments", [PlainText("Hello world"), FormatToken("{\\i1}", "ssa")], list(text.segments))
        self.assertEqual(text, StyledText([PlainText("Hello world"), FormatToken("{\\i1}", "ssa")]))
        self.assertEqual(hash(text), hash(StyledText([PlainText("Hello world"), FormatToken("{\\i1}", "ssa")])))

    def test_Accessors(self):
        text = StyledText([PlainText("Hello "), FormatToken("{\\i1}", "ssa"), PlainText("world"), FormatToken("{\\i0}", "ssa")])

        self.assertLoggedEqual("plain_text", "Hello world", text.plain_text)
        self.assertLoggedEqual("raw_text", "Hello {\\i1}world{\\i0}", text.raw_text)
        self.assertLoggedEqual("segment count", 4, len(text))
        self.assertTrue(text.has_tokens)
        self.assertFalse(text.has_binary)
        self.assertIsNone(text.binary_payload)
        self.assertFalse(text.is_empty)
        self.assertEqual(text[1], FormatToken("{\\i1}", "ssa"))

    def test_FromPlain(self):
        self.assertLoggedTrue("empty string", StyledText.FromPlain("").is_empty)
        self.assertLoggedTrue("None", StyledText.FromPlain(None).is_empty)
        self.assertLoggedEqual("plain", [PlainText("Hi")], list(StyledText.FromPlain("Hi")))

    def test_Binary(self):
        text = StyledText.FromBinary(b'\x01\x02\x03')
        self.assertLoggedEqual("payload", b'\x01\x02\x03', text.binary_payload)
        self.assertTrue(text.has_binary)
        self.assertEqual(text.plain_text, "")
        self.assertEqual(text.raw_text, "")
        self.assertEqual(repr(BinaryData(b'abc')), "BinaryData(<3 bytes>)")

        empty = StyledText.FromBinary(b'')
        self.assertLoggedEqual("empty payload", b'', empty.binary_payload)

    def test_EditingPreservesTokens(self):
        text = StyledText([PlainText("Hello "), FormatToken("{\\i1}", "ssa"), PlainText("world"), FormatToken("{\\i0}", "ssa")])

        edited = text.replace_plain(2, "there")
        self.assertLoggedEqual("edited raw", "Hello {\\i1}there{\\i0}", edited.raw_text)
        self.assertLoggedEqual("original unchanged", "Hello {\\i1}world{\\i0}", text.raw_text)

        with self.assertRaises(ValueError):
            text.replace_plain(1, "not a token")

        inserted = text.insert_plain(0, ">> ")
        self.assertLoggedEqual("inserted", ">> Hello {\\i1}world{\\i0}", inserted.raw_text)
        self.assertLoggedEqual("merged with following run", 4, len(inserted))

    def test_TokensForSyntax(self):
        text = StyledText([FormatToken("{y:i}", "microdvd"), PlainText("Hi"), FormatToken("{\\b1}", "ssa")])
        filtered = text.tokens_for_syntax("ssa")
        self.assertLoggedSequenceEqual("ssa only", [PlainText("Hi"), FormatToken("{\\b1}", "ssa")], list(filtered))

    def test_InvalidSegment(self):
        with self.assertRaises(TypeError):
            StyledText(["not a segment"]) # type: ignore[list-item]

class TestTokenizeText(LoggedTestCase):
    def test_Tokenize(self):
        cases = [
            ("Hello {\\i1}world{\\i0}", [PlainText("Hello "), FormatToken("{\\i1}", "ssa"), PlainText("world"), FormatToken("{\\i0}", "ssa")]),
            ("{\\an8}Top", [FormatToken("{\\an8}", "ssa"), PlainText("Top")]),
            ("Line one\\NLine two", [PlainText("Line one\nLine two")]),
            ("{\\i1}{\\b1}", [FormatToken("{\\i1}", "ssa"), FormatToken("{\\b1}", "ssa")]),
            ("", []),
        ]

        for raw, expected in cases:
            with self.subTest(raw=raw):
                result = TokenizeText(raw, _SSA_TOKENS, "ssa", line_break="\\N")
                self.assertLoggedSequenceEqual(raw, expected, list(result))

    def test_NoLineBreak(self):
        result = TokenizeText("a|b", _SSA_TOKENS, "ssa")
        self.assertLoggedEqual("no line break mapping", "a|b", result.plain_text)

class TestSubtitleCue(LoggedTestCase):
    def test_Construct(self):
        cue = SubtitleCue.Construct(1000, 2500, "Hello", {'style': 'Default'})
        self.assertLoggedEqual("span", TimeSpan(1000, 2500), cue.span)
        self.assertEqual(cue.start, 1000)
        self.assertEqual(cue.end, 2500)
        self.assertEqual(cue.duration, 1500)
        self.assertEqual(cue.plain_text, "Hello")
        self.assertEqual(cue.metadata, {'style': 'Default'})

    def test_Equality(self):
        first = SubtitleCue.Construct(0, 100, "Same", {'style': 'A'})
        second = SubtitleCue.Construct(0, 100, "Same", {'style': 'B'})
        self.assertLoggedEqual("metadata ignored in equality", first, second)
        self.assertNotEqual(first, SubtitleCue.Construct(0, 200, "Same"))

    def test_Copy(self):
        cue = SubtitleCue.Construct(0, 100, "Text", {'style': 'A'})
        copy = cue.copy()
        copy.metadata['style'] = 'B'
        self.assertLoggedEqual("original metadata", 'A', cue.metadata['style'])

    def test_RequiresTimeSpan(self):
        with self.assertRaises(TypeError):
            SubtitleCue((0, 100)) # type: ignore[arg-type]

if __name__ == '__main__':
    unittest.main()
