import unittest
from typing import Any

from PySubparse.Helpers.Tests import log_input_expected_result, log_test_name
from PySubparse.SubtitleDocument import SubtitleDocument

class LoggedTestCase(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        super().setUpClass()
        log_test_name(f"{cls.__name__}")

    def setUp(self) -> None:
        super().setUp()
        log_test_name(self._testMethodName)

    def assertLoggedEqual(self, description : str, expected : Any, actual : Any, msg : str|None = None) -> None:
        log_input_expected_result(description, expected, actual)
        self.assertEqual(expected, actual, msg)

    def assertLoggedTrue(self, description : str, actual : Any, msg : str|None = None) -> None:
        log_input_expected_result(description, True, bool(actual))
        self.assertTrue(actual, msg)

    def assertLoggedSequenceEqual(self, description : str, expected : list, actual : list, msg : str|None = None) -> None:
        log_input_expected_result(description, expected, actual)
        self.assertSequenceEqual(expected, actual, msg)

class SubtitleDocumentTestCase(LoggedTestCase):
    def assert_same_cues(self, document : SubtitleDocument, reference : SubtitleDocument) -> None:
        """
        Assert that two documents have the same spans and text segments in the same order
        """
        self.assertLoggedEqual("cue count", len(reference.cues), len(document.cues))
        for cue, reference_cue in zip(document.cues, reference.cues):
            self.assertEqual(reference_cue.span, cue.span)
            self.assertEqual(reference_cue.text, cue.text)
