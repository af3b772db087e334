from __future__ import annotations

from PySubparse.Helpers.Localization import _

class SubtitleError(Exception):
    """
    Base class for all errors raised by the subtitle codecs
    """
    def __init__(self, message : str|None = None, error : Exception|None = None):
        super().__init__(message)
        self.message : str|None = message
        self.error : Exception|None = error

    def __str__(self) -> str:
        if self.error:
            return str(self.error)
        elif self.message:
            return self.message
        return super().__str__()

class SubtitleParseError(SubtitleError):
    """
    The input could not be parsed at all
    """
    pass

class MalformedRecordError(SubtitleParseError):
    """
    A single record violates its grammar. The record is dropped and parsing continues.
    """
    def __init__(self, message : str, line_number : int|None = None, raw : str|None = None, error : Exception|None = None):
        super().__init__(message, error)
        self.line_number : int|None = line_number
        self.raw : str|None = raw

    def __str__(self) -> str:
        if self.line_number is not None:
            return _("Line {line}: {message}").format(line=self.line_number, message=self.message)
        return super().__str__()

class TruncatedStreamError(SubtitleParseError):
    """
    Binary packet framing is inconsistent. Only the cue addressed at the offset is lost.
    """
    def __init__(self, message : str, offset : int|None = None, record_index : int|None = None):
        super().__init__(message)
        self.offset : int|None = offset
        self.record_index : int|None = record_index

    def __str__(self) -> str:
        if self.offset is not None:
            return _("Offset 0x{offset:x}: {message}").format(offset=self.offset, message=self.message)
        return super().__str__()

class InvalidConfigurationError(SubtitleError, ValueError):
    """
    A required setting such as the framerate is missing or invalid
    """
    pass

class UnsupportedFormatError(SubtitleError, ValueError):
    """
    No handler is registered for the requested extension or content
    """
    pass

class SubtitleEncodingError(SubtitleError):
    """
    Cue content cannot be represented in the target format
    """
    pass
