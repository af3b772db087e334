import logging
import os
from abc import ABC, abstractmethod
from collections.abc import Mapping

from PySubparse.Helpers.Localization import _
from PySubparse.Helpers.Text import DetectNewline, StripBOM
from PySubparse.PreservedContext import TextContext
from PySubparse.SettingsType import SettingsType, SettingType
from PySubparse.StyledText import FormatToken, StyledText
from PySubparse.SubtitleCue import SubtitleCue
from PySubparse.SubtitleDocument import SubtitleDocument
from PySubparse.SubtitleError import (
    InvalidConfigurationError,
    SubtitleEncodingError,
    SubtitleParseError,
)

default_encoding = os.getenv('DEFAULT_ENCODING', 'utf-8')
fallback_encoding = os.getenv('FALLBACK_ENCODING', 'iso-8859-1')

# How much of the input is examined when sniffing the format
SNIFF_LENGTH = 4096

class SubtitleFileHandler(ABC):
    """
    Abstract interface for reading and writing subtitle files.

    Implementations handle format-specific operations while the document model
    remains format-agnostic. Handlers are stateless apart from their settings,
    so one instance can be shared freely.
    """

    SUPPORTED_EXTENSIONS : dict[str, int] = {}

    # The preserved context class this handler reads and writes
    CONTEXT_TYPE : type[TextContext] = TextContext

    # Tokenizer name for the format tokens this handler understands, if any
    TOKEN_SYNTAX : str|None = None

    def __init__(self, settings : Mapping[str, SettingType]|None = None):
        self.settings = SettingsType(settings)

    @property
    def format_name(self) -> str:
        return self.CONTEXT_TYPE.FORMAT

    @abstractmethod
    def parse_bytes(self, data : bytes) -> SubtitleDocument:
        """
        Parse subtitle file content and return a document with cues and preserved context.

        Args:
            data: Raw file content

        Returns:
            SubtitleDocument: Cues, context and any per-record errors

        Raises:
            SubtitleParseError: If the content cannot be parsed at all
            InvalidConfigurationError: If a required setting is missing
        """
        pass

    @abstractmethod
    def compose_bytes(self, document : SubtitleDocument) -> bytes:
        """
        Render a document in this handler's format.

        Raises:
            SubtitleEncodingError: If a cue cannot be represented in the format
        """
        pass

    @abstractmethod
    def sniff(self, content : bytes) -> bool:
        """
        Return True if the content looks like this handler's format
        """
        pass

    def get_file_extensions(self) -> list[str]:
        """
        Get file extensions supported by this handler.

        Returns:
            list[str]: List of file extensions (e.g., ['.srt'])
        """
        return list(self.__class__.SUPPORTED_EXTENSIONS.keys())

    def get_extension_priorities(self) -> dict[str, int]:
        """
        Get priority for each supported extension.
        Higher priority handlers override lower priority ones.

        Returns:
            dict[str, int]: Mapping of extensions to priorities
        """
        return self.__class__.SUPPORTED_EXTENSIONS.copy()

    def get_context(self, document : SubtitleDocument) -> TextContext|None:
        """
        Return the document's context if this handler can use it.

        Context from another format cannot be interpreted, so it is discarded and the
        handler writes with its defaults.
        """
        context = document.context
        if context is None:
            return None

        if isinstance(context, self.CONTEXT_TYPE):
            return context

        logging.info(_("Discarding {source} context when writing {target} subtitles").format(source=context.FORMAT or type(context).__name__, target=self.format_name))
        return None

    def create_context(self, decoded : TextContext|None = None) -> TextContext:
        """
        A new context of this handler's type carrying the encoding details found when decoding
        """
        if decoded is None:
            return self.CONTEXT_TYPE()
        return self.CONTEXT_TYPE(encoding=decoded.encoding, bom=decoded.bom, newline=decoded.newline)

    def decode(self, data : bytes) -> tuple[str, TextContext]:
        """
        Decode raw bytes, returning the text and a context recording the encoding, BOM and newline style.

        The encoding setting forces a codec. Otherwise the default encoding is tried first and
        the fallback encoding is used if the content is not valid in the default.
        """
        if isinstance(data, str):
            raise TypeError(_("Subtitle content must be bytes, not str"))

        forced = self.settings.get_str('encoding')
        candidates = [forced] if forced else [default_encoding, fallback_encoding]

        content = None
        encoding = candidates[0]
        for encoding in candidates:
            try:
                content = bytes(data).decode(encoding)
                break
            except UnicodeDecodeError as e:
                logging.debug(f"Content is not valid {encoding}: {e}")
            except LookupError as e:
                raise InvalidConfigurationError(_("Unknown encoding: {encoding}").format(encoding=encoding), e)

        if content is None:
            raise SubtitleParseError(_("Unable to decode subtitles as {encodings}").format(encodings=", ".join(candidates)))

        content, bom = StripBOM(content)
        context = self.CONTEXT_TYPE(encoding=encoding, bom=bom, newline=DetectNewline(content))
        return content, context

    def encode(self, content : str, context : TextContext|None) -> bytes:
        """
        Encode composed text using the context's encoding and BOM, or the configured defaults
        """
        encoding = self.settings.get_str('encoding') or (context.encoding if context else default_encoding)
        if context and context.bom:
            content = '\ufeff' + content

        try:
            return content.encode(encoding)
        except UnicodeEncodeError as e:
            raise SubtitleEncodingError(_("Subtitles contain characters that cannot be encoded as {encoding}").format(encoding=encoding), e)
        except LookupError as e:
            raise InvalidConfigurationError(_("Unknown encoding: {encoding}").format(encoding=encoding), e)

    def get_newline(self, context : TextContext|None) -> str:
        newline = self.settings.get_str('newline') or (context.newline if context else '\n')
        if newline not in ('\n', '\r\n', '\r'):
            raise InvalidConfigurationError(_("Invalid newline setting: {newline}").format(newline=repr(newline)))
        return newline

    def sniff_text(self, content : bytes) -> str:
        """Decode the start of the content leniently for format detection"""
        head = bytes(content[:SNIFF_LENGTH])
        text, _bom = StripBOM(head.decode(default_encoding, errors='replace'))
        return text.lstrip()

    def get_writable_text(self, cue : SubtitleCue, index : int) -> StyledText:
        """
        Return the cue text restricted to the tokens this handler can write.

        Raises SubtitleEncodingError if the cue carries bitmap data.
        """
        if cue.text.has_binary:
            raise SubtitleEncodingError(_("Cue {index} contains bitmap data which cannot be written as {format}").format(index=index, format=self.format_name))

        foreign = [segment for segment in cue.text if isinstance(segment, FormatToken) and segment.syntax != self.TOKEN_SYNTAX]
        if foreign:
            logging.debug(f"Dropping {len(foreign)} format tokens from cue {index} when writing {self.format_name}")
            return cue.text.tokens_for_syntax(self.TOKEN_SYNTAX or '')

        return cue.text

    def report_error(self, document : SubtitleDocument, error : SubtitleParseError) -> None:
        """
        Record a recoverable parse error on the document
        """
        logging.warning(_("Skipping malformed {format} record: {error}").format(format=self.format_name, error=str(error)))
        document.errors.append(error)

class TextSubtitleFileHandler(SubtitleFileHandler):
    """
    Base class for formats that are a single text file.
    Subclasses parse and compose strings, decoding and encoding are handled here.
    """

    def parse_bytes(self, data : bytes) -> SubtitleDocument:
        content, context = self.decode(data)
        document = self.parse_string(content, context)
        logging.debug(f"Parsed {len(document.cues)} {self.format_name} cues ({len(document.errors)} errors)")
        return document

    def compose_bytes(self, document : SubtitleDocument) -> bytes:
        content = self.compose(document)
        return self.encode(content, self.get_own_context(document))

    def get_own_context(self, document : SubtitleDocument) -> TextContext|None:
        """The document context if it belongs to this format, without logging"""
        return document.context if isinstance(document.context, self.CONTEXT_TYPE) else None

    @abstractmethod
    def parse_string(self, content : str, context : TextContext|None = None) -> SubtitleDocument:
        """
        Parse decoded subtitle text.

        Args:
            content: Decoded file content without a BOM
            context: Encoding details from decoding, stored in the document context

        Returns:
            SubtitleDocument: Cues sorted by start time with per-record errors collected
        """
        pass

    @abstractmethod
    def compose(self, document : SubtitleDocument) -> str:
        """
        Compose a document into the format, using the document's context where it belongs to this format.

        Returns:
            str: Formatted subtitle content with the output newline style applied
        """
        pass
