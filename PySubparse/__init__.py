"""
PySubparse - Format-preserving Subtitle Codecs

A Python library for loading, editing and writing SubStation Alpha, SubRip, MicroDVD and VobSub subtitles.
Everything the caller does not change is written back as it was read: styling codes, headers, comments and
unrecognised fields.

Basic Usage
-----------

# Parse an ASS file, shift every cue by two seconds and write it back
with open("movie.ass", "rb") as f:
    document = parse_styled_text(f.read())

for index, cue in enumerate(document.cues):
    document.replace_span(index, cue.span.shifted(2000))

with open("movie_shifted.ass", "wb") as f:
    f.write(write_styled_text(document))

# Convert to SubRip (style codes are dropped)
srt_data = write_time_indexed(document)

# Let the registry choose a parser from the filename or content
document = parse_subtitles(data, filename="movie.sub", fps=25)
"""
from __future__ import annotations

from PySubparse.Formats.MicroDVDFileHandler import MicroDVDFileHandler
from PySubparse.Formats.SrtFileHandler import SrtFileHandler
from PySubparse.Formats.SSAFileHandler import SSAFileHandler
from PySubparse.Formats.VobSubFileHandler import VobSubFileHandler
from PySubparse.PreservedContext import (
    IndexRecord,
    MicroDVDContext,
    PreservedContext,
    SrtContext,
    SSAContext,
    SSASection,
    SSAStyle,
    VobSubContext,
)
from PySubparse.SettingsType import SettingsType
from PySubparse.StyledText import BinaryData, FormatToken, PlainText, StyledText
from PySubparse.SubtitleCue import SubtitleCue
from PySubparse.SubtitleDocument import SubtitleDocument
from PySubparse.SubtitleError import (
    InvalidConfigurationError,
    MalformedRecordError,
    SubtitleEncodingError,
    SubtitleError,
    SubtitleParseError,
    TruncatedStreamError,
    UnsupportedFormatError,
)
from PySubparse.SubtitleFileHandler import SubtitleFileHandler
from PySubparse.SubtitleFormatRegistry import SubtitleFormatRegistry, default_registry
from PySubparse.TimeSpan import TimeSpan
from PySubparse.version import __version__

def parse_styled_text(data : bytes) -> SubtitleDocument:
    """
    Parse SubStation Alpha (SSA/ASS) subtitles.

    Parameters
    ----------
    data : bytes
        The file content.

    Returns
    -------
    SubtitleDocument
        The parsed cues with header sections, styles and comments preserved.
        Dialogue lines that could not be parsed are listed in `document.errors`.

    Raises
    ------
    SubtitleParseError
        If the file has no [Events] section or no valid events Format line.
    """
    return SSAFileHandler().parse_bytes(data)

def parse_time_indexed(data : bytes) -> SubtitleDocument:
    """
    Parse SubRip (SRT) subtitles. Malformed records are skipped and listed in `document.errors`.
    """
    return SrtFileHandler().parse_bytes(data)

def parse_frame_indexed(data : bytes, fps : float) -> SubtitleDocument:
    """
    Parse MicroDVD subtitles.

    Parameters
    ----------
    data : bytes
        The file content.

    fps : float
        Framerate used to convert frame numbers to milliseconds.

    Raises
    ------
    InvalidConfigurationError
        If the framerate is missing, zero, negative or not finite.

    Examples
    --------

    document = parse_frame_indexed(b"{12}{36}Hi\\n", fps=24)
    document.cues[0].span   # [500ms, 1500ms)
    """
    return MicroDVDFileHandler().parse_bytes(data, fps=fps)

def parse_bitmap_pair(idx_data : bytes, sub_data : bytes) -> SubtitleDocument:
    """
    Parse VobSub subtitles from the index file and the packetised image stream.

    Each cue carries the undecoded image payload as a single binary segment.
    Records whose packets are truncated or corrupt are skipped and listed in `document.errors`.
    """
    return VobSubFileHandler().parse_pair(idx_data, sub_data)

def write_styled_text(document : SubtitleDocument) -> bytes:
    """
    Write a document as SSA/ASS. Documents parsed from another format are written with a default header and style.

    Raises
    ------
    SubtitleEncodingError
        If a cue carries bitmap data or text that would not read back unchanged.
    """
    return SSAFileHandler().compose_bytes(document)

def write_time_indexed(document : SubtitleDocument) -> bytes:
    """
    Write a document as SubRip. Format tokens are dropped, cues are numbered from 1.
    """
    return SrtFileHandler().compose_bytes(document)

def write_frame_indexed(document : SubtitleDocument, fps : float) -> bytes:
    """
    Write a document as MicroDVD, converting cue times to frames at the given framerate.
    """
    return MicroDVDFileHandler().compose_bytes(document, fps=fps)

def write_bitmap_pair(document : SubtitleDocument, packet_size : int|None = None) -> tuple[bytes, bytes]:
    """
    Write a document as a VobSub index and stream.

    Parameters
    ----------
    document : SubtitleDocument
        Every cue must carry exactly one binary payload.

    packet_size : int|None
        Maximum payload bytes per physical packet, defaults to a full DVD sector.

    Returns
    -------
    tuple[bytes, bytes]
        The index file and the stream, with offsets recomputed for the new stream.
    """
    return VobSubFileHandler().compose_pair(document, packet_size=packet_size)

def parse_subtitles(
    data : bytes,
    extension : str|None = None,
    filename : str|None = None,
    *,
    fps : float|None = None,
    companion : bytes|None = None,
    registry : SubtitleFormatRegistry|None = None,
) -> SubtitleDocument:
    """
    Parse subtitles in any supported format.

    Parameters
    ----------
    data : bytes
        The file content (the index file for VobSub).

    extension : str|None
        Format to parse as, e.g. '.srt'. Deduced from the filename or the content if not given.

    filename : str|None
        Used to deduce the format from its extension.

    fps : float|None
        Framerate, required for frame-based formats.

    companion : bytes|None
        The image stream, required for VobSub.

    registry : SubtitleFormatRegistry|None
        Registry of handlers to choose from. Defaults to all built-in formats.

    Raises
    ------
    UnsupportedFormatError
        If the format is unknown or cannot be detected.
    """
    registry = registry or default_registry()

    if extension is None and filename is not None:
        extension = registry.get_format_from_filename(filename)

    if extension is None:
        extension = registry.detect_format(data)

    handler = registry.create_handler(extension)
    if isinstance(handler, MicroDVDFileHandler):
        return handler.parse_bytes(data, fps=fps)
    if isinstance(handler, VobSubFileHandler):
        return handler.parse_bytes(data, companion=companion)
    return handler.parse_bytes(data)

def write_subtitles(
    document : SubtitleDocument,
    extension : str,
    *,
    fps : float|None = None,
    packet_size : int|None = None,
    registry : SubtitleFormatRegistry|None = None,
) -> bytes|tuple[bytes, bytes]:
    """
    Write a document in the format registered for an extension.

    VobSub returns a pair of (index, stream). Context from another format is discarded.
    """
    registry = registry or default_registry()
    handler = registry.create_handler(extension)
    if isinstance(handler, MicroDVDFileHandler):
        return handler.compose_bytes(document, fps=fps)
    if isinstance(handler, VobSubFileHandler):
        return handler.compose_pair(document, packet_size=packet_size)
    return handler.compose_bytes(document)

__all__ = [
    '__version__',
    'BinaryData',
    'FormatToken',
    'IndexRecord',
    'InvalidConfigurationError',
    'MalformedRecordError',
    'MicroDVDContext',
    'MicroDVDFileHandler',
    'PlainText',
    'PreservedContext',
    'SettingsType',
    'SrtContext',
    'SrtFileHandler',
    'SSAContext',
    'SSAFileHandler',
    'SSASection',
    'SSAStyle',
    'StyledText',
    'SubtitleCue',
    'SubtitleDocument',
    'SubtitleEncodingError',
    'SubtitleError',
    'SubtitleFileHandler',
    'SubtitleFormatRegistry',
    'SubtitleParseError',
    'TimeSpan',
    'TruncatedStreamError',
    'UnsupportedFormatError',
    'VobSubContext',
    'VobSubFileHandler',
    'default_registry',
    'parse_bitmap_pair',
    'parse_frame_indexed',
    'parse_styled_text',
    'parse_subtitles',
    'parse_time_indexed',
    'write_bitmap_pair',
    'write_frame_indexed',
    'write_styled_text',
    'write_subtitles',
    'write_time_indexed',
]
