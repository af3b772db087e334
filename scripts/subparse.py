import os
import logging
import sys

from argparse import ArgumentParser, Namespace

base_path = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, base_path)

from PySubparse import parse_subtitles, write_subtitles, default_registry
from PySubparse.Helpers import FormatErrorMessages, GetCompanionPath, GetFormatFromFilename, GetOutputPath
from PySubparse.Helpers.Localization import _, initialize_localization
from PySubparse.SubtitleDocument import SubtitleDocument
from PySubparse.SubtitleError import SubtitleError
from PySubparse.TimeSpan import TimeSpan

def InitLogger(debug : bool = False) -> None:
    """ Initialise console logging, the level can be set with the LOG_LEVEL environment variable """
    if debug:
        logging_level = logging.DEBUG
    else:
        level_name = os.getenv('LOG_LEVEL', 'INFO').upper()
        logging_level = getattr(logging, level_name, logging.INFO)

    logging.basicConfig(format='%(levelname)s: %(message)s', encoding='utf-8', level=logging_level)

    if debug:
        logging.debug("Debug logging enabled")

def CreateArgParser() -> ArgumentParser:
    pre_parser = ArgumentParser(add_help=False)
    pre_parser.add_argument('--list-formats', action='store_true')
    pre_args, _unknown = pre_parser.parse_known_args()
    if pre_args.list_formats:
        HandleFormatListing(pre_args)

    parser = ArgumentParser(description="Convert subtitles between formats, preserving everything that is not changed")
    parser.add_argument('input', help="Path to subtitle file (see --list-formats for supported formats)")
    parser.add_argument('-o', '--output', help="Output subtitle file path; format inferred from extension")
    parser.add_argument('-f', '--format', type=str, default=None, help="Output format extension if no output path is given (e.g. srt)")
    parser.add_argument('--list-formats', action='store_true', help="List supported subtitle formats and exit")
    parser.add_argument('--fps', type=float, default=None, help="Framerate of frame-based input (MicroDVD)")
    parser.add_argument('--outputfps', type=float, default=None, help="Framerate for frame-based output, defaults to --fps")
    parser.add_argument('--shift', type=int, default=0, help="Milliseconds to add to every cue (may be negative)")
    parser.add_argument('--packetsize', type=int, default=None, help="Maximum payload bytes per packet for VobSub output")
    parser.add_argument('--debug', action='store_true', help="Run with DEBUG log level")
    parser.add_argument('--language', type=str, default=os.getenv('SUBPARSE_LANGUAGE'), help="Language for log and error messages, if a catalogue is installed")
    return parser

def HandleFormatListing(args : Namespace) -> None:
    """Print supported subtitle formats and exit if requested."""
    if getattr(args, "list_formats", False):
        formats = default_registry().list_available_formats()
        print(f"Supported subtitle formats: {formats}")
        raise SystemExit(0)

def LoadDocument(args : Namespace) -> SubtitleDocument:
    with open(args.input, 'rb') as f:
        data = f.read()

    companion = None
    if GetFormatFromFilename(args.input) == '.idx':
        companion_path = GetCompanionPath(args.input, '.sub')
        logging.info(_("Reading image stream from {path}").format(path=companion_path))
        with open(companion_path, 'rb') as f:
            companion = f.read()

    document = parse_subtitles(data, filename=args.input, fps=args.fps, companion=companion)
    if document.errors:
        logging.warning(_("{count} records could not be parsed: {errors}").format(count=len(document.errors), errors=FormatErrorMessages(list(document.errors))))

    logging.info(_("Loaded {count} cues from {path}").format(count=len(document.cues), path=args.input))
    return document

def ShiftDocument(document : SubtitleDocument, milliseconds : int) -> None:
    """
    Shift every cue, clamping at zero
    """
    for index, cue in enumerate(document.cues):
        start = max(0, cue.start + milliseconds)
        document.replace_span(index, TimeSpan(start, start + cue.duration))

def SaveDocument(document : SubtitleDocument, args : Namespace) -> str:
    output_path = args.output or GetOutputPath(args.input, args.format)
    assert output_path is not None
    extension = GetFormatFromFilename(output_path) or '.srt'

    output = write_subtitles(document, extension, fps=args.outputfps or args.fps, packet_size=args.packetsize)

    if isinstance(output, tuple):
        idx_data, sub_data = output
        with open(output_path, 'wb') as f:
            f.write(idx_data)
        with open(GetCompanionPath(output_path, '.sub'), 'wb') as f:
            f.write(sub_data)
    else:
        with open(output_path, 'wb') as f:
            f.write(output)

    return output_path

if __name__ == "__main__":
    parser = CreateArgParser()
    args = parser.parse_args()

    InitLogger(args.debug)
    initialize_localization(args.language)

    try:
        document = LoadDocument(args)

        if args.shift:
            ShiftDocument(document, args.shift)

        output_path = SaveDocument(document, args)
        logging.info(_("Wrote {count} cues to {path}").format(count=len(document.cues), path=output_path))

    except SubtitleError as e:
        print("Error:", e)
        sys.exit(1)
