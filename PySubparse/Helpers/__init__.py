import os

from PySubparse.SubtitleError import MalformedRecordError, SubtitleError

def GetFormatFromFilename(filename : str|None) -> str|None:
    """
    Deduce subtitle format (extension) from a filename
    """
    if not filename:
        return None
    _, extension = os.path.splitext(filename)
    return extension.lower() if extension else None

def NormaliseExtension(extension : str) -> str:
    extension = extension.strip().lower()
    return extension if extension.startswith('.') else f'.{extension}'

def FormatErrorMessages(errors : list[SubtitleError|str]) -> str:
    """
    Extract error messages from a list of errors
    """
    return ", ".join([ str(error) if isinstance(error, MalformedRecordError) else (error.message or str(error)) if isinstance(error, SubtitleError) else str(error) for error in errors ])

def GetOutputPath(filepath : str|None, format_extension : str|None = None, suffix : str|None = None) -> str|None:
    """
    Generate an output path for a converted subtitle file.

    Args:
        filepath: Input file path to base output path on
        format_extension: Target format extension (e.g., '.ass', '.srt'). If None, keeps the input extension.
        suffix: Added before the extension (defaults to "converted" when the extension is unchanged)

    Returns:
        str: Output path with format: "basename.suffix.extension"
        None: If filepath is None
    """
    if not filepath:
        return None

    directory = os.path.dirname(filepath)
    basename, current_extension = os.path.splitext(os.path.basename(filepath))

    target_extension = NormaliseExtension(format_extension) if format_extension else (current_extension or '.srt')

    if suffix is None and target_extension.lower() == current_extension.lower():
        suffix = "converted"

    if suffix and not basename.endswith(f".{suffix}"):
        basename = f"{basename}.{suffix}"

    return os.path.normpath(os.path.join(directory, f"{basename}{target_extension}"))

def GetCompanionPath(filepath : str, extension : str) -> str:
    """
    Path of a file with the same name and a different extension, e.g. the .sub stream of a VobSub .idx
    """
    basename, _ = os.path.splitext(filepath)
    return f"{basename}{NormaliseExtension(extension)}"
