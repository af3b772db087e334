import math
from datetime import timedelta

from PySubparse.Helpers.Localization import _
from PySubparse.SubtitleError import InvalidConfigurationError

def ValidateFramerate(fps : float|int|str|None) -> float:
    """
    Check that a framerate is a positive finite number and return it as a float
    """
    if fps is None:
        raise InvalidConfigurationError(_("A framerate is required for frame-based subtitles"))

    if isinstance(fps, bool):
        raise InvalidConfigurationError(_("Invalid framerate: {fps}").format(fps=fps))

    try:
        value = float(fps)
    except (TypeError, ValueError) as e:
        raise InvalidConfigurationError(_("Invalid framerate: {fps}").format(fps=fps), e)

    if not math.isfinite(value) or value <= 0:
        raise InvalidConfigurationError(_("Framerate must be greater than zero, got {fps}").format(fps=fps))

    return value

def TimeToFrames(milliseconds : int, fps : float) -> int:
    """
    Convert a time in milliseconds to the nearest frame number (half a frame rounds up)
    """
    fps = ValidateFramerate(fps)
    return math.floor(milliseconds * fps / 1000.0 + 0.5)

def FramesToTime(frames : int, fps : float) -> int:
    """
    Convert a frame number to the nearest millisecond.

    Half a millisecond rounds down, which keeps FramesToTime(TimeToFrames(t)) within one frame of t.
    """
    fps = ValidateFramerate(fps)
    return math.ceil(frames * 1000.0 / fps - 0.5)

def FrameDuration(fps : float) -> float:
    """
    Duration of one frame in milliseconds
    """
    return 1000.0 / ValidateFramerate(fps)

def TimedeltaToMilliseconds(value : timedelta) -> int:
    return (value.days * 86400 + value.seconds) * 1000 + value.microseconds // 1000

def MillisecondsToTimedelta(milliseconds : int) -> timedelta:
    return timedelta(milliseconds=milliseconds)

def SplitMilliseconds(milliseconds : int) -> tuple[int, int, int, int]:
    """
    Split a time into (hours, minutes, seconds, milliseconds) components
    """
    hours, remainder = divmod(milliseconds, 3600000)
    minutes, remainder = divmod(remainder, 60000)
    seconds, millis = divmod(remainder, 1000)
    return hours, minutes, seconds, millis
