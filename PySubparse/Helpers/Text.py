import regex

_LINE_BREAK_PATTERN = regex.compile(r'\r\n|\n|\r')

def DetectNewline(content : str, default : str = '\n') -> str:
    """
    Return the line ending used by the first line break in the content
    """
    match = _LINE_BREAK_PATTERN.search(content)
    return match.group(0) if match else default

def SplitLines(content : str) -> tuple[list[str], bool]:
    """
    Split content into lines on any line ending.

    Returns the lines and whether the content ended with a line break.
    Unlike str.splitlines, only CR and LF are treated as line breaks.
    """
    if not content:
        return [], False

    lines = _LINE_BREAK_PATTERN.split(content)
    trailing_newline = lines[-1] == ''
    if trailing_newline:
        lines.pop()
    return lines, trailing_newline

def StripBOM(content : str) -> tuple[str, bool]:
    """
    Remove a leading byte order mark, reporting whether one was present
    """
    if content.startswith('\ufeff'):
        return content[1:], True
    return content, False

def MergeLayout(layout : list[str|int], record_ids : list[int|None], insert_at : int|None = None) -> list[str|int]:
    """
    Place cues among the preserved lines of a file.

    Layout entries are raw lines or record numbers. A cue whose record number appears in the layout
    takes that record's place, and any other cue follows the cue before it in document order.
    Cues that come before every placed cue go in at layout position insert_at, or at the end.
    Records that no cue claims are dropped.

    Returns:
        list[str|int]: Raw lines and indexes into record_ids, in output order
    """
    slots = { entry for entry in layout if isinstance(entry, int) }
    claimed : dict[int, int] = {}
    followers : dict[int|None, list[int]] = {}

    anchor : int|None = None
    for cue_index, record in enumerate(record_ids):
        if record is not None and record in slots and record not in claimed:
            claimed[record] = cue_index
            anchor = cue_index
        else:
            followers.setdefault(anchor, []).append(cue_index)

    leading = followers.pop(None, [])
    if insert_at is None or insert_at >= len(layout):
        insert_at = len(layout)

    merged : list[str|int] = []
    for position, entry in enumerate(layout):
        if position == insert_at:
            merged.extend(leading)

        if isinstance(entry, int):
            if entry in claimed:
                cue_index = claimed[entry]
                merged.append(cue_index)
                merged.extend(followers.get(cue_index, []))
        else:
            merged.append(entry)

    if insert_at == len(layout):
        merged.extend(leading)

    return merged
