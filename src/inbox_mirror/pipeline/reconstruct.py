"""
Reassemble newly archived messages from a ``git log -p`` stream.

Each commit of the archive adds one file, so every hunk with added lines is
one complete message. Lines are consumed one at a time; only the message
currently being collected is held in memory.
"""

from __future__ import annotations
import re
from enum import Enum
from typing import Iterable, Iterator, List

__all__ = ["HunkState", "added_line_count", "iter_messages"]

# Added-line count is the last number before the closing "@@"; it is omitted
# when it equals one ("+5" instead of "+5,1").
_HUNK_RE = re.compile(r"^@@ -(?:\d+,)?\d+ \+(\d+)(?:,(\d+))? @@")


class HunkState(Enum):
    SEEKING = "seeking"
    COLLECTING = "collecting"


def added_line_count(line: str) -> int:
    """
    Return the number of added lines announced by a hunk header, or -1 if
    ``line`` is not a hunk header.
    """
    m = _HUNK_RE.match(line)
    if not m:
        return -1
    return int(m.group(2)) if m.group(2) is not None else 1


def iter_messages(lines: Iterable[str]) -> Iterator[str]:
    """
    Yield the raw text of every file added in a patch stream.

    Args:
        lines: Patch lines without trailing newlines

    Yields:
        One raw message per hunk with added lines, newline-terminated lines
    """
    state = HunkState.SEEKING
    remaining = 0
    buffer: List[str] = []

    for line in lines:
        if state is HunkState.SEEKING:
            if line.startswith("@@ "):
                count = added_line_count(line)
                if count > 0:
                    buffer = []
                    remaining = count
                    state = HunkState.COLLECTING
            continue

        if line.startswith("\\"):
            # "\ No newline at end of file" is not part of the content
            continue
        buffer.append(line[1:] + "\n")
        remaining -= 1
        if remaining == 0:
            state = HunkState.SEEKING
            yield "".join(buffer)
            buffer = []
