"""
Read access to a public-inbox (v1) archive.

The archive is a git repository where every commit adds exactly one file
holding one raw message, so the patch of a commit range is the list of
messages that arrived in that range.
"""

from __future__ import annotations
from pathlib import Path
from typing import Iterator, Protocol

from inbox_mirror.git import rev_parse, stream_git
from inbox_mirror.logging import logger


class Archive(Protocol):
    """What the mirror needs from a message archive."""
    def resolve_head(self) -> str: ...
    def stream_diff(self, since: str, until: str) -> Iterator[str]: ...


class PublicInboxArchive:
    """
    Mailing-list archive backed by a local public-inbox clone.

    Args:
        git_dir: Path to the clone (bare or not)
        branch: Branch that receives new messages
    """

    def __init__(self, git_dir: str | Path, branch: str = "master") -> None:
        self.git_dir = Path(git_dir)
        self.branch = branch

    def resolve_head(self) -> str:
        """Return the current tip of the tracked branch."""
        head = rev_parse(self.branch, self.git_dir)
        logger.debug(f"Archive {self.git_dir} {self.branch} is at {head}")
        return head

    def stream_diff(self, since: str, until: str) -> Iterator[str]:
        """
        Yield the patch lines of ``since..until`` oldest commit first.

        Args:
            since: Last revision already handled (excluded)
            until: Revision to stop at (included)
        """
        return stream_git(
            ["log", "-p", "--reverse", "--no-color", "--no-renames", f"{since}..{until}"],
            self.git_dir,
        )
