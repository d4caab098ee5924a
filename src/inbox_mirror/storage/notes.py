"""
Git-notes backed record store.

Every key is turned into a blob (``key + "\\n"``) inside the notes work dir
and the JSON value is attached to that blob as a note. The notes ref is an
ordinary git ref, so writes are durable, ordered, and can be pushed and
fetched like any other history.
"""

from __future__ import annotations
import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Tuple

from inbox_mirror.git import ArchiveError, git, ref_exists
from inbox_mirror.logging import logger
from inbox_mirror.storage.keys import hash_key
from inbox_mirror.storage.local_state import StorageError

# Messages git prints when a lookup simply has nothing to return
_MISSING_NOTE_MARKERS = ("no note found", "failed to resolve")


class GitNotesStore:
    """
    Implementation of the MirrorStore protocol on top of ``git notes``.

    Args:
        work_dir: Repository holding the notes ref
        notes_ref: Fully qualified notes ref (e.g. ``refs/notes/gitgitgadget``)
        identity: Optional (name, email) used for the notes commits; when
            omitted the repository's own ``user.name`` / ``user.email`` apply
    """

    def __init__(
        self,
        work_dir: str | Path,
        notes_ref: str = "refs/notes/gitgitgadget",
        identity: Optional[Tuple[str, str]] = None,
    ) -> None:
        self.work_dir = Path(work_dir)
        self.notes_ref = notes_ref
        self._config_args: List[str] = []
        if identity:
            name, email = identity
            self._config_args = ["-c", f"user.name={name}", "-c", f"user.email={email}"]

    def _notes(self, *args: str, stdin: Optional[str] = None) -> str:
        return git(
            [*self._config_args, "notes", f"--ref={self.notes_ref}", *args],
            self.work_dir,
            stdin=stdin,
        )

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        """
        Return the JSON value stored for ``key``, or None if there is none.

        Raises:
            StorageError: If git fails for any other reason, or the note is
                not valid JSON
        """
        digest = hash_key(key)
        try:
            raw = self._notes("show", digest)
        except ArchiveError as e:
            if any(marker in str(e) for marker in _MISSING_NOTE_MARKERS):
                return None
            logger.error(f"Failed to read note for '{key}': {e}")
            raise StorageError(f"Failed to read note for '{key}': {e}") from e

        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise StorageError(f"Note for '{key}' ({digest}) is not valid JSON: {e}") from e

    def set(self, key: str, value: Dict[str, Any], force: bool = False) -> None:
        """
        Store ``value`` for ``key``.

        Args:
            key: Record key (message-id or state key)
            value: JSON-serialisable mapping
            force: Overwrite an existing note instead of failing

        Raises:
            StorageError: If the blob or note cannot be written
        """
        payload = json.dumps(value)
        try:
            digest = git(
                ["hash-object", "-t", "blob", "-w", "--stdin"],
                self.work_dir,
                stdin=f"{key}\n",
            ).strip()
            args = ["add", "-m", payload]
            if force:
                args.append("-f")
            self._notes(*args, digest)
        except ArchiveError as e:
            logger.error(f"Failed to write note for '{key}': {e}")
            raise StorageError(f"Failed to write note for '{key}': {e}") from e
        logger.debug(f"Stored note {digest} for '{key}'")

    def known_digests(self) -> Set[str]:
        """
        List the digests of every stored key.

        Note paths in the notes tree may use fan-out directories
        (``ab/cdef...``); the slashes are dropped to recover the digest.
        """
        try:
            if not ref_exists(self.notes_ref, self.work_dir):
                return set()
            listing = git(["ls-tree", "-r", "--name-only", f"{self.notes_ref}:"], self.work_dir)
        except ArchiveError as e:
            logger.error(f"Failed to list notes in {self.notes_ref}: {e}")
            raise StorageError(f"Failed to list notes in {self.notes_ref}: {e}") from e
        return {path.replace("/", "") for path in listing.splitlines() if path}
