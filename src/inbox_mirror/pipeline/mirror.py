"""
Mailing-list → GitHub mirror scan.

One ``scan()`` call:
- Load the cursor (last archive revision fully handled)
- Resolve the archive head; stop if nothing arrived
- Stream the patch of (cursor, head] and rebuild each new message
- Resolve each message against the records of the messages it references
- Post it to the pull request and record where it went
- Advance and persist the cursor
"""

from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Set

import requests

from inbox_mirror.archive.public_inbox import Archive
from inbox_mirror.git import ArchiveError
from inbox_mirror.github.client import GitHubError, GitHubGlue
from inbox_mirror.logging import logger
from inbox_mirror.mail.parser import MessageParseError, parse_identity, parse_message
from inbox_mirror.mail.render import DEFAULT_ARCHIVE_URL, DEFAULT_REPLY_TO_THIS_URL
from inbox_mirror.pipeline.delivery import deliver
from inbox_mirror.pipeline.reconstruct import iter_messages
from inbox_mirror.pipeline.resolver import PullRequestFilter, resolve
from inbox_mirror.storage.keys import hash_key
from inbox_mirror.storage.local_state import MirrorStore
from inbox_mirror.storage.records import MirrorState

STATE_KEY = "git@vger.kernel.org <-> GitGitGadget"
# Last public-inbox/git commit before the first mail GitGitGadget ever sent
INITIAL_REVISION = "cf3590b3a1ce08a52b01142307b8fcc089acb6a6"


@dataclass
class ScanStats:
    messages: int = 0
    delivered: int = 0
    skipped: int = 0
    unparsable: int = 0
    failed: int = 0


class MailingListMirror:
    """
    Mirrors new archive messages onto the pull requests they belong to.

    Args:
        archive: Message archive (head resolution + patch streaming)
        store: Record store holding the cursor and per-message records
        github: GitHub API glue
        work_dir: Repository used to map commits to touched files
        state_key: Reserved key the cursor is stored under
        initial_revision: Cursor used when no state has been stored yet
        archive_url: Base of message permalinks
        reply_to_this_url: Target of the "reply to this" hint
    """

    def __init__(
        self,
        archive: Archive,
        store: MirrorStore,
        github: GitHubGlue,
        *,
        work_dir: str | Path,
        state_key: str = STATE_KEY,
        initial_revision: str = INITIAL_REVISION,
        archive_url: str = DEFAULT_ARCHIVE_URL,
        reply_to_this_url: str = DEFAULT_REPLY_TO_THIS_URL,
    ) -> None:
        self.archive = archive
        self.store = store
        self.github = github
        self.work_dir = work_dir
        self.state_key = state_key
        self.initial_revision = initial_revision
        self.archive_url = archive_url
        self.reply_to_this_url = reply_to_this_url
        self.last_stats: Optional[ScanStats] = None

    def load_state(self) -> MirrorState:
        """Read the cursor; a fresh deployment starts at the initial revision."""
        state = MirrorState.from_dict(self.store.get(self.state_key))
        if not state.latest_revision:
            state.latest_revision = self.initial_revision
        return state

    def scan(self, pr_filter: Optional[PullRequestFilter] = None) -> bool:
        """
        Mirror every message that arrived since the last scan.

        Args:
            pr_filter: Optional predicate over pull request URLs; messages
                resolving to a rejected URL are not delivered

        Returns:
            False if the archive had nothing new (nothing was touched),
            True once the new history was processed and the cursor persisted

        Raises:
            StorageError: Record store failure; the cursor is not advanced
            ArchiveError: Archive could not be read; the cursor is not advanced
        """
        state = self.load_state()
        head = self.archive.resolve_head()
        if head == state.latest_revision:
            logger.debug(f"[CURSOR] No new messages (at {head})")
            return False

        known = self.store.known_digests()
        stats = ScanStats()
        logger.info(f"[CURSOR] Scanning {state.latest_revision}..{head} ({len(known)} known messages)")

        for raw in iter_messages(self.archive.stream_diff(state.latest_revision, head)):
            stats.messages += 1
            self._handle(raw, known, pr_filter, stats)

        old = state.latest_revision
        state.latest_revision = head
        self.store.set(self.state_key, state.to_dict(), force=True)
        self.last_stats = stats
        logger.info(
            f"[CURSOR] Updated: {old} -> {head}; messages={stats.messages}, delivered={stats.delivered}, "
            f"skipped={stats.skipped}, unparsable={stats.unparsable}, failed={stats.failed}"
        )
        return True

    def _handle(
        self,
        raw: str,
        known: Set[str],
        pr_filter: Optional[PullRequestFilter],
        stats: ScanStats,
    ) -> None:
        try:
            message_id, references = parse_identity(raw)
        except MessageParseError as e:
            stats.unparsable += 1
            logger.warning(f"{e}: skipping (length {len(raw)})")
            return

        target = resolve(message_id, references, known, self.store, pr_filter)
        if target is None:
            stats.skipped += 1
            return

        try:
            message = parse_message(raw)
        except MessageParseError as e:
            stats.unparsable += 1
            logger.warning(f"{e}: skipping")
            return

        try:
            record = deliver(
                message,
                target,
                self.github,
                work_dir=self.work_dir,
                archive_url=self.archive_url,
                reply_to_this_url=self.reply_to_this_url,
            )
        except (GitHubError, ArchiveError, requests.RequestException) as e:
            # No retry queue: the cursor moves past this message at the end of the scan
            stats.failed += 1
            logger.error(f"Failed to mirror {message_id} to {target.pull_request_url}: {e}")
            return

        self.store.set(message_id, record.to_dict())
        known.add(hash_key(message_id))
        stats.delivered += 1
