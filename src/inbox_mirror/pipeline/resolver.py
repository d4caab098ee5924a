"""
Decide whether, where and how a mailing-list message gets mirrored.

Resolution is driven purely by mail-threading headers: a message is mirrored
only when one of the messages it references was mirrored before (or is a
cover letter GitGitGadget sent for a pull request). The records of those
references are merged into one delivery target.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, List, Optional, Set, Tuple

from inbox_mirror.logging import logger
from inbox_mirror.storage.keys import hash_key
from inbox_mirror.storage.local_state import MirrorStore
from inbox_mirror.storage.records import MailRecord

__all__ = [
    "COVER_LETTER_PREFIX",
    "DeliveryMode",
    "Resolution",
    "is_cover_letter",
    "merge_records",
    "select_mode",
    "resolve",
]

PullRequestFilter = Callable[[str], bool]

# Cover letters are recorded with the tip commit of the series, which is not
# the commit any reply to the cover letter talks about.
COVER_LETTER_PREFIX = "pull."


class DeliveryMode(Enum):
    REPLY_TO_COMMENT = "reply"
    COMMIT_COMMENT = "commit"
    THREAD_COMMENT = "thread"


@dataclass(frozen=True)
class Resolution:
    """Merged delivery target for one message."""
    pull_request_url: str
    original_commit: Optional[str] = None
    issue_comment_id: Optional[int] = None

    @property
    def mode(self) -> DeliveryMode:
        return select_mode(self)


def is_cover_letter(message_id: str) -> bool:
    return message_id.startswith(COVER_LETTER_PREFIX)


def merge_records(candidates: Iterable[Tuple[str, MailRecord]]) -> Optional[Resolution]:
    """
    Merge the records of known references into the most complete target.

    Precedence, applied candidate by candidate in reference order:
      1. ``pull_request_url`` comes from the first candidate that has one;
         candidates bound to another pull request are ignored afterwards
      2. a missing ``original_commit`` is taken from a candidate that is not
         a cover letter
      3. a missing ``issue_comment_id`` is taken from any candidate

    Fields are only ever filled in, never replaced.

    Args:
        candidates: (referenced message-id, its record) pairs

    Returns:
        The merged target, or None if no candidate names a pull request
    """
    pull_request_url: Optional[str] = None
    original_commit: Optional[str] = None
    issue_comment_id: Optional[int] = None

    for reference, record in candidates:
        if not record.pull_request_url:
            continue
        if pull_request_url is None:
            pull_request_url = record.pull_request_url
        elif record.pull_request_url != pull_request_url:
            # Cross-PR candidates are ignored on purpose: their commit or comment belongs elsewhere
            continue
        if original_commit is None and record.original_commit and not is_cover_letter(reference):
            original_commit = record.original_commit
        if issue_comment_id is None and record.issue_comment_id:
            issue_comment_id = record.issue_comment_id

    if pull_request_url is None:
        return None
    return Resolution(pull_request_url, original_commit, issue_comment_id)


def select_mode(target: Resolution) -> DeliveryMode:
    """Known comment beats known commit beats the general conversation."""
    if target.issue_comment_id:
        return DeliveryMode.REPLY_TO_COMMENT
    if target.original_commit:
        return DeliveryMode.COMMIT_COMMENT
    return DeliveryMode.THREAD_COMMENT


def resolve(
    message_id: str,
    references: List[str],
    known: Set[str],
    store: MirrorStore,
    pr_filter: Optional[PullRequestFilter] = None,
) -> Optional[Resolution]:
    """
    Resolve where a message should be mirrored to.

    Args:
        message_id: Id of the message being considered
        references: Ids it refers to, in header order
        known: Digests of every message-id with a stored record
        store: Record store to read reference records from
        pr_filter: Optional predicate; a False result vetoes delivery

    Returns:
        The delivery target, or None if the message must be skipped

    Raises:
        StorageError: If a reference record cannot be read
    """
    if hash_key(message_id) in known:
        logger.debug(f"Already mirrored: {message_id}")
        return None

    candidates: List[Tuple[str, MailRecord]] = []
    for reference in references:
        if hash_key(reference) not in known:
            continue
        data = store.get(reference)
        if data:
            candidates.append((reference, MailRecord.from_dict(data)))

    target = merge_records(candidates)
    if target is None:
        return None

    if pr_filter is not None and not pr_filter(target.pull_request_url):
        logger.debug(f"Filtered out {message_id} for {target.pull_request_url}")
        return None
    return target
