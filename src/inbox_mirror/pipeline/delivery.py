"""
Post a resolved message to GitHub and record where it went.
"""

from __future__ import annotations
from pathlib import Path
from typing import Optional

from inbox_mirror.github.client import GitHubGlue
from inbox_mirror.logging import logger
from inbox_mirror.mail.parser import ParsedMessage
from inbox_mirror.mail.render import DEFAULT_ARCHIVE_URL, DEFAULT_REPLY_TO_THIS_URL, render_comment
from inbox_mirror.pipeline.resolver import DeliveryMode, Resolution
from inbox_mirror.storage.records import MailRecord


def deliver(
    message: ParsedMessage,
    target: Resolution,
    github: GitHubGlue,
    *,
    work_dir: str | Path,
    archive_url: str = DEFAULT_ARCHIVE_URL,
    reply_to_this_url: str = DEFAULT_REPLY_TO_THIS_URL,
) -> MailRecord:
    """
    Render ``message`` and post it using the target's delivery mode.

    Exactly one GitHub call is made. The returned record carries the id of
    the new comment so later replies to this message thread under it.

    Args:
        message: Fully parsed message
        target: Merged delivery target
        github: GitHub API glue
        work_dir: Repository used to look up files touched by a commit
        archive_url: Base of the message permalink
        reply_to_this_url: Target of the "reply to this" hint

    Raises:
        GitHubError: If the comment cannot be posted
        ArchiveError: If the commit's files cannot be listed (commit mode)
    """
    comment = render_comment(message, archive_url=archive_url, reply_to_this_url=reply_to_this_url)
    mode = target.mode
    logger.info(
        f"Message-ID {message.message_id} (length {len(message.body)}) for PR {target.pull_request_url}, "
        f"commit {target.original_commit}, comment ID: {target.issue_comment_id} -> {mode.value}"
    )

    if mode is DeliveryMode.REPLY_TO_COMMENT:
        result = github.post_reply_to_comment(target.pull_request_url, target.issue_comment_id, comment)
    elif mode is DeliveryMode.COMMIT_COMMENT:
        result = github.post_commit_comment(target.pull_request_url, target.original_commit, work_dir, comment)
    else:
        result = github.post_thread_comment(target.pull_request_url, comment)

    comment_id: Optional[int] = result.get("id")
    return MailRecord(
        message_id=message.message_id,
        pull_request_url=target.pull_request_url,
        original_commit=target.original_commit,
        issue_comment_id=comment_id or target.issue_comment_id,
    )
