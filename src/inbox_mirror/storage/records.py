"""
Persisted record types.

Both are stored as JSON with camelCase keys so that records written by
earlier mirror deployments stay readable.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class MailRecord:
    """Where a mailing-list message ended up on GitHub."""
    message_id: str
    pull_request_url: str
    original_commit: Optional[str] = None
    issue_comment_id: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MailRecord":
        return cls(
            message_id=data.get("messageID", ""),
            pull_request_url=data.get("pullRequestURL", ""),
            original_commit=data.get("originalCommit") or None,
            issue_comment_id=data.get("issueCommentId") or None,
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "messageID": self.message_id,
            "pullRequestURL": self.pull_request_url,
        }
        if self.original_commit:
            out["originalCommit"] = self.original_commit
        if self.issue_comment_id:
            out["issueCommentId"] = self.issue_comment_id
        return out


@dataclass
class MirrorState:
    """Scan cursor: the last archive revision whose messages were all handled."""
    latest_revision: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "MirrorState":
        return cls(latest_revision=(data or {}).get("latestRevision") or None)

    def to_dict(self) -> Dict[str, Any]:
        return {"latestRevision": self.latest_revision} if self.latest_revision else {}
