from __future__ import annotations
import re
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import requests

from inbox_mirror.git import git
from inbox_mirror.logging import logger
from inbox_mirror.utils.rate_limiter import RateLimiter

_PR_URL_RE = re.compile(r"^https://github\.com/([^/]+)/([^/]+)/pull/(\d+)/?$")


class GitHubError(Exception):
    """Raised when a GitHub API call fails or its input cannot be mapped to one."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def parse_pull_request_url(url: str) -> Tuple[str, str, int]:
    """
    Split ``https://github.com/<owner>/<repo>/pull/<n>`` into its parts.

    Raises:
        GitHubError: If the URL is not a pull request URL
    """
    m = _PR_URL_RE.match(url.strip())
    if not m:
        raise GitHubError(f"Not a pull request URL: {url}")
    return m.group(1), m.group(2), int(m.group(3))


class GitHubGlue:
    """
    Posts mirrored messages to pull requests.

    Thin wrapper over the REST API using a shared ``requests.Session``.
    Every call that creates content goes through the rate limiter. Failures
    are raised, never retried: a message whose delivery failed is skipped
    for the current scan.
    """

    def __init__(
        self,
        token: str,
        api_url: str = "https://api.github.com",
        rate_limiter: Optional[RateLimiter] = None,
        session: Optional[requests.Session] = None,
        timeout: float = 30.0,
    ) -> None:
        self.api = api_url.rstrip("/")
        self.rate_limiter = rate_limiter
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": f"token {token}",
            "Accept": "application/vnd.github+json",
            "User-Agent": "inbox-mirror/0.1",
        })

    def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        if self.rate_limiter:
            self.rate_limiter.acquire()
        url = f"{self.api}{path}"
        try:
            r = self.session.post(url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"POST {path} failed: {e}")
            raise GitHubError(f"POST {path} failed: {e}") from e
        if r.status_code >= 300:
            raise GitHubError(
                f"POST {path} returned {r.status_code}: {r.text[:500]}",
                status_code=r.status_code,
            )
        return r.json()

    def post_thread_comment(self, pull_request_url: str, body: str) -> Dict[str, Any]:
        """Add a top-level comment to the pull request's conversation."""
        owner, repo, number = parse_pull_request_url(pull_request_url)
        result = self._post(f"/repos/{owner}/{repo}/issues/{number}/comments", {"body": body})
        logger.info(f"Commented on {pull_request_url}: {result.get('html_url')}")
        return result

    def post_reply_to_comment(
        self,
        pull_request_url: str,
        comment_id: int,
        body: str,
    ) -> Dict[str, Any]:
        """
        Reply to an existing comment.

        Review comments get a threaded reply. Conversation (issue) comments
        cannot be replied to on GitHub; the API answers 404 for them, in which
        case a new conversation comment linking the original one is posted.
        """
        owner, repo, number = parse_pull_request_url(pull_request_url)
        try:
            result = self._post(
                f"/repos/{owner}/{repo}/pulls/{number}/comments/{comment_id}/replies",
                {"body": body},
            )
        except GitHubError as e:
            if e.status_code != 404:
                raise
            logger.debug(f"Comment {comment_id} is not a review comment, replying in the conversation")
            linked = f"In reply to {pull_request_url}#issuecomment-{comment_id}\n\n{body}"
            return self.post_thread_comment(pull_request_url, linked)
        logger.info(f"Replied to comment {comment_id} on {pull_request_url}: {result.get('html_url')}")
        return result

    def post_commit_comment(
        self,
        pull_request_url: str,
        commit: str,
        work_dir: str | Path,
        body: str,
    ) -> Dict[str, Any]:
        """
        Comment on a commit of the pull request.

        The comment is anchored to the first file the commit touches, as
        listed by ``git diff --name-only`` in ``work_dir``.
        """
        owner, repo, number = parse_pull_request_url(pull_request_url)
        files = git(["diff", "--name-only", f"{commit}^..{commit}", "--"], work_dir)
        path = files.split("\n", 1)[0].strip()
        if not path:
            raise GitHubError(f"Commit {commit} touches no files; cannot anchor a review comment")
        result = self._post(
            f"/repos/{owner}/{repo}/pulls/{number}/comments",
            {"body": body, "commit_id": commit, "path": path, "subject_type": "file"},
        )
        logger.info(f"Commented on {commit} ({path}) in {pull_request_url}: {result.get('html_url')}")
        return result
