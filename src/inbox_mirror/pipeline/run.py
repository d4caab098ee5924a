# src/inbox_mirror/pipeline/run.py
"""
One mirror pass:
- Load configuration and set up logging
- Build archive reader, record store and GitHub glue
- Run a single scan (optionally restricted to one pull request)
"""

from __future__ import annotations
from typing import Optional

from inbox_mirror.config import Config, _init_clients, _load_env
from inbox_mirror.logging import logger, setup_logging
from inbox_mirror.pipeline.mirror import MailingListMirror
from inbox_mirror.pipeline.resolver import PullRequestFilter


def build_mirror(cfg: Config) -> MailingListMirror:
    """Wire a MailingListMirror from configuration."""
    archive, store, github = _init_clients(cfg)
    return MailingListMirror(
        archive,
        store,
        github,
        work_dir=cfg["NOTES_WORKDIR"],
        state_key=cfg["STATE_KEY"],
        initial_revision=cfg["INITIAL_REVISION"],
        archive_url=cfg["ARCHIVE_URL"],
        reply_to_this_url=cfg["REPLY_TO_THIS_URL"],
    )


def pr_filter_for(pull_request_url: Optional[str]) -> Optional[PullRequestFilter]:
    """Predicate accepting only ``pull_request_url`` (None accepts everything)."""
    if not pull_request_url:
        return None
    wanted = pull_request_url.rstrip("/")
    return lambda url: url.rstrip("/") == wanted


def main(pull_request_url: Optional[str] = None) -> bool:
    """
    Run one scan.

    Args:
        pull_request_url: Restrict delivery to this pull request; defaults
            to the PR_FILTER setting

    Returns:
        True if new archive history was processed
    """
    cfg = _load_env()
    setup_logging(
        log_level=cfg["LOG_LEVEL"],
        log_file=cfg["LOG_FILE"],
    )

    logger.info("Starting mailing-list mirror scan")
    try:
        mirror = build_mirror(cfg)
        changed = mirror.scan(pr_filter_for(pull_request_url or cfg["PR_FILTER"]))
    except Exception as e:
        logger.exception(f"Mirror scan failed: {e}")
        raise

    if not changed:
        logger.info("No new messages in the archive")
    return changed


if __name__ == "__main__":
    main()
