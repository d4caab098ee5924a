"""
Configuration management with validation and storage backend selection.
"""

from __future__ import annotations
import os
from pathlib import Path
from typing import Optional, Tuple, TypedDict

from dotenv import load_dotenv

from inbox_mirror.archive.public_inbox import PublicInboxArchive
from inbox_mirror.github.client import GitHubGlue
from inbox_mirror.logging import logger
from inbox_mirror.mail.render import DEFAULT_ARCHIVE_URL, DEFAULT_REPLY_TO_THIS_URL
from inbox_mirror.pipeline.mirror import INITIAL_REVISION, STATE_KEY
from inbox_mirror.storage.local_state import MirrorStore
from inbox_mirror.storage.notes import GitNotesStore
from inbox_mirror.utils.rate_limiter import RateLimiter


class Config(TypedDict):
    """Typed configuration dictionary."""
    INBOX_GIT_DIR: str
    INBOX_BRANCH: str
    NOTES_WORKDIR: str
    NOTES_REF: str
    STATE_KEY: str
    INITIAL_REVISION: str
    ARCHIVE_URL: str
    REPLY_TO_THIS_URL: str
    GITHUB_TOKEN: str
    GITHUB_API_URL: str
    GITHUB_RATE_LIMIT_PER_MINUTE: int
    PR_FILTER: Optional[str]
    USE_REDIS: bool
    REDIS_HOST: str
    REDIS_PORT: int
    REDIS_DB: int
    REDIS_PREFIX: str
    LOG_LEVEL: str
    LOG_FILE: Optional[str]
    SCHEDULER_ENABLED: bool
    SCHEDULER_INTERVAL: int


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("true", "1", "yes")


def _load_env() -> Config:
    """
    Load environment variables and return validated configuration.

    Required vars:
      - INBOX_GIT_DIR (public-inbox clone)
      - NOTES_WORKDIR (repository holding the notes ref)
      - GITHUB_TOKEN

    Optional vars with defaults:
      - INBOX_BRANCH (default: "master")
      - NOTES_REF (default: "refs/notes/gitgitgadget")
      - STATE_KEY, INITIAL_REVISION (cursor location and starting point)
      - ARCHIVE_URL (default: "https://public-inbox.org/git/")
      - REPLY_TO_THIS_URL
      - GITHUB_API_URL (default: "https://api.github.com")
      - GITHUB_RATE_LIMIT_PER_MINUTE (default: 60)
      - PR_FILTER (default: none; mirror only to this pull request)
      - USE_REDIS, REDIS_HOST, REDIS_PORT, REDIS_DB, REDIS_PREFIX
      - LOG_LEVEL (default: "INFO"), LOG_FILE (default: None)
      - SCHEDULER_ENABLED (default: "false"), SCHEDULER_INTERVAL (default: 300)
    """
    load_dotenv()

    inbox_git_dir = os.getenv("INBOX_GIT_DIR", "").strip()
    notes_workdir = os.getenv("NOTES_WORKDIR", "").strip()
    github_token = os.getenv("GITHUB_TOKEN", "").strip()

    if not inbox_git_dir:
        raise ValueError("INBOX_GIT_DIR environment variable is required")
    if not notes_workdir:
        raise ValueError("NOTES_WORKDIR environment variable is required")
    if not github_token:
        raise ValueError("GITHUB_TOKEN environment variable is required")

    if not Path(inbox_git_dir).is_dir():
        raise FileNotFoundError(f"INBOX_GIT_DIR not found: {inbox_git_dir}")
    if not Path(notes_workdir).is_dir():
        raise FileNotFoundError(f"NOTES_WORKDIR not found: {notes_workdir}")

    notes_ref = os.getenv("NOTES_REF", "refs/notes/gitgitgadget").strip()
    if not notes_ref.startswith("refs/"):
        raise ValueError(f"NOTES_REF must be a fully qualified ref, got {notes_ref!r}")

    rate_limit = int(os.getenv("GITHUB_RATE_LIMIT_PER_MINUTE", "60"))
    if not (1 <= rate_limit <= 1000):
        raise ValueError(
            f"GITHUB_RATE_LIMIT_PER_MINUTE must be between 1 and 1000, got {rate_limit}"
        )

    redis_port = int(os.getenv("REDIS_PORT", "6379"))
    if not (1 <= redis_port <= 65535):
        raise ValueError(f"REDIS_PORT must be between 1 and 65535, got {redis_port}")

    scheduler_interval = int(os.getenv("SCHEDULER_INTERVAL", "300"))
    if scheduler_interval < 60:
        raise ValueError(
            f"SCHEDULER_INTERVAL must be at least 60 seconds, got {scheduler_interval}"
        )

    archive_url = os.getenv("ARCHIVE_URL", DEFAULT_ARCHIVE_URL).strip()
    if not archive_url.endswith("/"):
        archive_url += "/"

    cfg: Config = {
        "INBOX_GIT_DIR": inbox_git_dir,
        "INBOX_BRANCH": os.getenv("INBOX_BRANCH", "master").strip(),
        "NOTES_WORKDIR": notes_workdir,
        "NOTES_REF": notes_ref,
        "STATE_KEY": os.getenv("STATE_KEY", STATE_KEY),
        "INITIAL_REVISION": os.getenv("INITIAL_REVISION", INITIAL_REVISION).strip(),
        "ARCHIVE_URL": archive_url,
        "REPLY_TO_THIS_URL": os.getenv("REPLY_TO_THIS_URL", DEFAULT_REPLY_TO_THIS_URL).strip(),
        "GITHUB_TOKEN": github_token,
        "GITHUB_API_URL": os.getenv("GITHUB_API_URL", "https://api.github.com").strip(),
        "GITHUB_RATE_LIMIT_PER_MINUTE": rate_limit,
        "PR_FILTER": os.getenv("PR_FILTER", "").strip() or None,
        "USE_REDIS": _flag("USE_REDIS"),
        "REDIS_HOST": os.getenv("REDIS_HOST", "localhost").strip(),
        "REDIS_PORT": redis_port,
        "REDIS_DB": int(os.getenv("REDIS_DB", "0")),
        "REDIS_PREFIX": os.getenv("REDIS_PREFIX", "inbox-mirror:"),
        "LOG_LEVEL": os.getenv("LOG_LEVEL", "INFO").strip().upper(),
        "LOG_FILE": os.getenv("LOG_FILE", "").strip() or None,
        "SCHEDULER_ENABLED": _flag("SCHEDULER_ENABLED"),
        "SCHEDULER_INTERVAL": scheduler_interval,
    }

    logger.debug(
        f"Configuration loaded: INBOX_GIT_DIR={inbox_git_dir}, NOTES_REF={notes_ref}, "
        f"USE_REDIS={cfg['USE_REDIS']}, LOG_LEVEL={cfg['LOG_LEVEL']}"
    )
    return cfg


def _init_clients(cfg: Config) -> Tuple[PublicInboxArchive, MirrorStore, GitHubGlue]:
    """
    Build the archive reader, record store and GitHub glue.

    Returns:
        Tuple of (PublicInboxArchive, MirrorStore, GitHubGlue)
    """
    archive = PublicInboxArchive(cfg["INBOX_GIT_DIR"], branch=cfg["INBOX_BRANCH"])
    store = _init_storage(cfg)
    github = GitHubGlue(
        cfg["GITHUB_TOKEN"],
        api_url=cfg["GITHUB_API_URL"],
        rate_limiter=RateLimiter(
            max_calls=cfg["GITHUB_RATE_LIMIT_PER_MINUTE"],
            time_window_seconds=60,
        ),
    )
    logger.info("Clients initialized successfully")
    return archive, store, github


def _init_storage(cfg: Config) -> MirrorStore:
    """
    Pick the record store.

    Records live in git notes unless USE_REDIS is set. There is no silent
    fallback: losing track of what was delivered would repost every message.
    """
    if cfg["USE_REDIS"]:
        from inbox_mirror.storage.redis_kv import RedisMirrorStore
        store = RedisMirrorStore(
            host=cfg["REDIS_HOST"],
            port=cfg["REDIS_PORT"],
            db=cfg["REDIS_DB"],
            prefix=cfg["REDIS_PREFIX"],
        )
        logger.info(f"Using Redis storage at {cfg['REDIS_HOST']}:{cfg['REDIS_PORT']}")
        return store

    logger.info(f"Using git notes storage {cfg['NOTES_REF']} in {cfg['NOTES_WORKDIR']}")
    return GitNotesStore(cfg["NOTES_WORKDIR"], notes_ref=cfg["NOTES_REF"])
