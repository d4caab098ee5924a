"""
Pytest configuration and shared fixtures.
"""

import shutil
import subprocess
import sys
from pathlib import Path

import pytest

# Add src and the project root (for tests.mocks) to path for imports
PROJ_ROOT = Path(__file__).resolve().parent.parent
SRC_DIR = PROJ_ROOT / "src"
for path in (SRC_DIR, PROJ_ROOT):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

from inbox_mirror.storage.local_state import InMemoryMirrorStore
from inbox_mirror.storage.records import MailRecord
from tests.mocks.archive_mock import COVER_LETTER_ID, FakeArchive
from tests.mocks.github_mock import PR_URL, MockGitHubGlue


@pytest.fixture
def store():
    """Empty in-memory record store."""
    return InMemoryMirrorStore()


@pytest.fixture
def seeded_store(store):
    """Store that knows the cover letter GitGitGadget sent for PR #5."""
    store.set(
        COVER_LETTER_ID,
        MailRecord(
            message_id=COVER_LETTER_ID,
            pull_request_url=PR_URL,
            original_commit="feedbeef" * 5,
        ).to_dict(),
    )
    return store


@pytest.fixture
def archive():
    return FakeArchive()


@pytest.fixture
def github():
    return MockGitHubGlue()


class GitRepo:
    """Temporary repository plus a helper to run git in it."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def run(self, *args: str, stdin: str = None) -> str:
        return subprocess.run(
            ["git", *args], cwd=self.path, input=stdin, check=True, capture_output=True, text=True
        ).stdout.strip()

    def commit_file(self, name: str, content: str, message: str = "add") -> str:
        (self.path / name).parent.mkdir(parents=True, exist_ok=True)
        (self.path / name).write_text(content, encoding="utf-8")
        self.run("add", name)
        self.run("commit", "-q", "-m", message)
        return self.run("rev-parse", "HEAD")


@pytest.fixture
def git_repo(tmp_path):
    """Fresh git repository on branch master with a committer identity configured."""
    if shutil.which("git") is None:
        pytest.skip("git is not installed")
    path = tmp_path / "repo"
    path.mkdir()
    repo = GitRepo(path)
    repo.run("init", "-q")
    repo.run("symbolic-ref", "HEAD", "refs/heads/master")
    repo.run("config", "user.name", "Mirror Test")
    repo.run("config", "user.email", "mirror@example.org")
    repo.run("config", "commit.gpgsign", "false")
    return repo
