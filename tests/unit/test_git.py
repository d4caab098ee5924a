"""
Unit tests for the git command wrappers.
"""

import pytest

from inbox_mirror.git import ArchiveError, git, ref_exists, stream_git

# Shell alias printing ~500 KB of warnings to stderr before its only stdout line
NOISY_ALIAS = (
    "alias.noisy=!f() { i=0; while [ $i -lt 20000 ]; do "
    "echo 'warning: this is noise on stderr' >&2; i=$((i+1)); done; echo done; }; f"
)


class TestStreamGit:
    """Tests for stream_git function."""

    def test_lines_without_newlines(self, git_repo):
        git_repo.commit_file("a.txt", "one\n", "first")
        git_repo.commit_file("b.txt", "two\n", "second")
        assert list(stream_git(["log", "--format=%s"], git_repo.path)) == ["second", "first"]

    def test_noisy_stderr_does_not_block(self, git_repo):
        assert list(stream_git(["-c", NOISY_ALIAS, "noisy"], git_repo.path)) == ["done"]

    def test_failure_reports_stderr(self, git_repo):
        git_repo.commit_file("a.txt", "one\n")
        with pytest.raises(ArchiveError) as exc:
            list(stream_git(["log", "no-such-revision..HEAD"], git_repo.path))
        assert exc.value.returncode != 0
        assert "no-such-revision" in str(exc.value)

    def test_early_stop(self, git_repo):
        for i in range(5):
            git_repo.commit_file(f"{i}.txt", f"{i}\n", f"commit {i}")
        lines = stream_git(["log", "--format=%s"], git_repo.path)
        assert next(lines) == "commit 4"
        lines.close()


class TestGit:
    """Tests for git and ref_exists functions."""

    def test_output_trailing_newline_removed(self, git_repo):
        assert git(["hash-object", "--stdin"], git_repo.path, stdin="hello\n") == (
            "ce013625030ba8dba906f756967f9e9ca394464a"
        )

    def test_ref_exists(self, git_repo):
        git_repo.commit_file("a.txt", "one\n")
        assert ref_exists("refs/heads/master", git_repo.path) is True
        assert ref_exists("refs/notes/absent", git_repo.path) is False
