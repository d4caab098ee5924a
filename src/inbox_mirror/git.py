"""
Thin wrappers around the ``git`` executable.

Both the mailing-list archive and the notes-backed record store are plain git
repositories; everything goes through these helpers so failures surface as a
single exception type.
"""

from __future__ import annotations
import subprocess
import tempfile
from pathlib import Path
from typing import Iterator, List, Optional

from inbox_mirror.logging import logger


class ArchiveError(Exception):
    """Raised when a git command fails or cannot be started."""

    def __init__(self, message: str, returncode: Optional[int] = None) -> None:
        super().__init__(message)
        self.returncode = returncode


def git(
    args: List[str],
    work_dir: str | Path,
    *,
    stdin: Optional[str] = None,
    timeout: float = 120.0,
) -> str:
    """
    Run a git command and return its stdout with the trailing newline removed.

    Args:
        args: Arguments after ``git``
        work_dir: Repository to run in (a work tree or a bare repository)
        stdin: Optional text fed to the command's standard input
        timeout: Seconds before the command is killed

    Returns:
        Command output (stdout)

    Raises:
        ArchiveError: If git exits non-zero, times out, or is not installed
    """
    cmd = ["git", *args]
    try:
        proc = subprocess.run(
            cmd,
            cwd=str(work_dir),
            input=stdin,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        raise ArchiveError(f"git {args[0]} timed out after {timeout}s in {work_dir}") from e
    except FileNotFoundError as e:
        raise ArchiveError("git executable not found") from e

    if proc.returncode != 0:
        raise ArchiveError(
            f"git {' '.join(args)} failed in {work_dir} (exit {proc.returncode}): {proc.stderr.strip()}",
            returncode=proc.returncode,
        )
    return proc.stdout[:-1] if proc.stdout.endswith("\n") else proc.stdout


def rev_parse(rev: str, work_dir: str | Path) -> str:
    """Resolve ``rev`` to a full object name."""
    return git(["rev-parse", "--verify", rev], work_dir).strip()


def ref_exists(ref: str, work_dir: str | Path) -> bool:
    """Return True if ``ref`` resolves in the repository."""
    try:
        git(["rev-parse", "--verify", "--quiet", ref], work_dir)
        return True
    except ArchiveError as e:
        if e.returncode == 1:
            return False
        raise


def stream_git(args: List[str], work_dir: str | Path) -> Iterator[str]:
    """
    Run a git command and yield its stdout line by line (without newlines).

    Output is consumed as it is produced, so arbitrarily long histories never
    have to fit in memory. Lines are split on ``\\n`` only: a bare ``\\r``
    inside an archived message is content, exactly as git counts it in hunk
    headers. stderr goes to a temporary file so a chatty git can never block
    on it while stdout is being read. The exit status is checked once the
    stream is drained.

    Raises:
        ArchiveError: If git cannot be started or exits non-zero
    """
    cmd = ["git", *args]
    logger.debug(f"Streaming: {' '.join(cmd)} (in {work_dir})")
    with tempfile.TemporaryFile() as errfile:
        try:
            proc = subprocess.Popen(
                cmd,
                cwd=str(work_dir),
                stdout=subprocess.PIPE,
                stderr=errfile,
            )
        except FileNotFoundError as e:
            raise ArchiveError("git executable not found") from e

        drained = False
        try:
            assert proc.stdout is not None
            for raw in proc.stdout:
                if raw.endswith(b"\n"):
                    raw = raw[:-1]
                yield raw.decode("utf-8", errors="replace")
            drained = True
        finally:
            if not drained and proc.poll() is None:
                # Consumer stopped early; don't leave git blocked on a full pipe
                proc.kill()
            proc.stdout.close()
            proc.wait()

        if proc.returncode != 0:
            errfile.seek(0)
            stderr = errfile.read().decode("utf-8", errors="replace").strip()
            raise ArchiveError(
                f"git {' '.join(args)} failed in {work_dir} (exit {proc.returncode}): {stderr}",
                returncode=proc.returncode,
            )
