"""Runs git in the user's working copy and reports what happened."""

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

GIT_TIMEOUT_SECONDS = 30
GIT_NOT_FOUND = 127


@dataclass
class GitResult:
    """Exit status and output of one git invocation."""
    returncode: int
    stdout: str
    stderr: str
    timed_out: bool = False

    @property
    def success(self) -> bool:
        return self.returncode == 0 and not self.timed_out

    @property
    def message(self) -> str:
        """What git said, preferring stderr since that is where it explains failures."""
        return (self.stderr or self.stdout).strip()


def run_git(args: list[str], cwd: Path, timeout: int = GIT_TIMEOUT_SECONDS) -> GitResult:
    """
    Run `git -C cwd <args>` and capture its output.

    Never raises for git's own failures: a non-zero exit, a timeout or a
    missing git binary all come back as an unsuccessful GitResult
    (timeouts with timed_out set, a missing binary as returncode 127).
    """
    logger.debug(f"[GIT] git {' '.join(args)} (in {cwd})")
    try:
        proc = subprocess.run(
            ["git", "-C", str(cwd), *args],
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired:
        logger.warning(f"[GIT] git {args[0]} timed out after {timeout}s")
        return GitResult(-1, "", f"git {args[0]} timed out after {timeout}s", timed_out=True)
    except FileNotFoundError:
        logger.warning("[GIT] git executable not found on PATH")
        return GitResult(GIT_NOT_FOUND, "", "git executable not found")

    result = GitResult(proc.returncode, proc.stdout, proc.stderr)
    if not result.success:
        logger.debug(f"[GIT] git {args[0]} exited {proc.returncode}: {result.message}")
    return result
