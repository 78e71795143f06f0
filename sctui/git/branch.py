"""Branch naming and creation for stories."""

import logging
import re
from enum import Enum
from pathlib import Path

from sctui.api.models import Story
from sctui.git.runner import run_git

logger = logging.getLogger(__name__)

BRANCH_NAME_WORDS = 5

# Rough subset of git check-ref-format: no whitespace, no "..", no
# control or special characters, no leading "-" or "/", no trailing "/" or ".lock"
_INVALID_REF = re.compile(r"(\s|\.\.|[~^:?*\[\\\x00-\x1f\x7f]|@\{|^[-/]|/$|\.lock$|^\.|/\.|//)")


class RepoType(Enum):
    NORMAL = "normal"
    BARE = "bare"
    NOT_A_REPO = "not_a_repo"


class GitErrorKind(Enum):
    NOT_A_REPOSITORY = "not_a_repository"
    NAME_COLLISION = "name_collision"
    COMMAND_FAILED = "command_failed"


class GitError(Exception):
    """Branch or worktree creation failed."""

    def __init__(self, kind: GitErrorKind, message: str, branch: str = ""):
        self.kind = kind
        self.branch = branch
        super().__init__(message)


def suggest_branch_name(story: Story) -> str:
    """Suggested branch name for a story.

    Uses the name Shortcut formats for VCS integration when present,
    otherwise sc-<id>-<first words of the lowercased name>.
    """
    if story.formatted_vcs_branch_name:
        return story.formatted_vcs_branch_name

    slug = "".join(c if c.isalnum() else "-" for c in story.name.lower())
    words = [w for w in slug.split("-") if w][:BRANCH_NAME_WORDS]
    if not words:
        return f"sc-{story.id}"
    return f"sc-{story.id}-" + "-".join(words)


def is_valid_branch_name(name: str) -> bool:
    return bool(name) and not _INVALID_REF.search(name)


def generate_worktree_path(branch_name: str) -> str:
    """Sibling directory name for a worktree, e.g. feature/x -> ../feature-x."""
    safe = branch_name.replace("/", "-").replace("\\", "-").replace(" ", "-")
    return f"../{safe}"


def detect_repo_type(repo: Path) -> RepoType:
    result = run_git(["rev-parse", "--is-bare-repository"], repo)
    if not result.success:
        return RepoType.NOT_A_REPO
    if result.stdout.strip().lower() == "true":
        return RepoType.BARE
    return RepoType.NORMAL


def branch_exists(repo: Path, branch: str) -> bool:
    """Check if a branch exists."""
    result = run_git(["show-ref", "--verify", "--quiet", f"refs/heads/{branch}"], repo)
    return result.success


def create_branch(name: str, repo: Path | None = None) -> str:
    """
    Create a branch for a story and switch to it.

    In a bare repository a worktree is added next to it instead.

    Returns:
        Human-readable description of what was created.

    Raises:
        GitError: not a repository, branch already exists, or git failed.
    """
    repo = repo or Path.cwd()
    repo_type = detect_repo_type(repo)
    if repo_type == RepoType.NOT_A_REPO:
        raise GitError(GitErrorKind.NOT_A_REPOSITORY, f"{repo} is not a git repository", name)

    if branch_exists(repo, name):
        raise GitError(GitErrorKind.NAME_COLLISION, f"Branch '{name}' already exists", name)

    if repo_type == RepoType.BARE:
        path = generate_worktree_path(name)
        result = run_git(["worktree", "add", "-b", name, path], repo)
        created = f"worktree '{name}' at {path}"
    else:
        result = run_git(["checkout", "-b", name], repo)
        created = f"branch '{name}'"

    if not result.success:
        logger.warning(f"[GIT] Failed to create {created}: {result.message}")
        raise GitError(
            GitErrorKind.COMMAND_FAILED,
            f"Failed to create {created}: {result.message}",
            name,
        )

    logger.info(f"[GIT] Created {created}")
    return f"Created {created}"
