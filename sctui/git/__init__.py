"""Git operations for creating story branches.

Return type conventions follow the runner:
- run_git() returns GitResult; callers check .success.
- Predicates (branch_exists) return bool.
- create_branch() raises GitError, since its failure is shown to the user.
"""

from sctui.git.runner import GitResult, run_git
from sctui.git.branch import (
    GitError,
    GitErrorKind,
    RepoType,
    branch_exists,
    create_branch,
    detect_repo_type,
    generate_worktree_path,
    is_valid_branch_name,
    suggest_branch_name,
)

__all__ = [
    "GitResult",
    "run_git",
    "GitError",
    "GitErrorKind",
    "RepoType",
    "branch_exists",
    "create_branch",
    "detect_repo_type",
    "generate_worktree_path",
    "is_valid_branch_name",
    "suggest_branch_name",
]
