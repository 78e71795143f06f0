"""Tests for sctui.git module."""

import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from sctui.api.models import Story, StoryType
from sctui.git.branch import (
    GitError,
    GitErrorKind,
    RepoType,
    create_branch,
    detect_repo_type,
    generate_worktree_path,
    is_valid_branch_name,
    suggest_branch_name,
)
from sctui.git.runner import GitResult, run_git


def _story(story_id=42, name="Add login page", vcs=None):
    return Story(
        id=story_id,
        name=name,
        story_type=StoryType.FEATURE,
        workflow_state_id=1,
        formatted_vcs_branch_name=vcs,
    )


def _ok(stdout=""):
    return GitResult(returncode=0, stdout=stdout, stderr="")


def _fail(stderr="fatal"):
    return GitResult(returncode=1, stdout="", stderr=stderr)


class TestGitResult:
    """Test GitResult dataclass."""

    def test_success_when_returncode_zero(self):
        result = GitResult(returncode=0, stdout="ok", stderr="")
        assert result.success is True

    def test_failure_when_timed_out(self):
        result = GitResult(returncode=0, stdout="ok", stderr="", timed_out=True)
        assert result.success is False

    def test_message_prefers_stderr(self):
        assert GitResult(1, "out\n", "fatal: bad ref\n").message == "fatal: bad ref"
        assert GitResult(0, "Switched to branch\n", "").message == "Switched to branch"


class TestRunGit:
    """Test run_git function."""

    @patch("sctui.git.runner.subprocess.run")
    def test_passes_cwd_with_C_flag(self, mock_run):
        mock_run.return_value = MagicMock(returncode=0, stdout="", stderr="")
        run_git(["checkout", "-b", "x"], Path("/my/repo"))
        assert mock_run.call_args[0][0] == ["git", "-C", "/my/repo", "checkout", "-b", "x"]

    @patch("sctui.git.runner.subprocess.run")
    def test_handles_timeout(self, mock_run):
        mock_run.side_effect = subprocess.TimeoutExpired(cmd="git", timeout=30)
        result = run_git(["status"], Path("/tmp"))
        assert result.timed_out
        assert "timed out" in result.stderr

    @patch("sctui.git.runner.subprocess.run")
    def test_missing_git_binary(self, mock_run):
        mock_run.side_effect = FileNotFoundError("git")
        result = run_git(["status"], Path("/tmp"))
        assert result.returncode == 127
        assert not result.success

    @patch("sctui.git.runner.subprocess.run")
    def test_timeout_logged_with_git_tag(self, mock_run, caplog):
        mock_run.side_effect = subprocess.TimeoutExpired(cmd="git", timeout=5)
        with caplog.at_level("WARNING"):
            run_git(["fetch"], Path("/tmp"), timeout=5)
        assert "[GIT] git fetch timed out after 5s" in caplog.text


class TestBranchNames:

    def test_suggestion_uses_first_five_words(self):
        assert suggest_branch_name(_story(name="Fix: the Login page, now please!")) == "sc-42-fix-the-login-page-now"

    def test_suggestion_prefers_vcs_name(self):
        assert suggest_branch_name(_story(vcs="pat/sc-42/add-login")) == "pat/sc-42/add-login"

    def test_suggestion_without_words(self):
        assert suggest_branch_name(_story(name="!!!")) == "sc-42"

    @pytest.mark.parametrize("name", ["sc-42-fix", "feature/login", "a.b"])
    def test_valid_names(self, name):
        assert is_valid_branch_name(name)

    @pytest.mark.parametrize("name", ["", "a b", "a..b", "-x", "x/", "x.lock", "a~b", "a:b", "@{x"])
    def test_invalid_names(self, name):
        assert not is_valid_branch_name(name)

    def test_worktree_path(self):
        assert generate_worktree_path("feature/login page") == "../feature-login-page"


class TestCreateBranch:
    """Branch vs worktree creation and its failures."""

    @patch("sctui.git.branch.run_git")
    def test_detect_repo_type(self, mock_git):
        mock_git.return_value = _ok("true\n")
        assert detect_repo_type(Path("/r")) == RepoType.BARE
        mock_git.return_value = _ok("false\n")
        assert detect_repo_type(Path("/r")) == RepoType.NORMAL
        mock_git.return_value = _fail()
        assert detect_repo_type(Path("/r")) == RepoType.NOT_A_REPO

    @patch("sctui.git.branch.run_git")
    def test_normal_repo_checks_out_new_branch(self, mock_git):
        mock_git.side_effect = [_ok("false"), _fail(), _ok()]
        message = create_branch("sc-42-add", Path("/r"))
        assert message == "Created branch 'sc-42-add'"
        assert mock_git.call_args_list[2][0][0] == ["checkout", "-b", "sc-42-add"]

    @patch("sctui.git.branch.run_git")
    def test_bare_repo_adds_worktree(self, mock_git):
        mock_git.side_effect = [_ok("true"), _fail(), _ok()]
        message = create_branch("feature/x", Path("/r"))
        assert mock_git.call_args_list[2][0][0] == ["worktree", "add", "-b", "feature/x", "../feature-x"]
        assert "worktree" in message

    @patch("sctui.git.branch.run_git")
    def test_not_a_repository(self, mock_git):
        mock_git.return_value = _fail("not a git repository")
        with pytest.raises(GitError) as exc:
            create_branch("x", Path("/nowhere"))
        assert exc.value.kind == GitErrorKind.NOT_A_REPOSITORY

    @patch("sctui.git.branch.run_git")
    def test_existing_branch_collides(self, mock_git):
        mock_git.side_effect = [_ok("false"), _ok()]
        with pytest.raises(GitError) as exc:
            create_branch("main", Path("/r"))
        assert exc.value.kind == GitErrorKind.NAME_COLLISION
        assert exc.value.branch == "main"

    @patch("sctui.git.branch.run_git")
    def test_command_failure(self, mock_git, caplog):
        mock_git.side_effect = [_ok("false"), _fail(), _fail("cannot lock ref")]
        with caplog.at_level("WARNING"), pytest.raises(GitError) as exc:
            create_branch("x", Path("/r"))
        assert exc.value.kind == GitErrorKind.COMMAND_FAILED
        assert "cannot lock ref" in str(exc.value)
        assert "[GIT]" in caplog.text
