"""Test configuration and fixtures."""

from pathlib import Path
from typing import Callable

import pytest
from git import Actor, Repo

from bstatus.age import DAY

# Commit dates are fixed so that branch ordering is deterministic
BASE_TIME = 1_600_000_000

MakeCommit = Callable[[Repo, str, int], str]


@pytest.fixture
def make_commit() -> MakeCommit:
    """Return a helper creating an empty commit with the given timestamp."""

    def commit(repo: Repo, message: str, timestamp: int) -> str:
        date = f"{timestamp} +0000"
        with repo.git.custom_environment(GIT_AUTHOR_DATE=date, GIT_COMMITTER_DATE=date):
            repo.git.commit("--allow-empty", "-m", message)
        return repo.head.commit.hexsha

    return commit


@pytest.fixture
def empty_repo(tmp_path: Path) -> Repo:
    """Create a repository without any commit, on an unborn master branch."""
    repo_path = tmp_path / "repo"
    repo_path.mkdir()
    repo = Repo.init(repo_path)
    repo.git.symbolic_ref("HEAD", "refs/heads/master")

    # Set up git config
    author = Actor("Test User", "test@example.com")
    repo.config_writer().set_value("user", "name", author.name).release()
    repo.config_writer().set_value("user", "email", author.email).release()
    repo.config_writer().set_value("commit", "gpgsign", "false").release()
    return repo


@pytest.fixture
def feature_repo(empty_repo: Repo, make_commit: MakeCommit) -> Repo:
    """Create a repository with master and a feature branch one commit ahead.

    The feature branch is checked out and has the most recent commit.
    """
    make_commit(empty_repo, "Initial commit", BASE_TIME)
    empty_repo.git.checkout("-b", "feature")
    make_commit(empty_repo, "Add feature", BASE_TIME + DAY)
    return empty_repo


@pytest.fixture
def topic_repo(feature_repo: Repo, make_commit: MakeCommit) -> Repo:
    """Add a topic branch with three commits on top of master."""
    feature_repo.git.checkout("-b", "topic", "master")
    for i in range(1, 4):
        make_commit(feature_repo, f"Topic {i}", BASE_TIME + 2 * DAY + i)
    feature_repo.git.checkout("master")
    return feature_repo


@pytest.fixture
def many_branches_repo(empty_repo: Repo, make_commit: MakeCommit) -> Repo:
    """Create a repository with 53 local branches, all pointing at master."""
    make_commit(empty_repo, "Initial commit", BASE_TIME)
    for i in range(52):
        empty_repo.git.branch(f"branch-{i:02d}")
    return empty_repo
