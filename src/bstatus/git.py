"""Git repository queries.

Everything here is read-only: branches are enumerated with ``for-each-ref``,
compared with ``log`` and settings come from ``config --get``.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Collection, Optional

from git import GitCommandError, InvalidGitRepositoryError, NoSuchPathError, Repo

logger = logging.getLogger(__name__)

LOCAL_BRANCH_REF_PREFIX = "refs/heads/"
REMOTE_REF_PREFIX = "refs/remotes/"
FALLBACK_DEFAULT_BRANCHES = ("master", "main")
SHORT_SHA_LEN = 8

# Fields are NUL separated so that subjects can contain anything but a newline
_BRANCH_FIELDS = (
    "%(HEAD)",
    "%(refname)",
    "%(objectname)",
    "%(committerdate:raw)",
    "%(upstream)",
    "%(upstream:short)",
    "%(contents:subject)",
)
_BRANCH_FORMAT = "%00".join(_BRANCH_FIELDS)


@dataclass(frozen=True)
class Commit:
    """A commit as shown in a branch listing."""

    sha: str
    summary: str

    @property
    def short_sha(self) -> str:
        return self.sha[:SHORT_SHA_LEN]


@dataclass(frozen=True)
class BranchRef:
    """A local branch as enumerated from the repository."""

    name: str
    sha: str
    timestamp: int
    summary: str
    active: bool = False
    upstream: Optional[str] = None
    upstream_ref: Optional[str] = None

    @property
    def ref(self) -> str:
        """Full ref name, unambiguous even if a tag shares the branch name."""
        return LOCAL_BRANCH_REF_PREFIX + self.name


class GitError(Exception):
    """Git operation error."""


def _split_lines(output: str) -> list[str]:
    # str.splitlines() would also split on form feeds and friends in subjects
    return [line for line in output.split("\n") if line]


class GitRepo:
    """Read-only git repository queries."""

    def __init__(self, path: Path) -> None:
        """Open the repository containing ``path``."""
        try:
            self.repo: Repo = Repo(path, search_parent_directories=True)
        except (GitCommandError, NoSuchPathError, InvalidGitRepositoryError) as err:
            raise GitError(f"Failed to open repository: {err}") from err
        logger.debug("Opened repository at %s", self.repo.git_dir)

    def get_current_branch_name(self) -> str:
        """Get current branch name."""
        try:
            return self.repo.active_branch.name
        except TypeError:
            # We're in a detached HEAD state
            return ""

    def get_head_short_sha(self) -> str:
        """Get the abbreviated sha HEAD points at."""
        try:
            return self.repo.head.commit.hexsha[:SHORT_SHA_LEN]
        except ValueError as err:
            raise GitError(f"Failed to resolve HEAD: {err}") from err

    def get_config(self, key: str, type_: Optional[str] = None) -> Optional[str]:
        """Read a git config value.

        Args:
            key: Dotted config key, e.g. ``bstatus.recent``
            type_: Optional git config type (``int``, ``bool``...) to validate against

        Returns:
            The value, or None if the key is not set
        """
        args = ["--get"]
        if type_:
            args.append(f"--type={type_}")
        try:
            return self.repo.git.config(*args, key)
        except GitCommandError as err:
            # git config exits with 1 when the key is simply missing
            if err.status == 1:
                return None
            raise GitError(f"Invalid value for config {key}: {err}") from err

    def list_branches(self) -> list[BranchRef]:
        """List all local branches, in refname order."""
        try:
            output = self.repo.git.for_each_ref(f"--format={_BRANCH_FORMAT}", LOCAL_BRANCH_REF_PREFIX)
        except GitCommandError as err:
            raise GitError(f"Failed to list branches: {err}") from err

        branches = []
        for line in _split_lines(output):
            head, refname, sha, date, upstream_ref, upstream, summary = line.split("\0")
            branches.append(
                BranchRef(
                    name=refname[len(LOCAL_BRANCH_REF_PREFIX) :],
                    sha=sha,
                    # raw dates look like "1700000000 +0100"
                    timestamp=int(date.split()[0]),
                    summary=summary,
                    active=head == "*",
                    upstream=upstream or None,
                    upstream_ref=upstream_ref or None,
                )
            )
        logger.debug("Found %d local branches", len(branches))
        return branches

    def find_default_branch(self, local_names: Collection[str], preferred: Optional[str] = None) -> str:
        """Find the branch that branches without an upstream are compared against.

        This is usually "master", or the default branch to check out after cloning.

        Args:
            local_names: Names of the existing local branches
            preferred: Explicitly configured default branch, if any

        Raises:
            GitError: If no suitable local branch exists
        """
        if preferred:
            if preferred not in local_names:
                raise GitError(f"Default branch '{preferred}' does not exist")
            return preferred

        # Go through all the remotes and find which has a HEAD branch, then
        # resolve that to the local branch of the same name
        try:
            output = self.repo.git.for_each_ref("--format=%(refname)%00%(symref)", REMOTE_REF_PREFIX)
        except GitCommandError as err:
            raise GitError(f"Failed to list remote refs: {err}") from err

        head_target = None
        for line in _split_lines(output):
            refname, symref = line.split("\0")
            if not refname.endswith("/HEAD") or not symref.startswith(REMOTE_REF_PREFIX):
                continue
            # Prefer "origin"; otherwise the last remote with a HEAD wins
            # (normally only the one used to clone has it)
            head_target = symref
            if refname == f"{REMOTE_REF_PREFIX}origin/HEAD":
                break

        if head_target:
            parts = head_target[len(REMOTE_REF_PREFIX) :].split("/", 1)
            if len(parts) == 2 and parts[1] in local_names:
                logger.debug("Default branch %s taken from %s", parts[1], head_target)
                return parts[1]

        for name in FALLBACK_DEFAULT_BRANCHES:
            if name in local_names:
                return name

        raise GitError("Couldn't find default branch (set one with `git config bstatus.defaultBranch <branch>`)")

    def unmerged_commits(self, branch: BranchRef, reference: str) -> list[Commit]:
        """List the commits on ``branch`` that are not reachable from ``reference``.

        Commits come newest first and stop short of the merge-base.

        Raises:
            GitError: If git can't compare the two, e.g. the reference is gone
        """
        logger.debug("Listing commits in %s..%s", reference, branch.ref)
        try:
            output = self.repo.git.log("--format=%H%x00%s", f"{reference}..{branch.ref}", "--")
        except GitCommandError as err:
            raise GitError(f"Failed to compare {branch.name} with {reference}: {err}") from err

        commits = []
        for line in _split_lines(output):
            sha, summary = line.split("\0", 1)
            commits.append(Commit(sha=sha, summary=summary))
        return commits
