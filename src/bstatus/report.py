"""Branch report assembly."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from bstatus.config import Settings
from bstatus.git import LOCAL_BRANCH_REF_PREFIX, BranchRef, Commit, GitError, GitRepo

logger = logging.getLogger(__name__)


class BranchFilter(Enum):
    """Which branches end up in the report."""

    RECENT = "recent"
    ALL = "all"
    MERGED = "merged"
    UNMERGED = "unmerged"


@dataclass(frozen=True)
class Branch:
    """A local branch and the commits it has over its reference branch.

    ``commits`` is None when the comparison failed, e.g. because the upstream
    branch no longer exists.
    """

    name: str
    timestamp: int
    summary: str
    active: bool = False
    upstream: Optional[str] = None
    commits: Optional[tuple[Commit, ...]] = ()

    @property
    def ahead(self) -> Optional[int]:
        return None if self.commits is None else len(self.commits)

    @property
    def merged(self) -> bool:
        return self.ahead == 0


@dataclass(frozen=True)
class Report:
    """Branches to show, plus counts over every matching branch.

    ``recent`` is the size of the recent window the default view shows.
    """

    branches: tuple[Branch, ...]
    n_merged: int
    n_unmerged: int
    recent: int

    @property
    def total(self) -> int:
        return self.n_merged + self.n_unmerged


def matches_patterns(name: str, patterns: Optional[Sequence[str]]) -> bool:
    """Check whether a branch name contains any of the patterns (no patterns match all)."""
    if not patterns:
        return True
    return any(pattern in name for pattern in patterns)


def reference_for(ref: BranchRef, default_branch: Optional[str]) -> str:
    """Get the ref a branch is compared with: its upstream, else the default branch.

    Raises:
        GitError: If the branch has no upstream and there's no default branch
    """
    if ref.upstream_ref:
        return ref.upstream_ref
    if default_branch is None:
        raise GitError(f"No reference branch to compare {ref.name} with")
    return LOCAL_BRANCH_REF_PREFIX + default_branch


def compare_branch(repo: GitRepo, ref: BranchRef, default_branch: Optional[str]) -> Branch:
    """Compare a branch with its upstream, or with the default branch if it has none."""
    reference = reference_for(ref, default_branch)

    commits: Optional[tuple[Commit, ...]]
    try:
        commits = tuple(repo.unmerged_commits(ref, reference))
    except GitError as err:
        logger.warning("Can't count commits ahead for %s: %s", ref.name, err)
        commits = None

    return Branch(
        name=ref.name,
        timestamp=ref.timestamp,
        summary=ref.summary,
        active=ref.active,
        upstream=ref.upstream,
        commits=commits,
    )


def build_report(
    repo: GitRepo,
    settings: Settings,
    branch_filter: BranchFilter = BranchFilter.RECENT,
    patterns: Optional[Sequence[str]] = None,
    reverse: bool = False,
) -> Report:
    """Build the report for the local branches of a repository.

    Args:
        repo: Repository to inspect
        settings: Report settings
        branch_filter: Which branches to keep
        patterns: Substrings; only branches containing one of them are considered
        reverse: Reverse the final order (oldest first)

    Raises:
        GitError: If branches can't be listed or the default branch can't be found
    """
    all_refs = repo.list_branches()
    refs = [ref for ref in all_refs if matches_patterns(ref.name, patterns)]

    # Only needed when some branch has no upstream to compare with
    default_branch = None
    if any(ref.upstream_ref is None for ref in refs):
        default_branch = repo.find_default_branch({ref.name for ref in all_refs}, settings.default_branch)

    n_merged = 0
    n_unmerged = 0
    branches: list[Branch] = []
    for ref in refs:
        branch = compare_branch(repo, ref, default_branch)

        # Branches we couldn't compare are counted as unmerged
        if branch.merged:
            n_merged += 1
        else:
            n_unmerged += 1

        if (branch_filter == BranchFilter.MERGED and not branch.merged) or (
            branch_filter == BranchFilter.UNMERGED and branch.merged
        ):
            continue
        branches.append(branch)

    # Most recent first
    branches.sort(key=lambda b: b.timestamp, reverse=True)

    if branch_filter == BranchFilter.RECENT:
        branches = branches[: settings.recent]

    if reverse:
        branches.reverse()

    return Report(
        branches=tuple(branches),
        n_merged=n_merged,
        n_unmerged=n_unmerged,
        recent=settings.recent,
    )
