"""Command line interface for git-bstatus."""

import logging
import time
from enum import Enum
from pathlib import Path
from typing import Annotated, Optional, Sequence

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.text import Text

from bstatus import __version__
from bstatus.age import relative_age
from bstatus.config import ConfigError, load_settings
from bstatus.git import GitError, GitRepo
from bstatus.report import Branch, BranchFilter, Report, build_report

app = typer.Typer(help="Summarize local git branches")
console = Console(highlight=False)
err_console = Console(stderr=True, highlight=False)

logger = logging.getLogger(__name__)


class OutputMode(Enum):
    """How the report is printed."""

    HUMAN = "human"
    LISTING = "listing"
    LISTING_COMMITS = "listing-commits"
    NAME_ONLY = "name-only"


def setup_logging(debug: bool) -> None:
    """Send the package's log records to stderr."""
    package_logger = logging.getLogger("bstatus")
    package_logger.setLevel(logging.DEBUG if debug else logging.WARNING)
    if not any(isinstance(handler, RichHandler) for handler in package_logger.handlers):
        package_logger.addHandler(RichHandler(console=err_console, show_path=False))


def fail(err: Exception) -> typer.Exit:
    """Report a fatal error and build the matching exit."""
    err_console.print(f"[red]Error:[/red] {escape(str(err))}", soft_wrap=True)
    return typer.Exit(code=1)


def get_repo(path: Path) -> GitRepo:
    """Get git repository instance."""
    try:
        return GitRepo(path)
    except GitError as err:
        raise fail(err) from err


def select_filter(all_branches: bool, merged: bool, unmerged: bool) -> BranchFilter:
    if all_branches or (merged and unmerged):
        return BranchFilter.ALL
    if merged:
        return BranchFilter.MERGED
    if unmerged:
        return BranchFilter.UNMERGED
    return BranchFilter.RECENT


def select_output_mode(
    verbose: bool, name_only: bool, branch_filter: BranchFilter, patterns: Optional[Sequence[str]]
) -> OutputMode:
    if verbose:
        return OutputMode.LISTING_COMMITS
    if name_only:
        return OutputMode.NAME_ONLY
    if branch_filter != BranchFilter.RECENT or patterns:
        return OutputMode.LISTING
    return OutputMode.HUMAN


def ahead_label(branch: Branch) -> str:
    """Format the ahead count, "+?" when it couldn't be computed."""
    return "+?" if branch.ahead is None else f"+{branch.ahead}"


def flatten_tabs(summary: str) -> str:
    """Print each tab in a subject as one space, wherever it falls in the row."""
    return summary.replace("\t", " ")


def get_column_widths(branches: Sequence[Branch], ages: Sequence[str]) -> tuple[int, int, int]:
    """Calculate the widths of the name, age and ahead columns."""
    branch_width = max(len(branch.name) for branch in branches)
    age_width = max(len(age) for age in ages)
    ahead_width = max(len(ahead_label(branch)) for branch in branches)
    return branch_width, age_width, ahead_width


def format_branch_row(
    branch: Branch,
    age: str,
    widths: tuple[int, int, int],
    star_width: int = 1,
    with_summary: bool = True,
) -> Text:
    """Format one table row: marker, name, age, ahead count, upstream and subject."""
    branch_width, age_width, ahead_width = widths
    row = Text.assemble(
        ("*" if branch.active else " ").rjust(star_width),
        " ",
        (branch.name.ljust(branch_width), "green" if branch.active else ""),
        "  ",
        age.rjust(age_width),
        " ",
        (ahead_label(branch).rjust(ahead_width), "green"),
    )
    if branch.upstream:
        row.append(f" ({branch.upstream})", style="green")
    if with_summary:
        row.append(f" {flatten_tabs(branch.summary)}")
    return row


def print_branches(
    branches: Sequence[Branch],
    now: int,
    precision: str,
    list_commits: bool = False,
    indent: bool = False,
) -> None:
    """Print the branch table, optionally with each branch's unmerged commits."""
    if not branches:
        return

    ages = [relative_age(branch.timestamp, now, precision) for branch in branches]
    widths = get_column_widths(branches, ages)
    star_width = 4 if indent else 1

    for branch, age in zip(branches, ages):
        console.print(
            format_branch_row(branch, age, widths, star_width=star_width, with_summary=not list_commits),
            soft_wrap=True,
        )
        if list_commits:
            for commit in branch.commits or ():
                console.print(Text(f"    {commit.short_sha} {flatten_tabs(commit.summary)}"), soft_wrap=True)


def describe_head(repo: GitRepo) -> str:
    current = repo.get_current_branch_name()
    if current:
        return f"On branch {current}"
    return f"HEAD detached at {repo.get_head_short_sha()}"


def print_human(head: str, report: Report, now: int, precision: str) -> None:
    """Print the default view: HEAD, recent branches and the overall counts."""
    console.print(Text(head), soft_wrap=True)
    console.print("Recently active branches:")
    console.print('  (use "git bstatus -a" to list all branches)')
    console.print('  (use "git bstatus -v" to list commits)')
    console.print()

    print_branches(report.branches[: report.recent], now, precision, indent=True)

    # Not worth printing if there's only master
    if report.n_unmerged > 0 or report.n_merged > 1:
        console.print()
        console.print(
            f"There are {report.total} local branches ({report.n_merged} merged, {report.n_unmerged} unmerged)."
        )
        console.print('  (use "git bstatus -m" or "git bstatus -u" to list them)')


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"git-bstatus {__version__}")
        raise typer.Exit(0)


@app.command()
def bstatus(
    branches: Annotated[
        Optional[list[str]], typer.Argument(help="Branches to list (or substrings)", show_default=False)
    ] = None,
    path: Annotated[Path, typer.Option("--repo", help="Git repo to target")] = Path("."),
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="List added commits")] = False,
    all_branches: Annotated[bool, typer.Option("--all", "-a", help="List all branches")] = False,
    merged: Annotated[bool, typer.Option("--merged", "-m", help="List only merged branches")] = False,
    unmerged: Annotated[bool, typer.Option("--unmerged", "-u", help="List only unmerged branches")] = False,
    reverse: Annotated[bool, typer.Option("--reverse", "-r", help="Reverse listing order")] = False,
    name_only: Annotated[bool, typer.Option("--name-only", "-n", help="Print branch names only")] = False,
    recent: Annotated[
        Optional[int], typer.Option("--recent", "-N", min=1, help="Number of recent branches to show")
    ] = None,
    default_branch: Annotated[
        Optional[str], typer.Option("--default-branch", help="Branch to compare against when there's no upstream")
    ] = None,
    age_precision: Annotated[
        Optional[str], typer.Option("--age-precision", help="Smallest unit for relative ages (sec, min, hour, day...)")
    ] = None,
    debug: Annotated[bool, typer.Option("--debug", help="Log git queries to stderr")] = False,
    version: Annotated[
        Optional[bool],
        typer.Option("--version", "-V", callback=_version_callback, is_eager=True, help="Print version"),
    ] = None,
) -> None:
    """Show recently active branches, how far ahead they are and their latest commit."""
    setup_logging(debug)

    branch_filter = select_filter(all_branches, merged, unmerged)
    output_mode = select_output_mode(verbose, name_only, branch_filter, branches)

    repo = get_repo(path)
    try:
        settings = load_settings(
            repo,
            recent=recent,
            default_branch=default_branch,
            age_precision=age_precision,
        )
        report = build_report(repo, settings, branch_filter, branches, reverse=reverse)
        head = describe_head(repo) if output_mode == OutputMode.HUMAN and report.branches else ""
    except (GitError, ConfigError) as err:
        raise fail(err) from err

    logger.debug("Report has %d of %d branches", len(report.branches), report.total)

    if output_mode == OutputMode.NAME_ONLY:
        for branch in report.branches:
            console.print(Text(branch.name), soft_wrap=True)
        return

    if not report.branches:
        console.print("No matching branches." if branches or report.total else "No branches found.")
        return

    now = int(time.time())
    if output_mode == OutputMode.HUMAN:
        print_human(head, report, now, settings.age_precision)
    else:
        print_branches(
            report.branches,
            now,
            settings.age_precision,
            list_commits=output_mode == OutputMode.LISTING_COMMITS,
        )


if __name__ == "__main__":
    app()
