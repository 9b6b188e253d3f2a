"""Report settings.

Settings are read from git config (``bstatus.*`` keys) and can be overridden
on the command line. They are loaded once per run and passed down.
"""

from dataclasses import dataclass
from typing import Optional

from bstatus.age import AGE_UNITS
from bstatus.git import GitRepo

CONFIG_SECTION = "bstatus"
RECENT_DEFAULT = 5
AGE_PRECISION_DEFAULT = "sec"


class ConfigError(Exception):
    """Invalid setting."""


@dataclass(frozen=True)
class Settings:
    """Settings for one report.

    Attributes:
        recent: Number of branches shown in the recent view
        default_branch: Branch to compare against when a branch has no upstream
        age_precision: Smallest unit used for relative ages
    """

    recent: int = RECENT_DEFAULT
    default_branch: Optional[str] = None
    age_precision: str = AGE_PRECISION_DEFAULT

    def __post_init__(self) -> None:
        if self.recent < 1:
            raise ConfigError(f"recent must be at least 1, got {self.recent}")
        if self.age_precision not in AGE_UNITS:
            raise ConfigError(f"age precision must be one of {', '.join(AGE_UNITS)}, got '{self.age_precision}'")


def load_settings(
    repo: GitRepo,
    *,
    recent: Optional[int] = None,
    default_branch: Optional[str] = None,
    age_precision: Optional[str] = None,
) -> Settings:
    """Load settings, preferring explicit values over git config over defaults."""
    if recent is None:
        value = repo.get_config(f"{CONFIG_SECTION}.recent", type_="int")
        recent = RECENT_DEFAULT if value is None else int(value)
    if default_branch is None:
        default_branch = repo.get_config(f"{CONFIG_SECTION}.defaultBranch") or None
    if age_precision is None:
        age_precision = repo.get_config(f"{CONFIG_SECTION}.agePrecision") or AGE_PRECISION_DEFAULT

    return Settings(recent=recent, default_branch=default_branch, age_precision=age_precision)
