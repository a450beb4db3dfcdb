"""Data models for remotes, branches and pull requests."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Remote:
    """A git remote added for one fetch."""
    local_alias: str
    repository_url: str   # Only ever used as a fetch source


@dataclass(frozen=True)
class Branch:
    """A local branch mirroring one upstream ref."""
    local_name: str
    upstream_name: str


@dataclass(frozen=True)
class BranchAndRemote:
    branch: Branch
    remote: Remote


@dataclass(frozen=True)
class PullRequestRef:
    """A pull request as written by the user, e.g. ``#42@abc123``."""
    number: str
    custom_branch_name: Optional[str] = None
    commit_pin: Optional[str] = None


@dataclass(frozen=True)
class PullRequestMetadata:
    """The parts of the GitHub pull request payload we need."""
    number: str
    title: str
    html_url: str
    head_ref: str
    clone_url: str
