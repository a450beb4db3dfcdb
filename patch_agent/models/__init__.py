"""Data models for patch-agent."""

from .git import (
    Remote,
    Branch,
    BranchAndRemote,
    PullRequestRef,
    PullRequestMetadata,
)
from .run import (
    PRStatus,
    ConflictPolicy,
    MergeResult,
    BackupEntry,
    RunReport,
)

__all__ = [
    "Remote",
    "Branch",
    "BranchAndRemote",
    "PullRequestRef",
    "PullRequestMetadata",
    "PRStatus",
    "ConflictPolicy",
    "MergeResult",
    "BackupEntry",
    "RunReport",
]
