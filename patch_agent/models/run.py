"""Data models for a patch-agent run."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import IO, Dict, List, Optional


class PRStatus(Enum):
    """Status of a pull request during a run."""
    PENDING = "pending"       # Waiting to be resolved
    RESOLVED = "resolved"     # Fetched into a local branch
    MERGED = "merged"         # Squash-merged and committed
    CONFLICT = "conflict"     # Merge stopped on conflicts, tree reset
    FAILED = "failed"         # Lookup, fetch or pin failed


class ConflictPolicy(Enum):
    """How the merge engine reacts to a conflicted squash merge."""
    MANUAL = "manual"                 # Reset and leave resolution to the user
    AUTO_MARKDOWN = "auto-markdown"   # Take "ours" for conflicted .md files only


@dataclass
class MergeResult:
    """Result of merging one local branch."""
    branch: str
    success: bool
    committed: bool = False
    resolved_files: List[str] = field(default_factory=list)
    error: Optional[str] = None


@dataclass
class BackupEntry:
    """One file captured from the configuration directory."""
    filename: str
    content: str
    temp_storage: Optional[IO[str]] = None

    @property
    def stem(self) -> str:
        return Path(self.filename).stem

    @property
    def is_patch(self) -> bool:
        return self.filename.endswith(".patch")


@dataclass
class RunReport:
    """Summary of an orchestrated run."""
    merged: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    applied_patches: List[str] = field(default_factory=list)
    failed_patches: List[str] = field(default_factory=list)
    restored_files: List[str] = field(default_factory=list)
    temporary_branch: Optional[str] = None
    target_branch: str = ""
    renamed: bool = False
    statuses: Dict[str, PRStatus] = field(default_factory=dict)

    @property
    def exit_code(self) -> int:
        return 0 if self.renamed else 1

    def summary(self) -> str:
        """Human readable summary of the run."""
        lines = [
            f"Merged pull requests: {', '.join('#' + n for n in self.merged) or 'none'}",
            f"Skipped pull requests: {', '.join('#' + n for n in self.skipped) or 'none'}",
        ]
        if self.applied_patches or self.failed_patches:
            lines.append(f"Applied patches: {', '.join(self.applied_patches) or 'none'}")
            if self.failed_patches:
                lines.append(f"Failed patches: {', '.join(self.failed_patches)}")
        if self.renamed:
            lines.append(f"Branch {self.target_branch} now holds the result")
        elif self.temporary_branch:
            lines.append(f"Result left on branch {self.temporary_branch}")
        return "\n".join(lines)
