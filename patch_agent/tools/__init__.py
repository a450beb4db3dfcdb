"""Tools for patch-agent."""

from .git_tool import GitTool, CommandResult, CommandRunner, SubprocessRunner, find_repo_root
from .github_tool import GitHubTool
from .naming import NameAllocator, is_valid_branch_name, normalize_commit_msg
from .parsing import Flag, parse_pin, parse_pull_request, ignore_octothorpe
from .backup import ConfigBackupStore

__all__ = [
    "GitTool",
    "CommandResult",
    "CommandRunner",
    "SubprocessRunner",
    "find_repo_root",
    "GitHubTool",
    "NameAllocator",
    "is_valid_branch_name",
    "normalize_commit_msg",
    "Flag",
    "parse_pin",
    "parse_pull_request",
    "ignore_octothorpe",
    "ConfigBackupStore",
]
