"""CLI commands for patch-agent."""

from .init_cmd import init_repository
from .pr_fetch import PrFetchArgs, parse_pr_fetch_args, pr_fetch
from .gen_patch import GenPatchArgs, parse_gen_patch_args, gen_patch

__all__ = [
    "init_repository",
    "PrFetchArgs",
    "parse_pr_fetch_args",
    "pr_fetch",
    "GenPatchArgs",
    "parse_gen_patch_args",
    "gen_patch",
]
