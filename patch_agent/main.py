#!/usr/bin/env python3
"""
patch-agent - Main Entry Point

Rebuilds a local branch from a remote branch of a GitHub repository, a list
of its pull requests (squash merged one by one) and local patch files.

Usage:
    patch-agent init
    patch-agent run [--yes] [--auto-resolve-markdown]
    patch-agent pr-fetch 11745 10000@a1b2c3d --branch-name=my-branch --checkout
    patch-agent gen-patch <commit> --patch-filename=my-patch

Or via ``python -m patch_agent.main``.
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from . import __version__
from .cli.gen_patch import GEN_PATCH_NAME_FLAG
from .cli.pr_fetch import PR_FETCH_BRANCH_NAME_FLAG, PR_FETCH_CHECKOUT_FLAG, PR_FETCH_REPO_NAME_FLAG
from .config import APP_NAME, CONFIG_ROOT, RunOptions, load_config
from .errors import PatchAgentError, VcsError
from .models import ConflictPolicy
from .tools import GitTool
from .utils import setup_logging, get_logger

# Commands with order-sensitive arguments, parsed by hand instead of argparse
TOKEN_COMMANDS = ("pr-fetch", "gen-patch")


def cmd_init(args):
    """Handle 'init' subcommand."""
    from .cli import init_repository

    if args.path:
        target = Path(args.path)
    else:
        try:
            target = GitTool.discover().root
        except VcsError:
            target = Path.cwd()

    success = init_repository(target)
    sys.exit(0 if success else 1)


def cmd_run(args):
    """Handle 'run' subcommand."""
    setup_logging(debug=args.debug)
    logger = get_logger()

    from .orchestrator import PatchOrchestrator

    try:
        options = RunOptions.from_env()
        if args.yes:
            options.yes = True
        if args.auto_resolve_markdown:
            options.conflict_policy = ConflictPolicy.AUTO_MARKDOWN

        git = GitTool.discover()
        config = load_config(git.root / CONFIG_ROOT)

        orchestrator = PatchOrchestrator(git, config, options=options)
        report = asyncio.run(orchestrator.run())
    except PatchAgentError as e:
        logger.error(str(e))
        sys.exit(1)
    except Exception as e:
        logger.exception(f"Run failed: {e}")
        sys.exit(1)

    print("\n" + report.summary())
    sys.exit(report.exit_code)


def cmd_pr_fetch(tokens: List[str], help_parser: argparse.ArgumentParser):
    """Handle 'pr-fetch' subcommand."""
    from .cli import parse_pr_fetch_args, pr_fetch

    if _wants_help(tokens):
        help_parser.print_help()
        sys.exit(0)

    try:
        args = parse_pr_fetch_args(tokens)
    except ValueError as e:
        print(f"Error: {e}\n")
        help_parser.print_help()
        sys.exit(1)

    setup_logging(debug=args.debug)
    logger = get_logger()

    if not args.pull_requests and not args.invalid:
        help_parser.print_help()
        sys.exit(1)

    try:
        sys.exit(pr_fetch(GitTool.discover(), args))
    except PatchAgentError as e:
        logger.error(str(e))
        sys.exit(1)
    except Exception as e:
        logger.exception(f"pr-fetch failed: {e}")
        sys.exit(1)


def cmd_gen_patch(tokens: List[str], help_parser: argparse.ArgumentParser):
    """Handle 'gen-patch' subcommand."""
    from .cli import parse_gen_patch_args, gen_patch

    if _wants_help(tokens):
        help_parser.print_help()
        sys.exit(0)

    try:
        args = parse_gen_patch_args(tokens)
    except ValueError as e:
        print(f"Error: {e}\n")
        help_parser.print_help()
        sys.exit(1)

    setup_logging(debug=args.debug)
    logger = get_logger()

    try:
        sys.exit(gen_patch(GitTool.discover(), args))
    except PatchAgentError as e:
        logger.error(str(e))
        sys.exit(1)
    except Exception as e:
        logger.exception(f"gen-patch failed: {e}")
        sys.exit(1)


def _wants_help(tokens: Sequence[str]) -> bool:
    for token in tokens:
        if token == "--":
            return False
        if token in ("-h", "--help"):
            return True
    return False


def build_parser():
    """Build the argument parser. Returns it with the parsers of the token commands."""
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="Maintain a fork of a repository as an upstream branch plus pull requests and patches"
    )
    parser.add_argument(
        "--version", "-V",
        action="version",
        version=f"{APP_NAME} {__version__}"
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # init command
    init_parser = subparsers.add_parser(
        "init",
        help=f"Create an example {CONFIG_ROOT}/config.toml"
    )
    init_parser.add_argument(
        "path",
        nargs="?",
        help="Target repository path (default: current repository)"
    )

    # run command
    run_parser = subparsers.add_parser(
        "run",
        help="Rebuild the local branch from the remote branch, pull requests and patches"
    )
    run_parser.add_argument(
        "--yes", "-y",
        action="store_true",
        help="Overwrite the local branch without asking"
    )
    run_parser.add_argument(
        "--auto-resolve-markdown",
        action="store_true",
        help="Resolve conflicts in .md files by keeping the current branch's version"
    )
    run_parser.add_argument(
        "--debug", "-d", "--verbose",
        action="store_true",
        help="Enable debug logging"
    )

    token_parsers: Dict[str, argparse.ArgumentParser] = {}

    # pr-fetch command
    pr_fetch_parser = subparsers.add_parser(
        "pr-fetch",
        help="Fetch pull requests into local branches",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=_flag_epilog(
            [PR_FETCH_BRANCH_NAME_FLAG, PR_FETCH_CHECKOUT_FLAG, PR_FETCH_REPO_NAME_FLAG],
            "Pin a pull request to a commit with <number>@<commit>.",
        ),
    )
    pr_fetch_parser.add_argument("args", nargs="*", metavar="PULL_REQUEST")
    token_parsers["pr-fetch"] = pr_fetch_parser

    # gen-patch command
    gen_patch_parser = subparsers.add_parser(
        "gen-patch",
        help=f"Turn commits into .patch files in {CONFIG_ROOT}",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=_flag_epilog(
            [GEN_PATCH_NAME_FLAG],
            "Merge commits cannot be turned into patches.",
        ),
    )
    gen_patch_parser.add_argument("args", nargs="*", metavar="COMMIT")
    token_parsers["gen-patch"] = gen_patch_parser

    return parser, token_parsers


def _flag_epilog(flags, note: str) -> str:
    lines = ["flags:"]
    for flag in flags:
        lines.append(f"  {flag.short}, {flag.long}")
        lines.append(f"      {flag.description}")
    lines.extend(["", note])
    return "\n".join(lines)


def main(argv: Optional[List[str]] = None):
    """CLI entry point."""
    argv = list(sys.argv[1:] if argv is None else argv)
    parser, token_parsers = build_parser()

    # Route to subcommand
    if argv and argv[0] in TOKEN_COMMANDS:
        command, tokens = argv[0], argv[1:]
        if command == "pr-fetch":
            cmd_pr_fetch(tokens, token_parsers[command])
        else:
            cmd_gen_patch(tokens, token_parsers[command])
        return

    args = parser.parse_args(argv)

    if args.command == "init":
        cmd_init(args)
    elif args.command == "run":
        cmd_run(args)
    else:
        # No subcommand - show help
        parser.print_help()
        sys.exit(0)


if __name__ == "__main__":
    main()
