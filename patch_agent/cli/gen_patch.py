"""Generate .patch files from commits."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from ..config import CONFIG_ROOT
from ..errors import VcsError
from ..tools import Flag, GitTool, is_valid_branch_name, normalize_commit_msg
from ..utils import get_logger

GEN_PATCH_NAME_FLAG = Flag("-n=", "--patch-filename=", "Choose filename for the patch")
DEBUG_FLAG = Flag("-d", "--debug", "Enable debug logging")


@dataclass
class GenPatchArgs:
    """Parsed ``gen-patch`` arguments: commits with optional patch names."""
    commits: List[Tuple[str, Optional[str]]] = field(default_factory=list)
    debug: bool = False


def parse_gen_patch_args(tokens: Sequence[str]) -> GenPatchArgs:
    """
    Parse ``gen-patch`` tokens.

    Raises:
        ValueError: On an unknown flag
    """
    args = GenPatchArgs()
    no_more_flags = False
    i = 0

    while i < len(tokens):
        arg = tokens[i]
        i += 1

        if arg == "--" and not no_more_flags:
            no_more_flags = True
            continue

        if not no_more_flags:
            if DEBUG_FLAG.matches(arg):
                args.debug = True
                continue
            if arg.startswith("-"):
                raise ValueError(f"Invalid flag: {arg}")

        patch_name = None
        if i < len(tokens):
            value = GEN_PATCH_NAME_FLAG.extract_value(tokens[i])
            if value is not None and is_valid_branch_name(value):
                patch_name = value
                i += 1

        args.commits.append((arg, patch_name))

    return args


def patch_filename(git: GitTool, commit: str, custom_name: Optional[str] = None) -> str:
    """Custom name, else the normalized commit subject, else the commit hash."""
    if custom_name:
        return f"{custom_name}.patch"
    try:
        subject = normalize_commit_msg(git("log", "--format=%s", "--max-count=1", commit))
    except VcsError:
        subject = ""
    return f"{subject or commit}.patch"


def gen_patch(git: GitTool, args: GenPatchArgs) -> int:
    """
    Write ``.patch-agent/<name>.patch`` for every commit.

    Returns:
        Exit code: 0 if every patch was written, 1 otherwise
    """
    logger = get_logger(__name__)

    if not args.commits:
        logger.error("You haven't specified any commit hashes")
        return 1

    config_dir = git.root / CONFIG_ROOT
    if not config_dir.exists():
        logger.info(f"Config directory {config_dir} does not exist, creating it...")
        config_dir.mkdir(parents=True)

    failures = 0
    for commit, custom_name in args.commits:
        # Only merge commits have a second parent
        if git.run("rev-parse", "--verify", "--quiet", f"{commit}^2").ok:
            logger.error(f"Commit {commit} is a merge commit, which cannot be turned into a .patch file")
            failures += 1
            continue

        path: Path = config_dir / patch_filename(git, commit, custom_name)
        result = git.run("format-patch", "-1", "--stdout", commit)
        if not result.ok:
            logger.error(f"Could not get patch output for patch {commit}\n{result.stderr}")
            failures += 1
            continue

        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(result.stdout)
        logger.info(f"Created patch file at {path}")

    return 0 if failures == 0 else 1
