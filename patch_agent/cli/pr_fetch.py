"""Fetch pull requests as local branches."""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from ..errors import ConfigError, ResolveError, VcsError
from ..models import PullRequestRef
from ..orchestrator import EphemeralRemoteManager, PullRequestResolver
from ..tools import Flag, GitHubTool, GitTool, NameAllocator, is_valid_branch_name, parse_pull_request
from ..utils import get_logger

PR_FETCH_BRANCH_NAME_FLAG = Flag(
    "-b=",
    "--branch-name=",
    "Choose local name for the branch belonging to the preceding pull request",
)
PR_FETCH_CHECKOUT_FLAG = Flag(
    "-c",
    "--checkout",
    "Check out the branch belonging to the first pull request",
)
PR_FETCH_REPO_NAME_FLAG = Flag(
    "-r=",
    "--repo-name=",
    "Choose a github repository, using the `origin` remote of the current repository by default",
)
DEBUG_FLAG = Flag("-d", "--debug", "Enable debug logging")

GITHUB_REMOTE_PREFIXES = ("git@github.com:", "https://github.com/")
GITHUB_REMOTE_SUFFIX = ".git"


@dataclass
class PrFetchArgs:
    """Parsed ``pr-fetch`` arguments."""
    pull_requests: List[PullRequestRef] = field(default_factory=list)
    invalid: List[str] = field(default_factory=list)
    repo_name: Optional[str] = None
    checkout: bool = False
    debug: bool = False


def parse_pr_fetch_args(tokens: Sequence[str]) -> PrFetchArgs:
    """
    Parse ``pr-fetch`` tokens.

    A ``--branch-name=`` token names the branch of the pull request right
    before it. After ``--`` every token is taken as a pull request.

    Raises:
        ValueError: On an unknown flag
    """
    logger = get_logger(__name__)
    args = PrFetchArgs()
    no_more_flags = False
    i = 0

    while i < len(tokens):
        arg = tokens[i]
        i += 1

        if arg == "--" and not no_more_flags:
            no_more_flags = True
            continue

        if not no_more_flags:
            repo_name = PR_FETCH_REPO_NAME_FLAG.extract_value(arg)
            if repo_name is not None:
                args.repo_name = repo_name
                continue
            if PR_FETCH_CHECKOUT_FLAG.matches(arg):
                args.checkout = True
                continue
            if DEBUG_FLAG.matches(arg):
                args.debug = True
                continue
            if arg.startswith("-"):
                raise ValueError(f"Invalid flag: {arg}")

        try:
            ref = parse_pull_request(arg)
        except ValueError as e:
            logger.error(str(e))
            args.invalid.append(arg)
            continue

        custom_branch_name = None
        if i < len(tokens) and not no_more_flags:
            value = PR_FETCH_BRANCH_NAME_FLAG.extract_value(tokens[i])
            if value is not None:
                i += 1
                if is_valid_branch_name(value):
                    custom_branch_name = value
                else:
                    logger.warning(f"Ignoring invalid branch name {value!r} for #{ref.number}")

        args.pull_requests.append(
            PullRequestRef(
                number=ref.number,
                custom_branch_name=custom_branch_name,
                commit_pin=ref.commit_pin,
            )
        )

    return args


def repo_from_origin(git: GitTool) -> Optional[str]:
    """Return ``owner/repo`` of the ``origin`` remote if it points at GitHub."""
    try:
        url = git("remote", "get-url", "origin")
    except VcsError:
        return None

    for prefix in GITHUB_REMOTE_PREFIXES:
        if url.startswith(prefix):
            name = url[len(prefix):]
            if name.endswith(GITHUB_REMOTE_SUFFIX):
                name = name[:-len(GITHUB_REMOTE_SUFFIX)]
            return name or None
    return None


def pr_fetch(git: GitTool, args: PrFetchArgs, github: Optional[GitHubTool] = None) -> int:
    """
    Fetch every requested pull request into a local branch.

    Returns:
        Exit code: 0 if every pull request was fetched, 1 otherwise
    """
    logger = get_logger(__name__)

    repo = args.repo_name or repo_from_origin(git)
    if not repo:
        raise ConfigError(
            "Could not get the remote, it should be in the form e.g. helix-editor/helix."
        )

    remotes = EphemeralRemoteManager(git)
    resolver = PullRequestResolver(github or GitHubTool(), NameAllocator(git), remotes)
    failures = len(args.invalid)

    for i, ref in enumerate(args.pull_requests):
        try:
            metadata, info = resolver.resolve(
                repo,
                ref.number,
                custom_branch_name=ref.custom_branch_name,
                commit_pin=ref.commit_pin,
            )
        except ResolveError as e:
            if e.info is not None:
                remotes.discard_leftovers(e.info.remote.local_alias, e.info.branch.local_name)
            logger.error(str(e))
            failures += 1
            continue

        at_commit = f", at commit {ref.commit_pin}" if ref.commit_pin else ""
        logger.info(
            f"Fetched pull request #{ref.number} {metadata.title} ({metadata.html_url}) "
            f"available at branch {info.branch.local_name}{at_commit}"
        )

        remotes.remove_remote(info.remote.local_alias)

        # Only the first pull request is checked out
        if i == 0 and args.checkout:
            try:
                git("checkout", info.branch.local_name)
            except VcsError as e:
                logger.error(f"Could not check out branch {info.branch.local_name}:\n{e}")
            else:
                logger.info(f"Automatically checked out the first branch: {info.branch.local_name}")

    return 0 if failures == 0 else 1
