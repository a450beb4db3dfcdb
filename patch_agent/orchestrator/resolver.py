"""Turning pull request numbers into fetched local branches."""

from typing import Optional, Tuple

from ..errors import NameAllocationError, PatchAgentError, ResolveError
from ..models import Branch, BranchAndRemote, PullRequestMetadata, PullRequestRef, Remote
from ..tools import GitHubTool, NameAllocator, is_valid_branch_name
from ..utils import get_logger
from .remotes import EphemeralRemoteManager


class PullRequestResolver:
    """
    Resolves a pull request to its head repository and branch.

    One metadata lookup per pull request, then the head branch is
    fetched through the remote manager. Cleanup after a failed fetch is
    left to the caller.
    """

    def __init__(
        self,
        github: GitHubTool,
        names: NameAllocator,
        remotes: EphemeralRemoteManager
    ):
        self.github = github
        self.names = names
        self.remotes = remotes
        self.logger = get_logger(__name__)

    def lookup(self, repo: str, pr_number: str) -> PullRequestMetadata:
        """Fetch metadata only. Safe to call concurrently."""
        return self.github.get_pull_request(repo, pr_number)

    def resolve(
        self,
        repo: str,
        pr_number: str,
        custom_branch_name: Optional[str] = None,
        commit_pin: Optional[str] = None
    ) -> Tuple[PullRequestMetadata, BranchAndRemote]:
        """
        Look up a pull request and fetch its head branch.

        Raises:
            FetchError: If the metadata lookup failed
            ResolveError: If the head branch could not be fetched or pinned
        """
        metadata = self.lookup(repo, pr_number)
        ref = PullRequestRef(
            number=pr_number,
            custom_branch_name=custom_branch_name,
            commit_pin=commit_pin,
        )
        return metadata, self.materialize(metadata, ref)

    def plan(self, metadata: PullRequestMetadata, ref: PullRequestRef) -> BranchAndRemote:
        """Choose the local branch and remote names for a pull request."""
        local_name = ref.custom_branch_name
        if local_name and not is_valid_branch_name(local_name):
            self.logger.warning(
                f"Invalid branch name {local_name!r} for pull request #{ref.number}, "
                "using a generated one"
            )
            local_name = None

        # Never fetch into a branch that already exists, custom or not
        candidate = local_name or f"{ref.number}/{metadata.head_ref}"
        try:
            local_name = self.names.first_available_branch_name(candidate)
        except NameAllocationError as e:
            raise ResolveError(ref.number, str(e)) from e
        if ref.custom_branch_name == candidate and local_name != candidate:
            self.logger.warning(
                f"Branch {candidate} already exists, using {local_name} for pull request #{ref.number}"
            )

        return BranchAndRemote(
            branch=Branch(local_name=local_name, upstream_name=metadata.head_ref),
            remote=Remote(
                local_alias=self.names.unique_alias(f"pr-{ref.number}"),
                repository_url=metadata.clone_url,
            ),
        )

    def materialize(self, metadata: PullRequestMetadata, ref: PullRequestRef) -> BranchAndRemote:
        """
        Fetch an already looked up pull request into a local branch.

        Raises:
            ResolveError: Wrapping the fetch or pin failure
        """
        info = self.plan(metadata, ref)

        try:
            self.remotes.materialize(info.remote, info.branch, ref.commit_pin)
        except PatchAgentError as e:
            raise ResolveError(
                ref.number,
                f"Could not add remote branch for pull request #{ref.number}, skipping.\n{e}",
                info=info,
            ) from e

        return info
