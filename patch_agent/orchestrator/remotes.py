"""Ephemeral remotes and branches used to fetch external history."""

from typing import List, Optional

from ..errors import VcsError, RemoteFetchError, CleanupError
from ..models import Branch, Remote
from ..tools import GitTool
from ..utils import get_logger


class EphemeralRemoteManager:
    """
    Adds remotes, fetches refs into local branches and removes both again.

    Nothing here retries; the caller decides what to clean up on failure.
    """

    def __init__(self, git: GitTool):
        self.git = git
        self.logger = get_logger(__name__)

    def materialize(
        self,
        remote: Remote,
        branch: Branch,
        commit_pin: Optional[str] = None
    ) -> None:
        """
        Fetch ``branch.upstream_name`` of ``remote`` into ``branch.local_name``.

        Args:
            remote: Remote to add
            branch: Upstream ref and the local branch to create
            commit_pin: Commit the local branch is forced to afterwards

        Raises:
            VcsError: If the remote could not be added
            RemoteFetchError: If the fetch failed (the remote is removed again)
                or the pin commit does not exist (remote and branch are kept)
        """
        self.git("remote", "add", remote.local_alias, remote.repository_url)
        self.logger.debug(f"Added remote {remote.local_alias} for {remote.repository_url}")

        try:
            self.git(
                "fetch",
                remote.repository_url,
                f"{branch.upstream_name}:{branch.local_name}",
            )
        except VcsError as e:
            self._quietly("remote", "remove", remote.local_alias)
            raise RemoteFetchError(
                f"We couldn't find branch {branch.upstream_name} of repository "
                f"{remote.repository_url}. Are you sure it exists?\n{e}"
            ) from e

        self.logger.debug(
            f"Fetched branch {branch.upstream_name} as {branch.local_name} "
            f"from {remote.repository_url}"
        )

        if commit_pin:
            try:
                self.git("branch", "--force", branch.local_name, commit_pin)
            except VcsError as e:
                raise RemoteFetchError(
                    f"We couldn't find commit {commit_pin} of branch {branch.local_name}. "
                    f"Are you sure it exists?\n{e}"
                ) from e
            self.logger.debug(f"Reset {branch.local_name} to commit {commit_pin}")

    def cleanup(self, remote_alias: str, branch_name: str) -> None:
        """
        Force-delete the branch and remove the remote.

        Both removals are attempted even if the first one fails.

        Raises:
            CleanupError: Carrying every failure
        """
        errors = []
        for args in (
            ("branch", "--delete", "--force", branch_name),
            ("remote", "remove", remote_alias),
        ):
            try:
                self.git(*args)
            except VcsError as e:
                errors.append(e)

        if errors:
            raise CleanupError(errors)

        self.logger.debug(f"Removed branch {branch_name} and remote {remote_alias}")

    def safe_cleanup(self, remote_alias: str, branch_name: str) -> bool:
        """Like ``cleanup`` but only logs failures. Returns True when clean."""
        try:
            self.cleanup(remote_alias, branch_name)
            return True
        except CleanupError as e:
            self.logger.warning(f"Could not clean up {branch_name} / {remote_alias}:\n{e}")
            return False

    def remove_remote(self, remote_alias: str) -> None:
        """Remove only the remote, keeping the fetched branch."""
        self._quietly("remote", "remove", remote_alias)

    def discard_leftovers(self, remote_alias: str, branch_name: str) -> None:
        """Remove whichever of the branch and remote still exist after a failure."""
        if self.git.branch_exists(branch_name):
            self._quietly("branch", "--delete", "--force", branch_name)
        if remote_alias in self.list_remotes():
            self._quietly("remote", "remove", remote_alias)

    def list_remotes(self) -> List[str]:
        try:
            return self.git("remote").splitlines()
        except VcsError as e:
            self.logger.warning(f"Could not list remotes:\n{e.stderr}")
            return []

    def checkout_from_remote(self, branch_name: str, remote_alias: str) -> str:
        """
        Check out a fetched branch, returning the branch that was checked out before.

        Raises:
            RemoteFetchError: If there is no current branch (empty history),
                or the checkout failed (branch and remote are cleaned up)
        """
        try:
            previous_branch = self.git.current_branch()
        except VcsError as e:
            raise RemoteFetchError(
                "Couldn't get the current branch. "
                f"This usually happens when you have no commits.\n{e}"
            ) from e

        try:
            self.git("checkout", branch_name)
        except VcsError as e:
            self.safe_cleanup(remote_alias, branch_name)
            raise RemoteFetchError(
                f"Could not checkout branch: {branch_name}, "
                f"which belongs to remote {remote_alias}\n{e}"
            ) from e

        return previous_branch

    def _quietly(self, *args: str) -> None:
        try:
            self.git(*args)
        except VcsError as e:
            self.logger.warning(f"Cleanup command failed: git {' '.join(args)}\n{e.stderr}")
