"""Squash merging of fetched branches into the current branch."""

from typing import List, Optional, Sequence

from ..config import APP_NAME
from ..errors import MergeConflictError, VcsError
from ..models import ConflictPolicy, MergeResult
from ..tools import GitTool
from ..utils import get_logger

AUTO_RESOLVE_EXTENSIONS = (".md",)


class MergeEngine:
    """
    Merges local branches into the current branch.

    Handles:
    - Squash merge and commit with a generated message
    - Conflict handling according to the configured policy
    - Resetting the working tree when a merge cannot complete
    """

    def __init__(
        self,
        git: GitTool,
        policy: ConflictPolicy = ConflictPolicy.MANUAL,
        auto_resolve_extensions: Sequence[str] = AUTO_RESOLVE_EXTENSIONS
    ):
        """
        Initialize merge engine.

        Args:
            git: Git gateway
            policy: What to do with conflicts (manual by default)
            auto_resolve_extensions: File endings that AUTO_MARKDOWN may resolve
        """
        self.git = git
        self.policy = policy
        self.auto_resolve_extensions = tuple(auto_resolve_extensions)
        self.logger = get_logger(__name__)

    def merge(
        self,
        local_branch: str,
        upstream_name: Optional[str] = None,
        repository_url: Optional[str] = None
    ) -> MergeResult:
        """
        Squash merge ``local_branch`` and commit the result.

        Args:
            local_branch: Branch to merge
            upstream_name: Upstream ref name, used in the commit message
            repository_url: Repository the branch came from, used in the commit message

        Returns:
            MergeResult; ``committed`` is False when there was nothing to commit

        Raises:
            MergeConflictError: If conflicts remain (working tree is reset)
        """
        resolved: List[str] = []

        try:
            self.git("merge", "--squash", local_branch)
        except VcsError as e:
            resolved = self._handle_conflicts(local_branch, e)

        if not self.git.has_staged_changes():
            self.logger.info(f"{local_branch} is already merged, nothing to commit")
            return MergeResult(branch=local_branch, success=True, resolved_files=resolved)

        message = self.commit_message(local_branch, upstream_name, repository_url)
        try:
            self.git("commit", "--message", message)
        except VcsError:
            self._reset()
            raise

        return MergeResult(
            branch=local_branch,
            success=True,
            committed=True,
            resolved_files=resolved,
        )

    def _handle_conflicts(self, local_branch: str, error: VcsError) -> List[str]:
        """Resolve what the policy allows, otherwise reset and raise."""
        try:
            conflicted = self.git.conflicted_files()
        except VcsError:
            conflicted = []

        if not conflicted:
            # Failed before touching the index, e.g. unknown branch
            self._reset()
            raise MergeConflictError(local_branch) from error

        if self.policy is ConflictPolicy.MANUAL:
            self._reset()
            raise MergeConflictError(local_branch, conflicted) from error

        outside = [f for f in conflicted if not f.endswith(self.auto_resolve_extensions)]
        if outside:
            self._reset()
            raise MergeConflictError(local_branch, outside) from error

        for path in conflicted:
            try:
                self.git("checkout", "--ours", "--", path)
                self.git("add", "--", path)
            except VcsError as e:
                self._reset()
                raise MergeConflictError(local_branch, [path]) from e
            self.logger.warning(f"Kept our version of {path} while merging {local_branch}")

        return conflicted

    def _reset(self) -> None:
        try:
            self.git("reset", "--hard")
        except VcsError as e:
            self.logger.error(f"Could not reset working tree after failed merge:\n{e.stderr}")

    @staticmethod
    def commit_message(
        local_branch: str,
        upstream_name: Optional[str] = None,
        repository_url: Optional[str] = None
    ) -> str:
        if upstream_name and repository_url:
            return f"{APP_NAME}: Merge branch {upstream_name} of {repository_url}"
        return f"{APP_NAME}: Merge branch {local_branch}"
