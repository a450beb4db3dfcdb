"""Main orchestrator: merge pull requests on top of an upstream branch."""

import asyncio
from typing import Callable, List, Optional, Tuple, Union

from ..config import APP_NAME, CONFIG_ROOT, AgentConfig, RunOptions
from ..errors import (
    BackupError,
    FatalAbort,
    PatchAgentError,
    ResolveError,
    VcsError,
)
from ..models import (
    BackupEntry,
    Branch,
    BranchAndRemote,
    PRStatus,
    PullRequestMetadata,
    PullRequestRef,
    Remote,
    RunReport,
)
from ..tools import ConfigBackupStore, GitHubTool, GitTool, NameAllocator, parse_pin, parse_pull_request
from ..tools.parsing import BRANCH_PIN_SEPARATOR
from ..utils import confirm, get_logger
from .merge import MergeEngine
from .remotes import EphemeralRemoteManager
from .resolver import PullRequestResolver

Lookup = Union[PullRequestMetadata, BaseException]


class PatchOrchestrator:
    """
    Builds the configured local branch from an upstream branch, a list of
    pull requests and a set of patch files.

    Steps:
    - Back up the configuration directory
    - Fetch and check out the upstream branch
    - Fetch and squash merge every pull request, skipping failures
    - Restore the configuration directory and apply patches
    - Commit, move the result to a temporary branch, clean up
    - Rename the temporary branch onto the target branch after confirmation
    """

    def __init__(
        self,
        git: GitTool,
        config: AgentConfig,
        options: Optional[RunOptions] = None,
        github: Optional[GitHubTool] = None,
        confirm_func: Optional[Callable[[str], bool]] = None,
        names: Optional[NameAllocator] = None,
        upstream_url: Optional[str] = None
    ):
        """
        Initialize orchestrator.

        Args:
            git: Git gateway rooted at the repository
            config: Parsed configuration
            options: Run options (defaults to RunOptions())
            github: GitHub tool for pull request lookups
            confirm_func: Asks the user before the destructive rename
            names: Name allocator (random aliases)
            upstream_url: Override for the upstream clone URL
        """
        self.git = git
        self.config = config
        self.options = options or RunOptions()
        self.confirm_func = confirm_func or confirm
        self.upstream_url = upstream_url or config.upstream_url
        self.logger = get_logger(__name__)

        self.config_dir = git.root / CONFIG_ROOT
        self.backup = ConfigBackupStore(self.config_dir)
        self.names = names or NameAllocator(git)
        self.remotes = EphemeralRemoteManager(git)
        self.merger = MergeEngine(git, policy=self.options.conflict_policy)
        self.resolver = PullRequestResolver(
            github or GitHubTool(token=self.options.github_token),
            self.names,
            self.remotes,
        )

    async def run(self) -> RunReport:
        """
        Execute the whole run.

        Returns:
            RunReport; ``renamed`` is False when the user declined the rename

        Raises:
            FatalAbort: If the upstream branch could not be set up or the
                configuration directory could not be restored (repository
                is rolled back to the branch it was on)
            BackupError: If the configuration directory could not be read
        """
        report = RunReport(target_branch=self.config.local_branch)
        entries = self._snapshot()

        try:
            upstream, previous_branch = self._setup_upstream()

            try:
                refs = self._parse_pull_requests(report)
                lookups = await self._lookup_all(refs)

                for ref, lookup in zip(refs, lookups):
                    self._merge_pull_request(ref, lookup, report)

                self._restore_configuration(entries, report)
                self._apply_patches(entries, report)
                self._commit_configuration(entries)

                temporary_branch = self.names.unique_alias("temp-branch")
                self.git("switch", "--create", temporary_branch)
            except Exception as e:
                self._rollback(previous_branch, upstream)
                if not isinstance(e, (PatchAgentError, OSError)):
                    raise
                raise FatalAbort(f"Aborted, repository restored to {previous_branch}\n{e}") from e

            report.temporary_branch = temporary_branch
            self.remotes.safe_cleanup(upstream.remote.local_alias, upstream.branch.local_name)

            self._finish(report)
        finally:
            self.backup.discard(entries)

        return report

    def _snapshot(self) -> List[BackupEntry]:
        if not self.config_dir.is_dir():
            self.logger.debug(f"No {CONFIG_ROOT} directory, nothing to back up")
            return []
        return self.backup.snapshot()

    def _setup_upstream(self) -> Tuple[BranchAndRemote, str]:
        """Fetch and check out the upstream branch. Returns it and the previous branch."""
        upstream_name, commit_pin = parse_pin(self.config.remote_branch, BRANCH_PIN_SEPARATOR)
        upstream = BranchAndRemote(
            branch=Branch(
                local_name=self.names.unique_alias(upstream_name),
                upstream_name=upstream_name,
            ),
            remote=Remote(
                local_alias=self.names.unique_alias(self.config.repo),
                repository_url=self.upstream_url,
            ),
        )

        try:
            self.remotes.materialize(upstream.remote, upstream.branch, commit_pin)
            previous_branch = self.remotes.checkout_from_remote(
                upstream.branch.local_name,
                upstream.remote.local_alias,
            )
        except Exception as e:
            self.remotes.discard_leftovers(upstream.remote.local_alias, upstream.branch.local_name)
            if not isinstance(e, PatchAgentError):
                raise
            raise FatalAbort(
                f"Could not set up branch {upstream_name} of {self.upstream_url}\n{e}"
            ) from e

        self.logger.info(f"Checked out {upstream_name} of {self.config.repo}")
        return upstream, previous_branch

    def _parse_pull_requests(self, report: RunReport) -> List[PullRequestRef]:
        if not self.config.pull_requests:
            self.logger.info("You haven't specified any pull requests to fetch in your config.")

        refs = []
        for token in self.config.pull_requests:
            try:
                refs.append(parse_pull_request(token))
            except ValueError as e:
                self.logger.error(str(e))
                report.skipped.append(token)
                report.statuses[token] = PRStatus.FAILED
                continue
            report.statuses[refs[-1].number] = PRStatus.PENDING
        return refs

    async def _lookup_all(self, refs: List[PullRequestRef]) -> List[Lookup]:
        """Look up metadata concurrently, keeping the order of ``refs``."""
        semaphore = asyncio.Semaphore(max(1, self.options.max_parallel_lookups))

        async def limited_lookup(ref: PullRequestRef) -> PullRequestMetadata:
            async with semaphore:
                return await asyncio.to_thread(
                    self.resolver.lookup, self.config.repo, ref.number
                )

        return await asyncio.gather(
            *(limited_lookup(ref) for ref in refs),
            return_exceptions=True,
        )

    def _merge_pull_request(
        self,
        ref: PullRequestRef,
        lookup: Lookup,
        report: RunReport
    ) -> None:
        """Fetch and merge one pull request. Failures are logged and skipped."""
        if isinstance(lookup, ResolveError):
            self._skip(ref, report, f"Could not fetch branch from remote\n\n{lookup}")
            return
        if isinstance(lookup, BaseException):
            raise lookup

        try:
            info = self.resolver.materialize(lookup, ref)
        except ResolveError as e:
            if e.info is not None:
                self.remotes.discard_leftovers(e.info.remote.local_alias, e.info.branch.local_name)
            self._skip(ref, report, str(e))
            return

        report.statuses[ref.number] = PRStatus.RESOLVED
        try:
            self.merger.merge(
                info.branch.local_name,
                info.branch.upstream_name,
                info.remote.repository_url,
            )
        except PatchAgentError as e:
            self._skip(
                ref,
                report,
                f"Could not merge branch {info.branch.local_name} into the current branch "
                f"for pull request #{ref.number}, skipping\n\n{e}",
                status=PRStatus.CONFLICT,
            )
        else:
            report.merged.append(ref.number)
            report.statuses[ref.number] = PRStatus.MERGED
            self.logger.info(f"Merged pull request #{ref.number} {lookup.title} ({lookup.html_url})")
        finally:
            self.remotes.safe_cleanup(info.remote.local_alias, info.branch.local_name)

    def _skip(
        self,
        ref: PullRequestRef,
        report: RunReport,
        message: str,
        status: PRStatus = PRStatus.FAILED
    ) -> None:
        self.logger.error(f"Pull request #{ref.number} skipped: {message}")
        report.skipped.append(ref.number)
        report.statuses[ref.number] = status

    def _restore_configuration(self, entries: List[BackupEntry], report: RunReport) -> None:
        """Recreate the configuration directory and write the backup into it."""
        try:
            self.config_dir.mkdir(exist_ok=True)
        except OSError as e:
            raise BackupError(f"Could not create directory {CONFIG_ROOT}: {e}") from e

        self.backup.restore(entries)
        report.restored_files = [entry.filename for entry in entries]
        self.logger.debug(f"Restored {len(entries)} files into {CONFIG_ROOT}")

    def _apply_patches(self, entries: List[BackupEntry], report: RunReport) -> None:
        """Apply every restored .patch file named in ``patches``. Failures are skipped."""
        if not self.config.patches:
            return

        available = {entry.stem for entry in entries if entry.is_patch}
        for missing in sorted(self.config.patches - available):
            self.logger.warning(f"Patch {missing} not found in {CONFIG_ROOT}, skipping")

        for entry in entries:
            if not entry.is_patch or entry.stem not in self.config.patches:
                continue

            patch_path = self.config_dir / entry.filename
            try:
                self.git("am", "--keep-cr", "--signoff", str(patch_path))
            except VcsError as e:
                self.logger.error(f"Could not apply patch {entry.stem}, skipping\n{e}")
                report.failed_patches.append(entry.stem)
                self._abort_am()
                continue

            subject = self.git.last_commit_message().splitlines()
            report.applied_patches.append(entry.stem)
            self.logger.info(f"Applied patch {entry.stem} {subject[0] if subject else ''}")

    def _abort_am(self) -> None:
        try:
            self.git("am", "--abort")
        except VcsError as e:
            self.logger.warning(f"Could not abort patch application:\n{e.stderr}")

    def _commit_configuration(self, entries: List[BackupEntry]) -> None:
        if not entries:
            return
        self.git("add", CONFIG_ROOT)
        if self.git.has_staged_changes():
            self.git("commit", "--message", f"{APP_NAME}: Restore configuration files")

    def _rollback(self, previous_branch: str, upstream: BranchAndRemote) -> None:
        """Best-effort return to the branch the run started on."""
        self.logger.error(f"Rolling back to {previous_branch}")
        try:
            self.git("checkout", previous_branch)
        except VcsError as e:
            self.logger.error(f"Could not check out {previous_branch} again:\n{e.stderr}")
        self.remotes.discard_leftovers(upstream.remote.local_alias, upstream.branch.local_name)

    def _finish(self, report: RunReport) -> None:
        """Rename the temporary branch onto the target branch, if confirmed."""
        temporary_branch = report.temporary_branch
        target = self.config.local_branch

        if self.options.yes or self.confirm_func(
            f"Overwrite branch {target}? This is irreversible."
        ):
            # Discards whatever the target branch pointed to before
            self.git("branch", "--move", "--force", temporary_branch, target)
            report.renamed = True
            self.logger.info(f"Success! Branch {target} has been updated")
            return

        print(
            f"\n  You can still manually overwrite {target} with the following command:\n"
            f"\n    git branch --move --force {temporary_branch} {target}\n"
        )
