"""Tests for the run orchestrator against a scripted git.

- Given-When-Then structure
- Only git and the GitHub API are faked
"""

import asyncio
from unittest.mock import MagicMock

import pytest

from patch_agent.config import AgentConfig, RunOptions
from patch_agent.errors import FatalAbort, FetchError
from patch_agent.models import PRStatus, PullRequestMetadata
from patch_agent.orchestrator import PatchOrchestrator
from patch_agent.tools import GitHubTool


def make_config(pull_requests=(), patches=None, remote_branch="main"):
    return AgentConfig(
        repo="octo/demo",
        remote_branch=remote_branch,
        local_branch="patched",
        pull_requests=list(pull_requests),
        patches=patches,
    )


def make_github(known=("42",)):
    def get_pull_request(repo, number):
        if number not in known:
            raise FetchError(number, GitHubTool.pull_request_url(repo, number), "Not Found", status=404)
        return PullRequestMetadata(
            number=number,
            title=f"Pull request {number}",
            html_url=f"https://github.com/{repo}/pull/{number}",
            head_ref="feature-x",
            clone_url="https://github.com/alice/demo.git",
        )

    github = MagicMock(spec=GitHubTool)
    github.get_pull_request.side_effect = get_pull_request
    return github


@pytest.fixture
def scripted(runner):
    """Runner for a repository on 'main' where no local branch exists yet."""
    runner.on("rev-parse", "--verify", returncode=1)
    runner.on("rev-parse", "--abbrev-ref", "HEAD", stdout="main\n")
    return runner


class TestPatchOrchestrator:
    """Tests for the run sequence."""

    def test_upstream_branch_is_fetched_with_pin(self, git, scripted):
        """Given 'main @ abc', the upstream branch should be pinned to abc."""
        # Given
        orchestrator = PatchOrchestrator(
            git, make_config(remote_branch="main @ abc"), options=RunOptions(yes=True), github=make_github()
        )

        # When
        asyncio.run(orchestrator.run())

        # Then
        fetch = scripted.calls_to("fetch")[0]
        assert fetch[1] == "https://github.com/octo/demo.git"
        assert fetch[2].startswith("main:")
        pin = scripted.calls_to("branch", "--force")[0]
        assert pin[-1] == "abc"

    def test_pull_requests_merged_in_order(self, git, scripted):
        """Given two pull requests, they should be merged in list order."""
        # Given
        scripted.on("diff", "--cached", "--quiet", returncode=1)
        orchestrator = PatchOrchestrator(
            git,
            make_config(["42", "#43"]),
            options=RunOptions(yes=True),
            github=make_github(known=("42", "43")),
        )

        # When
        report = asyncio.run(orchestrator.run())

        # Then
        assert report.merged == ["42", "43"]
        merges = [call[-1] for call in scripted.calls_to("merge", "--squash")]
        assert merges == ["42/feature-x", "43/feature-x"]
        assert report.renamed

    def test_unknown_pull_request_is_skipped(self, git, scripted):
        orchestrator = PatchOrchestrator(
            git, make_config(["404", "42"]), options=RunOptions(yes=True), github=make_github()
        )

        report = asyncio.run(orchestrator.run())

        assert report.skipped == ["404"]
        assert report.statuses["404"] is PRStatus.FAILED
        assert report.merged == ["42"]

    def test_confirmation_controls_rename(self, git, scripted):
        """Given the user confirms, the temporary branch should replace the target."""
        # Given
        questions = []

        def confirm(message):
            questions.append(message)
            return True

        orchestrator = PatchOrchestrator(
            git, make_config(), options=RunOptions(), github=make_github(), confirm_func=confirm
        )

        # When
        report = asyncio.run(orchestrator.run())

        # Then
        assert questions == ["Overwrite branch patched? This is irreversible."]
        assert scripted.calls_to("branch", "--move", "--force") == [
            ("branch", "--move", "--force", report.temporary_branch, "patched")
        ]

    def test_declined_rename_prints_command(self, git, scripted, capsys):
        orchestrator = PatchOrchestrator(
            git, make_config(), options=RunOptions(), github=make_github(), confirm_func=lambda _: False
        )

        report = asyncio.run(orchestrator.run())

        assert not report.renamed
        assert not scripted.called("branch", "--move")
        assert f"git branch --move --force {report.temporary_branch} patched" in capsys.readouterr().out

    def test_upstream_fetch_failure_aborts_before_checkout(self, git, scripted):
        """Given the upstream branch cannot be fetched, nothing should be checked out."""
        # Given
        scripted.fail("fetch")
        orchestrator = PatchOrchestrator(git, make_config(), options=RunOptions(yes=True), github=make_github())

        # When/Then
        with pytest.raises(FatalAbort, match="Could not set up branch main"):
            asyncio.run(orchestrator.run())

        assert not scripted.called("checkout")
        assert not scripted.called("merge")

    def test_failure_after_checkout_rolls_back(self, git, scripted):
        """Given the temporary branch cannot be created, should return to the previous branch."""
        # Given
        scripted.fail("switch", "--create")
        orchestrator = PatchOrchestrator(git, make_config(), options=RunOptions(yes=True), github=make_github())

        # When/Then
        with pytest.raises(FatalAbort, match="restored to main"):
            asyncio.run(orchestrator.run())

        assert scripted.calls_to("checkout")[-1] == ("checkout", "main")
        assert not scripted.called("branch", "--move")

    def test_failed_patch_is_aborted_and_skipped(self, git, scripted, tmp_path):
        """Given a patch that does not apply, 'am --abort' runs and the run continues."""
        # Given
        config_dir = tmp_path / ".patch-agent"
        config_dir.mkdir()
        (config_dir / "bad.patch").write_text("not a patch")
        (config_dir / "good.patch").write_text("From abc")
        scripted.fail("am", "--keep-cr", "--signoff", str(config_dir / "bad.patch"))
        scripted.on("log", "-1", "--format=%B", stdout="Good change\n\nbody")
        orchestrator = PatchOrchestrator(
            git,
            make_config(patches={"bad", "good", "absent"}),
            options=RunOptions(yes=True),
            github=make_github(),
        )

        # When
        report = asyncio.run(orchestrator.run())

        # Then
        assert report.failed_patches == ["bad"]
        assert report.applied_patches == ["good"]
        assert scripted.called("am", "--abort")
        assert report.renamed

    def test_unexpected_error_rolls_back_and_propagates(self, git, scripted):
        """Given the GitHub lookup raises an unexpected error, should restore the branch and re-raise it."""
        # Given
        github = make_github()
        github.get_pull_request.side_effect = ValueError("boom")
        orchestrator = PatchOrchestrator(git, make_config(["42"]), options=RunOptions(yes=True), github=github)
        orchestrator.remotes.discard_leftovers = MagicMock()

        # When/Then
        with pytest.raises(ValueError, match="boom"):
            asyncio.run(orchestrator.run())

        assert scripted.calls_to("checkout")[-1] == ("checkout", "main")
        orchestrator.remotes.discard_leftovers.assert_called_once()
        assert not scripted.called("switch", "--create")

    def test_unexpected_error_during_upstream_setup_discards_remote(self, git, scripted):
        # Given
        orchestrator = PatchOrchestrator(git, make_config(), options=RunOptions(yes=True), github=make_github())
        orchestrator.remotes.checkout_from_remote = MagicMock(side_effect=ValueError("boom"))
        orchestrator.remotes.discard_leftovers = MagicMock()

        # When/Then
        with pytest.raises(ValueError, match="boom"):
            asyncio.run(orchestrator.run())

        orchestrator.remotes.discard_leftovers.assert_called_once()
        assert not scripted.called("merge")
