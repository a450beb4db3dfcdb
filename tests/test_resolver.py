"""Tests for pull request lookups and resolution.

Only the GitHub API is mocked; git goes through the scripted runner.
"""

from unittest.mock import MagicMock

import pytest
import requests
from github import GithubException

from patch_agent.errors import FetchError, ResolveError
from patch_agent.models import PullRequestMetadata, PullRequestRef
from patch_agent.orchestrator import EphemeralRemoteManager, PullRequestResolver
from patch_agent.tools import GitHubTool, NameAllocator

METADATA = PullRequestMetadata(
    number="42",
    title="Add feature X",
    html_url="https://github.com/octo/demo/pull/42",
    head_ref="feature-x",
    clone_url="https://github.com/alice/demo.git",
)


def make_client(head_repo_url="https://github.com/alice/demo.git"):
    pr = MagicMock()
    pr.title = "Add feature X"
    pr.html_url = "https://github.com/octo/demo/pull/42"
    pr.head.ref = "feature-x"
    if head_repo_url is None:
        pr.head.repo = None
    else:
        pr.head.repo.clone_url = head_repo_url

    client = MagicMock()
    client.get_repo.return_value.get_pull.return_value = pr
    return client


class TestGitHubTool:
    """Tests for metadata lookups."""

    def test_returns_head_metadata(self):
        """Given an open pull request, should return its head ref and clone URL."""
        # Given
        client = make_client()
        github = GitHubTool(client=client)

        # When
        metadata = github.get_pull_request("octo/demo", "42")

        # Then
        assert metadata == METADATA
        client.get_repo.assert_called_once_with("octo/demo")
        client.get_repo.return_value.get_pull.assert_called_once_with(42)

    def test_http_error_becomes_fetch_error(self):
        """Given GitHub answers 404, should raise FetchError with status and body."""
        # Given
        client = MagicMock()
        client.get_repo.side_effect = GithubException(404, {"message": "Not Found"}, None)

        # When/Then
        with pytest.raises(FetchError) as exc_info:
            GitHubTool(client=client).get_pull_request("octo/demo", "999")

        error = exc_info.value
        assert error.status == 404
        assert error.pr_number == "999"
        assert "https://api.github.com/repos/octo/demo/pulls/999" in str(error)
        assert "Not Found" in str(error)

    def test_transport_error_becomes_fetch_error(self):
        client = MagicMock()
        client.get_repo.side_effect = requests.ConnectionError("connection refused")

        with pytest.raises(FetchError, match="connection refused"):
            GitHubTool(client=client).get_pull_request("octo/demo", "42")

    def test_deleted_head_repository(self):
        """Given the head repository was deleted, should raise FetchError."""
        github = GitHubTool(client=make_client(head_repo_url=None))

        with pytest.raises(FetchError, match="no longer exists"):
            github.get_pull_request("octo/demo", "42")


class TestPullRequestResolver:
    """Tests for turning metadata into a fetched branch."""

    @pytest.fixture
    def resolver(self, git, runner):
        # No local branch exists unless a test says so
        runner.on("rev-parse", "--verify", returncode=1)
        github = MagicMock(spec=GitHubTool)
        github.get_pull_request.return_value = METADATA
        return PullRequestResolver(github, NameAllocator(git), EphemeralRemoteManager(git))

    def test_generated_branch_name(self, resolver, runner):
        """Given no custom name, the branch should be '<number>/<head ref>'."""
        # When
        metadata, info = resolver.resolve("octo/demo", "42")

        # Then
        assert metadata == METADATA
        assert info.branch.local_name == "42/feature-x"
        assert info.branch.upstream_name == "feature-x"
        assert info.remote.local_alias.endswith("-pr-42")
        assert info.remote.repository_url == METADATA.clone_url
        assert runner.called("fetch", METADATA.clone_url, "feature-x:42/feature-x")

    def test_generated_name_avoids_existing_branch(self, resolver, runner):
        runner.on("rev-parse", "--verify", "--quiet", "refs/heads/42/feature-x")

        _, info = resolver.resolve("octo/demo", "42")

        assert info.branch.local_name == "2-42/feature-x"

    def test_custom_branch_name(self, resolver):
        _, info = resolver.resolve("octo/demo", "42", custom_branch_name="my-x")

        assert info.branch.local_name == "my-x"

    def test_invalid_custom_branch_name_falls_back(self, resolver):
        """Given an invalid custom name, the generated one should be used."""
        _, info = resolver.resolve("octo/demo", "42", custom_branch_name="bad name")

        assert info.branch.local_name == "42/feature-x"

    def test_pin_failure_reports_leftovers(self, resolver, runner):
        """Given a missing pin commit, ResolveError should carry what was created."""
        # Given
        runner.fail("branch", "--force")

        # When/Then
        with pytest.raises(ResolveError) as exc_info:
            resolver.materialize(METADATA, PullRequestRef(number="42", commit_pin="deadbeef"))

        error = exc_info.value
        assert error.info is not None
        assert error.info.branch.local_name == "42/feature-x"
        assert "Could not add remote branch for pull request #42" in str(error)

    def test_lookup_failure_propagates(self, resolver):
        resolver.github.get_pull_request.side_effect = FetchError("42", "url", "boom", status=500)

        with pytest.raises(FetchError):
            resolver.resolve("octo/demo", "42")

    def test_existing_custom_branch_is_kept(self, resolver, runner):
        """Given the custom name is taken, the fetch should go to a free numbered name."""
        # Given
        runner.on("rev-parse", "--verify", "--quiet", "refs/heads/my-x")

        # When
        _, info = resolver.resolve("octo/demo", "42", custom_branch_name="my-x")

        # Then
        assert info.branch.local_name == "2-my-x"
        assert runner.called("fetch", METADATA.clone_url, "feature-x:2-my-x")
        assert not runner.called("fetch", METADATA.clone_url, "feature-x:my-x")
