"""GitHub API wrapper for pull request lookups."""

import json
import os
from typing import Optional

import requests
from github import Github, GithubException

from ..errors import FetchError
from ..models import PullRequestMetadata

GITHUB_API_URL = "https://api.github.com"


class GitHubTool:
    """
    GitHub API wrapper for reading pull request metadata.

    One request per pull request; the token is optional so public
    repositories work without credentials.
    """

    def __init__(self, token: Optional[str] = None, client: Optional[Github] = None):
        """
        Initialize GitHub tool.

        Args:
            token: GitHub token (defaults to GITHUB_TOKEN env var, may be absent)
            client: Pre-built PyGithub client
        """
        self.token = token or os.environ.get("GITHUB_TOKEN")
        if client is not None:
            self.gh = client
        elif self.token:
            self.gh = Github(self.token)
        else:
            self.gh = Github()

    @staticmethod
    def pull_request_url(repo: str, pr_number: str) -> str:
        return f"{GITHUB_API_URL}/repos/{repo}/pulls/{pr_number}"

    def get_pull_request(self, repo: str, pr_number: str) -> PullRequestMetadata:
        """
        Look up a pull request.

        Args:
            repo: Repository in format "owner/repo"
            pr_number: Pull request number

        Returns:
            PullRequestMetadata with head ref and head clone URL

        Raises:
            FetchError: On HTTP errors, transport errors or a missing head repository
        """
        url = self.pull_request_url(repo, pr_number)

        try:
            pr = self.gh.get_repo(repo).get_pull(int(pr_number))
            head_repo = pr.head.repo
            head_ref = pr.head.ref
            title = pr.title
            html_url = pr.html_url
        except GithubException as e:
            raise FetchError(pr_number, url, _describe(e.data), status=e.status) from e
        except requests.RequestException as e:
            raise FetchError(pr_number, url, f"Error sending request: {e}") from e

        if head_repo is None:
            raise FetchError(
                pr_number,
                url,
                "The repository of this pull request's head branch no longer exists",
            )

        return PullRequestMetadata(
            number=str(pr_number),
            title=title,
            html_url=html_url,
            head_ref=head_ref,
            clone_url=head_repo.clone_url,
        )


def _describe(data) -> str:
    if isinstance(data, (dict, list)):
        return json.dumps(data)
    return str(data)
