"""
Remote issue tracker access.

Commands talk to GitHub only through the IssueTracker protocol; the PyGithub
client stays inside GithubTracker.

Requires: GH_API_TOKEN env var (or github_token in storyflow.yml)
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Protocol

try:
    from github import Auth, Github
    from github.GithubException import GithubException
except ImportError:
    raise ImportError("PyGithub is required. Install with: pip install PyGithub")

from storyflow.records.schema import IssueData

if TYPE_CHECKING:
    from storyflow.config import WorkflowConfig

REPOSITORY_PATTERN = re.compile(r"^[\w.-]+/[\w.-]+$")


class TrackerError(Exception):
    """A remote tracker call failed or could not be made."""


class IssueTracker(Protocol):
    def fetch_issue(self, owner: str, repo: str, number: int) -> IssueData: ...

    def add_issue_comment(self, owner: str, repo: str, issue_number: int, body: str) -> None: ...


def split_repository(repository: str | None) -> tuple[str, str]:
    """Split `owner/name` into its parts."""
    if not repository or not REPOSITORY_PATTERN.match(repository):
        raise TrackerError(
            f"Invalid repository {repository!r}. Specify --repo owner/name or set GITHUB_REPOSITORY"
        )
    owner, name = repository.split("/")
    return owner, name


class GithubTracker:
    """IssueTracker backed by the GitHub REST API."""

    def __init__(self, token: str) -> None:
        self._github = Github(auth=Auth.Token(token))

    def _repo(self, owner: str, repo: str):
        return self._github.get_repo(f"{owner}/{repo}")

    def fetch_issue(self, owner: str, repo: str, number: int) -> IssueData:
        try:
            issue = self._repo(owner, repo).get_issue(number)
        except GithubException as e:
            raise TrackerError(f"Failed to fetch {owner}/{repo}#{number}: {e}") from e

        return IssueData(
            id=str(issue.number),
            number=issue.number,
            title=issue.title,
            description=(issue.body or "").strip(),
            labels=[label.name for label in issue.labels],
            url=issue.html_url,
        )

    def add_issue_comment(self, owner: str, repo: str, issue_number: int, body: str) -> None:
        try:
            self._repo(owner, repo).get_issue(issue_number).create_comment(body)
        except GithubException as e:
            raise TrackerError(f"Failed to comment on {owner}/{repo}#{issue_number}: {e}") from e


def tracker_from_config(config: WorkflowConfig) -> GithubTracker:
    if not config.github_token:
        raise TrackerError("Set GH_API_TOKEN env var")
    return GithubTracker(config.github_token)
