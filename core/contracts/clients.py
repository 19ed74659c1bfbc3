from typing import Protocol

from core.contracts.models import Issue, PullRequest, RepositoryRef


class CodeHost(Protocol):
    """A protocol for source-hosting APIs that accept pull requests."""

    async def create_pull_request(
        self, repo: RepositoryRef, *, head: str, base: str, title: str, body: str
    ) -> PullRequest:
        ...


class IssueTracker(Protocol):
    """A protocol for issue trackers that receive status comments."""

    async def create_comment(self, issue_id: str, body: str) -> bool:
        ...

    async def get_issue(self, issue_id: str) -> Issue:
        ...
