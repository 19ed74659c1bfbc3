import subprocess
from pathlib import Path
from typing import List, Tuple

import pytest

from core.contracts.models import Issue, PullRequest, RepositoryRef


def git(cwd: Path, *args: str) -> str:
    """Runs git in cwd and returns stdout."""
    return subprocess.run(
        ["git", *args], cwd=str(cwd), check=True, capture_output=True, text=True
    ).stdout


@pytest.fixture
def git_repo(tmp_path: Path) -> Path:
    """A repository with one commit on main, pushed to a local bare 'origin'."""
    remote = tmp_path / "remote.git"
    git(tmp_path, "init", "-q", "--bare", str(remote))

    repo = tmp_path / "repo"
    repo.mkdir()
    git(repo, "init", "-q")
    git(repo, "config", "user.email", "bot@example.com")
    git(repo, "config", "user.name", "Test Bot")
    git(repo, "config", "commit.gpgsign", "false")
    (repo / "README.md").write_text("# demo\n", encoding="utf-8")
    git(repo, "add", "README.md")
    git(repo, "commit", "-q", "-m", "Initial commit")
    git(repo, "branch", "-M", "main")
    git(repo, "remote", "add", "origin", str(remote))
    git(repo, "push", "-q", "-u", "origin", "main")
    # Clones check out main regardless of the bare repository's default branch.
    git(remote, "symbolic-ref", "HEAD", "refs/heads/main")
    return repo


class FakeCodeHost:
    def __init__(self):
        self.pull_requests: List[dict] = []

    async def create_pull_request(self, repo: RepositoryRef, *, head: str, base: str, title: str, body: str) -> PullRequest:
        self.pull_requests.append({"repo": repo, "head": head, "base": base, "title": title, "body": body})
        number = len(self.pull_requests)
        return PullRequest(number=number, url=f"https://github.com/{repo.full_name}/pull/{number}")


class FakeTracker:
    def __init__(self, fail: bool = False):
        self.comments: List[Tuple[str, str]] = []
        self.fail = fail

    async def create_comment(self, issue_id: str, body: str) -> bool:
        if self.fail:
            from utils.errors import TrackerError
            raise TrackerError("Linear API error (500): boom")
        self.comments.append((issue_id, body))
        return True

    async def get_issue(self, issue_id: str) -> Issue:
        return Issue(id=issue_id, title="Fetched issue", description="", url="https://linear.app/x")


@pytest.fixture
def code_host() -> FakeCodeHost:
    return FakeCodeHost()


@pytest.fixture
def tracker() -> FakeTracker:
    return FakeTracker()


@pytest.fixture
def repo_ref() -> RepositoryRef:
    return RepositoryRef(owner="acme", name="web")


@pytest.fixture
def run_git():
    return git
