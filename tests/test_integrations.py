import json

import httpx
import pytest
from pydantic import ValidationError

from core.contracts.models import RepositoryRef
from core.integrations.github import GitHubClient
from core.integrations.linear import LinearClient, LinearWebhookPayload
from utils.errors import HostingError, TrackerError

REPO = RepositoryRef(owner="acme", name="web")


def github_client(handler) -> GitHubClient:
    return GitHubClient("gh-token", transport=httpx.MockTransport(handler))


def linear_client(handler) -> LinearClient:
    return LinearClient("lin-key", transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_github_create_pull_request():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(201, json={"number": 12, "html_url": "https://github.com/acme/web/pull/12"})

    client = github_client(handler)
    pr = await client.create_pull_request(REPO, head="fix/lin-1", base="main", title="Fix: typo", body="body")
    await client.aclose()

    assert pr.number == 12
    assert pr.url == "https://github.com/acme/web/pull/12"
    request = requests[0]
    assert request.method == "POST"
    assert request.url.path == "/repos/acme/web/pulls"
    assert request.headers["Authorization"] == "Bearer gh-token"
    assert json.loads(request.content) == {"title": "Fix: typo", "head": "fix/lin-1", "base": "main", "body": "body"}


@pytest.mark.asyncio
async def test_github_error_message():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(422, json={"message": "Validation Failed"})

    client = github_client(handler)
    with pytest.raises(HostingError, match=r"GitHub API error \(422\): Validation Failed"):
        await client.create_pull_request(REPO, head="fix/lin-1", base="main", title="t", body="b")
    await client.aclose()


def test_github_requires_token():
    with pytest.raises(HostingError, match="GitHub token not found"):
        GitHubClient("")


@pytest.mark.asyncio
async def test_linear_create_comment():
    bodies = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        assert request.headers["Authorization"] == "lin-key"
        return httpx.Response(200, json={"data": {"commentCreate": {"success": True, "comment": {"id": "c1"}}}})

    client = linear_client(handler)
    assert await client.create_comment("issue-uuid", "Hello") is True
    await client.aclose()

    assert "commentCreate" in bodies[0]["query"]
    assert bodies[0]["variables"] == {"issueId": "issue-uuid", "body": "Hello"}


@pytest.mark.asyncio
async def test_linear_graphql_errors():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"errors": [{"message": "Entity not found"}]})

    client = linear_client(handler)
    with pytest.raises(TrackerError, match="Entity not found"):
        await client.create_comment("nope", "Hello")
    await client.aclose()


@pytest.mark.asyncio
async def test_linear_http_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, text="Unauthorized")

    client = linear_client(handler)
    with pytest.raises(TrackerError, match=r"Linear API error \(401\)"):
        await client.create_comment("x", "y")
    await client.aclose()


@pytest.mark.asyncio
async def test_linear_get_issue():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"data": {"issue": {
            "id": "uuid-1",
            "identifier": "ENG-5",
            "title": "Broken login",
            "description": None,
            "priority": 1,
            "url": "https://linear.app/acme/issue/ENG-5",
            "labels": {"nodes": [{"name": "ai-fix"}, {"name": "bug"}]},
        }}})

    client = linear_client(handler)
    issue = await client.get_issue("ENG-5")
    await client.aclose()

    assert issue.id == "uuid-1"
    assert issue.description == ""
    assert issue.labels == ["ai-fix", "bug"]


@pytest.mark.asyncio
async def test_linear_get_missing_issue():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"data": {"issue": None}})

    client = linear_client(handler)
    with pytest.raises(TrackerError, match="not found"):
        await client.get_issue("ENG-404")
    await client.aclose()


def test_webhook_payload_to_issue():
    payload = LinearWebhookPayload.model_validate({
        "action": "create",
        "type": "Issue",
        "data": {
            "id": "uuid-9",
            "title": "Crash",
            "description": None,
            "priority": 2,
            "url": "https://linear.app/acme/issue/ENG-9",
            "labels": [{"id": "l1", "name": "ai-fix"}],
            "team": {"id": "t1", "name": "Navigation", "key": "NAV"},
        },
    })
    issue = payload.issue().to_issue()
    assert issue.id == "uuid-9"
    assert issue.description == ""
    assert issue.labels == ["ai-fix"]
    assert payload.issue().team.key == "NAV"


def test_webhook_payload_accepts_other_event_types():
    payload = LinearWebhookPayload.model_validate({
        "action": "create",
        "type": "Comment",
        "data": {"id": "c1", "body": "looks good", "issueId": "i1"},
    })
    assert payload.data["body"] == "looks good"
    with pytest.raises(ValidationError):
        payload.issue()
