"""
Linear GraphQL client and webhook payload types.
"""
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel

from core.contracts.clients import IssueTracker
from core.contracts.models import Issue
from utils.errors import TrackerError
from utils.logger import logger

LINEAR_API_URL = "https://api.linear.app/graphql"

CREATE_COMMENT_MUTATION = """
mutation CreateComment($issueId: String!, $body: String!) {
  commentCreate(input: { issueId: $issueId, body: $body }) {
    success
    comment {
      id
    }
  }
}
"""

ISSUE_QUERY = """
query Issue($issueId: String!) {
  issue(id: $issueId) {
    id
    identifier
    title
    description
    priority
    url
    labels {
      nodes {
        name
      }
    }
  }
}
"""


class LinearLabel(BaseModel):
    id: Optional[str] = None
    name: str


class LinearTeam(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = None
    key: Optional[str] = None


class LinearState(BaseModel):
    name: str
    type: str


class LinearIssueData(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    priority: Optional[int] = None
    url: str = ""
    state: Optional[LinearState] = None
    labels: List[LinearLabel] = []
    team: Optional[LinearTeam] = None

    def to_issue(self) -> Issue:
        return Issue(
            id=self.id,
            title=self.title,
            description=self.description or "",
            priority=self.priority or 0,
            labels=[label.name for label in self.labels],
            url=self.url,
        )


class LinearWebhookPayload(BaseModel):
    """
    The envelope Linear posts for every subscribed event. `data` is kept as a
    mapping because its shape depends on `type` (Issue, Comment, Reaction...).
    """
    action: str
    type: str
    data: Dict[str, Any]
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None

    def issue(self) -> LinearIssueData:
        """
        Raises:
            ValidationError: If `data` is not a valid issue record.
        """
        return LinearIssueData.model_validate(self.data)


class LinearClient(IssueTracker):
    """
    An async client for the Linear GraphQL API.
    """

    def __init__(
        self,
        api_key: str,
        api_url: str = LINEAR_API_URL,
        timeout_sec: int = 30,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not api_key:
            raise TrackerError("Linear API key not found. Please set the LINEAR_API_KEY environment variable.")
        self._client = httpx.AsyncClient(
            headers={"Authorization": api_key, "Content-Type": "application/json"},
            timeout=timeout_sec,
            transport=transport,
        )
        self._api_url = api_url

    async def _execute(self, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = await self._client.post(self._api_url, json={"query": query, "variables": variables})
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise TrackerError(f"Linear API error ({e.response.status_code}): {e.response.text}") from e
        except httpx.RequestError as e:
            raise TrackerError(f"Failed to request Linear API: {e}") from e

        result = response.json()
        if result.get("errors"):
            messages = "; ".join(err.get("message", str(err)) for err in result["errors"])
            raise TrackerError(f"Linear API returned errors: {messages}")
        return result.get("data") or {}

    async def create_comment(self, issue_id: str, body: str) -> bool:
        data = await self._execute(CREATE_COMMENT_MUTATION, {"issueId": issue_id, "body": body})
        success = bool((data.get("commentCreate") or {}).get("success"))
        if success:
            logger.info(f"Comment posted on Linear issue {issue_id}")
        else:
            logger.warning(f"commentCreate returned success=false for issue {issue_id}")
        return success

    async def get_issue(self, issue_id: str) -> Issue:
        """
        Fetches an issue by id or identifier (e.g. "ENG-123"). The returned
        Issue carries the UUID, as webhook payloads do.

        Raises:
            TrackerError: If the request fails or the issue does not exist.
        """
        data = await self._execute(ISSUE_QUERY, {"issueId": issue_id})
        node = data.get("issue")
        if not node:
            raise TrackerError(f"Linear issue {issue_id} not found.")
        return Issue(
            id=node["id"],
            title=node["title"],
            description=node.get("description") or "",
            priority=node.get("priority") or 0,
            labels=[label["name"] for label in (node.get("labels") or {}).get("nodes", [])],
            url=node.get("url") or "",
        )

    async def aclose(self) -> None:
        await self._client.aclose()
