import json
from typing import Any, Dict, Optional

import httpx

from core.contracts.clients import CodeHost
from core.contracts.models import PullRequest, RepositoryRef
from utils.errors import HostingError
from utils.logger import logger

GITHUB_API_URL = "https://api.github.com"


class GitHubClient(CodeHost):
    """
    A minimal async client for the GitHub REST API: pull requests and issue comments.
    """

    def __init__(
        self,
        token: str,
        api_url: str = GITHUB_API_URL,
        timeout_sec: int = 30,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not token:
            raise HostingError("GitHub token not found. Please set the GITHUB_TOKEN environment variable.")
        self._client = httpx.AsyncClient(
            base_url=api_url,
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
            },
            timeout=timeout_sec,
            transport=transport,
        )

    async def _request(self, method: str, url: str, payload: Optional[Dict[str, Any]] = None) -> Any:
        try:
            response = await self._client.request(method, url, json=payload)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            try:
                error_message = e.response.json().get("message", e.response.text)
            except json.JSONDecodeError:
                error_message = e.response.text
            raise HostingError(f"GitHub API error ({e.response.status_code}): {error_message}") from e
        except httpx.RequestError as e:
            raise HostingError(f"Failed to request GitHub API: {e}") from e

    async def create_pull_request(
        self, repo: RepositoryRef, *, head: str, base: str, title: str, body: str
    ) -> PullRequest:
        data = await self._request(
            "POST",
            f"/repos/{repo.owner}/{repo.name}/pulls",
            {"title": title, "head": head, "base": base, "body": body},
        )
        pr = PullRequest(number=data["number"], url=data["html_url"])
        logger.info(f"Created pull request #{pr.number} in {repo.full_name}: {pr.url}")
        return pr

    async def aclose(self) -> None:
        await self._client.aclose()
