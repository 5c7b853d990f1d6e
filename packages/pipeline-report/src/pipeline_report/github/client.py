"""Minimal GitHub REST client for issue comments and workflow jobs."""

from __future__ import annotations

import httpx


class GitHubAPIError(Exception):
    """Raised when a GitHub REST call fails."""


class GitHubClient:
    API_URL = "https://api.github.com"
    PAGE_SIZE = 100

    def __init__(
        self,
        token: str,
        api_url: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=(api_url or self.API_URL).rstrip("/"),
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
                "User-Agent": "pipeline-report",
            },
            timeout=timeout,
            transport=transport,
        )

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            resp = await self._client.request(method, path, **kwargs)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise GitHubAPIError(
                f"{method} {path} failed: HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise GitHubAPIError(f"{method} {path} failed: {e}") from e
        return resp

    @staticmethod
    def _decode(resp: httpx.Response, expected: type) -> dict | list:
        request = resp.request
        try:
            data = resp.json()
        except ValueError as e:
            raise GitHubAPIError(f"{request.method} {request.url.path} returned invalid JSON") from e
        if not isinstance(data, expected):
            raise GitHubAPIError(
                f"{request.method} {request.url.path} returned {type(data).__name__}, "
                f"expected {expected.__name__}"
            )
        return data

    async def _paginate(self, path: str, params: dict | None = None) -> list[dict]:
        items: list[dict] = []
        page = 1
        while True:
            resp = await self._request(
                "GET", path, params={**(params or {}), "per_page": self.PAGE_SIZE, "page": page}
            )
            batch = self._decode(resp, list)
            items.extend(batch)
            if len(batch) < self.PAGE_SIZE:
                return items
            page += 1

    # -- issue comments -----------------------------------------------------

    async def list_comments(self, owner: str, repo: str, number: int) -> list[dict]:
        return await self._paginate(f"/repos/{owner}/{repo}/issues/{number}/comments")

    async def delete_comment(self, owner: str, repo: str, comment_id: int) -> None:
        await self._request("DELETE", f"/repos/{owner}/{repo}/issues/comments/{comment_id}")

    async def create_comment(self, owner: str, repo: str, number: int, body: str) -> dict:
        resp = await self._request(
            "POST", f"/repos/{owner}/{repo}/issues/{number}/comments", json={"body": body}
        )
        return self._decode(resp, dict)

    # -- actions ------------------------------------------------------------

    async def list_workflow_runs(self, owner: str, repo: str, **params) -> list[dict]:
        resp = await self._request("GET", f"/repos/{owner}/{repo}/actions/runs", params=params)
        return self._decode(resp, dict).get("workflow_runs") or []

    async def list_run_jobs(self, owner: str, repo: str, run_id: int) -> list[dict]:
        resp = await self._request(
            "GET",
            f"/repos/{owner}/{repo}/actions/runs/{run_id}/jobs",
            params={"per_page": self.PAGE_SIZE},
        )
        return self._decode(resp, dict).get("jobs") or []

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> GitHubClient:
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()
