"""Async Jira Cloud REST client for issue search and single-issue lookups."""

from __future__ import annotations

import logging

import httpx
from django.conf import settings

logger = logging.getLogger("integrations.jira")

SEARCH_FIELDS = "summary,status,assignee,priority,created,updated,duedate,comment"
ISSUE_FIELDS = "summary,status,assignee,priority,created,updated,duedate,comment,description"


class JiraAPIError(Exception):
    """Raised when the Jira API returns a non-2xx response."""

    def __init__(self, status_code: int, detail: str = "") -> None:
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"Jira API error {status_code}: {detail}")


class JiraQueryError(JiraAPIError):
    """Raised when Jira rejects a JQL query (HTTP 400)."""


def _error_detail(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text
    if not isinstance(data, dict):
        return response.text
    messages = data.get("errorMessages") or []
    errors = data.get("errors") or {}
    return "; ".join([*messages, *(f"{k}: {v}" for k, v in errors.items())]) or response.text


def _raise_for_status(response: httpx.Response) -> None:
    if response.status_code == 200:
        return
    detail = _error_detail(response)
    if response.status_code == 400:
        raise JiraQueryError(400, detail)
    raise JiraAPIError(response.status_code, detail)


class JiraClient:
    """Thin wrapper over the two Jira endpoints the assistant reads from.

    Args:
        base_url: Jira site URL, e.g. ``https://acme.atlassian.net``.
        user: Account email used for basic auth.
        api_token: Jira API token.
        timeout: Per-request timeout in seconds.
        transport: Optional httpx transport, used by tests.
    """

    def __init__(
        self,
        base_url: str,
        user: str,
        api_token: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._auth = httpx.BasicAuth(user, api_token)
        self._timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls) -> JiraClient:
        return cls(
            settings.JIRA_URL,
            settings.JIRA_USER,
            settings.JIRA_API_TOKEN,
            timeout=settings.JIRA_TIMEOUT,
        )

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            auth=self._auth,
            timeout=self._timeout,
            headers={"Accept": "application/json"},
            transport=self._transport,
        )

    async def search(
        self,
        jql: str,
        max_results: int = 50,
        fields: str = SEARCH_FIELDS,
    ) -> dict:
        """Run a JQL search.

        Returns:
            A dict with ``total`` (int) and ``issues`` (list of raw issue dicts).

        Raises:
            JiraQueryError: If Jira rejects the query.
            JiraAPIError: For any other non-200 response.
            httpx.HTTPError: If Jira is unreachable.
        """
        params = {"jql": jql, "maxResults": str(max_results), "fields": fields}
        logger.debug("Searching Jira: %s (max %d)", jql, max_results)
        async with self._client() as client:
            response = await client.get("/rest/api/3/search", params=params)
        _raise_for_status(response)
        data = response.json()
        return {"total": data.get("total", 0), "issues": data.get("issues", [])}

    async def get_issue(self, issue_key: str, fields: str = ISSUE_FIELDS) -> dict:
        """Fetch one issue by key (e.g. ``NIHK-42``).

        Raises:
            JiraAPIError: If the API returns a non-200 status (404 for unknown keys).
            httpx.HTTPError: If Jira is unreachable.
        """
        async with self._client() as client:
            response = await client.get(f"/rest/api/3/issue/{issue_key}", params={"fields": fields})
        _raise_for_status(response)
        return response.json()
