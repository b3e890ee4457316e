"""Single-issue detail card for questions that name an issue key."""

from __future__ import annotations

import logging

from integrations.jira import JiraClient
from integrations.markdown_format import format_issue_detail

logger = logging.getLogger("assistant.handlers.detail")


async def issue_detail(jira: JiraClient, issue_key: str) -> tuple[str, dict]:
    """Fetch *issue_key* and render its card.

    Returns:
        The markdown card and the raw issue.

    Raises:
        JiraAPIError: If Jira rejects the lookup (404 for unknown keys).
        httpx.HTTPError: If Jira is unreachable.
    """
    issue = await jira.get_issue(issue_key)
    logger.info("Rendering detail card for %s", issue_key)
    return format_issue_detail(issue), issue
