"""Run JQL against Jira with a single template retry and a last-resort query."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from assistant.intents import Intent
from assistant.query.templates import last_resort_jql, recovery_template
from integrations.jira import SEARCH_FIELDS, JiraClient, JiraQueryError

logger = logging.getLogger("assistant.query.executor")

RECOVERY_NOTE = "I found some information that might help:"
DEFAULT_MAX_RESULTS = 50
LAST_RESORT_MAX_RESULTS = 5


@dataclass
class Execution:
    """Search results plus how they were obtained."""

    data: dict
    jql: str
    recovered: bool = False
    note: str | None = None

    @property
    def issues(self) -> list[dict]:
        return self.data.get("issues", [])

    @property
    def total(self) -> int:
        return self.data.get("total", len(self.issues))


async def execute_with_recovery(
    jira: JiraClient,
    jql: str,
    intent: Intent,
    fields: str = SEARCH_FIELDS,
    max_results: int = DEFAULT_MAX_RESULTS,
    project_key: str | None = None,
) -> Execution:
    """Search with *jql*; if Jira rejects it, retry once with a safe template.

    Raises:
        JiraQueryError: If the retry is rejected too, or the safe template
            is the query that was just rejected.
        JiraAPIError, httpx.HTTPError: For non-grammar failures, which are
            not retried here.
    """
    try:
        data = await jira.search(jql, max_results=max_results, fields=fields)
        return Execution(data=data, jql=jql)
    except JiraQueryError as exc:
        retry_jql = recovery_template(intent, project_key)
        if retry_jql == jql:
            raise
        logger.warning("Jira rejected %r (%s); retrying with %r", jql, exc.detail, retry_jql)

    data = await jira.search(retry_jql, max_results=max_results, fields=fields)
    return Execution(data=data, jql=retry_jql, recovered=True, note=RECOVERY_NOTE)


async def execute_last_resort(
    jira: JiraClient,
    fields: str = SEARCH_FIELDS,
    project_key: str | None = None,
) -> Execution:
    """Fetch the few most recently updated issues; the final query attempt."""
    jql = last_resort_jql(project_key)
    logger.warning("Running last-resort query %r", jql)
    data = await jira.search(jql, max_results=LAST_RESORT_MAX_RESULTS, fields=fields)
    return Execution(data=data, jql=jql, recovered=True, note=RECOVERY_NOTE)
