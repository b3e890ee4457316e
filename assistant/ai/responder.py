"""Turn query results into the conversational markdown reply."""

from __future__ import annotations

import json
import logging
import random

from assistant.ai.llm import acomplete
from assistant.ai.prompts import render_prompt
from assistant.intents import Intent
from assistant.result import Ok, attempt, or_else
from integrations.markdown_format import (
    GREETINGS,
    SMALL_TALK,
    condense_issues,
    format_issue_list,
    format_project_status,
    format_sprint,
    format_timeline,
    format_workload,
    pick,
)

logger = logging.getLogger("assistant.ai.responder")

RESPONSE_TEMPERATURE = 0.7
MAX_RECENT_ISSUES = 3

INTENT_GUIDANCE: dict[Intent, str] = {
    Intent.PROJECT_STATUS: (
        "Give an overview of project health: how many issues are open, in progress "
        "and done, and call out any high priority items."
    ),
    Intent.TASK_LIST: "List the tasks grouped by status, with assignee and priority.",
    Intent.ASSIGNED_TASKS: "Group the tasks by assignee and say how many each person has.",
    Intent.TASK_DETAILS: (
        "Describe the issue in detail: status, priority, assignee, dates, and what the "
        "latest comments say."
    ),
    Intent.BLOCKERS: (
        "Focus on what is blocking progress. Name the blocked or highest priority "
        "issues and who owns them."
    ),
    Intent.TIMELINE: "Focus on due dates. Point out anything overdue or due very soon.",
    Intent.COMMENTS: "Summarize the most recent activity and comments, newest first.",
    Intent.WORKLOAD: (
        "Describe how work is spread across the team and note anyone who looks "
        "overloaded or any unassigned work."
    ),
    Intent.SPRINT: "Summarize the current sprint: progress, remaining work and who is on what.",
    Intent.GENERAL: "Answer the question directly using the issues provided.",
}


def _guidance(intent: Intent) -> str:
    return INTENT_GUIDANCE.get(intent, INTENT_GUIDANCE[Intent.GENERAL])


async def _small_talk_with_llm(query: str, recent_issues: list[dict]) -> str:
    lines = [f"- {i['key']}: {i['summary']} ({i['status']})" for i in recent_issues[:MAX_RECENT_ISSUES]]
    prompt = render_prompt("conversation", recent_issues="\n".join(lines) or "(none)")
    return await acomplete(prompt, query, max_tokens=150, temperature=RESPONSE_TEMPERATURE)


async def _narrate_results(query: str, intent: Intent, data: dict) -> str:
    issues = condense_issues(data.get("issues") or [])
    payload = {"total": data.get("total", len(issues)), "shown": len(issues), "issues": issues}
    prompt = render_prompt("response", intent=intent.value, intent_guidance=_guidance(intent))
    user = f"Question: {query}\n\nJira data (JSON):\n{json.dumps(payload, indent=1)}"
    return await acomplete(prompt, user, max_tokens=700, temperature=RESPONSE_TEMPERATURE)


async def render_response(
    query: str,
    intent: Intent,
    data: dict | None = None,
    rng: random.Random | None = None,
    recent_issues: list[dict] | None = None,
) -> str:
    """Render the reply for a search-path question. Never raises.

    Args:
        query: The user's original question.
        intent: The classified intent.
        data: ``{"total", "issues"}`` from the search, if one ran.
        rng: Random source for canned phrasing.
        recent_issues: Condensed issues from earlier turns, used as color
            for small talk.
    """
    if intent == Intent.GREETING:
        return pick(GREETINGS, rng)

    if intent == Intent.CONVERSATION:
        result = await attempt(_small_talk_with_llm, query, recent_issues or [])
        return or_else(result, lambda: pick(SMALL_TALK, rng))

    data = data or {"total": 0, "issues": []}
    result = await attempt(_narrate_results, query, intent, data)
    if not isinstance(result, Ok):
        logger.info("Using deterministic formatter for %s", intent.value)
    return or_else(result, lambda: format_issue_list(intent.value, data, rng))


AGGREGATE_FORMATTERS = {
    Intent.PROJECT_STATUS: format_project_status,
    Intent.TIMELINE: format_timeline,
    Intent.WORKLOAD: format_workload,
    Intent.SPRINT: format_sprint,
}


async def _narrate_aggregate(intent: Intent, metrics: dict) -> str:
    prompt = render_prompt(
        "aggregate",
        intent=intent.value,
        intent_guidance=_guidance(intent),
        metrics=json.dumps(metrics, indent=1, default=str),
    )
    return await acomplete(prompt, "Summarize these metrics.", max_tokens=500, temperature=RESPONSE_TEMPERATURE)


async def render_aggregate(intent: Intent, metrics: dict, rng: random.Random | None = None) -> str:
    """Narrate an aggregate view, falling back to its markdown formatter."""
    result = await attempt(_narrate_aggregate, intent, metrics)
    return or_else(result, lambda: AGGREGATE_FORMATTERS[intent](metrics, rng))
