"""Natural language to JQL, preferring vetted templates over the LLM."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Sequence

from assistant.ai.llm import acomplete
from assistant.ai.prompts import render_prompt
from assistant.intents import Intent
from assistant.query.sanitizer import sanitize_jql
from assistant.query.templates import (
    CANONICAL_TEMPLATES,
    find_issue_key,
    resolve_project_key,
    safe_template,
    template_for_intent,
)
from assistant.result import Ok, attempt, or_else

logger = logging.getLogger("assistant.ai.jql")

# Intents that never need a tailored query
INTENT_SHORTCUTS: dict[Intent, str] = {
    Intent.CONVERSATION: "recent_updates",
    Intent.GREETING: "recent_updates",
    Intent.SPRINT: "current_sprint",
    Intent.PROJECT_STATUS: "project_overview",
}

_MOST_RECENT = re.compile(
    r"\b(?:most recent(?:ly)?|latest|last)\b.*\b(?:updated|modified|changed|task|issue|ticket)\b"
)

# Keyword -> template, tried in order when the LLM cannot produce a query.
FALLBACK_KEYWORDS: tuple[tuple[Sequence[str], str], ...] = (
    (r"block\w* stuck risks? impediments?".split(), "blockers"),
    (("unassigned", "not assigned", "no assignee"), "unassigned"),
    (("overdue", "late", "past due"), "overdue"),
    (r"deadlines? due milestones?".split(), "due_soon"),
    (("high priority", "highest", "urgent", "critical"), "high_priority"),
    (r"closed completed done resolved finished".split(), "closed_tasks"),
    (("in progress", "working on", "ongoing"), "in_progress"),
    (r"open pending todo remaining outstanding".split() + ["to do"], "open_tasks"),
    (("created", "new tasks", "new issues", "added"), "recently_created"),
    (r"comments? recent latest updated activity".split(), "recent_updates"),
    (r"sprints?".split(), "current_sprint"),
    (r"assigned assignees? who".split(), "assigned"),
)

_FENCE = re.compile(r"^```(?:jql|sql)?\s*|\s*```$", re.IGNORECASE)
_PREFIX = re.compile(r"^(?:jql|query)\s*:\s*", re.IGNORECASE)


@dataclass(frozen=True)
class SynthesizedQuery:
    jql: str
    source: str  # canonical | issue_key | intent | heuristic | model | fallback


def clean_model_output(raw: str) -> str:
    """Strip code fences, labels and wrapping quotes from an LLM answer."""
    text = _FENCE.sub("", raw.strip()).strip()
    text = _PREFIX.sub("", text)
    if len(text) > 1 and text[0] == text[-1] and text[0] in "`'":
        text = text[1:-1]
    if text.startswith('"') and text.endswith('"') and text.count('"') == 2:
        text = text[1:-1]
    return " ".join(line.strip() for line in text.splitlines() if line.strip())


def fallback_jql(text: str, intent: Intent, project_key: str | None = None) -> str:
    """Pick the closest safe template for *text* without the LLM."""
    lowered = text.lower()
    for keywords, name in FALLBACK_KEYWORDS:
        if any(re.search(rf"\b(?:{kw})\b", lowered) for kw in keywords):
            return safe_template(name, project_key)
    return template_for_intent(intent, project_key)


async def _synthesize_with_llm(text: str, project_key: str) -> str:
    prompt = render_prompt("jql", project_key=project_key)
    raw = await acomplete(prompt, f'Convert this to JQL: "{text}"', max_tokens=200, temperature=0.1)
    jql = clean_model_output(raw)
    if not jql:
        raise ValueError(f"LLM returned no JQL: {raw!r}")
    sanitized = sanitize_jql(jql, project_key)
    if sanitized != jql:
        logger.info("Sanitized model JQL %r -> %r", jql, sanitized)
    return sanitized


async def synthesize(
    text: str,
    intent: Intent,
    project_key: str | None = None,
) -> SynthesizedQuery:
    """Build the JQL for a question. Never raises.

    Tried in order: canonical phrase, issue key, intent shortcut,
    most-recent heuristic, LLM (sanitized), keyword/intent fallback.
    """
    key = resolve_project_key(project_key)
    normalized = text.strip().lower()

    template_name = CANONICAL_TEMPLATES.get(normalized)
    if template_name:
        return SynthesizedQuery(safe_template(template_name, key), "canonical")

    issue_key = find_issue_key(text, key)
    if issue_key:
        logger.info("Issue key detected: %s", issue_key)
        return SynthesizedQuery(f'key = "{issue_key}"', "issue_key")

    if intent in INTENT_SHORTCUTS:
        return SynthesizedQuery(safe_template(INTENT_SHORTCUTS[intent], key), "intent")

    if _MOST_RECENT.search(normalized):
        return SynthesizedQuery(safe_template("most_recent", key), "heuristic")

    result = await attempt(_synthesize_with_llm, text, key)
    jql = or_else(result, lambda: fallback_jql(text, intent, key))
    source = "model" if isinstance(result, Ok) else "fallback"
    logger.info("JQL (%s): %s", source, jql)
    return SynthesizedQuery(jql, source)
