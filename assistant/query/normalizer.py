"""Rewrite free-text questions into canonical phrases where the phrasing is known."""

from __future__ import annotations

import logging
import re

from assistant.query import templates as t
from assistant.query.templates import issue_key_pattern

logger = logging.getLogger("assistant.query.normalizer")

# Tried in order, first match wins. More specific phrasings come first so that
# e.g. "open high priority tasks" resolves to high priority, not open tasks.
NORMALIZATION_RULES: tuple[tuple[re.Pattern[str], str], ...] = tuple(
    (re.compile(pattern), phrase)
    for pattern, phrase in (
        (
            r"\bhow(?:'s|s| is| are)\s+(?:the\s+|our\s+)?project\b"
            r"|\bproject\s+(?:status|health|progress|overview|summary)\b"
            r"|\bhow are we doing\b|\boverall\s+(?:status|progress)\b",
            t.PROJECT_STATUS_PHRASE,
        ),
        (
            r"\b(?:current|active|this|ongoing)\s+sprint\b"
            r"|\bsprint\s+(?:status|progress|board|health)\b"
            r"|\bhow(?:'s| is) the sprint\b",
            t.CURRENT_SPRINT_PHRASE,
        ),
        (
            r"\bblock(?:ers?|ing|ed)\b|\bimpediments?\b|\brisks?\b|\bstuck\b",
            t.BLOCKERS_PHRASE,
        ),
        (
            r"\b(?:upcoming|next|approaching)\s+(?:deadlines?|due dates?|milestones?)\b"
            r"|\bwhat(?:'s| is) due\b|\bdue\s+(?:soon|this week|next week)\b|\bdeadlines?\b",
            t.DEADLINES_PHRASE,
        ),
        (
            r"\bworkload\b|\bwho(?:'s| is) (?:busy|overloaded)\b|\bcapacity\b",
            t.WORKLOAD_PHRASE,
        ),
        (
            r"\b(?:most recent(?:ly)?|latest|last)\s+(?:updated\s+)?(?:task|issue|ticket)\b"
            r"|\b(?:task|issue|ticket)\s+(?:was\s+)?(?:most recently|last)\s+updated\b",
            t.LATEST_TASK_PHRASE,
        ),
        (
            r"\bunassigned\b|\bnot assigned\b|\bwithout (?:an )?assignee\b",
            t.UNASSIGNED_PHRASE,
        ),
        (
            r"\b(?:high|highest|top|urgent|critical)[\s-]+priority\b"
            r"|\burgent\s+(?:tasks?|issues?|tickets?)\b",
            t.HIGH_PRIORITY_PHRASE,
        ),
        (
            r"\b(?:open|opened|pending|outstanding|remaining)\s+(?:tasks?|issues?|tickets?|items?)\b"
            r"|\bwhat(?:'s| is) (?:still )?open\b",
            t.OPEN_TASKS_PHRASE,
        ),
        (
            r"\b(?:closed|completed|done|finished|resolved)\s+(?:tasks?|issues?|tickets?|items?)\b"
            r"|\bwhat(?:'s| has been| was) (?:completed|done|finished)\b",
            t.COMPLETED_TASKS_PHRASE,
        ),
        (
            r"\brecent(?:ly)?\s+(?:updates?|updated|activity|changes)\b"
            r"|\bwhat(?:'s| is) new\b|\bwhat changed\b",
            t.RECENT_UPDATES_PHRASE,
        ),
    )
)

_TRAILING_PUNCTUATION = re.compile(r"[\s?!.,;:]+$")


def normalize_query(text: str, project_key: str | None = None) -> str:
    """Map *text* onto a canonical phrase, or return it lightly cleaned.

    Text mentioning an issue key is returned as-is (trimmed) so the key
    survives for detail lookups.
    """
    stripped = (text or "").strip()
    if issue_key_pattern(project_key).search(stripped):
        logger.debug("Issue key in query, skipping normalization: %s", stripped)
        return stripped

    lowered = stripped.lower()
    for pattern, phrase in NORMALIZATION_RULES:
        if pattern.search(lowered):
            logger.debug("Normalized %r -> %r", stripped, phrase)
            return phrase

    return _TRAILING_PUNCTUATION.sub("", lowered)
