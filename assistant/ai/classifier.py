"""Intent classification: regex rules, then the LLM, then keyword fallback."""

from __future__ import annotations

import logging
import re
from typing import Sequence

from assistant.ai.llm import acomplete
from assistant.ai.prompts import load_prompt
from assistant.intents import Intent
from assistant.query.templates import issue_key_pattern
from assistant.result import Ok, attempt, or_else
from assistant.sessions import ConversationSession

logger = logging.getLogger("assistant.ai.classifier")

# High-confidence rules, tried in order. The issue-key rule is inserted at
# runtime because it depends on the configured project key.
_RULES_BEFORE_KEY: tuple[tuple[re.Pattern[str], Intent], ...] = (
    (re.compile(r"\bsprints?\b"), Intent.SPRINT),
    (
        re.compile(
            r"^(?:hi|hello|hey|hiya|howdy|yo|greetings|good\s+(?:morning|afternoon|evening))"
            r"(?:\s+(?:there|team|compass))?[\s!.,]*$"
        ),
        Intent.GREETING,
    ),
    (
        re.compile(
            r"^(?:thanks|thank you|thx|cheers|cool|great|nice|awesome|ok(?:ay)?)\b"
            r"|\bhow are you\b|\bwho are you\b|\bwhat can you do\b"
        ),
        Intent.CONVERSATION,
    ),
)

_RULES_AFTER_KEY: tuple[tuple[re.Pattern[str], Intent], ...] = (
    (
        re.compile(
            r"^show project status$|\bproject\s+(?:status|health|progress|overview)\b"
            r"|\bhow(?:'s| is) the project\b|\boverall progress\b"
        ),
        Intent.PROJECT_STATUS,
    ),
    (
        re.compile(
            r"\bdeadlines?\b|\bdue\s+(?:dates?|soon|this|next)\b|\boverdue\b"
            r"|\bmilestones?\b|\btimeline\b|\bwhen\b.*\b(?:due|finish|complete|done)\b"
        ),
        Intent.TIMELINE,
    ),
    (
        re.compile(r"\bblock(?:ers?|ing|ed)?\b|\brisks?\b|\bimpediments?\b|\bstuck\b"),
        Intent.BLOCKERS,
    ),
    (
        re.compile(
            r"\bworkload\b|\bcapacity\b|\bbandwidth\b|\bwho(?:'s| is) (?:busy|overloaded)\b"
            r"|\bhow much work\b"
        ),
        Intent.WORKLOAD,
    ),
    (
        re.compile(
            r"\b(?:un)?assigned\b|\bassignees?\b|\bwho(?:'s| is) working on\b|\bworking on what\b"
        ),
        Intent.ASSIGNED_TASKS,
    ),
    (
        re.compile(
            r"^(?:show|list|give me|get|find|display|what are)\b.*"
            r"\b(?:tasks?|issues?|tickets?|bugs?|stories|items|work)\b"
            r"|\b(?:open|closed|completed|done|pending|in progress|high priority)\s+"
            r"(?:tasks?|issues?|tickets?|bugs?)\b"
        ),
        Intent.TASK_LIST,
    ),
    (
        re.compile(r"\bcomments?\b|\bupdates?\b|\bwhat(?:'s| is) new\b|\bactivity\b"),
        Intent.COMMENTS,
    ),
)

# Used only when the LLM is unavailable. Same categories, looser matching;
# each keyword is a whole-word regex fragment.
KEYWORD_FALLBACK: tuple[tuple[Sequence[str], Intent], ...] = (
    (("sprints?",), Intent.SPRINT),
    (("hello", "hi", "hey", "good morning"), Intent.GREETING),
    (("thanks", "thank you", "how are you"), Intent.CONVERSATION),
    (("status", "progress", "health", "overview", "summary"), Intent.PROJECT_STATUS),
    (r"deadlines? due overdue milestones? when".split(), Intent.TIMELINE),
    (r"block\w* risks? stuck problems?".split(), Intent.BLOCKERS),
    (r"workload busy capacity load".split(), Intent.WORKLOAD),
    (r"assign\w* who".split(), Intent.ASSIGNED_TASKS),
    (r"details? describe explain".split(), Intent.TASK_DETAILS),
    (r"comments? updates? latest activity new".split(), Intent.COMMENTS),
    (r"tasks? issues? tickets? bugs? list show open".split(), Intent.TASK_LIST),
)


def match_rules(text: str, project_key: str | None = None) -> Intent | None:
    """Return the intent of the first matching high-confidence rule, if any."""
    lowered = text.strip().lower()
    rules = (
        *_RULES_BEFORE_KEY,
        (issue_key_pattern(project_key), Intent.TASK_DETAILS),
        *_RULES_AFTER_KEY,
    )
    for pattern, intent in rules:
        if pattern.search(lowered):
            return intent
    return None


def keyword_fallback(text: str) -> Intent:
    """Classify by keyword presence, defaulting to ``GENERAL``."""
    lowered = text.lower()
    for keywords, intent in KEYWORD_FALLBACK:
        if any(re.search(rf"\b(?:{kw})\b", lowered) for kw in keywords):
            return intent
    return Intent.GENERAL


async def _classify_with_llm(text: str) -> Intent:
    raw = await acomplete(load_prompt("classifier"), text, max_tokens=10, temperature=0.1)
    answer = raw.strip().strip("`'\".").upper()
    intent = Intent.parse(answer)
    if intent is None:
        # Tolerate chatty output such as "Category: TASK_LIST."
        match = re.search(r"\b(" + "|".join(i.value for i in Intent) + r")\b", answer)
        if not match:
            raise ValueError(f"LLM returned no valid intent: {raw!r}")
        intent = Intent(match.group(1))
    return intent


async def classify_intent(
    text: str,
    session: ConversationSession | None = None,
    project_key: str | None = None,
) -> Intent:
    """Classify a normalized question into an ``Intent``. Never raises.

    Args:
        text: The normalized question text.
        session: Optional session whose history records the intent.
        project_key: Overrides the configured project key.

    Returns:
        One of the ``Intent`` members.
    """
    intent = match_rules(text, project_key)
    if intent is not None:
        logger.info("Rule-based intent %s for %r", intent.value, text)
    else:
        result = await attempt(_classify_with_llm, text)
        intent = or_else(result, lambda: keyword_fallback(text))
        source = "llm" if isinstance(result, Ok) else "keywords"
        logger.info("Intent %s for %r (via %s)", intent.value, text, source)

    if session is not None:
        session.record_intent(intent.value)
    return intent
