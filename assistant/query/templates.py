"""Vetted JQL templates and the canonical phrases that map onto them."""

from __future__ import annotations

import re
from functools import lru_cache

from django.conf import settings

from assistant.intents import Intent

OPEN_STATUSES = ("Open", "In Progress", "To Do", "Reopened")
DONE_STATUSES = ("Done", "Closed", "Resolved")
HIGH_PRIORITIES = ("High", "Highest")

# Canonical phrases produced by the normalizer
PROJECT_STATUS_PHRASE = "show project status"
CURRENT_SPRINT_PHRASE = "show current sprint"
BLOCKERS_PHRASE = "show blockers"
DEADLINES_PHRASE = "show upcoming deadlines"
WORKLOAD_PHRASE = "show team workload"
LATEST_TASK_PHRASE = "show latest updated task"
UNASSIGNED_PHRASE = "show unassigned tasks"
HIGH_PRIORITY_PHRASE = "show high priority tasks"
OPEN_TASKS_PHRASE = "show open tasks"
COMPLETED_TASKS_PHRASE = "show completed tasks"
RECENT_UPDATES_PHRASE = "show recent updates"

CANONICAL_TEMPLATES: dict[str, str] = {
    PROJECT_STATUS_PHRASE: "project_overview",
    CURRENT_SPRINT_PHRASE: "current_sprint",
    BLOCKERS_PHRASE: "blockers",
    DEADLINES_PHRASE: "due_soon",
    WORKLOAD_PHRASE: "assigned",
    LATEST_TASK_PHRASE: "most_recent",
    UNASSIGNED_PHRASE: "unassigned",
    HIGH_PRIORITY_PHRASE: "high_priority",
    OPEN_TASKS_PHRASE: "open_tasks",
    COMPLETED_TASKS_PHRASE: "closed_tasks",
    RECENT_UPDATES_PHRASE: "recent_updates",
}

# Default template per intent when nothing more specific applies
INTENT_TEMPLATES: dict[Intent, str] = {
    Intent.PROJECT_STATUS: "project_overview",
    Intent.TASK_LIST: "open_tasks",
    Intent.ASSIGNED_TASKS: "assigned",
    Intent.TASK_DETAILS: "recent_updates",
    Intent.BLOCKERS: "blockers",
    Intent.TIMELINE: "due_soon",
    Intent.COMMENTS: "recently_commented",
    Intent.WORKLOAD: "assigned",
    Intent.SPRINT: "current_sprint",
    Intent.GREETING: "recent_updates",
    Intent.CONVERSATION: "recent_updates",
    Intent.GENERAL: "project_overview",
}

# Used to retry once after Jira rejects a query. Sprint falls back to plain
# open tasks because openSprints() fails on projects without a board.
RECOVERY_TEMPLATES: dict[Intent, str] = {
    Intent.PROJECT_STATUS: "project_overview",
    Intent.TASK_LIST: "open_tasks",
    Intent.ASSIGNED_TASKS: "assigned",
    Intent.BLOCKERS: "blockers",
    Intent.TIMELINE: "due_soon",
    Intent.WORKLOAD: "assigned",
    Intent.SPRINT: "open_tasks",
}
DEFAULT_RECOVERY_TEMPLATE = "recent_updates"


def _quoted_list(values: tuple[str, ...]) -> str:
    return "(" + ", ".join(f'"{v}"' for v in values) + ")"


def resolve_project_key(project_key: str | None) -> str:
    return (project_key or settings.JIRA_PROJECT_KEY).upper()


@lru_cache(maxsize=8)
def _build_templates(key: str) -> dict[str, str]:
    scope = f"project = {key}"
    open_ = _quoted_list(OPEN_STATUSES)
    done = _quoted_list(DONE_STATUSES)
    return {
        "project_overview": f"{scope} ORDER BY updated DESC",
        "open_tasks": f"{scope} AND status in {open_} ORDER BY updated DESC",
        "closed_tasks": f"{scope} AND status in {done} ORDER BY updated DESC",
        "in_progress": f'{scope} AND status = "In Progress" ORDER BY updated DESC',
        "high_priority": (
            f"{scope} AND priority in {_quoted_list(HIGH_PRIORITIES)} "
            f"AND status not in {done} ORDER BY priority DESC, updated DESC"
        ),
        "blockers": (
            f'{scope} AND (priority = "Highest" OR status = "Blocked" OR labels = "blocker") '
            f"AND status not in {done} ORDER BY priority DESC"
        ),
        "recent_updates": f"{scope} AND updated >= -7d ORDER BY updated DESC",
        "recently_commented": f"{scope} AND updated >= -14d ORDER BY updated DESC",
        "unassigned": f"{scope} AND assignee is EMPTY AND status not in {done} ORDER BY created DESC",
        "assigned": f"{scope} AND assignee is not EMPTY AND status not in {done} ORDER BY assignee ASC",
        "due_soon": (
            f"{scope} AND duedate is not EMPTY AND status not in {done} ORDER BY duedate ASC"
        ),
        "overdue": f"{scope} AND duedate < now() AND status not in {done} ORDER BY duedate ASC",
        "current_sprint": f"{scope} AND sprint in openSprints() ORDER BY status ASC",
        "most_recent": f"{scope} ORDER BY updated DESC",
        "recently_created": f"{scope} AND created >= -7d ORDER BY created DESC",
    }


def safe_templates(project_key: str | None = None) -> dict[str, str]:
    """Return the template table for *project_key* (defaults to the configured project)."""
    return _build_templates(resolve_project_key(project_key))


def safe_template(name: str, project_key: str | None = None) -> str:
    """Return one template by name.

    Raises:
        KeyError: If *name* is not a known template.
    """
    return safe_templates(project_key)[name]


def template_for_intent(intent: Intent, project_key: str | None = None) -> str:
    return safe_template(INTENT_TEMPLATES.get(intent, "project_overview"), project_key)


def recovery_template(intent: Intent, project_key: str | None = None) -> str:
    return safe_template(RECOVERY_TEMPLATES.get(intent, DEFAULT_RECOVERY_TEMPLATE), project_key)


def last_resort_jql(project_key: str | None = None) -> str:
    return f"project = {resolve_project_key(project_key)} ORDER BY updated DESC"


def issue_key_pattern(project_key: str | None = None) -> re.Pattern[str]:
    """Match ``<KEY>-<digits>`` for the project, case-insensitively."""
    return re.compile(rf"\b{re.escape(resolve_project_key(project_key))}-\d+\b", re.IGNORECASE)


def find_issue_key(text: str, project_key: str | None = None) -> str | None:
    """Return the first issue key mentioned in *text*, upper-cased."""
    match = issue_key_pattern(project_key).search(text or "")
    return match.group(0).upper() if match else None
