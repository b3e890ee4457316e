"""Aggregate views that combine several Jira searches into one set of metrics."""

from __future__ import annotations

import asyncio
import logging
from collections import Counter

from assistant.query.templates import (
    DONE_STATUSES,
    HIGH_PRIORITIES,
    resolve_project_key,
    safe_template,
)
from integrations.jira import JiraClient
from integrations.markdown_format import condense_issues, count_by, status_group

logger = logging.getLogger("assistant.handlers.aggregates")

TOP_N = 5
DUE_SOON_DAYS = 14
MAX_AGGREGATE_ISSUES = 100


def _completion_rate(done: int, total: int) -> int:
    return round(done / total * 100) if total else 0


async def project_status(jira: JiraClient, project_key: str | None = None) -> dict:
    """Counts by state plus the top high-priority and recently updated issues."""
    key = resolve_project_key(project_key)
    scope = f"project = {key}"
    total, open_, in_progress, done, high, recent = await asyncio.gather(
        jira.search(scope, max_results=0),
        jira.search(safe_template("open_tasks", key), max_results=0),
        jira.search(safe_template("in_progress", key), max_results=0),
        jira.search(safe_template("closed_tasks", key), max_results=0),
        jira.search(safe_template("high_priority", key), max_results=TOP_N),
        jira.search(safe_template("recent_updates", key), max_results=TOP_N),
    )
    logger.info("Project %s: %d issues, %d done", key, total["total"], done["total"])
    return {
        "total": total["total"],
        "open": open_["total"],
        "in_progress": in_progress["total"],
        "done": done["total"],
        "completion_rate": _completion_rate(done["total"], total["total"]),
        "high_priority_count": high["total"],
        "high_priority": condense_issues(high["issues"], TOP_N),
        "recent_count": recent["total"],
        "recent": condense_issues(recent["issues"], TOP_N),
    }


async def timeline(jira: JiraClient, project_key: str | None = None) -> dict:
    """Overdue work, work due in the next two weeks, and open work with no due date."""
    key = resolve_project_key(project_key)
    done = ", ".join(f'"{s}"' for s in DONE_STATUSES)
    due_soon_jql = (
        f"project = {key} AND duedate >= now() AND duedate <= {DUE_SOON_DAYS}d "
        f"AND status not in ({done}) ORDER BY duedate ASC"
    )
    no_due_jql = f"project = {key} AND duedate is EMPTY AND status not in ({done})"
    overdue, due_soon, no_due = await asyncio.gather(
        jira.search(safe_template("overdue", key), max_results=TOP_N * 2),
        jira.search(due_soon_jql, max_results=TOP_N * 2),
        jira.search(no_due_jql, max_results=0),
    )
    return {
        "window_days": DUE_SOON_DAYS,
        "overdue_count": overdue["total"],
        "overdue": condense_issues(overdue["issues"]),
        "due_soon_count": due_soon["total"],
        "due_soon": condense_issues(due_soon["issues"]),
        "no_due_date": no_due["total"],
    }


async def workload(jira: JiraClient, project_key: str | None = None) -> dict:
    """Open issues per assignee, with high-priority counts.

    ``total_open`` and ``unassigned`` are Jira's own totals. The per-assignee
    breakdown is built from the first ``MAX_AGGREGATE_ISSUES`` open issues,
    reported as ``sample_size``.
    """
    key = resolve_project_key(project_key)
    done = ", ".join(f'"{s}"' for s in DONE_STATUSES)
    data, unassigned = await asyncio.gather(
        jira.search(
            f"project = {key} AND status not in ({done}) ORDER BY priority DESC",
            max_results=MAX_AGGREGATE_ISSUES,
        ),
        jira.search(safe_template("unassigned", key), max_results=0),
    )
    issues = condense_issues(data["issues"], MAX_AGGREGATE_ISSUES)
    open_counts = Counter(i["assignee"] for i in issues if i["assignee"] != "Unassigned")
    high_counts = Counter(
        i["assignee"] for i in issues
        if i["assignee"] != "Unassigned" and i["priority"] in HIGH_PRIORITIES
    )
    return {
        "total_open": data["total"],
        "unassigned": unassigned["total"],
        "sample_size": len(issues),
        "assignees": [
            {"name": name, "open": count, "high_priority": high_counts[name]}
            for name, count in open_counts.most_common()
        ],
    }


async def sprint(jira: JiraClient, project_key: str | None = None) -> dict:
    """Progress of the open sprint(s).

    ``done`` and ``completion_rate`` come from Jira totals; status and
    assignee breakdowns cover the first ``MAX_AGGREGATE_ISSUES`` issues.
    """
    key = resolve_project_key(project_key)
    done = ", ".join(f'"{s}"' for s in DONE_STATUSES)
    done_jql = f"project = {key} AND sprint in openSprints() AND status in ({done})"
    data, finished = await asyncio.gather(
        jira.search(safe_template("current_sprint", key), max_results=MAX_AGGREGATE_ISSUES),
        jira.search(done_jql, max_results=0),
    )
    issues = condense_issues(data["issues"], MAX_AGGREGATE_ISSUES)

    per_person: dict[str, dict] = {}
    for issue in issues:
        entry = per_person.setdefault(issue["assignee"], {"name": issue["assignee"], "total": 0, "done": 0})
        entry["total"] += 1
        if status_group(issue["status"]) == "Done":
            entry["done"] += 1

    return {
        "total": data["total"],
        "done": finished["total"],
        "completion_rate": _completion_rate(finished["total"], data["total"]),
        "sample_size": len(issues),
        "status_counts": count_by(issues, "status"),
        "assignees": sorted(per_person.values(), key=lambda p: (-p["total"], p["name"])),
    }


async def project_summary(jira: JiraClient, project_key: str | None = None) -> dict:
    """Dashboard payload: open count plus recent, high-priority and unassigned issues."""
    key = resolve_project_key(project_key)
    open_, recent, high, unassigned = await asyncio.gather(
        jira.search(safe_template("open_tasks", key), max_results=0),
        jira.search(safe_template("recent_updates", key), max_results=TOP_N),
        jira.search(safe_template("high_priority", key), max_results=TOP_N),
        jira.search(safe_template("unassigned", key), max_results=TOP_N),
    )
    return {
        "openCount": open_["total"],
        "recentIssues": recent["issues"],
        "highPriorityIssues": high["issues"],
        "unassignedIssues": unassigned["issues"],
    }
