"""Markdown formatting helpers for assistant replies.

These are the deterministic renderings used when the LLM narrative is
unavailable, plus the fixed issue-detail card.
"""

from __future__ import annotations

import random
from collections import Counter
from datetime import datetime

from integrations.adf import extract_text

MAX_PER_GROUP = 5
MAX_CONDENSED_ISSUES = 30
MAX_COMMENTS = 3
MAX_BODY_CHARS = 300

STATUS_GROUP_MAP = {
    "blocked": "Blocked",
    "in progress": "In Progress",
    "in review": "In Progress",
    "review": "In Progress",
    "to do": "To Do",
    "todo": "To Do",
    "open": "To Do",
    "reopened": "To Do",
    "backlog": "To Do",
    "selected for development": "To Do",
    "done": "Done",
    "closed": "Done",
    "resolved": "Done",
}

GROUP_DISPLAY_ORDER = ["Blocked", "In Progress", "To Do", "Done"]

HEADINGS = {
    "TASK_LIST": "Tasks",
    "ASSIGNED_TASKS": "Tasks by assignee",
    "TASK_DETAILS": "Task details",
    "BLOCKERS": "Potential blockers",
    "TIMELINE": "Upcoming deadlines",
    "COMMENTS": "Recent updates",
    "WORKLOAD": "Team workload",
    "SPRINT": "Sprint overview",
    "PROJECT_STATUS": "Project status",
    "GENERAL": "Project issues",
}

OPENERS = [
    "Here's what I found: {count}.",
    "I pulled up {count} for you.",
    "Good question! There are {count} that match.",
    "Sure thing. I found {count}.",
]

CLOSERS = [
    "Want me to dig into any of these?",
    "Ask me about any issue key for the full details.",
    "Let me know if you'd like to narrow this down.",
    "Happy to break this down further if that helps.",
]

NO_RESULTS = [
    "I couldn't find any issues matching your criteria.",
    "Nothing matched that question. Try asking a little more broadly?",
    "I looked, but no issues fit that description right now.",
]

GREETINGS = [
    "Hi there! I can tell you about project status, open tasks, blockers, deadlines, workload or the current sprint. What would you like to know?",
    "Hello! Ask me anything about the project, like \"what's blocking us?\" or \"show open tasks\".",
    "Hey! Ready when you are. Try \"how's the project going?\" to get started.",
]

SMALL_TALK = [
    "Happy to help! Ask me about tasks, blockers, deadlines or the sprint whenever you're ready.",
    "Anytime! If you want a quick pulse check, try \"how's the project going?\"",
    "Glad to be useful. I'm here whenever you need an update on the project.",
]

FAILURE_MESSAGES = [
    "Sorry, I couldn't get that information right now. Could you try rephrasing your question?",
    "Hmm, I had trouble pulling that up. Please try again in a moment.",
    "I wasn't able to look that up just now. Maybe try asking in a different way?",
]


def pick(pool: list[str], rng: random.Random | None = None) -> str:
    """Choose a phrase from *pool* using *rng* (seedable for tests)."""
    return (rng or random).choice(pool)


def _name(value, key: str = "name", default: str = "Unknown") -> str:
    if isinstance(value, dict):
        return value.get(key) or default
    return str(value) if value else default


def format_date(value: str | None) -> str:
    """Render an ISO timestamp or date as e.g. ``Mar 3, 2025``."""
    if not value:
        return "n/a"
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        try:
            dt = datetime.strptime(value[:10], "%Y-%m-%d")
        except ValueError:
            return value
    return f"{dt:%b} {dt.day}, {dt.year}"


def truncate(text: str, limit: int = MAX_BODY_CHARS) -> str:
    text = " ".join(text.split())
    return text if len(text) <= limit else text[: limit - 3].rstrip() + "..."


def _condense_comment(comment: dict) -> dict:
    return {
        "author": _name(comment.get("author"), "displayName"),
        "created": comment.get("created"),
        "body": truncate(extract_text(comment.get("body"))),
    }


def condense_issue(issue: dict) -> dict:
    """Reduce a raw Jira issue to the fields the assistant talks about."""
    fields = issue.get("fields") or {}
    condensed = {
        "key": issue.get("key"),
        "summary": fields.get("summary") or "No summary",
        "status": _name(fields.get("status")),
        "priority": _name(fields.get("priority"), default="Not set"),
        "assignee": _name(fields.get("assignee"), "displayName", default="Unassigned"),
        "created": fields.get("created"),
        "updated": fields.get("updated"),
        "dueDate": fields.get("duedate") or "No due date",
    }
    comments = (fields.get("comment") or {}).get("comments") or []
    if comments:
        condensed["comments"] = [_condense_comment(c) for c in comments[-MAX_COMMENTS:]]
    if fields.get("description"):
        condensed["description"] = truncate(extract_text(fields["description"]))
    return condensed


def condense_issues(issues: list[dict], limit: int = MAX_CONDENSED_ISSUES) -> list[dict]:
    return [condense_issue(issue) for issue in issues[:limit]]


def status_group(status: str) -> str:
    return STATUS_GROUP_MAP.get((status or "").lower(), status or "Unknown")


def group_issues(issues: list[dict], by: str = "status") -> dict[str, list[dict]]:
    """Group condensed issues by status group or by assignee, in display order."""
    groups: dict[str, list[dict]] = {}
    for issue in issues:
        label = status_group(issue["status"]) if by == "status" else issue["assignee"]
        groups.setdefault(label, []).append(issue)

    if by == "status":
        order = [g for g in GROUP_DISPLAY_ORDER if g in groups]
        order += sorted(g for g in groups if g not in GROUP_DISPLAY_ORDER)
    else:
        order = sorted(groups, key=lambda name: (name == "Unassigned", -len(groups[name]), name))
    return {label: groups[label] for label in order}


def _issue_line(issue: dict, intent: str) -> str:
    line = f"- **{issue['key']}**: {issue['summary']}"
    if intent == "TIMELINE":
        return f"{line} (due {format_date(issue['dueDate']) if issue['dueDate'] != 'No due date' else 'not set'})"
    if intent in ("ASSIGNED_TASKS", "WORKLOAD"):
        return f"{line} ({issue['status']}, {issue['priority']})"
    if intent == "COMMENTS" and issue.get("comments"):
        latest = issue["comments"][-1]
        return f"{line}\n  - {latest['author']}: \"{truncate(latest['body'], 120)}\""
    return f"{line} ({issue['assignee']}, {issue['priority']})"


def _count_phrase(shown: int, total: int) -> str:
    noun = "issue" if total == 1 else "issues"
    if total > shown:
        return f"{total} {noun} (showing {shown})"
    return f"{total} {noun}"


def format_issue_list(
    intent: str,
    data: dict,
    rng: random.Random | None = None,
    max_per_group: int = MAX_PER_GROUP,
) -> str:
    """Deterministic summary of search results, grouped to suit the intent."""
    issues = condense_issues(data.get("issues") or [])
    if not issues:
        return pick(NO_RESULTS, rng)

    total = max(data.get("total") or 0, len(issues))
    by = "assignee" if intent in ("ASSIGNED_TASKS", "WORKLOAD") else "status"
    heading = HEADINGS.get(intent, HEADINGS["GENERAL"])

    lines = [f"## {heading}", "", pick(OPENERS, rng).format(count=_count_phrase(len(issues), total)), ""]
    for label, group in group_issues(issues, by=by).items():
        lines.append(f"**{label}** ({len(group)})")
        lines.extend(_issue_line(issue, intent) for issue in group[:max_per_group])
        if len(group) > max_per_group:
            lines.append(f"- ...and {len(group) - max_per_group} more")
        lines.append("")
    lines.append(pick(CLOSERS, rng))
    return "\n".join(lines)


def format_issue_detail(issue: dict) -> str:
    """Fixed markdown card for a single issue, including its latest comment."""
    condensed = condense_issue(issue)
    fields = issue.get("fields") or {}
    comments = (fields.get("comment") or {}).get("comments") or []

    if comments:
        latest = comments[-1]
        author = _name(latest.get("author"), "displayName")
        text = extract_text(latest.get("body")) or (
            "Comment has a format that cannot be displayed here. Please check directly in Jira."
        )
        comment_block = f"**Latest comment** (by {author} on {format_date(latest.get('created'))}):\n\"{text}\""
    else:
        comment_block = "No comments found on this issue."

    due = condensed["dueDate"]
    lines = [
        f"## {condensed['key']}: {condensed['summary']}",
        "",
        f"**Status**: {condensed['status']}",
        f"**Priority**: {condensed['priority']}",
        f"**Assignee**: {condensed['assignee']}",
        f"**Created**: {format_date(condensed['created'])}",
        f"**Last Updated**: {format_date(condensed['updated'])}",
        f"**Due**: {format_date(due) if due != 'No due date' else due}",
    ]
    if condensed.get("description"):
        lines += ["", "### Description", condensed["description"]]
    lines += ["", "### Latest Comment", comment_block]
    return "\n".join(lines)


def _bullet_issues(issues: list[dict], limit: int = MAX_PER_GROUP) -> list[str]:
    lines = [f"- **{i['key']}**: {i['summary']} ({i['status']}, {i['assignee']})" for i in issues[:limit]]
    if len(issues) > limit:
        lines.append(f"- ...and {len(issues) - limit} more")
    return lines


def format_project_status(metrics: dict, rng: random.Random | None = None) -> str:
    lines = [
        "## Project status",
        "",
        f"- **Total issues**: {metrics['total']}",
        f"- **Open**: {metrics['open']}",
        f"- **In progress**: {metrics['in_progress']}",
        f"- **Done**: {metrics['done']} ({metrics['completion_rate']}% complete)",
    ]
    if metrics.get("high_priority"):
        lines += ["", f"**High priority** ({metrics['high_priority_count']})"]
        lines += _bullet_issues(metrics["high_priority"])
    if metrics.get("recent"):
        lines += ["", f"**Updated this week** ({metrics['recent_count']})"]
        lines += _bullet_issues(metrics["recent"])
    lines += ["", pick(CLOSERS, rng)]
    return "\n".join(lines)


def format_timeline(metrics: dict, rng: random.Random | None = None) -> str:
    lines = ["## Upcoming deadlines", ""]
    if metrics["overdue"]:
        lines.append(f"**Overdue** ({metrics['overdue_count']})")
        lines += [f"- **{i['key']}**: {i['summary']} (was due {format_date(i['dueDate'])}, {i['assignee']})"
                  for i in metrics["overdue"][:MAX_PER_GROUP]]
        lines.append("")
    if metrics["due_soon"]:
        lines.append(f"**Due in the next {metrics['window_days']} days** ({metrics['due_soon_count']})")
        lines += [f"- **{i['key']}**: {i['summary']} (due {format_date(i['dueDate'])}, {i['assignee']})"
                  for i in metrics["due_soon"][:MAX_PER_GROUP]]
        lines.append("")
    if not metrics["overdue"] and not metrics["due_soon"]:
        lines += ["Nothing is overdue or due soon.", ""]
    lines.append(f"- **Open issues without a due date**: {metrics['no_due_date']}")
    lines += ["", pick(CLOSERS, rng)]
    return "\n".join(lines)


def _sample_note(metrics: dict, total_key: str) -> list[str]:
    sample = metrics.get("sample_size")
    if sample is None or sample >= metrics[total_key]:
        return []
    return ["", f"_Breakdown covers the first {sample} of {metrics[total_key]} issues._"]


def format_workload(metrics: dict, rng: random.Random | None = None) -> str:
    lines = ["## Team workload", "", f"- **Open issues**: {metrics['total_open']}",
             f"- **Unassigned**: {metrics['unassigned']}", ""]
    for person in metrics["assignees"]:
        extra = f", {person['high_priority']} high priority" if person["high_priority"] else ""
        lines.append(f"- **{person['name']}**: {person['open']} open{extra}")
    if not metrics["assignees"]:
        lines.append("Nobody has open work assigned right now.")
    lines += _sample_note(metrics, "total_open")
    lines += ["", pick(CLOSERS, rng)]
    return "\n".join(lines)


def format_sprint(metrics: dict, rng: random.Random | None = None) -> str:
    if not metrics["total"]:
        return "## Sprint overview\n\nThere are no issues in an open sprint right now."
    lines = [
        "## Sprint overview",
        "",
        f"- **Issues in sprint**: {metrics['total']}",
        f"- **Completed**: {metrics['done']} ({metrics['completion_rate']}%)",
    ]
    for status, count in metrics["status_counts"].items():
        lines.append(f"- **{status}**: {count}")
    if metrics["assignees"]:
        lines += ["", "**By assignee**"]
        lines += [f"- {p['name']}: {p['done']}/{p['total']} done" for p in metrics["assignees"]]
    lines += _sample_note(metrics, "total")
    lines += ["", pick(CLOSERS, rng)]
    return "\n".join(lines)


def count_by(issues: list[dict], key: str) -> dict[str, int]:
    return dict(Counter(issue[key] for issue in issues).most_common())
