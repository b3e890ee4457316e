"""Tests for reply rendering and the markdown formatters."""

import random

import pytest

from assistant.ai.responder import render_aggregate, render_response
from assistant.intents import Intent
from integrations.markdown_format import (
    CLOSERS,
    GREETINGS,
    NO_RESULTS,
    SMALL_TALK,
    condense_issue,
    format_date,
    format_issue_detail,
    format_issue_list,
    group_issues,
)


def _comment(author, text, created="2025-03-01T08:00:00.000+0000"):
    return {
        "author": {"displayName": author},
        "created": created,
        "body": {"type": "doc", "content": [{"type": "paragraph", "content": [{"type": "text", "text": text}]}]},
    }


class TestCondenseIssue:
    def test_fields(self, make_issue):
        issue = make_issue("NIHK-1", summary="Fix login", status="In Progress", priority="High", assignee="Ana")
        condensed = condense_issue(issue)
        assert condensed["key"] == "NIHK-1"
        assert condensed["status"] == "In Progress"
        assert condensed["priority"] == "High"
        assert condensed["assignee"] == "Ana"
        assert condensed["dueDate"] == "No due date"
        assert "comments" not in condensed

    def test_unassigned(self, make_issue):
        assert condense_issue(make_issue("NIHK-2"))["assignee"] == "Unassigned"

    def test_keeps_last_three_comments_truncated(self, make_issue):
        comments = [_comment("Ana", f"note {n}") for n in range(4)] + [_comment("Ben", "x" * 500)]
        condensed = condense_issue(make_issue("NIHK-3", comments=comments))

        assert [c["body"][:6] for c in condensed["comments"][:2]] == ["note 2", "note 3"]
        latest = condensed["comments"][-1]
        assert latest["author"] == "Ben"
        assert len(latest["body"]) == 300
        assert latest["body"].endswith("...")


class TestIssueList:
    def test_groups_are_capped_at_five(self, make_issue):
        issues = [make_issue(f"NIHK-{n}", status="To Do") for n in range(7)]
        text = format_issue_list("TASK_LIST", {"total": 7, "issues": issues}, random.Random(1))

        assert "**To Do** (7)" in text
        assert "NIHK-4" in text
        assert "NIHK-5" not in text
        assert "- ...and 2 more" in text
        assert text.splitlines()[-1] in CLOSERS

    def test_status_group_order(self, make_issue):
        issues = [
            make_issue("NIHK-1", status="Done"),
            make_issue("NIHK-2", status="Open"),
            make_issue("NIHK-3", status="In Review"),
            make_issue("NIHK-4", status="Blocked"),
        ]
        groups = group_issues([condense_issue(i) for i in issues])
        assert list(groups) == ["Blocked", "In Progress", "To Do", "Done"]

    def test_grouped_by_assignee_for_assignment_questions(self, make_issue):
        issues = [
            make_issue("NIHK-1", assignee="Ana"),
            make_issue("NIHK-2", assignee="Ana"),
            make_issue("NIHK-3"),
            make_issue("NIHK-4", assignee="Ben"),
        ]
        text = format_issue_list("ASSIGNED_TASKS", {"total": 4, "issues": issues}, random.Random(1))
        assert text.index("**Ana** (2)") < text.index("**Ben** (1)") < text.index("**Unassigned** (1)")

    def test_total_larger_than_shown(self, make_issue):
        text = format_issue_list("TASK_LIST", {"total": 80, "issues": [make_issue("NIHK-1")]}, random.Random(1))
        assert "80 issues (showing 1)" in text

    def test_no_results(self):
        assert format_issue_list("TASK_LIST", {"total": 0, "issues": []}, random.Random(1)) in NO_RESULTS

    def test_seeded_phrasing_is_repeatable(self, make_issue):
        data = {"total": 1, "issues": [make_issue("NIHK-1")]}
        assert format_issue_list("BLOCKERS", data, random.Random(7)) == format_issue_list(
            "BLOCKERS", data, random.Random(7)
        )


class TestIssueDetail:
    def test_card(self, make_issue):
        issue = make_issue(
            "NIHK-42",
            summary="Fix login",
            status="In Progress",
            priority="High",
            assignee="Ana",
            duedate="2025-03-14",
            description="Users cannot log in with SSO.",
            comments=[_comment("Ben", "Older"), _comment("Ana", "Patch is up", "2025-03-05T12:00:00.000+0000")],
        )
        card = format_issue_detail(issue)

        assert card.startswith("## NIHK-42: Fix login")
        assert "**Status**: In Progress" in card
        assert "**Assignee**: Ana" in card
        assert "**Due**: Mar 14, 2025" in card
        assert "### Description\nUsers cannot log in with SSO." in card
        assert '**Latest comment** (by Ana on Mar 5, 2025):\n"Patch is up"' in card

    def test_card_without_comments(self, make_issue):
        card = format_issue_detail(make_issue("NIHK-7"))
        assert "No comments found on this issue." in card
        assert "**Due**: No due date" in card


def test_format_date():
    assert format_date("2025-03-03T10:00:00.000+0000") == "Mar 3, 2025"
    assert format_date("2025-12-25") == "Dec 25, 2025"
    assert format_date(None) == "n/a"


class TestRenderResponse:
    @pytest.mark.asyncio
    async def test_greeting_is_canned(self, fake_llm):
        calls = fake_llm("should not be used")
        assert await render_response("hi", Intent.GREETING, rng=random.Random(3)) in GREETINGS
        assert calls == []

    @pytest.mark.asyncio
    async def test_small_talk_uses_model_with_recent_issues(self, fake_llm):
        calls = fake_llm("You're welcome!")
        recent = [condense_issue({"key": "NIHK-5", "fields": {"summary": "Ship it", "status": {"name": "Done"}}})]

        reply = await render_response("thanks!", Intent.CONVERSATION, recent_issues=recent)

        assert reply == "You're welcome!"
        assert "NIHK-5: Ship it (Done)" in calls[0][0]
        assert calls[0][2]["temperature"] == 0.7

    @pytest.mark.asyncio
    async def test_small_talk_fallback(self):
        assert await render_response("thanks!", Intent.CONVERSATION, rng=random.Random(3)) in SMALL_TALK

    @pytest.mark.asyncio
    async def test_model_narrative(self, fake_llm, make_issue):
        calls = fake_llm("## Blockers\n- **NIHK-1** is stuck")
        data = {"total": 1, "issues": [make_issue("NIHK-1", status="Blocked")]}

        reply = await render_response("what's blocking us?", Intent.BLOCKERS, data)

        assert reply.startswith("## Blockers")
        system_prompt, user_message, _ = calls[0]
        assert "BLOCKERS" in system_prompt
        assert '"key": "NIHK-1"' in user_message

    @pytest.mark.asyncio
    async def test_model_failure_uses_formatter(self, make_issue):
        data = {"total": 1, "issues": [make_issue("NIHK-1", summary="Fix login", status="Blocked")]}
        reply = await render_response("what's blocking us?", Intent.BLOCKERS, data, random.Random(2))
        assert reply.startswith("## Potential blockers")
        assert "**NIHK-1**: Fix login" in reply


@pytest.mark.asyncio
async def test_aggregate_fallback_formatter():
    metrics = {
        "total_open": 4,
        "unassigned": 1,
        "assignees": [{"name": "Ana", "open": 2, "high_priority": 1}, {"name": "Ben", "open": 1, "high_priority": 0}],
    }
    text = await render_aggregate(Intent.WORKLOAD, metrics, random.Random(0))
    assert text.startswith("## Team workload")
    assert "- **Ana**: 2 open, 1 high priority" in text
    assert "- **Ben**: 1 open" in text
    assert "- **Unassigned**: 1" in text


@pytest.mark.asyncio
async def test_aggregate_narrative(fake_llm):
    calls = fake_llm("## Sprint\n- going well")
    metrics = {"total": 2, "done": 1, "completion_rate": 50, "status_counts": {"Done": 1}, "assignees": []}
    assert await render_aggregate(Intent.SPRINT, metrics) == "## Sprint\n- going well"
    assert '"completion_rate": 50' in calls[0][0]


@pytest.mark.asyncio
async def test_sprint_formatter_notes_partial_breakdown():
    metrics = {
        "total": 250,
        "done": 200,
        "completion_rate": 80,
        "sample_size": 100,
        "status_counts": {"Done": 80, "To Do": 20},
        "assignees": [{"name": "Ana", "total": 100, "done": 80}],
    }
    text = await render_aggregate(Intent.SPRINT, metrics, random.Random(0))
    assert "- **Completed**: 200 (80%)" in text
    assert "_Breakdown covers the first 100 of 250 issues._" in text
