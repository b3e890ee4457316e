"""Tests for JQL sanitization."""

import pytest

from assistant.query.sanitizer import has_project_scope, sanitize_jql


def test_bare_commas_become_and():
    result = sanitize_jql('status = "Open", assignee = "Jo"')
    assert 'status = "Open" AND assignee = "Jo"' in result
    assert result == 'project = NIHK AND (status = "Open" AND assignee = "Jo")'


def test_commas_inside_lists_are_kept():
    assert sanitize_jql('status in ("To Do", "In Progress")') == (
        'project = NIHK AND (status in ("To Do", "In Progress"))'
    )


def test_commas_inside_quotes_are_kept():
    assert sanitize_jql('summary ~ "login, signup"') == 'project = NIHK AND (summary ~ "login, signup")'


def test_single_quoted_values_are_left_alone():
    assert sanitize_jql("status = 'In Progress'") == "project = NIHK AND (status = 'In Progress')"


def test_commas_inside_single_quotes_are_kept():
    assert sanitize_jql("summary ~ 'login, signup'") == "project = NIHK AND (summary ~ 'login, signup')"


def test_single_quoted_pairs_are_joined():
    assert sanitize_jql("status = 'Open', assignee = 'Jo'") == (
        "project = NIHK AND (status = 'Open' AND assignee = 'Jo')"
    )


def test_order_by_stays_outside_scope():
    assert sanitize_jql("status = Open ORDER BY priority DESC, updated DESC") == (
        "project = NIHK AND (status = Open) ORDER BY priority DESC, updated DESC"
    )


def test_limit_is_dropped():
    assert sanitize_jql("status = Open ORDER BY created DESC LIMIT 10") == (
        "project = NIHK AND (status = Open) ORDER BY created DESC"
    )


@pytest.mark.parametrize(
    ("jql", "expected"),
    [
        ("assignee = EMPTY", "project = NIHK AND (assignee is EMPTY)"),
        ("assignee = null", "project = NIHK AND (assignee is EMPTY)"),
        ("assignee is null", "project = NIHK AND (assignee is EMPTY)"),
        ("assignee != null", "project = NIHK AND (assignee is not EMPTY)"),
        ("duedate IS NOT empty", "project = NIHK AND (duedate is not EMPTY)"),
    ],
)
def test_empty_checks_are_normalized(jql, expected):
    assert sanitize_jql(jql) == expected


def test_multiword_values_are_quoted():
    assert sanitize_jql("status = In Progress AND assignee = Jo Smith") == (
        'project = NIHK AND (status = "In Progress" AND assignee = "Jo Smith")'
    )


def test_reserved_word_values_are_quoted():
    assert sanitize_jql("labels = desc") == 'project = NIHK AND (labels = "desc")'


def test_existing_scope_is_left_alone():
    jql = "project = NIHK AND status = Open ORDER BY created DESC"
    assert sanitize_jql(jql) == jql


def test_other_project_is_wrapped():
    assert sanitize_jql("project = ABC AND status = Open") == (
        "project = NIHK AND (project = ABC AND status = Open)"
    )


def test_empty_query_is_scoped():
    assert sanitize_jql("") == "project = NIHK"


@pytest.mark.parametrize(
    "jql",
    [
        "project = NIHK",
        'project = "NIHK" AND status = Done',
        "project in (ABC, NIHK)",
        "PROJECT = nihk",
        "project = 'NIHK' AND status = Done",
    ],
)
def test_has_project_scope(jql):
    assert has_project_scope(jql)


def test_scope_key_must_match_exactly():
    assert not has_project_scope("project = NIHKX")


@pytest.mark.parametrize(
    "jql",
    [
        'status = "Open", assignee = "Jo"',
        "status = In Progress, assignee = EMPTY ORDER BY updated DESC LIMIT 5",
        "labels = desc AND summary ~ \"a, b\"",
        "project = NIHK AND priority in (High, Highest) ORDER BY priority DESC",
        "assignee != null",
        "status = 'In Progress'",
        "summary ~ 'login, signup' ORDER BY updated DESC",
        "status = 'Open', labels = 'a b', assignee = Jo Smith",
        "",
    ],
)
def test_idempotent(jql):
    once = sanitize_jql(jql)
    assert sanitize_jql(once) == once
