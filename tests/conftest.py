"""Shared pytest fixtures for Compass tests."""

import random

import httpx
import pytest

from assistant.router import QueryPipeline
from assistant.sessions import InMemorySessionStore
from integrations.jira import JiraClient

LLM_MODULES = ("assistant.ai.classifier", "assistant.ai.jql", "assistant.ai.responder")


@pytest.fixture(autouse=True)
def project_settings(settings):
    """Pin the project key and keep sessions in memory."""
    settings.JIRA_PROJECT_KEY = "NIHK"
    settings.SESSION_STORE = "memory"
    settings.RESPONSE_SEED = 0
    return settings


@pytest.fixture(autouse=True)
def llm_down(monkeypatch):
    """No test loads a real model: every completion fails unless ``fake_llm`` is used."""
    async def unavailable(*args, **kwargs):
        raise RuntimeError("LLM unavailable in tests")

    for module in LLM_MODULES:
        monkeypatch.setattr(f"{module}.acomplete", unavailable)


@pytest.fixture
def fake_llm(monkeypatch):
    """Install a scripted LLM.

    ``fake_llm(reply)`` takes a string or a ``(system_prompt, user_message)``
    callable and returns the list of recorded calls.
    """
    def install(reply):
        calls = []

        async def complete(system_prompt, user_message, **kwargs):
            calls.append((system_prompt, user_message, kwargs))
            return reply(system_prompt, user_message) if callable(reply) else reply

        for module in LLM_MODULES:
            monkeypatch.setattr(f"{module}.acomplete", complete)
        return calls

    return install


@pytest.fixture
def make_issue():
    """Build a raw Jira issue dict."""
    def build(
        key,
        summary="Task",
        status="To Do",
        priority="Medium",
        assignee=None,
        duedate=None,
        comments=(),
        description=None,
        updated="2025-03-03T10:00:00.000+0000",
    ):
        fields = {
            "summary": summary,
            "status": {"name": status},
            "priority": {"name": priority},
            "assignee": {"displayName": assignee} if assignee else None,
            "created": "2025-02-01T09:00:00.000+0000",
            "updated": updated,
            "duedate": duedate,
            "comment": {"comments": list(comments)},
        }
        if description is not None:
            fields["description"] = description
        return {"key": key, "fields": fields}

    return build


@pytest.fixture
def search_result():
    """Build an httpx 200 response in the shape of ``/rest/api/3/search``."""
    def build(issues=(), total=None):
        issues = list(issues)
        return httpx.Response(200, json={"total": len(issues) if total is None else total, "issues": issues})

    return build


@pytest.fixture
def jira_factory():
    """Build a ``JiraClient`` whose requests go to *handler* instead of the network."""
    def build(handler):
        return JiraClient(
            "https://jira.test",
            "bot@example.com",
            "secret-token",
            transport=httpx.MockTransport(handler),
        )

    return build


@pytest.fixture
def pipeline_factory(jira_factory):
    """Build a ``QueryPipeline`` over a fake Jira with a seeded phrase picker."""
    def build(handler, sessions=None):
        return QueryPipeline(
            jira_factory(handler),
            sessions if sessions is not None else InMemorySessionStore(),
            rng=random.Random(0),
            project_key="NIHK",
        )

    return build
