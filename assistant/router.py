"""Query pipeline: routes a question through classification, lookup and rendering."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Any

from django.conf import settings

from assistant.ai.classifier import classify_intent
from assistant.ai.jql import synthesize
from assistant.ai.responder import render_aggregate, render_response
from assistant.handlers import AGGREGATE_HANDLERS
from assistant.handlers.detail import issue_detail
from assistant.intents import Intent
from assistant.query.executor import execute_last_resort, execute_with_recovery
from assistant.query.normalizer import normalize_query
from assistant.query.templates import find_issue_key, resolve_project_key
from assistant.result import Err, Ok, attempt
from assistant.sessions import DEFAULT_SESSION_ID, ConversationSession, SessionStore, get_session_store
from integrations.jira import JiraClient
from integrations.markdown_format import FAILURE_MESSAGES, condense_issues, pick

logger = logging.getLogger("assistant.router")


@dataclass
class AssistantReply:
    message: str
    raw_data: Any = None
    meta: dict = field(default_factory=dict)

    def as_dict(self) -> dict:
        return {"message": self.message, "rawData": self.raw_data, "meta": self.meta}


class QueryPipeline:
    """Answers one question at a time against a single Jira project.

    Args:
        jira: Client used for every Jira call.
        sessions: Store holding per-session conversation state.
        rng: Random source for canned phrasing; seeded from
            ``settings.RESPONSE_SEED`` when omitted.
        project_key: Overrides ``settings.JIRA_PROJECT_KEY``.
    """

    def __init__(
        self,
        jira: JiraClient,
        sessions: SessionStore,
        rng: random.Random | None = None,
        project_key: str | None = None,
    ) -> None:
        self.jira = jira
        self.sessions = sessions
        self.rng = rng or random.Random(settings.RESPONSE_SEED)
        self.project_key = resolve_project_key(project_key)

    async def handle(self, query: str, session_id: str | None = None) -> AssistantReply:
        """Answer *query* within the given session. Never raises."""
        persist = True
        try:
            session = self.sessions.get_or_create(session_id)
        except Exception:
            logger.exception("Session store unavailable, answering %r without history", session_id)
            session = ConversationSession(session_id=session_id or DEFAULT_SESSION_ID)
            persist = False

        try:
            reply = await self._answer(query, session)
        except Exception:
            logger.exception("Unhandled error answering %r", query)
            reply = AssistantReply(pick(FAILURE_MESSAGES, self.rng), meta={"sessionId": session.session_id})

        issues = reply.raw_data.get("issues") if isinstance(reply.raw_data, dict) else None
        session.remember_reply(reply.message, condense_issues(issues) if issues else None)
        if persist:
            try:
                self.sessions.update(session)
            except Exception:
                logger.exception("Could not save session %s", session.session_id)
        return reply

    async def _answer(self, query: str, session: ConversationSession) -> AssistantReply:
        normalized = normalize_query(query, self.project_key)
        session.add_query(query, normalized)
        intent = await classify_intent(normalized, session, self.project_key)
        meta = {"intent": intent.value, "normalizedQuery": normalized, "sessionId": session.session_id}

        if intent == Intent.GREETING:
            return AssistantReply(await render_response(query, intent, rng=self.rng), meta=meta)

        issue_key = find_issue_key(query, self.project_key)
        if issue_key:
            result = await attempt(issue_detail, self.jira, issue_key)
            if isinstance(result, Ok):
                message, issue = result.value
                meta["issueKey"] = issue_key
                return AssistantReply(message, {"total": 1, "issues": [issue]}, meta)
            logger.warning("Detail lookup for %s failed, continuing with search", issue_key)

        handler = AGGREGATE_HANDLERS.get(intent)
        if handler is not None:
            result = await attempt(handler, self.jira, self.project_key)
            if isinstance(result, Ok):
                message = await render_aggregate(intent, result.value, self.rng)
                return AssistantReply(message, result.value, meta)
            logger.warning("%s view failed, continuing with search", intent.value)

        return await self._search(query, normalized, intent, session, meta)

    async def _search(
        self,
        query: str,
        normalized: str,
        intent: Intent,
        session: ConversationSession,
        meta: dict,
    ) -> AssistantReply:
        synthesized = await synthesize(normalized, intent, self.project_key)
        meta.update(jql=synthesized.jql, jqlSource=synthesized.source, recovered=False)

        result = await attempt(
            execute_with_recovery, self.jira, synthesized.jql, intent, project_key=self.project_key,
        )
        if isinstance(result, Err):
            result = await attempt(execute_last_resort, self.jira, project_key=self.project_key)
        if isinstance(result, Err):
            meta["recovered"] = True
            return AssistantReply(pick(FAILURE_MESSAGES, self.rng), meta=meta)

        execution = result.value
        meta.update(jql=execution.jql, recovered=execution.recovered)
        recent = condense_issues(execution.issues) or session.last_issues
        message = await render_response(query, intent, execution.data, self.rng, recent)
        if execution.note:
            message = f"{execution.note}\n\n{message}"
        return AssistantReply(message, execution.data, meta)


_pipeline: QueryPipeline | None = None


def get_pipeline() -> QueryPipeline:
    """Return the process-wide pipeline, building it from settings on first call."""
    global _pipeline
    if _pipeline is None:
        _pipeline = QueryPipeline(JiraClient.from_settings(), get_session_store())
    return _pipeline
