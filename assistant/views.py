"""HTTP endpoints for asking questions, resetting sessions and the dashboard summary."""

import logging

import httpx
from asgiref.sync import async_to_sync
from django.http import JsonResponse
from rest_framework import status
from rest_framework.decorators import api_view
from rest_framework.response import Response

from assistant.handlers.aggregates import project_summary
from assistant.router import get_pipeline
from assistant.sessions import DEFAULT_SESSION_ID
from integrations.jira import JiraAPIError

logger = logging.getLogger("assistant.views")


def health_check(request):
    """Return a simple health-check response."""
    return JsonResponse({"status": "ok"})


def _payload(request) -> dict:
    """Request body as a dict; JSON arrays and scalars count as empty."""
    return request.data if isinstance(request.data, dict) else {}


@api_view(["POST"])
def query(request):
    """Answer a natural-language question about the project."""
    data = _payload(request)
    text = str(data.get("query") or "").strip()
    if not text:
        return Response({"message": "Query is required"}, status=status.HTTP_400_BAD_REQUEST)

    session_id = str(data.get("sessionId") or "") or None
    reply = async_to_sync(get_pipeline().handle)(text, session_id)
    return Response(reply.as_dict())


@api_view(["POST"])
def session_reset(request):
    """Discard the conversation history of a session."""
    session_id = str(_payload(request).get("sessionId") or DEFAULT_SESSION_ID)
    get_pipeline().sessions.reset(session_id)
    return Response({"ok": True, "sessionId": session_id})


@api_view(["GET"])
def project_summary_view(request):
    """Open count plus recent, high-priority and unassigned issues."""
    pipeline = get_pipeline()
    try:
        data = async_to_sync(project_summary)(pipeline.jira, pipeline.project_key)
    except (JiraAPIError, httpx.HTTPError):
        logger.exception("Failed to fetch project summary")
        return Response({"message": "Failed to fetch project summary"}, status=status.HTTP_502_BAD_GATEWAY)
    return Response(data)
