"""The closed set of intents a question can resolve to."""

from __future__ import annotations

from enum import Enum


class Intent(str, Enum):
    PROJECT_STATUS = "PROJECT_STATUS"
    TASK_LIST = "TASK_LIST"
    ASSIGNED_TASKS = "ASSIGNED_TASKS"
    TASK_DETAILS = "TASK_DETAILS"
    BLOCKERS = "BLOCKERS"
    TIMELINE = "TIMELINE"
    COMMENTS = "COMMENTS"
    WORKLOAD = "WORKLOAD"
    SPRINT = "SPRINT"
    GREETING = "GREETING"
    CONVERSATION = "CONVERSATION"
    GENERAL = "GENERAL"

    @classmethod
    def parse(cls, value: str) -> Intent | None:
        """Return the intent named by *value*, or ``None`` if it names none."""
        try:
            return cls(value.strip().upper())
        except ValueError:
            return None


VALID_INTENTS = frozenset(i.value for i in Intent)
