"""Handler registry: maps aggregate intents to their metric builders."""

from assistant.handlers.aggregates import project_status, sprint, timeline, workload
from assistant.intents import Intent

AGGREGATE_HANDLERS: dict[Intent, callable] = {
    Intent.PROJECT_STATUS: project_status,
    Intent.TIMELINE: timeline,
    Intent.WORKLOAD: workload,
    Intent.SPRINT: sprint,
}
