"""URL routes for the assistant app."""

from django.urls import path

from . import views

app_name = "assistant"

urlpatterns = [
    path("health/", views.health_check, name="health_check"),
    path("query", views.query, name="query"),
    path("session/reset", views.session_reset, name="session_reset"),
    path("project-summary", views.project_summary_view, name="project_summary"),
]
