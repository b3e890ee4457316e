"""Root URL configuration for Compass."""

from django.urls import include, path

urlpatterns = [
    path("api/", include("assistant.urls")),
]
