from django.urls import path

from .api import health_view, live_view

app_name = "monitoring"

urlpatterns = [
    path("health/", health_view, name="health"),
    path("health/live/", live_view, name="health-live"),
]
