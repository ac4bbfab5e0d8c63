# apps/players/urls.py
# ================================================================================
"""URLConf for the Players API (async views)."""

from __future__ import annotations

from django.urls import include, path

from .views import (
    PlayerDetailView,
    PlayerJourneyView,
    PlayerListView,
    PlayerNotificationsView,
    PlayerRivalsView,
)

app_name = "players"

player_id_patterns = [
    path("", PlayerDetailView.as_view(), name="detail"),
    path("/journey", PlayerJourneyView.as_view(), name="journey"),
    path("/rivals", PlayerRivalsView.as_view(), name="rivals"),
    path("/notifications", PlayerNotificationsView.as_view(), name="notifications"),
]

urlpatterns = [
    path("", PlayerListView.as_view(), name="list"),
    path("/<str:player_id>", include(player_id_patterns)),
]
