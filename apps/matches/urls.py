# apps/matches/urls.py
# ================================================================================
"""URLConf for the Matches API (async views)."""

from __future__ import annotations

from django.urls import include, path

from .views import (
    MatchCommentsView,
    MatchDetailView,
    MatchExtractView,
    MatchListView,
    MatchRoastView,
)

app_name = "matches"

match_id_patterns = [
    path("", MatchDetailView.as_view(), name="detail"),
    path("/roast", MatchRoastView.as_view(), name="roast"),
    path("/comments", MatchCommentsView.as_view(), name="comments"),
]

urlpatterns = [
    path("", MatchListView.as_view(), name="list"),
    path("/extract", MatchExtractView.as_view(), name="extract"),
    path("/<int:match_id>", include(match_id_patterns)),
]
