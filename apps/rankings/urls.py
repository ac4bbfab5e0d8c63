# apps/rankings/urls.py
# ================================================================================
"""URLConf for the rankings API."""

from __future__ import annotations

from django.urls import path

from .views import BestOfView, LeaderboardView, LosersView

app_name = "rankings"

urlpatterns = [
    path("/leaderboard", LeaderboardView.as_view(), name="leaderboard"),
    path("/best-of", BestOfView.as_view(), name="best-of"),
    path("/losers", LosersView.as_view(), name="losers"),
]
