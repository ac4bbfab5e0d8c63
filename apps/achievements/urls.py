# apps/achievements/urls.py
# ================================================================================
"""URLConf for badges and hall entries."""

from __future__ import annotations

from django.urls import path

from .views import BadgeListView, HallEntryDetailView, HallListView

app_name = "achievements"

urlpatterns = [
    path("badges", BadgeListView.as_view(), name="badges"),
    path("hall", HallListView.as_view(), name="hall"),
    path("hall/<int:entry_id>", HallEntryDetailView.as_view(), name="hall-entry"),
]
