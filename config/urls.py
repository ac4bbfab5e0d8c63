"""
JSON API routes. `/health` and `/notifications-stream/...` are served by
Starlette in `config.asgi` before requests reach Django.
"""

from django.urls import include, path

api_v1_patterns = [
    path("players", include("apps.players.urls")),
    path("matches", include("apps.matches.urls")),
    path("rankings", include("apps.rankings.urls")),
    # badges and hall-of-fame routes live at the top level
    path("", include("apps.achievements.urls")),
]

urlpatterns = [
    path("api/v1/", include(api_v1_patterns)),
]

handler404 = "apps.core.views.custom_handler.json_404_handler"
handler500 = "apps.core.views.custom_handler.json_500_handler"
