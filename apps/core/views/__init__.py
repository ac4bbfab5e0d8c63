"""
apps.core.views
---------------

Starlette-level endpoints mounted next to the Django app in `config.asgi`:

    from apps.core.views import health_check, notification_stream
"""

from __future__ import annotations

from .custom_handler import json_404_handler, json_500_handler
from .health import health_check
from .stream import notification_stream

__all__: list[str] = [
    "health_check",
    "json_404_handler",
    "json_500_handler",
    "notification_stream",
]
