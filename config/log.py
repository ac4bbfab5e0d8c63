"""
structlog on top of stdlib logging.

Every record, whether from structlog or from Django and third-party stdlib
loggers, goes through the same processor chain and one console handler.
Context bound with `structlog.contextvars.bound_contextvars` (match id,
player id) is merged into every line logged inside the block.

Environment:
    LOG_LEVEL   minimum level for structlog loggers (default INFO)
    LOG_FORMAT  `plain` or `json`; workers default to json, web to plain
    DJANGO_ENV  colours are only used in `dev`
"""

import logging
import os
import sys

import structlog
from structlog.contextvars import merge_contextvars
from structlog.processors import StackInfoRenderer, TimeStamper, format_exc_info
from structlog.stdlib import ProcessorFormatter, add_log_level, add_logger_name

_is_worker = "infrastructure.worker" in sys.modules or "run_workers" in sys.argv
_colors = os.getenv("DJANGO_ENV", "dev") == "dev" and sys.stderr.isatty()

LOG_FORMAT = os.getenv("LOG_FORMAT", "json" if _is_worker else "plain")
LOG_LEVEL = logging.getLevelNamesMapping().get(os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)

PRE_CHAIN = [
    merge_contextvars,
    add_log_level,
    add_logger_name,
    TimeStamper(fmt="iso", utc=True),
    StackInfoRenderer(),
    format_exc_info,
]

RENDERERS = {
    "plain": structlog.dev.ConsoleRenderer(colors=_colors, pad_event=0, pad_level=False),
    "json": structlog.processors.JSONRenderer(),
}


def _formatter(name: str) -> dict:
    return {"()": ProcessorFormatter, "processor": RENDERERS[name], "foreign_pre_chain": PRE_CHAIN}


def _logger(level: str) -> dict:
    return {"handlers": ["console"], "level": level, "propagate": False}


LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {name: _formatter(name) for name in RENDERERS},
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": LOG_FORMAT if LOG_FORMAT in RENDERERS else "plain",
        },
    },
    "loggers": {
        "": _logger("INFO"),
        "django": _logger("INFO"),
        "django.db.backends": _logger("WARNING"),
        "httpx": _logger("WARNING"),
        "apps": _logger("DEBUG"),
        "common": _logger("INFO"),
        "infrastructure": _logger("INFO"),
    },
}

structlog.configure(
    processors=[*PRE_CHAIN, ProcessorFormatter.wrap_for_formatter],
    wrapper_class=structlog.make_filtering_bound_logger(LOG_LEVEL),
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)
