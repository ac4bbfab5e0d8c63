"""
Shared plumbing for the JSON API views.

`BaseAsyncView` turns service exceptions into JSON error bodies and wraps
read endpoints in the cache; `BaseAppView` fixes the GET lifecycle to
"collect params, produce payload, cache it under those params".

Cache control query flags: `nocache=true` skips the cache entirely and
`reset=true` recomputes and overwrites the entry. Every cached response
carries `X-Cache-Status: HIT | MISS | REFRESH | BYPASS`.
"""

from __future__ import annotations

import inspect
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Self, TypeVar, cast

import orjson
import structlog
from django.http import Http404, HttpRequest, HttpResponse
from django.views import View
from pydantic import BaseModel, ValidationError

from . import cache_utils
from .errors import NotAuthenticatedError, ServiceError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)

log = structlog.get_logger(__name__).bind(component="ViewsUtils")

PLAYER_HEADER = "X-Player-Id"
TRUTHY = frozenset({"1", "true", "yes", "on"})


def _orjson_default(obj: Any) -> Any:
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json")
    msg = f"{type(obj).__name__} is not JSON serialisable"
    raise TypeError(msg)


class OrjsonResponse(HttpResponse):
    """`application/json` response encoded with orjson; naive datetimes are treated as UTC."""

    def __init__(self, data: Any, *, status: int = 200, **kw: Any) -> None:
        kw.setdefault("content_type", "application/json")
        body = orjson.dumps(data, default=_orjson_default, option=orjson.OPT_NAIVE_UTC)
        super().__init__(content=body, status=status, **kw)


def _int_or(raw: str | None, default: int) -> int:
    try:
        return int(raw) if raw is not None else default
    except ValueError:
        return default


@dataclass(slots=True, frozen=True)
class Page:
    """1-based page window over a list endpoint."""

    number: int
    size: int
    offset: int = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "offset", (self.number - 1) * self.size)

    @classmethod
    def from_request(cls, req: HttpRequest, /, *, max_size: int = 100, default_size: int = 25) -> Self:
        number = max(_int_or(req.GET.get("page"), 1), 1)
        size = min(max(_int_or(req.GET.get("page_size"), default_size), 1), max_size)
        return cls(number, size)

    def wrap(self, count: int, data: list[Any]) -> dict[str, Any]:
        return {
            "count": count,
            "page": self.number,
            "page_size": self.size,
            "total_pages": -(-count // self.size),
            "data": data,
        }


class BaseAsyncView(View):
    META_CACHE_PARAMS: frozenset[str] = frozenset({"reset", "nocache"})

    async def dispatch(self, request: HttpRequest, *args: Any, **kw: Any):  # type: ignore[override]
        self.request = request
        handler = getattr(self, request.method.lower(), None)
        if handler is None:
            return await self.http_method_not_allowed(request, *args, **kw)

        try:
            response = await handler(request, *args, **kw)
        except Http404 as exc:
            response = OrjsonResponse({"detail": str(exc) or "Not found."}, status=404)
        except ServiceError as exc:
            log.info(
                "Request rejected",
                path=request.path,
                error=type(exc).__name__,
                status=exc.status_code,
                detail=exc.detail,
            )
            response = OrjsonResponse(exc.to_payload(), status=exc.status_code)
        except ValidationError as exc:
            log.info("Invalid request body", path=request.path, errors=exc.error_count())
            errors = exc.errors(include_url=False, include_context=False)
            response = OrjsonResponse({"detail": "Invalid request body.", "errors": errors}, status=400)
        except Exception:
            log.exception("Unhandled API error", path=request.path)
            response = OrjsonResponse({"detail": "An internal server error occurred."}, status=500)

        if cache_status := getattr(request, "_cache_status", None):
            response["X-Cache-Status"] = cache_status
        return response

    async def http_method_not_allowed(self, request: HttpRequest, *a: Any, **k: Any) -> HttpResponse:
        return OrjsonResponse({"detail": f'Method "{request.method}" not allowed.'}, status=405)

    # request parsing

    @staticmethod
    def get_page(request: HttpRequest) -> Page:
        return Page.from_request(request)

    @staticmethod
    def get_bool_param(request: HttpRequest, key: str, *, default: bool = False) -> bool:
        raw = request.GET.get(key)
        return default if raw is None else raw.lower() in TRUTHY

    @staticmethod
    def get_choice_param(request: HttpRequest, key: str, choices: list[str], *, default: str) -> str:
        raw = request.GET.get(key, default)
        return raw if raw in choices else default

    @staticmethod
    def get_acting_player_id(request: HttpRequest) -> str:
        """Caller identity from `X-Player-Id`; authentication itself happens upstream."""
        player_id = (request.headers.get(PLAYER_HEADER) or "").strip()
        if not player_id:
            raise NotAuthenticatedError
        return player_id

    @staticmethod
    def parse_body(request: HttpRequest, model: type[M]) -> M:
        return model.model_validate_json(request.body or b"{}")

    # caching

    def build_cache_key(self, request: HttpRequest, **extra: Any) -> str:
        params = {k: v for k, v in request.GET.items() if k not in self.META_CACHE_PARAMS}
        params.update(extra)
        return cache_utils.build_cache_key(request.path, **params)

    async def get_cached_data(
        self,
        request: HttpRequest,
        producer: Callable[[], T | Awaitable[T]],
        *,
        ttl: int,
        **cache_key_kwargs: Any,
    ) -> T:
        async def produce() -> T:
            result = producer()
            return await result if inspect.isawaitable(result) else cast("T", result)

        key = self.build_cache_key(request, **cache_key_kwargs)

        if self.get_bool_param(request, "nocache"):
            request._cache_status = "BYPASS"
            return await produce()

        if self.get_bool_param(request, "reset"):
            log.info("Cache reset", key=key)
            await cache_utils.adelete(key)
            data = await produce()
            await cache_utils.aset_json(key, data, ttl=ttl)
            request._cache_status = "REFRESH"
            return data

        async def produce_on_miss() -> T:
            request._cache_status = "MISS"
            return await produce()

        data = await cache_utils.aget_or_set(key, produce_on_miss, ttl=ttl)
        if not hasattr(request, "_cache_status"):
            request._cache_status = "HIT"
        return data


class BaseAppView(BaseAsyncView, ABC):
    """
    Read-only endpoint: `_get_params` pulls everything the payload depends on
    out of the path and query string, and those params double as the cache key.
    """

    CACHE_TTL: int = 60

    @abstractmethod
    def _get_params(self, request: HttpRequest, **kwargs) -> dict[str, Any]: ...

    @abstractmethod
    async def _produce_payload(self, params: dict[str, Any]) -> Any: ...

    async def get(self, request: HttpRequest, **kwargs) -> OrjsonResponse:
        params = self._get_params(request, **kwargs)
        data = await self.get_cached_data(
            request,
            lambda: self._produce_payload(params),
            ttl=self.CACHE_TTL,
            **params,
        )
        return OrjsonResponse(data)
