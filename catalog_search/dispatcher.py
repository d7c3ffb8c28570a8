"""Search orchestration: engine first, relational store as the safety net.

Per request the dispatcher walks a small state machine:

    validate -> (empty query) relational listing ............... relational
             -> parse -> health gate says no -> relational ...... relational
             -> parse -> engine ok ............................... engine
             -> parse -> engine fails -> relational ............. relational_fallback
             -> relational fails ................................ unavailable

Attempts are strictly sequential and each path runs at most once. Only the
last state produces ``success: false``; every other state is served, even if
degraded. Each step leaves a trace in ``diagnostics``.
"""
from __future__ import annotations

import logging
import uuid
from datetime import datetime
from time import perf_counter
from typing import Any, Dict, Mapping, Optional

from .cache import CacheBackend, cache_key
from .config import settings
from .errors import EngineRequestFailed, RelationalRequestFailed, ServiceUnavailable, describe_error
from .health import EngineHealthGate
from .models import SearchOutcome, SearchRequest, SearchSource
from .query_parser import parse_query
from .relational import RelationalSearchPath
from .search import EngineSearchPath

logger = logging.getLogger(__name__)

UNAVAILABLE_MESSAGE = "Search service temporarily unavailable"


def _new_request_id() -> str:
    return f"search_{uuid.uuid4().hex[:16]}"


def _now() -> str:
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S")


class SearchDispatcher:
    def __init__(
        self,
        health_gate: EngineHealthGate,
        engine_path: EngineSearchPath,
        relational_path: RelationalSearchPath,
        cache: Optional[CacheBackend] = None,
        cache_ttl: int = settings.cache_ttl_seconds,
    ) -> None:
        self._health_gate = health_gate
        self._engine_path = engine_path
        self._relational_path = relational_path
        self._cache = cache
        self._cache_ttl = cache_ttl

    def search(self, params: Mapping[str, Any]) -> Dict[str, Any]:
        """Answer raw query parameters with the outbound payload."""

        started = perf_counter()
        request = SearchRequest.from_params(params)
        key = None
        if self._cache is not None and self._cache_ttl > 0 and request.query:
            key = cache_key(request.as_params())
            cached = self._cache.get(key)
            if cached is not None:
                return self._from_cache(cached, params, started)

        outcome = self.dispatch(request, raw_params=params)
        payload = outcome.to_payload()
        # Only engine answers are cached; a degraded answer must not outlive
        # the outage that produced it.
        if key is not None and outcome.source is SearchSource.ENGINE:
            self._cache.set(key, payload, self._cache_ttl)
            logger.debug("cache_store q=%r ttl=%s", request.query, self._cache_ttl)
        return payload

    @staticmethod
    def _from_cache(cached: Dict[str, Any], params: Mapping[str, Any], started: float) -> Dict[str, Any]:
        """Re-stamp a cached payload so its diagnostics describe this request."""

        diagnostics = cached.setdefault("data", {}).setdefault("diagnostics", {})
        cached_request_id = diagnostics.get("request_id")
        diagnostics.update(
            request_id=_new_request_id(),
            start_time=_now(),
            params=dict(params),
            cache_hit=True,
            cached_request_id=cached_request_id,
            duration_ms=round((perf_counter() - started) * 1000, 2),
        )
        logger.info(
            "[%s] Search served from cache (stored by %s)",
            diagnostics["request_id"],
            cached_request_id,
        )
        return cached

    def dispatch(self, request: SearchRequest, raw_params: Optional[Mapping[str, Any]] = None) -> SearchOutcome:
        request_id = _new_request_id()
        started = perf_counter()
        diagnostics: Dict[str, Any] = {
            "request_id": request_id,
            "start_time": _now(),
            "params": dict(raw_params) if raw_params is not None else request.as_params(),
            "validated_params": request.as_params(),
            "errors": [],
        }
        logger.info("[%s] Search started params=%s", request_id, diagnostics["params"])

        if not request.query:
            logger.info("[%s] Empty query, using relational listing", request_id)
            diagnostics["search_method"] = "relational_listing"
            return self._search_relational(request, SearchSource.RELATIONAL, diagnostics, started)

        plan = parse_query(request.query)
        diagnostics["parsed_query"] = plan.to_dict()

        available = self._health_gate.is_available()
        diagnostics["engine_available"] = available
        if not available:
            logger.warning("[%s] Search engine unavailable, using relational store", request_id)
            diagnostics["search_method"] = "relational_primary"
            return self._search_relational(request, SearchSource.RELATIONAL, diagnostics, started)

        diagnostics["search_method"] = "engine"
        try:
            result = self._engine_path.search(request.query, request.page, request.limit, request.sort)
        except EngineRequestFailed as exc:
            logger.warning("[%s] Search engine failed, falling back to relational store: %s", request_id, exc)
            diagnostics["engine_success"] = False
            diagnostics["errors"].append(describe_error(exc))
            diagnostics["search_method"] = "relational_fallback"
            return self._search_relational(request, SearchSource.RELATIONAL_FALLBACK, diagnostics, started)

        diagnostics["engine_success"] = True
        self._finish(diagnostics, started, SearchSource.ENGINE)
        return SearchOutcome(
            items=result.items[: request.limit],
            total=result.total,
            page=request.page,
            limit=request.limit,
            source=SearchSource.ENGINE,
            diagnostics=diagnostics,
            max_score=result.max_score,
        )

    def _search_relational(
        self,
        request: SearchRequest,
        source: SearchSource,
        diagnostics: Dict[str, Any],
        started: float,
    ) -> SearchOutcome:
        try:
            result = self._relational_path.search(request.query, request.page, request.limit, request.sort)
        except RelationalRequestFailed as exc:
            return self._unavailable(request, exc, diagnostics, started)

        self._finish(diagnostics, started, source)
        return SearchOutcome(
            items=result.items[: request.limit],
            total=result.total,
            page=request.page,
            limit=request.limit,
            source=source,
            diagnostics=diagnostics,
            search_variants=result.variants,
        )

    def _unavailable(
        self,
        request: SearchRequest,
        exc: RelationalRequestFailed,
        diagnostics: Dict[str, Any],
        started: float,
    ) -> SearchOutcome:
        failure = ServiceUnavailable(UNAVAILABLE_MESSAGE)
        diagnostics["errors"].append(describe_error(exc))
        diagnostics["search_method"] = "error"
        diagnostics["duration_ms"] = round((perf_counter() - started) * 1000, 2)
        logger.error(
            "[%s] Relational search failed, no path left after %sms: %s",
            diagnostics["request_id"],
            diagnostics["duration_ms"],
            exc,
        )
        return SearchOutcome(
            items=[],
            total=0,
            page=request.page,
            limit=request.limit,
            source=None,
            diagnostics=diagnostics,
            error=failure,
        )

    @staticmethod
    def _finish(diagnostics: Dict[str, Any], started: float, source: SearchSource) -> None:
        diagnostics["duration_ms"] = round((perf_counter() - started) * 1000, 2)
        logger.info(
            "[%s] Search served by %s in %sms",
            diagnostics["request_id"],
            source.value,
            diagnostics["duration_ms"],
        )
