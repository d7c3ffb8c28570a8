"""Cached availability check for the search engine.

The gate is a small circuit breaker: the first caller after the cached result
expires pays for a live check (``ping`` followed by ``cluster.health``) and
everyone else reuses the answer. Healthy answers are trusted for longer than
unhealthy ones so a recovering cluster is noticed quickly, and a cluster that
keeps failing is checked less often.
"""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, replace
from typing import Any, Callable, Optional

from .config import settings

logger = logging.getLogger(__name__)

HEALTHY_STATUSES = frozenset({"green", "yellow"})


@dataclass(frozen=True)
class HealthState:
    available: Optional[bool] = None
    last_checked_at: float = 0.0
    consecutive_failures: int = 0

    def to_dict(self) -> dict:
        return {
            "available": self.available,
            "last_checked_at": self.last_checked_at,
            "consecutive_failures": self.consecutive_failures,
        }


class EngineHealthGate:
    """Thread-safe, TTL-cached answer to "is the search engine usable?"."""

    def __init__(
        self,
        client: Any,
        *,
        healthy_ttl: float = settings.health_ttl_healthy,
        unhealthy_ttl: float = settings.health_ttl_unhealthy,
        backoff_threshold: int = settings.health_backoff_threshold,
        backoff_interval: float = settings.health_backoff_interval,
        health_timeout: int = settings.es_health_timeout,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._client = client
        self._healthy_ttl = healthy_ttl
        self._unhealthy_ttl = unhealthy_ttl
        self._backoff_threshold = backoff_threshold
        self._backoff_interval = backoff_interval
        self._health_timeout = health_timeout
        self._clock = clock
        self._lock = threading.Lock()
        self._state = HealthState()

    def state(self) -> HealthState:
        with self._lock:
            return self._state

    def reset(self) -> None:
        with self._lock:
            self._state = HealthState()

    def is_available(self) -> bool:
        # The lock spans the whole check so concurrent callers wait for the
        # running check instead of starting their own.
        with self._lock:
            now = self._clock()
            state = self._state
            if state.available is not None and now - state.last_checked_at < self._ttl(state):
                return state.available
            self._state = self._check(state, now)
            return bool(self._state.available)

    def _ttl(self, state: HealthState) -> float:
        if state.available:
            return self._healthy_ttl
        if state.consecutive_failures >= self._backoff_threshold:
            return self._backoff_interval
        return self._unhealthy_ttl

    def _check(self, state: HealthState, now: float) -> HealthState:
        started = time.perf_counter()
        try:
            if not self._client.ping():
                logger.warning("Search engine ping failed")
                return self._failed(state, now)
            health = self._client.cluster.health(timeout=f"{self._health_timeout}s")
        except Exception as exc:  # any transport or client error means "down"
            logger.error(
                "Search engine health check failed: %s consecutive_failures=%s",
                exc,
                state.consecutive_failures + 1,
            )
            return self._failed(state, now)

        body = getattr(health, "body", health)
        status = (body.get("status") if isinstance(body, dict) else None) or "red"
        if status not in HEALTHY_STATUSES:
            logger.warning("Search engine cluster not healthy: status=%s", status)
            return self._failed(state, now)

        logger.debug(
            "Search engine available: status=%s ping_ms=%.2f",
            status,
            (time.perf_counter() - started) * 1000,
        )
        return HealthState(available=True, last_checked_at=now, consecutive_failures=0)

    def _failed(self, state: HealthState, now: float) -> HealthState:
        failures = state.consecutive_failures + 1
        if failures >= self._backoff_threshold:
            logger.warning(
                "Search engine down %s times in a row; next check in %ss",
                failures,
                self._backoff_interval,
            )
        return replace(state, available=False, last_checked_at=now, consecutive_failures=failures)
