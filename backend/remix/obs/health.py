"""Health check helpers for liveness and readiness probes."""

from __future__ import annotations

import asyncio
import logging
from time import perf_counter
from typing import Any, Dict, Tuple

from redis.exceptions import RedisError

from remix.infra.redis import redis_client
from remix.infra.store.base import Store
from remix.obs import metrics

LOGGER = logging.getLogger(__name__)


async def _redis_status(timeout: float = 0.2) -> Dict[str, Any]:
	start = perf_counter()
	try:
		await asyncio.wait_for(redis_client.ping(), timeout=timeout)
	except (RedisError, OSError, asyncio.TimeoutError) as exc:
		metrics.mark_dependency("redis", False)
		LOGGER.warning("Redis readiness check failed", exc_info=True)
		return {"ok": False, "error": type(exc).__name__}
	latency = perf_counter() - start
	metrics.mark_dependency("redis", True, latency_seconds=latency)
	return {"ok": True, "latency_ms": round(latency * 1000, 2)}


async def _store_status(store: Store, timeout: float = 0.3) -> Dict[str, Any]:
	start = perf_counter()
	try:
		await asyncio.wait_for(store.ping(), timeout=timeout)
	except Exception as exc:  # pragma: no cover - depends on runtime
		metrics.mark_dependency("store", False)
		LOGGER.warning("Store readiness check failed", exc_info=True)
		return {"ok": False, "error": type(exc).__name__}
	latency = perf_counter() - start
	metrics.mark_dependency("store", True, latency_seconds=latency)
	return {"ok": True, "backend": type(store).__name__, "latency_ms": round(latency * 1000, 2)}


async def liveness() -> Dict[str, Any]:
	return {"status": "ok"}


async def readiness(store: Store) -> Tuple[int, Dict[str, Any]]:
	redis_state, store_state = await asyncio.gather(_redis_status(), _store_status(store))
	ok = redis_state.get("ok") and store_state.get("ok")
	status_code = 200 if ok else 503
	return (
		status_code,
		{
			"status": "ok" if ok else "degraded",
			"checks": {
				"redis": redis_state,
				"store": store_state,
			},
		},
	)
