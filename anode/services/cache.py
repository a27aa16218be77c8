"""Processing result cache with optional Redis support.

Cache I/O is strictly best effort: every call is bounded by
``settings.cache_timeout_seconds`` and any failure is logged and reported as
a miss.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, Optional

import redis.asyncio as redis

from ..cache import TTLCache, cache as local_cache
from ..config import settings

logger = logging.getLogger(__name__)


def _serialize(value: Dict[str, Any]) -> str:
    return json.dumps(value, separators=(",", ":"), sort_keys=True)


def _deserialize(raw: Optional[str]) -> Optional[Dict[str, Any]]:
    if not raw:
        return None
    try:
        payload = json.loads(raw)
    except ValueError:
        logger.warning("Discarding undecodable cache payload")
        return None
    return payload if isinstance(payload, dict) else None


class ResultCache:
    def __init__(
        self,
        *,
        redis_url: Optional[str] = None,
        ttl: Optional[int] = None,
        timeout: Optional[float] = None,
        local: Optional[TTLCache] = None,
        client: Any = None,
    ) -> None:
        self._ttl = ttl or settings.cache_ttl_seconds
        self._timeout = timeout or settings.cache_timeout_seconds
        self._local = local or local_cache
        self._client = client
        redis_url = settings.redis_url if redis_url is None else redis_url
        if self._client is None and redis_url:
            try:
                self._client = redis.from_url(redis_url, encoding="utf-8", decode_responses=True)
            except Exception as exc:  # noqa: BLE001
                logger.warning("Failed to initialize Redis client", exc_info=exc)
                self._client = None

    @property
    def backend(self) -> str:
        return "redis" if self._client is not None else "memory"

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        try:
            if self._client is not None:
                raw = await asyncio.wait_for(self._client.get(key), timeout=self._timeout)
                return _deserialize(raw)
            return await asyncio.wait_for(self._local.get(key), timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Cache read timed out after {self._timeout}s; treating as miss")
        except Exception as exc:  # noqa: BLE001
            logger.warning(f"Cache read failed; treating as miss: {exc}")
        return None

    async def set(self, key: str, value: Dict[str, Any]) -> None:
        try:
            if self._client is not None:
                await asyncio.wait_for(
                    self._client.set(key, _serialize(value), ex=self._ttl),
                    timeout=self._timeout,
                )
            else:
                await asyncio.wait_for(
                    self._local.set(key, value, ttl=self._ttl),
                    timeout=self._timeout,
                )
        except asyncio.TimeoutError:
            logger.warning(f"Cache write timed out after {self._timeout}s; skipping")
        except Exception as exc:  # noqa: BLE001
            logger.warning(f"Cache write failed; skipping: {exc}")

    async def ping(self) -> Dict[str, Any]:
        if self._client is None:
            return {"status": "healthy", "backend": "memory", "entries": self._local.size()}
        try:
            await asyncio.wait_for(self._client.ping(), timeout=self._timeout)
            return {"status": "healthy", "backend": "redis"}
        except Exception as exc:  # noqa: BLE001
            return {"status": "degraded", "backend": "redis", "reason": str(exc)}


_result_cache: Optional[ResultCache] = None


def get_result_cache() -> Optional[ResultCache]:
    """Return the shared result cache, or None when caching is disabled."""
    global _result_cache
    if not settings.cache_enabled:
        return None
    if _result_cache is None:
        _result_cache = ResultCache()
    return _result_cache


__all__ = ["ResultCache", "get_result_cache"]
