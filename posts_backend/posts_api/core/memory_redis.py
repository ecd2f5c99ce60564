from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Set, Tuple

from redis.exceptions import WatchError


class AsyncMemoryRedis:
    """In-process stand-in for the subset of ``redis.asyncio.Redis`` the store uses.

    Values come back as strings, matching a client created with
    ``decode_responses=True``. Every write bumps a per-key version so
    ``pipeline()`` can honour WATCH the way a server does.
    """

    def __init__(self) -> None:
        self._kv: Dict[str, str] = {}
        self._hash: Dict[str, Dict[str, str]] = {}
        self._sets: Dict[str, Set[str]] = {}
        self._versions: Dict[str, int] = {}
        self._lock = asyncio.Lock()

    def _touch(self, key: str) -> None:
        self._versions[key] = self._versions.get(key, 0) + 1

    def _incr(self, key: str) -> int:
        cur = int(self._kv.get(key, 0)) + 1
        self._kv[key] = str(cur)
        self._touch(key)
        return cur

    def _hset(self, key: str, mapping: Dict[str, Any]) -> int:
        h = self._hash.setdefault(key, {})
        added = len([f for f in mapping if f not in h])
        h.update({f: str(v) for f, v in mapping.items()})
        self._touch(key)
        return added

    def _sadd(self, key: str, *members: Any) -> int:
        s = self._sets.setdefault(key, set())
        before = len(s)
        s.update(str(m) for m in members)
        self._touch(key)
        return len(s) - before

    def _srem(self, key: str, *members: Any) -> int:
        s = self._sets.get(key, set())
        before = len(s)
        for m in members:
            s.discard(str(m))
        if not s:
            self._sets.pop(key, None)
        self._touch(key)
        return before - len(s)

    def _delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            hit = False
            for space in (self._kv, self._hash, self._sets):
                if space.pop(key, None) is not None:
                    hit = True
            if hit:
                self._touch(key)
            removed += int(hit)
        return removed

    def _exists(self, *keys: str) -> int:
        return sum(1 for k in keys if k in self._kv or self._hash.get(k) or self._sets.get(k))

    async def ping(self) -> bool:
        return True

    async def aclose(self) -> None:
        return None

    async def incr(self, key: str) -> int:
        async with self._lock:
            return self._incr(key)

    async def hset(self, key: str, mapping: Dict[str, Any]) -> int:
        async with self._lock:
            return self._hset(key, mapping)

    async def hgetall(self, key: str) -> Dict[str, str]:
        async with self._lock:
            return dict(self._hash.get(key, {}))

    async def sadd(self, key: str, *members: Any) -> int:
        async with self._lock:
            return self._sadd(key, *members)

    async def srem(self, key: str, *members: Any) -> int:
        async with self._lock:
            return self._srem(key, *members)

    async def smembers(self, key: str) -> Set[str]:
        async with self._lock:
            return set(self._sets.get(key, set()))

    async def exists(self, *keys: str) -> int:
        async with self._lock:
            return self._exists(*keys)

    async def delete(self, *keys: str) -> int:
        async with self._lock:
            return self._delete(*keys)

    def pipeline(self, transaction: bool = True) -> "MemoryPipeline":
        return MemoryPipeline(self)


class MemoryPipeline:
    """WATCH/MULTI/EXEC over ``AsyncMemoryRedis``.

    Reads run immediately. Writes are queued (after ``multi()`` once keys
    are watched) and applied by ``execute()``, which raises ``WatchError``
    if a watched key changed in between.
    """

    def __init__(self, redis: AsyncMemoryRedis) -> None:
        self.redis = redis
        self._watched: Dict[str, int] = {}
        self._queue: List[Tuple[str, Tuple[Any, ...]]] = []
        self._in_multi = False

    async def __aenter__(self) -> "MemoryPipeline":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.reset()

    async def reset(self) -> None:
        self._watched.clear()
        self._queue.clear()
        self._in_multi = False

    async def watch(self, *keys: str) -> bool:
        async with self.redis._lock:
            for key in keys:
                self._watched[key] = self.redis._versions.get(key, 0)
        return True

    async def exists(self, *keys: str) -> int:
        return await self.redis.exists(*keys)

    async def smembers(self, key: str) -> Set[str]:
        return await self.redis.smembers(key)

    def multi(self) -> None:
        self._in_multi = True

    def _queued(self, command: str, *args: Any) -> "MemoryPipeline":
        if self._watched and not self._in_multi:
            raise RuntimeError(f"{command} while watching needs multi()")
        self._queue.append((command, args))
        return self

    def hset(self, key: str, mapping: Dict[str, Any]) -> "MemoryPipeline":
        return self._queued("_hset", key, mapping)

    def sadd(self, key: str, *members: Any) -> "MemoryPipeline":
        return self._queued("_sadd", key, *members)

    def srem(self, key: str, *members: Any) -> "MemoryPipeline":
        return self._queued("_srem", key, *members)

    def delete(self, *keys: str) -> "MemoryPipeline":
        return self._queued("_delete", *keys)

    async def execute(self) -> List[Any]:
        try:
            async with self.redis._lock:
                for key, version in self._watched.items():
                    if self.redis._versions.get(key, 0) != version:
                        raise WatchError("Watched variable changed.")
                return [getattr(self.redis, name)(*args) for name, args in self._queue]
        finally:
            await self.reset()
