from __future__ import annotations

import contextlib
import datetime as dt
import logging
from typing import Any, Awaitable, Callable, Iterator, Mapping, Protocol

from redis.exceptions import RedisError, WatchError

from .errors import StoreError


logger = logging.getLogger(__name__)

POST_SEQ = "posts:seq"
COMMENT_SEQ = "comments:seq"
POST_INDEX = "posts:index"
WATCH_RETRIES = 5


def _now_iso() -> str:
    return dt.datetime.now(dt.timezone.utc).isoformat()


def _post_key(post_id: int) -> str:
    return f"post:{post_id}"


def _comment_key(comment_id: int) -> str:
    return f"comment:{comment_id}"


def _post_comments_key(post_id: int) -> str:
    return f"post:{post_id}:comments"


def _parse_id(raw: Any) -> int | None:
    # Canonical decimal only, so each post has exactly one id spelling.
    text = str(raw)
    if not (text.isascii() and text.isdigit()) or text.startswith("0"):
        return None
    return int(text)


class Store(Protocol):
    async def list_posts(self) -> list[dict[str, Any]]: ...

    async def get_post(self, post_id: Any) -> dict[str, Any] | None: ...

    async def list_comments_for_post(self, post_id: Any) -> list[dict[str, Any]]: ...

    async def create_post(self, fields: Mapping[str, Any]) -> int: ...

    async def create_comment(self, fields: Mapping[str, Any]) -> int: ...

    async def get_comment(self, comment_id: Any) -> dict[str, Any] | None: ...

    async def update_post(self, post_id: Any, fields: Mapping[str, Any]) -> None: ...

    async def delete_post(self, post_id: Any) -> None: ...

    async def ping(self) -> bool: ...

    async def close(self) -> None: ...


@contextlib.contextmanager
def _backend_errors(op: str) -> Iterator[None]:
    try:
        yield
    except (RedisError, OSError) as exc:
        raise StoreError(f"{op} failed: {exc}") from exc


class RedisStore:
    """Posts and comments kept in redis hashes, indexed by id sets."""

    def __init__(self, client: Any) -> None:
        self.client = client

    @staticmethod
    def _post_from_hash(data: Mapping[str, str]) -> dict[str, Any] | None:
        if not data.get("id"):
            return None
        return {
            "id": int(data["id"]),
            "title": data.get("title", ""),
            "contents": data.get("contents", ""),
            "created_at": data.get("created_at", ""),
            "updated_at": data.get("updated_at", ""),
        }

    @staticmethod
    def _comment_from_hash(data: Mapping[str, str]) -> dict[str, Any] | None:
        if not data.get("id") or not data.get("post_id"):
            return None
        return {
            "id": int(data["id"]),
            "text": data.get("text", ""),
            "post_id": int(data["post_id"]),
            "created_at": data.get("created_at", ""),
            "updated_at": data.get("updated_at", ""),
        }

    async def _transaction(
        self, op: str, watch: list[str], queue: Callable[[Any], Awaitable[None]]
    ) -> None:
        # queue() reads through the pipeline, calls multi() and queues writes.
        with _backend_errors(op):
            for _ in range(WATCH_RETRIES):
                try:
                    async with self.client.pipeline(transaction=True) as pipe:
                        await pipe.watch(*watch)
                        await queue(pipe)
                        await pipe.execute()
                    return
                except WatchError:
                    logger.debug("%s: watched keys changed, retrying", op)
        raise StoreError(f"{op} gave up after {WATCH_RETRIES} conflicting writes")

    async def ping(self) -> bool:
        with _backend_errors("ping"):
            return bool(await self.client.ping())

    async def close(self) -> None:
        with _backend_errors("close"):
            await self.client.aclose()

    async def list_posts(self) -> list[dict[str, Any]]:
        with _backend_errors("list_posts"):
            ids = sorted(int(i) for i in await self.client.smembers(POST_INDEX))
            posts: list[dict[str, Any]] = []
            for pid in ids:
                post = self._post_from_hash(await self.client.hgetall(_post_key(pid)))
                if post:
                    posts.append(post)
            return posts

    async def get_post(self, post_id: Any) -> dict[str, Any] | None:
        pid = _parse_id(post_id)
        if pid is None:
            return None
        with _backend_errors("get_post"):
            data = await self.client.hgetall(_post_key(pid))
        return self._post_from_hash(data)

    async def list_comments_for_post(self, post_id: Any) -> list[dict[str, Any]]:
        pid = _parse_id(post_id)
        if pid is None:
            return []
        with _backend_errors("list_comments_for_post"):
            ids = sorted(int(i) for i in await self.client.smembers(_post_comments_key(pid)))
            comments: list[dict[str, Any]] = []
            for cid in ids:
                comment = self._comment_from_hash(await self.client.hgetall(_comment_key(cid)))
                if comment:
                    comments.append(comment)
            return comments

    async def create_post(self, fields: Mapping[str, Any]) -> int:
        now = _now_iso()
        with _backend_errors("create_post"):
            pid = int(await self.client.incr(POST_SEQ))
            async with self.client.pipeline(transaction=True) as pipe:
                pipe.hset(
                    _post_key(pid),
                    mapping={
                        "id": str(pid),
                        "title": fields["title"],
                        "contents": fields["contents"],
                        "created_at": now,
                        "updated_at": now,
                    },
                )
                pipe.sadd(POST_INDEX, str(pid))
                await pipe.execute()
        logger.debug("created post %s", pid)
        return pid

    async def create_comment(self, fields: Mapping[str, Any]) -> int:
        pid = _parse_id(fields["post_id"])
        if pid is None:
            raise StoreError(f"invalid post_id {fields['post_id']!r}")
        now = _now_iso()
        with _backend_errors("create_comment"):
            cid = int(await self.client.incr(COMMENT_SEQ))

        async def queue(pipe: Any) -> None:
            if not await pipe.exists(_post_key(pid)):
                raise StoreError(f"post {pid} no longer exists")
            pipe.multi()
            pipe.hset(
                _comment_key(cid),
                mapping={
                    "id": str(cid),
                    "text": fields["text"],
                    "post_id": str(pid),
                    "created_at": now,
                    "updated_at": now,
                },
            )
            pipe.sadd(_post_comments_key(pid), str(cid))

        await self._transaction("create_comment", [_post_key(pid)], queue)
        logger.debug("created comment %s on post %s", cid, pid)
        return cid

    async def get_comment(self, comment_id: Any) -> dict[str, Any] | None:
        cid = _parse_id(comment_id)
        if cid is None:
            return None
        with _backend_errors("get_comment"):
            data = await self.client.hgetall(_comment_key(cid))
        return self._comment_from_hash(data)

    async def update_post(self, post_id: Any, fields: Mapping[str, Any]) -> None:
        pid = _parse_id(post_id)
        if pid is None:
            raise StoreError(f"invalid post id {post_id!r}")

        async def queue(pipe: Any) -> None:
            if not await pipe.exists(_post_key(pid)):
                raise StoreError(f"post {pid} no longer exists")
            pipe.multi()
            pipe.hset(
                _post_key(pid),
                mapping={
                    "title": fields["title"],
                    "contents": fields["contents"],
                    "updated_at": _now_iso(),
                },
            )

        await self._transaction("update_post", [_post_key(pid)], queue)

    async def delete_post(self, post_id: Any) -> None:
        pid = _parse_id(post_id)
        if pid is None:
            raise StoreError(f"invalid post id {post_id!r}")
        removed: list[int] = []

        async def queue(pipe: Any) -> None:
            comment_ids = await pipe.smembers(_post_comments_key(pid))
            removed[:] = [int(c) for c in comment_ids]
            pipe.multi()
            pipe.delete(_post_key(pid), _post_comments_key(pid), *(_comment_key(c) for c in removed))
            pipe.srem(POST_INDEX, str(pid))

        await self._transaction("delete_post", [_post_key(pid), _post_comments_key(pid)], queue)
        logger.debug("deleted post %s with %d comments", pid, len(removed))
