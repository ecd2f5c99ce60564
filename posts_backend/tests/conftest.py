from __future__ import annotations

from typing import Any, Iterator

import pytest
from fastapi.testclient import TestClient

from posts_api.core.errors import StoreError
from posts_api.core.memory_redis import AsyncMemoryRedis
from posts_api.core.store import RedisStore
from posts_api.main import create_app


class FailingStore:
    """Delegates to a real store but raises StoreError from the named operations.

    With ``skip=n`` the first n calls of each named operation still succeed.
    """

    def __init__(self, inner: RedisStore, *failing: str, skip: int = 0) -> None:
        self.inner = inner
        self.failing = set(failing)
        self.skip = skip
        self.calls: list[str] = []

    def __getattr__(self, name: str) -> Any:
        target = getattr(self.inner, name)

        async def call(*args: Any, **kwargs: Any) -> Any:
            self.calls.append(name)
            if name in self.failing and self.calls.count(name) > self.skip:
                raise StoreError(f"{name} unavailable")
            return await target(*args, **kwargs)

        return call


@pytest.fixture
def store() -> RedisStore:
    return RedisStore(AsyncMemoryRedis())


@pytest.fixture
def client(store: RedisStore) -> Iterator[TestClient]:
    with TestClient(create_app(store)) as c:
        yield c


@pytest.fixture
def make_client(store: RedisStore):
    """Builds a client whose store fails on the given operations."""
    opened: list[TestClient] = []

    def factory(*failing: str, skip: int = 0) -> tuple[TestClient, FailingStore]:
        double = FailingStore(store, *failing, skip=skip)
        c = TestClient(create_app(double))
        c.__enter__()
        opened.append(c)
        return c, double

    yield factory
    for c in opened:
        c.__exit__(None, None, None)


@pytest.fixture
def post(client: TestClient) -> dict[str, Any]:
    res = client.post("/api/posts", json={"title": "First", "contents": "Hello there"})
    assert res.status_code == 201
    return res.json()
