from __future__ import annotations

from fastapi import Depends, Request

from ..services.posts import PostResource
from .errors import StoreFailure
from .store import Store


def get_store(request: Request) -> Store:
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise StoreFailure("Store not initialized")
    return store


def get_post_resource(store: Store = Depends(get_store)) -> PostResource:
    return PostResource(store)
