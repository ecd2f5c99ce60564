from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from .api.v1.endpoints import posts
from .core import config
from .core.errors import ApiError, StoreError, api_error_handler, request_validation_handler
from .core.store import RedisStore, Store


logger = logging.getLogger(__name__)


def _open_store() -> RedisStore:
    if config.use_memory_store():
        from .core.memory_redis import AsyncMemoryRedis

        logger.info("using in-process memory store")
        return RedisStore(AsyncMemoryRedis())

    import redis.asyncio as redis

    redis_url = config.get_redis_url()
    logger.info("using redis store at %s", redis_url)
    return RedisStore(redis.from_url(redis_url, decode_responses=True))


@asynccontextmanager
async def lifespan(app: FastAPI):  # type: ignore[override]
    owned = getattr(app.state, "store", None) is None
    if owned:
        store = _open_store()
        # Opportunistic ping; the app still boots when redis is down
        try:
            await store.ping()
        except StoreError:
            logger.warning("store ping failed at startup", exc_info=True)
        app.state.store = store
    yield
    if owned:
        try:
            await app.state.store.close()
        except StoreError:
            logger.warning("closing store failed", exc_info=True)
        app.state.store = None


def create_app(store: Optional[Store] = None) -> FastAPI:
    config.configure_logging()
    app = FastAPI(title="Posts API", version="0.1.0", lifespan=lifespan)
    app.state.store = store

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.get_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    @app.get("/healthz")
    async def healthz(request: Request) -> dict[str, Any]:
        status: dict[str, Any] = {"ok": True}
        current = getattr(request.app.state, "store", None)
        if current is None:
            status["store"] = {"connected": False, "message": "store not initialized"}
            return status
        try:
            status["store"] = {"connected": await current.ping()}
        except StoreError as e:
            status["store"] = {"connected": False, "error": str(e)}
        return status

    app.include_router(posts.router, prefix="/api/posts", tags=["posts"])
    return app


app = create_app()
