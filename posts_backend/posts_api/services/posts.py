"""Resource handler for posts and their comments.

Each operation is one linear pipeline: validate the input, check that the
referenced post exists when needed, mutate, then re-read what was written.
Failures surface as ``ApiError`` subclasses and short-circuit the pipeline.
"""
from __future__ import annotations

import logging
from typing import Any

from ..core import errors
from ..core.errors import NotFoundError, StoreError, StoreFailure, ValidationError
from ..core.store import Store
from ..schemas.posts import CommentFields, PostFields


logger = logging.getLogger(__name__)


def _present(value: Any) -> bool:
    return isinstance(value, str) and len(value) > 0


class PostResource:
    def __init__(self, store: Store) -> None:
        self.store = store

    async def _fetch_post(self, post_id: str) -> dict[str, Any]:
        try:
            post = await self.store.get_post(post_id)
        except StoreError as exc:
            logger.exception("fetching post %s failed", post_id)
            raise StoreFailure(errors.POSTS_RETRIEVAL) from exc
        if not post:
            raise NotFoundError()
        return post

    @staticmethod
    def _post_fields(payload: PostFields | None) -> dict[str, str]:
        if payload is None or not (_present(payload.title) and _present(payload.contents)):
            raise ValidationError(errors.POST_MISSING_FIELDS)
        return {"title": payload.title, "contents": payload.contents}

    async def list_posts(self) -> list[dict[str, Any]]:
        try:
            return await self.store.list_posts()
        except StoreError as exc:
            logger.exception("listing posts failed")
            raise StoreFailure(errors.POSTS_RETRIEVAL) from exc

    async def get_post(self, post_id: str) -> dict[str, Any]:
        return await self._fetch_post(post_id)

    async def list_comments(self, post_id: str) -> list[dict[str, Any]]:
        try:
            comments = await self.store.list_comments_for_post(post_id)
        except StoreError as exc:
            logger.exception("listing comments of post %s failed", post_id)
            raise StoreFailure(errors.COMMENTS_RETRIEVAL) from exc
        # An unknown post and a post without comments look the same here.
        if not comments:
            raise NotFoundError()
        return comments

    async def create_post(self, payload: PostFields | None) -> dict[str, Any]:
        fields = self._post_fields(payload)
        try:
            post_id = await self.store.create_post(fields)
        except StoreError as exc:
            logger.exception("saving post failed")
            raise StoreFailure(errors.POST_SAVE) from exc
        logger.info("post %s created", post_id)
        return await self._fetch_post(str(post_id))

    async def create_comment(self, post_id: str, payload: CommentFields | None) -> dict[str, Any]:
        if payload is None or not _present(payload.text):
            raise ValidationError(errors.COMMENT_MISSING_TEXT)
        await self._fetch_post(post_id)
        fields = {"text": payload.text, "post_id": post_id}
        try:
            comment_id = await self.store.create_comment(fields)
        except StoreError as exc:
            logger.exception("saving comment on post %s failed", post_id)
            raise StoreFailure(errors.COMMENT_SAVE) from exc
        logger.info("comment %s created on post %s", comment_id, post_id)
        try:
            comment = await self.store.get_comment(comment_id)
        except StoreError as exc:
            logger.exception("fetching comment %s failed", comment_id)
            raise StoreFailure(errors.COMMENTS_RETRIEVAL) from exc
        if not comment:
            raise StoreFailure(errors.COMMENTS_RETRIEVAL)
        return comment

    async def update_post(self, post_id: str, payload: PostFields | None) -> dict[str, Any]:
        fields = self._post_fields(payload)
        await self._fetch_post(post_id)
        try:
            await self.store.update_post(post_id, fields)
        except StoreError as exc:
            logger.exception("updating post %s failed", post_id)
            raise StoreFailure(errors.POST_UPDATE) from exc
        return await self._fetch_post(post_id)

    async def delete_post(self, post_id: str) -> None:
        await self._fetch_post(post_id)
        try:
            await self.store.delete_post(post_id)
        except StoreError as exc:
            logger.exception("removing post %s failed", post_id)
            raise StoreFailure(errors.POST_REMOVE) from exc
        logger.info("post %s removed", post_id)
