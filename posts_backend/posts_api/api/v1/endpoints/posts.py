from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Response, status

from ....core.runtime import get_post_resource
from ....schemas.posts import CommentFields, CommentPublic, PostFields, PostPublic
from ....services.posts import PostResource


router = APIRouter()


@router.get("", response_model=List[PostPublic])
async def list_posts(resource: PostResource = Depends(get_post_resource)) -> List[PostPublic]:
    return [PostPublic(**p) for p in await resource.list_posts()]


@router.post("", response_model=PostPublic, status_code=status.HTTP_201_CREATED)
async def create_post(
    payload: Optional[PostFields] = Body(default=None),
    resource: PostResource = Depends(get_post_resource),
) -> PostPublic:
    return PostPublic(**await resource.create_post(payload))


@router.get("/{post_id}", response_model=PostPublic)
async def get_post(post_id: str, resource: PostResource = Depends(get_post_resource)) -> PostPublic:
    return PostPublic(**await resource.get_post(post_id))


@router.put("/{post_id}", response_model=PostPublic)
async def update_post(
    post_id: str,
    payload: Optional[PostFields] = Body(default=None),
    resource: PostResource = Depends(get_post_resource),
) -> PostPublic:
    return PostPublic(**await resource.update_post(post_id, payload))


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_post(post_id: str, resource: PostResource = Depends(get_post_resource)) -> Response:
    await resource.delete_post(post_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{post_id}/comments", response_model=List[CommentPublic])
async def list_comments(post_id: str, resource: PostResource = Depends(get_post_resource)) -> List[CommentPublic]:
    return [CommentPublic(**c) for c in await resource.list_comments(post_id)]


@router.post("/{post_id}/comments", response_model=CommentPublic, status_code=status.HTTP_201_CREATED)
async def create_comment(
    post_id: str,
    payload: Optional[CommentFields] = Body(default=None),
    resource: PostResource = Depends(get_post_resource),
) -> CommentPublic:
    return CommentPublic(**await resource.create_comment(post_id, payload))
