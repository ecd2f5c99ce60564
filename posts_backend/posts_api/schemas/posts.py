from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class PostFields(BaseModel):
    title: Optional[str] = None
    contents: Optional[str] = None


class CommentFields(BaseModel):
    # post_id in the body is ignored; the path decides the parent post.
    text: Optional[str] = None


class PostPublic(BaseModel):
    id: int
    title: str
    contents: str
    created_at: str
    updated_at: str


class CommentPublic(BaseModel):
    id: int
    text: str
    post_id: int
    created_at: str
    updated_at: str
