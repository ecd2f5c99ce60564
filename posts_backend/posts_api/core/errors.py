"""Error taxonomy of the posts API.

Every failure the resource handler can produce is an ``ApiError`` carrying the
HTTP status and the exact JSON body clients receive. Clients tell failures
apart by status code and body shape only.
"""
from __future__ import annotations

from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


POST_MISSING_FIELDS = "Please provide title and contents for the post."
COMMENT_MISSING_TEXT = "Please provide text for the comment."
POST_NOT_FOUND = "The post with the specified ID does not exist."
POSTS_RETRIEVAL = "The posts information could not be retrieved."
COMMENTS_RETRIEVAL = "The comments information could not be retrieved."
POST_SAVE = "There was an error while saving the post to the database"
COMMENT_SAVE = "There was an error while saving the comment to the database"
POST_UPDATE = "The post information could not be modified."
POST_REMOVE = "The post could not be removed"


class StoreError(Exception):
    """Raised by a store when the backend fails."""


class ApiError(Exception):
    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    @property
    def body(self) -> dict[str, Any]:
        return {"error": self.message}


class ValidationError(ApiError):
    status_code = 400

    @property
    def body(self) -> dict[str, Any]:
        return {"errorMessage": self.message}


class NotFoundError(ApiError):
    status_code = 404

    def __init__(self, message: str = POST_NOT_FOUND) -> None:
        super().__init__(message)

    @property
    def body(self) -> dict[str, Any]:
        return {"message": self.message}


class StoreFailure(ApiError):
    status_code = 500


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.body)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # Malformed bodies fail the same way as missing fields.
    route = request.scope.get("route")
    if getattr(route, "path", "").endswith("/comments"):
        err = ValidationError(COMMENT_MISSING_TEXT)
    else:
        err = ValidationError(POST_MISSING_FIELDS)
    return JSONResponse(status_code=err.status_code, content=err.body)
