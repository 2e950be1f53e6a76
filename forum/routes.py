"""
HTTP routes for the forum API.

Handlers are plain functions; ``ROUTE_TABLE`` lists them in dispatch order and
``build_router`` registers them once. Paths are exact, and the trailing
catch-all turns every other API request into a 404 envelope.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Type, TypeVar

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, ValidationError
from starlette.datastructures import UploadFile

from forum.auth import require_user
from forum.config import get_settings
from forum.db import DbClient, DuplicateRecordError, StoreError, UserRecord
from forum.dependencies import get_db_client, get_storage_client
from forum.schemas import (
    CreatePostRequest,
    Envelope,
    ListMembersResponse,
    ListPostsResponse,
    LoginRequest,
    LoginResponse,
    MemberSummary,
    PostSummary,
    PublicUser,
    RegisterRequest,
    RegisterResponse,
    UploadResponse,
)
from forum.security import create_access_token, hash_password, verify_password
from forum.storage import DEFAULT_CONTENT_TYPE, BlobStoreError, StorageClient

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

LOGIN_FAILED_MESSAGE = "invalid username or password"
NOT_FOUND_MESSAGE = "not found"


def _server_error(message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=message
    )


async def _read_json_model(request: Request, model: Type[ModelT]) -> ModelT:
    try:
        raw = await request.json()
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="request body must be JSON",
        )
    try:
        return model.model_validate(raw)
    except ValidationError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="invalid request body"
        )


def register(
    payload: RegisterRequest, db: DbClient = Depends(get_db_client)
) -> RegisterResponse:
    try:
        user = db.create_user(
            payload.username, payload.email, hash_password(payload.password)
        )
    except DuplicateRecordError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="username or email already in use",
        )
    except StoreError:
        logger.exception("Registration failed for %r", payload.username)
        raise _server_error("registration failed")

    logger.info("Registered user %s (%r)", user.id, user.username)
    return RegisterResponse(message="registration successful", userId=user.id)


def login(
    payload: LoginRequest, db: DbClient = Depends(get_db_client)
) -> LoginResponse:
    try:
        user = db.get_user_by_username(payload.username)
    except StoreError:
        logger.exception("Login lookup failed")
        raise _server_error("login failed")

    # Same answer for unknown user and wrong password.
    if user is None or not verify_password(payload.password, user.password_hash):
        logger.info("Rejected login attempt for %r", payload.username)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail=LOGIN_FAILED_MESSAGE
        )

    return LoginResponse(
        message="login successful",
        token=create_access_token(user.id),
        user=PublicUser(**user.public_dict()),
    )


async def create_post(
    request: Request,
    user: UserRecord = Depends(require_user),
    db: DbClient = Depends(get_db_client),
) -> Envelope:
    payload = await _read_json_model(request, CreatePostRequest)
    try:
        post = db.create_post(
            author_id=user.id,
            category=payload.category,
            title=payload.title,
            content=payload.content,
        )
    except StoreError:
        logger.exception("Post submission failed for user %s", user.id)
        raise _server_error("post submission failed")

    logger.info("User %s submitted post %s for review", user.id, post.id)
    return Envelope(message="post submitted for review")


def list_posts(db: DbClient = Depends(get_db_client)) -> ListPostsResponse:
    try:
        listings = db.list_approved_posts()
    except StoreError:
        logger.exception("Listing posts failed")
        raise _server_error("failed to load posts")

    return ListPostsResponse(
        posts=[
            PostSummary(
                id=listing.id,
                title=listing.title,
                views=listing.views,
                created_at=listing.created_at,
                category=listing.category,
                author_name=listing.author_name,
                level=listing.level,
            )
            for listing in listings
        ]
    )


def list_members(db: DbClient = Depends(get_db_client)) -> ListMembersResponse:
    try:
        users = db.list_members()
    except StoreError:
        logger.exception("Listing members failed")
        raise _server_error("failed to load members")

    return ListMembersResponse(
        members=[
            MemberSummary(
                id=user.id,
                username=user.username,
                role=user.role.value,
                level=user.level,
                points=user.points,
                created_at=user.created_at,
            )
            for user in users
        ]
    )


async def upload(
    request: Request,
    user: UserRecord = Depends(require_user),
    storage: StorageClient | None = Depends(get_storage_client),
) -> UploadResponse:
    if storage is None:
        logger.error("Upload rejected: no blob store is bound")
        raise _server_error("blob store is not bound")

    settings = get_settings()
    form = await request.form()
    try:
        file = form.get("file")
        if not isinstance(file, UploadFile):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="no file found"
            )

        data = await file.read()
        key = f"{settings.upload_key_prefix}{int(time.time() * 1000)}-{file.filename}"
        try:
            storage.put_bytes(
                key, data, content_type=file.content_type or DEFAULT_CONTENT_TYPE
            )
        except BlobStoreError:
            logger.exception("Blob write failed for %s", key)
            raise _server_error("file upload failed")
    finally:
        await form.close()

    logger.info("User %s uploaded %s (%d bytes)", user.id, key, len(data))
    return UploadResponse(
        message="file uploaded", url=f"{settings.public_url_prefix}{key}"
    )


def not_found(path: str) -> None:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND_MESSAGE)


# (methods, path, handler, response model), evaluated in order.
ROUTE_TABLE: list[tuple[list[str], str, Callable[..., Any], Any]] = [
    (["POST"], "/auth/register", register, RegisterResponse),
    (["POST"], "/auth/login", login, LoginResponse),
    (["POST"], "/posts", create_post, Envelope),
    (["GET"], "/posts", list_posts, ListPostsResponse),
    (["GET"], "/members", list_members, ListMembersResponse),
    (["POST"], "/upload", upload, UploadResponse),
    (
        ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE"],
        "/{path:path}",
        not_found,
        None,
    ),
]


def build_router() -> APIRouter:
    router = APIRouter()
    for methods, path, handler, response_model in ROUTE_TABLE:
        router.add_api_route(
            path,
            handler,
            methods=methods,
            response_model=response_model,
            include_in_schema=response_model is not None,
        )
    return router


router = build_router()
