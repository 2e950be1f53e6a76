"""
Pydantic schemas for the forum API envelopes.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict


class RegisterRequest(BaseModel):
    username: str
    email: str
    password: str


class LoginRequest(BaseModel):
    username: str
    password: str


class CreatePostRequest(BaseModel):
    # Unknown keys such as "status" are dropped; moderation state is server-owned.
    model_config = ConfigDict(extra="ignore")

    category: str
    title: str
    content: str


class Envelope(BaseModel):
    success: bool = True
    message: Optional[str] = None


class ErrorEnvelope(BaseModel):
    success: Literal[False] = False
    message: str


class RegisterResponse(Envelope):
    userId: int


class PublicUser(BaseModel):
    id: int
    username: str
    points: int
    level: int
    role: str


class LoginResponse(Envelope):
    token: str
    user: PublicUser


class PostSummary(BaseModel):
    id: int
    title: str
    views: int
    created_at: datetime
    category: str
    author_name: str
    level: int


class ListPostsResponse(BaseModel):
    success: bool = True
    posts: list[PostSummary]


class MemberSummary(BaseModel):
    id: int
    username: str
    role: str
    level: int
    points: int
    created_at: datetime


class ListMembersResponse(BaseModel):
    success: bool = True
    members: list[MemberSummary]


class UploadResponse(Envelope):
    url: str
