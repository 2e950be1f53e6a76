"""
Database abstraction for SQLAlchemy-backed stores and an in-memory test implementation.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Optional, Protocol

from sqlalchemy import (
    Column,
    DateTime,
    Integer,
    String,
    Text,
    create_engine,
    select,
)
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from forum.levels import calculate_level

LIST_POSTS_LIMIT = 20


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StoreError(Exception):
    """Raised when the data store fails to execute a statement."""


class DuplicateRecordError(StoreError):
    """Raised when an insert violates a unique constraint."""


class UserRole(str, Enum):
    MEMBER = "member"
    ADMIN = "admin"


class PostStatus(str, Enum):
    PENDING_REVIEW = "pending_review"
    APPROVED = "approved"


@dataclass
class UserRecord:
    id: int
    username: str
    email: str
    password_hash: str
    points: int = 0
    role: UserRole = UserRole.MEMBER
    created_at: datetime = field(default_factory=_utcnow)

    @property
    def level(self) -> int:
        return calculate_level(self.points)

    def public_dict(self) -> dict:
        """User data safe to hand to a client (no credential, no email)."""
        return {
            "id": self.id,
            "username": self.username,
            "points": self.points,
            "level": self.level,
            "role": UserRole(self.role).value,
        }


@dataclass
class PostRecord:
    id: int
    author_id: int
    category: str
    title: str
    content: str
    status: PostStatus = PostStatus.PENDING_REVIEW
    views: int = 0
    created_at: datetime = field(default_factory=_utcnow)


@dataclass
class PostListing:
    """An approved post joined with its author's public details."""

    id: int
    title: str
    views: int
    created_at: datetime
    category: str
    author_name: str
    level: int


class DbClient(Protocol):
    """Interface for database access."""

    def create_user(
        self, username: str, email: str, password_hash: str
    ) -> UserRecord:
        ...

    def get_user(self, user_id: int) -> Optional[UserRecord]:
        ...

    def get_user_by_username(self, username: str) -> Optional[UserRecord]:
        ...

    def create_post(
        self, author_id: int, category: str, title: str, content: str
    ) -> PostRecord:
        ...

    def list_approved_posts(self, limit: int = LIST_POSTS_LIMIT) -> list[PostListing]:
        ...

    def list_members(self) -> list[UserRecord]:
        ...


class InMemoryDbClient:
    """Simple in-memory database for development and tests."""

    def __init__(self):
        self.users: Dict[int, UserRecord] = {}
        self.posts: Dict[int, PostRecord] = {}
        self._user_ids = itertools.count(1)
        self._post_ids = itertools.count(1)

    def create_user(
        self, username: str, email: str, password_hash: str
    ) -> UserRecord:
        for user in self.users.values():
            if user.username == username or user.email == email:
                raise DuplicateRecordError("username or email already exists")
        record = UserRecord(
            id=next(self._user_ids),
            username=username,
            email=email,
            password_hash=password_hash,
        )
        self.users[record.id] = record
        return record

    def get_user(self, user_id: int) -> Optional[UserRecord]:
        return self.users.get(user_id)

    def get_user_by_username(self, username: str) -> Optional[UserRecord]:
        for user in self.users.values():
            if user.username == username:
                return user
        return None

    def create_post(
        self, author_id: int, category: str, title: str, content: str
    ) -> PostRecord:
        record = PostRecord(
            id=next(self._post_ids),
            author_id=author_id,
            category=category,
            title=title,
            content=content,
            status=PostStatus.PENDING_REVIEW,
        )
        self.posts[record.id] = record
        return record

    def list_approved_posts(self, limit: int = LIST_POSTS_LIMIT) -> list[PostListing]:
        approved = [
            post
            for post in self.posts.values()
            if post.status == PostStatus.APPROVED and post.author_id in self.users
        ]
        approved.sort(key=lambda post: (post.created_at, post.id), reverse=True)
        listings: list[PostListing] = []
        for post in approved[:limit]:
            author = self.users[post.author_id]
            listings.append(
                PostListing(
                    id=post.id,
                    title=post.title,
                    views=post.views,
                    created_at=post.created_at,
                    category=post.category,
                    author_name=author.username,
                    level=author.level,
                )
            )
        return listings

    def list_members(self) -> list[UserRecord]:
        return sorted(
            self.users.values(),
            key=lambda user: (-user.points, user.created_at, user.id),
        )


class SqlDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlDbClient")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    def _to_user_record(self, row: "UserRow") -> UserRecord:
        return UserRecord(
            id=row.id,
            username=row.username,
            email=row.email,
            password_hash=row.password_hash,
            points=row.points,
            role=UserRole(row.role),
            created_at=row.created_at,
        )

    def _to_post_record(self, row: "PostRow") -> PostRecord:
        return PostRecord(
            id=row.id,
            author_id=row.author_id,
            category=row.category,
            title=row.title,
            content=row.content,
            status=PostStatus(row.status),
            views=row.views,
            created_at=row.created_at,
        )

    def create_user(
        self, username: str, email: str, password_hash: str
    ) -> UserRecord:
        try:
            with self.Session() as session:
                row = UserRow(
                    username=username,
                    email=email,
                    password_hash=password_hash,
                    points=0,
                    role=UserRole.MEMBER.value,
                    created_at=_utcnow(),
                )
                session.add(row)
                session.commit()
                session.refresh(row)
                return self._to_user_record(row)
        except IntegrityError as exc:
            if "unique" in str(exc.orig).lower():
                raise DuplicateRecordError("username or email already exists") from exc
            raise StoreError(str(exc)) from exc
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc

    def get_user(self, user_id: int) -> Optional[UserRecord]:
        try:
            with self.Session() as session:
                row = session.get(UserRow, user_id)
                if not row:
                    return None
                return self._to_user_record(row)
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc

    def get_user_by_username(self, username: str) -> Optional[UserRecord]:
        try:
            with self.Session() as session:
                stmt = select(UserRow).where(UserRow.username == username)
                row = session.execute(stmt).scalar_one_or_none()
                if not row:
                    return None
                return self._to_user_record(row)
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc

    def create_post(
        self, author_id: int, category: str, title: str, content: str
    ) -> PostRecord:
        try:
            with self.Session() as session:
                row = PostRow(
                    author_id=author_id,
                    category=category,
                    title=title,
                    content=content,
                    status=PostStatus.PENDING_REVIEW.value,
                    views=0,
                    created_at=_utcnow(),
                )
                session.add(row)
                session.commit()
                session.refresh(row)
                return self._to_post_record(row)
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc

    def list_approved_posts(self, limit: int = LIST_POSTS_LIMIT) -> list[PostListing]:
        stmt = (
            select(PostRow, UserRow.username, UserRow.points)
            .join(UserRow, PostRow.author_id == UserRow.id)
            .where(PostRow.status == PostStatus.APPROVED.value)
            .order_by(PostRow.created_at.desc(), PostRow.id.desc())
            .limit(limit)
        )
        try:
            with self.Session() as session:
                return [
                    PostListing(
                        id=post.id,
                        title=post.title,
                        views=post.views,
                        created_at=post.created_at,
                        category=post.category,
                        author_name=username,
                        level=calculate_level(points),
                    )
                    for post, username, points in session.execute(stmt).all()
                ]
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc

    def list_members(self) -> list[UserRecord]:
        stmt = select(UserRow).order_by(
            UserRow.points.desc(), UserRow.created_at.asc(), UserRow.id.asc()
        )
        try:
            with self.Session() as session:
                return [
                    self._to_user_record(row)
                    for row in session.execute(stmt).scalars().all()
                ]
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc


Base = declarative_base()


class UserRow(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String, nullable=False, unique=True)
    email = Column(String, nullable=False, unique=True)
    password_hash = Column(String, nullable=False)
    points = Column(Integer, nullable=False, default=0)
    role = Column(String, nullable=False, default=UserRole.MEMBER.value)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


class PostRow(Base):
    __tablename__ = "posts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    # Plain column: posts keep their author id even if the user row goes away.
    author_id = Column(Integer, nullable=False, index=True)
    category = Column(String, nullable=False)
    title = Column(String, nullable=False)
    content = Column(Text, nullable=False)
    status = Column(
        String, nullable=False, index=True, default=PostStatus.PENDING_REVIEW.value
    )
    views = Column(Integer, nullable=False, default=0)
    created_at = Column(
        DateTime(timezone=True), nullable=False, index=True, default=_utcnow
    )
