"""
Credential gate: resolve a bearer token to a user record.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException, Request, status

from forum.db import DbClient, UserRecord
from forum.dependencies import get_db_client
from forum.security import InvalidTokenError, user_id_from_token

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "
UNAUTHORIZED_MESSAGE = "authentication required"


@dataclass(frozen=True)
class AuthVerdict:
    authorized: bool
    user: Optional[UserRecord] = None


UNAUTHORIZED = AuthVerdict(authorized=False, user=None)


def authenticate(request: Request, db: DbClient) -> AuthVerdict:
    """
    Check the request's Authorization header against the user store.

    Any malformed, unverifiable or unknown credential yields an unauthorized
    verdict; only a verified token reaches the store, with a single lookup.
    """
    header = request.headers.get("Authorization")
    if not header or not header.startswith(BEARER_PREFIX):
        return UNAUTHORIZED

    token = header[len(BEARER_PREFIX):].strip()
    try:
        user_id = user_id_from_token(token)
    except InvalidTokenError as exc:
        logger.info("Rejected bearer token: %s", exc)
        return UNAUTHORIZED

    user = db.get_user(user_id)
    if user is None:
        return UNAUTHORIZED
    return AuthVerdict(authorized=True, user=user)


def require_user(
    request: Request, db: DbClient = Depends(get_db_client)
) -> UserRecord:
    """FastAPI dependency: the authenticated user, or 401."""
    verdict = authenticate(request, db)
    if not verdict.authorized:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail=UNAUTHORIZED_MESSAGE
        )
    return verdict.user
