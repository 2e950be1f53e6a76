"""
Client helper for the forum API.

``ForumClient.api_fetch`` is the one place that attaches the stored bearer
token and that forces a logout when the server answers 401. Session state is
an explicit ``ClientSession`` persisted through an injected ``SessionStore``.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Optional, Protocol

import requests

logger = logging.getLogger(__name__)

TOKEN_KEY = "jwt_token"
USER_KEY = "user_data"
SESSION_USER_FIELDS = ("id", "username", "points", "level", "role")

AUTH_FAILED_MESSAGE = "authentication failed"
SESSION_EXPIRED_NOTICE = "Your session has expired or is invalid. Please log in again."


class SessionStore(Protocol):
    """Key-value persistence for client session state."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def remove(self, key: str) -> None:
        ...


@dataclass
class InMemorySessionStore:
    items: dict[str, str] = field(default_factory=dict)

    def get(self, key: str) -> Optional[str]:
        return self.items.get(key)

    def set(self, key: str, value: str) -> None:
        self.items[key] = value

    def remove(self, key: str) -> None:
        self.items.pop(key, None)


@dataclass
class JsonFileSessionStore:
    """Keeps session entries in a small JSON file (e.g. for CLI use)."""

    path: Path

    def _load(self) -> dict[str, str]:
        try:
            items = json.loads(Path(self.path).read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except ValueError:
            logger.warning("Ignoring unreadable session file %s", self.path)
            return {}
        return items if isinstance(items, dict) else {}

    def _save(self, items: dict[str, str]) -> None:
        Path(self.path).write_text(json.dumps(items), encoding="utf-8")

    def get(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        items = self._load()
        items[key] = value
        self._save(items)

    def remove(self, key: str) -> None:
        items = self._load()
        if items.pop(key, None) is not None:
            self._save(items)


class ClientSession:
    """Bearer token plus the reduced user record, stored and cleared together."""

    def __init__(self, store: Optional[SessionStore] = None):
        self.store = store if store is not None else InMemorySessionStore()

    @property
    def token(self) -> Optional[str]:
        return self.store.get(TOKEN_KEY)

    @property
    def user(self) -> Optional[dict]:
        raw = self.store.get(USER_KEY)
        if not raw:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            return None

    @property
    def is_logged_in(self) -> bool:
        return bool(self.token) and self.user is not None

    def save(self, token: str, user: dict) -> None:
        reduced = {key: user.get(key) for key in SESSION_USER_FIELDS}
        self.store.set(TOKEN_KEY, token)
        self.store.set(USER_KEY, json.dumps(reduced))

    def clear(self) -> None:
        self.store.remove(TOKEN_KEY)
        self.store.remove(USER_KEY)


def _log_notice(message: str) -> None:
    logger.warning("%s", message)


class ForumClient:
    def __init__(
        self,
        base_url: str = "",
        *,
        session: Optional[ClientSession] = None,
        http: Any = None,
        notify: Optional[Callable[[str], None]] = None,
        api_prefix: str = "/api",
    ):
        self.base_url = base_url.rstrip("/")
        self.api_prefix = api_prefix
        self.session = session if session is not None else ClientSession()
        self.http = http if http is not None else requests.Session()
        self.notify = notify or _log_notice

    def _failure(self, message: str) -> dict:
        return {"success": False, "message": message}

    def api_fetch(
        self,
        endpoint: str,
        method: str = "GET",
        body: Optional[dict] = None,
        *,
        files: Optional[dict] = None,
    ) -> dict:
        """
        Call an API endpoint and return its JSON envelope.

        Failures never raise: the user is notified and a
        ``{"success": False, "message": ...}`` envelope is returned. A 401
        additionally clears the session.
        """
        url = f"{self.base_url}{self.api_prefix}{endpoint}"
        headers: dict[str, str] = {}
        if body is not None:
            headers["Content-Type"] = "application/json"
        token = self.session.token
        if token:
            headers["Authorization"] = f"Bearer {token}"

        try:
            response = self.http.request(
                method, url, headers=headers, json=body, files=files
            )
        except requests.RequestException as exc:
            logger.warning("Fetch error on %s: %s", endpoint, exc)
            message = str(exc) or "request failed"
            self.notify(message)
            return self._failure(message)

        if response.status_code == 401:
            self.logout()
            self.notify(SESSION_EXPIRED_NOTICE)
            return self._failure(AUTH_FAILED_MESSAGE)

        try:
            result = response.json()
        except ValueError:
            result = None

        if not 200 <= response.status_code < 300 or not isinstance(result, dict):
            message = None
            if isinstance(result, dict):
                message = result.get("message")
            message = message or f"API error: {response.status_code}"
            logger.warning("Fetch error on %s: %s", endpoint, message)
            self.notify(message)
            return self._failure(message)
        return result

    def register(self, username: str, email: str, password: str) -> dict:
        return self.api_fetch(
            "/auth/register",
            "POST",
            {"username": username, "email": email, "password": password},
        )

    def login(self, username: str, password: str) -> dict:
        result = self.api_fetch(
            "/auth/login", "POST", {"username": username, "password": password}
        )
        if result.get("success"):
            self.session.save(result["token"], result["user"])
        return result

    def logout(self) -> None:
        self.session.clear()

    def submit_post(self, title: str, category: str, content: str) -> dict:
        return self.api_fetch(
            "/posts",
            "POST",
            {"title": title, "category": category, "content": content},
        )

    def list_posts(self) -> dict:
        return self.api_fetch("/posts")

    def list_members(self) -> dict:
        return self.api_fetch("/members")

    def upload(
        self,
        filename: str,
        data: bytes,
        content_type: str = "application/octet-stream",
    ) -> dict:
        return self.api_fetch(
            "/upload", "POST", files={"file": (filename, data, content_type)}
        )
