"""
HTML fragments and form actions for the forum pages.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from html import escape
from typing import Mapping, Optional

from forum.client import ClientSession, ForumClient

EMPTY_POSTS_MESSAGE = '<p class="empty-message">No approved posts yet.</p>'
EMPTY_MEMBERS_MESSAGE = '<p class="empty-message">No members yet.</p>'


def _format_date(value) -> str:
    if isinstance(value, datetime):
        return value.date().isoformat()
    try:
        return datetime.fromisoformat(str(value)).date().isoformat()
    except ValueError:
        return escape(str(value))


def render_post(post: Mapping) -> str:
    return (
        '<div class="topic-item">'
        '<div class="topic-title">'
        f'<a href="post.html?id={escape(str(post["id"]))}">{escape(str(post["title"]))}</a>'
        "</div>"
        '<div class="topic-meta">'
        f'<span class="topic-author">{escape(str(post["author_name"]))} (Lv.{int(post["level"])})</span>'
        f'<span class="topic-views">{int(post["views"])}</span>'
        f'<span class="topic-date">{_format_date(post["created_at"])}</span>'
        f'<span class="topic-category tag">{escape(str(post["category"]))}</span>'
        "</div>"
        "</div>"
    )


def render_member(member: Mapping) -> str:
    role = "Administrator" if member["role"] == "admin" else "Member"
    return (
        '<div class="member-card">'
        '<div class="member-info">'
        f'<h3>{escape(str(member["username"]))}</h3>'
        f'<p class="member-level">Level: LV.{int(member["level"])}</p>'
        f'<p class="member-points">Points: {int(member["points"])}</p>'
        f'<p class="member-role">{role}</p>'
        f'<p class="member-join">Joined: {_format_date(member["created_at"])}</p>'
        "</div>"
        "</div>"
    )


def render_posts(result: Mapping) -> Optional[str]:
    """Markup for a list-posts envelope; None if the call failed."""
    if not result.get("success"):
        return None
    posts = result.get("posts") or []
    if not posts:
        return EMPTY_POSTS_MESSAGE
    return "".join(render_post(post) for post in posts)


def render_members(result: Mapping) -> Optional[str]:
    if not result.get("success"):
        return None
    members = result.get("members") or []
    if not members:
        return EMPTY_MEMBERS_MESSAGE
    return "".join(render_member(member) for member in members)


@dataclass(frozen=True)
class LoginStatus:
    logged_in: bool
    username: Optional[str] = None
    level_badge: Optional[str] = None
    points: Optional[int] = None


def login_status(session: ClientSession) -> LoginStatus:
    if not session.is_logged_in:
        return LoginStatus(logged_in=False)
    user = session.user
    return LoginStatus(
        logged_in=True,
        username=user.get("username"),
        level_badge=f"Lv.{user.get('level')}",
        points=user.get("points"),
    )


class ForumPage:
    """Binds form submissions and page loads to API calls."""

    def __init__(self, client: ForumClient):
        self.client = client

    @property
    def status(self) -> LoginStatus:
        return login_status(self.client.session)

    def submit_login(self, form: Mapping[str, str]) -> bool:
        result = self.client.login(form["username"], form["password"])
        if result.get("success"):
            self.client.notify("Login successful. Welcome back!")
        return bool(result.get("success"))

    def submit_register(self, form: Mapping[str, str]) -> bool:
        result = self.client.register(form["username"], form["email"], form["password"])
        if result.get("success"):
            self.client.notify("Registration successful. Please log in.")
        return bool(result.get("success"))

    def submit_post(self, form: Mapping[str, str]) -> bool:
        result = self.client.submit_post(form["title"], form["category"], form["content"])
        if result.get("success"):
            self.client.notify(result.get("message") or "Post submitted.")
        return bool(result.get("success"))

    def logout(self) -> LoginStatus:
        self.client.logout()
        return self.status

    def load_posts(self) -> Optional[str]:
        return render_posts(self.client.list_posts())

    def load_members(self) -> Optional[str]:
        return render_members(self.client.list_members())
