import unittest
from unittest.mock import MagicMock

from forum.client import ClientSession, ForumClient, InMemorySessionStore
from forum.render import (
    EMPTY_MEMBERS_MESSAGE,
    EMPTY_POSTS_MESSAGE,
    ForumPage,
    login_status,
    render_member,
    render_members,
    render_post,
    render_posts,
)

POST = {
    "id": 3,
    "title": "<script>alert(1)</script>",
    "views": 12,
    "created_at": "2024-05-01T08:30:00Z",
    "category": "news",
    "author_name": "alice",
    "level": 2,
}

MEMBER = {
    "id": 1,
    "username": "root",
    "role": "admin",
    "level": 5,
    "points": 9000,
    "created_at": "2023-01-02T00:00:00",
}


class RenderTests(unittest.TestCase):
    def test_render_post_escapes_user_text(self):
        html = render_post(POST)
        self.assertNotIn("<script>", html)
        self.assertIn("&lt;script&gt;", html)
        self.assertIn('href="post.html?id=3"', html)
        self.assertIn("alice (Lv.2)", html)
        self.assertIn("2024-05-01", html)

    def test_render_member(self):
        html = render_member(MEMBER)
        self.assertIn("<h3>root</h3>", html)
        self.assertIn("LV.5", html)
        self.assertIn("Administrator", html)
        self.assertIn("2023-01-02", html)
        self.assertIn("Member", render_member({**MEMBER, "role": "member"}))

    def test_list_rendering(self):
        self.assertEqual(render_posts({"success": True, "posts": []}), EMPTY_POSTS_MESSAGE)
        self.assertEqual(
            render_members({"success": True, "members": []}), EMPTY_MEMBERS_MESSAGE
        )
        self.assertIsNone(render_posts({"success": False, "message": "x"}))
        self.assertEqual(
            render_members({"success": True, "members": [MEMBER, MEMBER]}).count(
                "member-card"
            ),
            2,
        )

    def test_login_status(self):
        session = ClientSession(InMemorySessionStore())
        self.assertFalse(login_status(session).logged_in)

        session.save("tok", {"id": 1, "username": "alice", "points": 150, "level": 2, "role": "member"})
        status = login_status(session)
        self.assertTrue(status.logged_in)
        self.assertEqual(status.username, "alice")
        self.assertEqual(status.level_badge, "Lv.2")
        self.assertEqual(status.points, 150)


class ForumPageTests(unittest.TestCase):
    def setUp(self):
        self.notices: list[str] = []
        self.client = ForumClient(notify=self.notices.append)
        self.client.api_fetch = MagicMock()
        self.page = ForumPage(self.client)

    def test_submit_post_notifies_with_server_message(self):
        self.client.api_fetch.return_value = {
            "success": True,
            "message": "post submitted for review",
        }
        ok = self.page.submit_post({"title": "t", "category": "c", "content": "x"})
        self.assertTrue(ok)
        self.client.api_fetch.assert_called_once_with(
            "/posts", "POST", {"title": "t", "category": "c", "content": "x"}
        )
        self.assertEqual(self.notices, ["post submitted for review"])

    def test_failed_login_keeps_guest_state(self):
        self.client.api_fetch.return_value = {"success": False, "message": "nope"}
        self.assertFalse(self.page.submit_login({"username": "a", "password": "b"}))
        self.assertFalse(self.page.status.logged_in)
        self.assertEqual(self.notices, [])

    def test_login_then_logout(self):
        self.client.api_fetch.return_value = {
            "success": True,
            "token": "tok",
            "user": {"id": 1, "username": "a", "points": 0, "level": 0, "role": "member"},
        }
        self.assertTrue(self.page.submit_login({"username": "a", "password": "b"}))
        self.assertTrue(self.page.status.logged_in)
        self.assertFalse(self.page.logout().logged_in)

    def test_submit_register_notifies_on_success(self):
        self.client.api_fetch.return_value = {"success": True, "userId": 4}
        ok = self.page.submit_register(
            {"username": "bob", "email": "bob@example.com", "password": "pw"}
        )
        self.assertTrue(ok)
        self.client.api_fetch.assert_called_once_with(
            "/auth/register",
            "POST",
            {"username": "bob", "email": "bob@example.com", "password": "pw"},
        )
        self.assertEqual(self.notices, ["Registration successful. Please log in."])
        self.assertFalse(self.page.status.logged_in)

    def test_load_members_renders_envelope(self):
        self.client.api_fetch.return_value = {"success": True, "members": [MEMBER]}
        self.assertIn("<h3>root</h3>", self.page.load_members())
        self.client.api_fetch.assert_called_once_with("/members")

        self.client.api_fetch.return_value = {"success": False, "message": "down"}
        self.assertIsNone(self.page.load_members())

    def test_load_posts_renders_envelope(self):
        self.client.api_fetch.return_value = {"success": True, "posts": [POST]}
        self.assertIn("topic-item", self.page.load_posts())
        self.client.api_fetch.assert_called_once_with("/posts")


if __name__ == "__main__":
    unittest.main()
