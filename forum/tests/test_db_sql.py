import unittest

from forum.db import (
    DuplicateRecordError,
    PostRow,
    PostStatus,
    SqlDbClient,
    UserRole,
    UserRow,
)


class SqlDbClientTests(unittest.TestCase):
    """
    Uses SQLite via SQLAlchemy URL for fast/local testing of the SQL client logic.
    """

    def setUp(self):
        self.db = SqlDbClient("sqlite+pysqlite:///:memory:")

    def _set_points(self, user_id: int, points: int) -> None:
        with self.db.Session() as session:
            session.get(UserRow, user_id).points = points
            session.commit()

    def _approve(self, post_id: int) -> None:
        with self.db.Session() as session:
            session.get(PostRow, post_id).status = PostStatus.APPROVED.value
            session.commit()

    def test_create_and_get_user(self):
        user = self.db.create_user("alice", "alice@example.com", "hash")
        self.assertEqual(user.points, 0)
        self.assertEqual(user.level, 0)
        self.assertEqual(user.role, UserRole.MEMBER)

        fetched = self.db.get_user(user.id)
        self.assertEqual(fetched.username, "alice")
        self.assertEqual(self.db.get_user_by_username("alice").id, user.id)
        self.assertIsNone(self.db.get_user(user.id + 100))
        self.assertIsNone(self.db.get_user_by_username("bob"))

    def test_duplicate_username_or_email(self):
        self.db.create_user("alice", "alice@example.com", "hash")
        with self.assertRaises(DuplicateRecordError):
            self.db.create_user("alice", "other@example.com", "hash")
        with self.assertRaises(DuplicateRecordError):
            self.db.create_user("alicia", "alice@example.com", "hash")

    def test_new_posts_are_pending_review(self):
        user = self.db.create_user("alice", "alice@example.com", "hash")
        post = self.db.create_post(user.id, "news", "Hello", "First post")
        self.assertEqual(post.status, PostStatus.PENDING_REVIEW)
        self.assertEqual(post.views, 0)
        self.assertEqual(self.db.list_approved_posts(), [])

    def test_list_approved_posts_newest_first_with_author(self):
        user = self.db.create_user("alice", "alice@example.com", "hash")
        self._set_points(user.id, 2500)
        ids = []
        for i in range(25):
            post = self.db.create_post(user.id, "news", f"Post {i}", "body")
            ids.append(post.id)
        for post_id in ids[:-1]:
            self._approve(post_id)

        listings = self.db.list_approved_posts()
        self.assertEqual(len(listings), 20)
        # The last post was never approved.
        self.assertEqual(listings[0].id, ids[-2])
        created = [listing.created_at for listing in listings]
        self.assertEqual(created, sorted(created, reverse=True))
        self.assertEqual(listings[0].author_name, "alice")
        self.assertEqual(listings[0].level, 4)

    def test_list_members_by_points_then_join_date(self):
        first = self.db.create_user("first", "first@example.com", "hash")
        second = self.db.create_user("second", "second@example.com", "hash")
        top = self.db.create_user("top", "top@example.com", "hash")
        self._set_points(top.id, 150)
        self._set_points(first.id, 20)
        self._set_points(second.id, 20)

        members = self.db.list_members()
        self.assertEqual([m.username for m in members], ["top", "first", "second"])
        self.assertEqual([m.level for m in members], [2, 1, 1])


if __name__ == "__main__":
    unittest.main()
