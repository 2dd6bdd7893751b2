"""Comments and the story rating aggregate."""

from __future__ import annotations

from unittest import mock

from django.db import DatabaseError

from access_control.roles import Role
from comments.models import Comment
from comments.services import recalculate_story_rating, round_rating
from stories.models import StoryStatus
from tests.utils import StoryNestTestCase, auth_client, create_category, create_story, create_user


def comments_url(story_id) -> str:
    return f"/api/v1/stories/{story_id}/comments"


class CommentEndpointTests(StoryNestTestCase):
    @classmethod
    def setUpTestData(cls):
        cls.author = create_user("author@example.com", username="author")
        cls.reader = create_user("reader@example.com", username="reader")
        cls.other = create_user("other@example.com", username="other")
        cls.admin = create_user("admin@example.com", role=Role.ADMIN, username="admin")
        cls.category = create_category()
        cls.story = create_story(cls.author, cls.category)

    def _comment(self, user, rating, text="Lovely", story=None):
        return auth_client(user).post(
            comments_url((story or self.story).pk), {"text": text, "rating": rating}, format="json"
        )

    def test_comment_updates_average_and_count(self):
        self.assertEqual(self._comment(self.reader, 4).status_code, 201)
        self.assertEqual(self._comment(self.other, 5).status_code, 201)

        self.story.refresh_from_db()
        self.assertEqual(self.story.avg_rating, 4.5)
        self.assertEqual(self.story.comment_count, 2)

    def test_average_rounds_half_up(self):
        for rating in (4, 4, 4, 5):
            self._comment(self.reader, rating)

        self.story.refresh_from_db()
        self.assertEqual(self.story.avg_rating, 4.3)

    def test_list_comments_newest_first_with_author(self):
        self._comment(self.reader, 3, text="First")
        self._comment(self.other, 5, text="Second")

        response = self.api_client.get(comments_url(self.story.pk))
        body = response.json()

        self.assertEqual(response.status_code, 200)
        self.assertEqual(body["count"], 2)
        self.assertEqual([c["text"] for c in body["data"]], ["Second", "First"])
        self.assertEqual(set(body["data"][0]["author"]), {"id", "username", "avatar"})

    def test_comment_requires_authentication(self):
        response = self.api_client.post(comments_url(self.story.pk), {"text": "Hi", "rating": 3}, format="json")
        self.assertEqual(response.status_code, 401)

    def test_rating_must_be_between_one_and_five(self):
        for rating in (0, 6, "abc"):
            response = self._comment(self.reader, rating)
            self.assertEqual(response.status_code, 400)
            self.assertEqual(response.json()["error"], "rating: Please provide a rating between 1 and 5")
        self.assertFalse(Comment.objects.exists())

    def test_text_is_required(self):
        response = self._comment(self.reader, 3, text="   ")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "text: Comment text cannot be empty")

    def test_cannot_comment_on_hidden_story(self):
        pending = create_story(self.author, self.category, title="Draft", status=StoryStatus.PENDING)

        self.assertEqual(self._comment(self.reader, 5, story=pending).status_code, 404)
        self.assertEqual(self._comment(self.author, 5, story=pending).status_code, 201)
        self.assertEqual(auth_client(self.reader).post(comments_url(98765), {"text": "x", "rating": 1}).status_code, 404)

    def test_deleting_last_comment_resets_rating(self):
        comment_id = self._comment(self.reader, 2).json()["data"]["id"]
        response = auth_client(self.reader).delete(f"{comments_url(self.story.pk)}/{comment_id}")

        self.assertEqual(response.status_code, 200)
        self.story.refresh_from_db()
        self.assertEqual(self.story.avg_rating, 0)
        self.assertEqual(self.story.comment_count, 0)

    def test_only_comment_author_or_admin_deletes(self):
        comment_id = self._comment(self.reader, 2).json()["data"]["id"]
        url = f"{comments_url(self.story.pk)}/{comment_id}"

        self.assertEqual(auth_client(self.other).delete(url).status_code, 403)
        self.assertEqual(auth_client(self.admin).delete(url).status_code, 200)
        self.assertEqual(auth_client(self.admin).delete(url).status_code, 404)

    def test_story_deletion_removes_comments(self):
        self._comment(self.reader, 4)
        auth_client(self.author).delete(f"/api/v1/stories/{self.story.pk}")
        self.assertFalse(Comment.objects.exists())

    def test_story_detail_includes_comments(self):
        self._comment(self.reader, 4, text="Great read")
        data = self.api_client.get(f"/api/v1/stories/{self.story.pk}").json()["data"]

        self.assertEqual(data["avgRating"], 4.0)
        self.assertEqual(data["commentCount"], 1)
        self.assertEqual(data["comments"][0]["text"], "Great read")


class RatingAggregateTests(StoryNestTestCase):
    """Unit checks on the aggregate recomputation."""

    def test_round_rating(self):
        self.assertEqual(round_rating(None), 0.0)
        self.assertEqual(round_rating(4.25), 4.3)
        self.assertEqual(round_rating(4.24), 4.2)
        self.assertEqual(round_rating(3), 3.0)

    def test_recalculation_errors_are_logged_not_raised(self):
        author = create_user("a@example.com")
        story = create_story(author, create_category())

        with mock.patch("comments.services.Comment.objects.filter", side_effect=DatabaseError("boom")):
            with self.assertLogs("comments.services", level="ERROR"):
                recalculate_story_rating(story.pk)

        story.refresh_from_db()
        self.assertEqual(story.avg_rating, 0)
