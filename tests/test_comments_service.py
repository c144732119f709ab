"""
Tests for the comment service (Supabase calls mocked).
"""

from unittest.mock import MagicMock, Mock, patch

import pytest

from pressroom.services import comments as comments_service

ADMIN_PATH = "pressroom.services.comments.get_admin_client"
SUBMISSION_PATH = "pressroom.services.comments.get_approved_submission"


def _row(comment_id, parent_id=None, created_at="2024-01-01T00:00:00Z"):
    return {
        "id": comment_id,
        "content": f"text {comment_id}",
        "created_at": created_at,
        "parent_id": parent_id,
        "author_id": "u1",
        "author": {"id": "u1", "name": "Sam", "image": "https://img/sam.png"},
    }


class TestListComments:
    @patch(ADMIN_PATH)
    def test_groups_replies_under_parents(self, mock_admin):
        supabase = MagicMock()
        supabase.table.return_value.select.return_value.eq.return_value.order.return_value \
            .execute.return_value = Mock(data=[
                _row("c2", created_at="2024-01-01T00:04:00Z"),
                _row("r2", parent_id="c1", created_at="2024-01-01T00:03:00Z"),
                _row("r1", parent_id="c1", created_at="2024-01-01T00:02:00Z"),
                _row("c1", created_at="2024-01-01T00:01:00Z"),
            ])
        mock_admin.return_value = supabase

        comments = comments_service.list_comments("p1")

        assert [c["id"] for c in comments] == ["c2", "c1"]
        assert [r["id"] for r in comments[1]["replies"]] == ["r1", "r2"]
        assert comments[0]["replies"] == []
        assert comments[0]["author"] == {"id": "u1", "name": "Sam", "imageUrl": "https://img/sam.png"}

    @patch(ADMIN_PATH, return_value=None)
    def test_unconfigured_database(self, mock_admin):
        assert comments_service.list_comments("p1") == []

    @patch(ADMIN_PATH)
    def test_database_error_propagates(self, mock_admin):
        supabase = MagicMock()
        supabase.table.return_value.select.return_value.eq.return_value.order.return_value \
            .execute.side_effect = RuntimeError("db down")
        mock_admin.return_value = supabase

        with pytest.raises(RuntimeError):
            comments_service.list_comments("p1")


class TestCreateComment:
    @patch(ADMIN_PATH, return_value=None)
    def test_unconfigured_database(self, mock_admin):
        comment, error = comments_service.create_comment("u1", "p1", "Hello")

        assert comment is None
        assert error == "Database not configured"

    @patch(SUBMISSION_PATH)
    @patch(ADMIN_PATH)
    def test_blank_content(self, mock_admin, mock_submission):
        mock_admin.return_value = MagicMock()

        comment, error = comments_service.create_comment("u1", "p1", "   ")

        assert error == "Comment content is required"
        mock_submission.assert_not_called()

    @patch(SUBMISSION_PATH, return_value=None)
    @patch(ADMIN_PATH)
    def test_post_must_be_approved(self, mock_admin, mock_submission):
        mock_admin.return_value = MagicMock()

        comment, error = comments_service.create_comment("u1", "p1", "Hello")

        assert error == "Post not found"

    @patch(SUBMISSION_PATH)
    @patch(ADMIN_PATH)
    def test_creates_comment_and_bumps_count(self, mock_admin, mock_submission):
        supabase = MagicMock()
        supabase.table.return_value.insert.return_value.execute.return_value = Mock(data=[_row("c9")])
        mock_admin.return_value = supabase
        mock_submission.return_value = {"id": "p1", "status": "APPROVED"}

        comment, error = comments_service.create_comment("u1", "p1", "Hello")

        assert error is None
        assert comment["id"] == "c9"
        assert comment["replies"] == []
        supabase.table.return_value.insert.assert_called_once_with({
            "content": "Hello",
            "author_id": "u1",
            "submission_id": "p1",
            "parent_id": None,
        })
        supabase.rpc.assert_called_once_with("increment_comment_count", {"submission_id": "p1"})
        supabase.table.return_value.update.assert_not_called()

    @patch(SUBMISSION_PATH)
    @patch(ADMIN_PATH)
    def test_parent_must_belong_to_post(self, mock_admin, mock_submission):
        supabase = MagicMock()
        supabase.table.return_value.select.return_value.eq.return_value.limit.return_value \
            .execute.return_value = Mock(data=[{"id": "c0", "submission_id": "other-post"}])
        mock_admin.return_value = supabase
        mock_submission.return_value = {"id": "p1"}

        comment, error = comments_service.create_comment("u1", "p1", "Hello", parent_id="c0")

        assert error == "Parent comment not found"
        supabase.table.return_value.insert.assert_not_called()

    @patch(SUBMISSION_PATH)
    @patch(ADMIN_PATH)
    def test_count_failure_still_returns_comment(self, mock_admin, mock_submission):
        supabase = MagicMock()
        supabase.table.return_value.insert.return_value.execute.return_value = Mock(data=[_row("c9")])
        supabase.rpc.side_effect = RuntimeError("timeout")
        mock_admin.return_value = supabase
        mock_submission.return_value = {"id": "p1"}

        comment, error = comments_service.create_comment("u1", "p1", "Hello")

        assert error is None
        assert comment["id"] == "c9"

    @patch(SUBMISSION_PATH)
    @patch(ADMIN_PATH)
    def test_insert_failure(self, mock_admin, mock_submission):
        supabase = MagicMock()
        supabase.table.return_value.insert.return_value.execute.side_effect = RuntimeError("denied")
        mock_admin.return_value = supabase
        mock_submission.return_value = {"id": "p1"}

        comment, error = comments_service.create_comment("u1", "p1", "Hello")

        assert comment is None
        assert error == "Error creating comment: denied"
