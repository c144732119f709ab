"""
Comment service for published posts.

Stores and reads comments in the submission_comments table. Moderation is
done by the caller (routes.comments) before create_comment() is reached;
this module only persists content that already passed.
"""

from __future__ import annotations
from typing import Optional, Dict, Any, List, Tuple
import logging
from flask import current_app, has_app_context
from pressroom.services.supabase_client import get_admin_client
from pressroom.services.record_store import SubmissionStatus
from pressroom.utils.validation import is_blank

logger = logging.getLogger(__name__)

COMMENT_COLUMNS = "id,content,created_at,parent_id,author_id,author:users(id,name,image)"

# Postgres function: UPDATE submissions SET comment_count = comment_count + 1
INCREMENT_COMMENT_COUNT_FN = "increment_comment_count"


def _safe_log_error(message: str) -> None:
    """Safely log an error, handling cases where no app context exists."""
    if has_app_context():
        current_app.logger.error(message)
    else:
        logger.error(message)


def _serialize(row: Dict[str, Any]) -> Dict[str, Any]:
    author = row.get("author") or {}
    return {
        "id": row.get("id"),
        "content": row.get("content"),
        "createdAt": row.get("created_at"),
        "parentId": row.get("parent_id"),
        "author": {
            "id": author.get("id", row.get("author_id")),
            "name": author.get("name"),
            "imageUrl": author.get("image"),
        },
    }


def get_approved_submission(submission_id: str) -> Optional[Dict[str, Any]]:
    """Return the submission if it exists and is APPROVED, else None."""
    supabase = get_admin_client()
    if not supabase:
        return None

    try:
        response = supabase.table("submissions") \
            .select("id,status") \
            .eq("id", submission_id) \
            .eq("status", SubmissionStatus.APPROVED.value) \
            .limit(1) \
            .execute()
        return response.data[0] if response.data else None

    except Exception as e:
        _safe_log_error(f"Error fetching submission {submission_id}: {e}")
        return None


def list_comments(submission_id: str) -> List[Dict[str, Any]]:
    """
    Get top-level comments for a post, newest first, each with its replies
    (oldest first). Database errors propagate to the caller.
    """
    supabase = get_admin_client()
    if not supabase:
        return []

    response = supabase.table("submission_comments") \
        .select(COMMENT_COLUMNS) \
        .eq("submission_id", submission_id) \
        .order("created_at", desc=True) \
        .execute()
    rows = response.data or []

    top_level: List[Dict[str, Any]] = []
    replies: Dict[str, List[Dict[str, Any]]] = {}
    for row in rows:
        comment = _serialize(row)
        if comment["parentId"]:
            replies.setdefault(comment["parentId"], []).append(comment)
        else:
            top_level.append(comment)

    for comment in top_level:
        # rows arrive newest first; replies read top to bottom
        comment["replies"] = list(reversed(replies.get(comment["id"], [])))

    return top_level


def create_comment(
    user_id: str,
    submission_id: str,
    content: str,
    parent_id: Optional[str] = None,
) -> Tuple[Optional[Dict[str, Any]], Optional[str]]:
    """
    Create a comment on an approved post.

    Args:
        user_id: Author's user id
        submission_id: Post being commented on
        content: Sanitized, already-moderated text
        parent_id: Optional comment being replied to (must be on the same post)

    Returns:
        (comment_dict, error_message)
    """
    supabase = get_admin_client()
    if not supabase:
        return None, "Database not configured"

    if is_blank(content):
        return None, "Comment content is required"

    submission = get_approved_submission(submission_id)
    if not submission:
        return None, "Post not found"

    try:
        if parent_id:
            parent = supabase.table("submission_comments") \
                .select("id,submission_id") \
                .eq("id", parent_id) \
                .limit(1) \
                .execute()
            if not parent.data or parent.data[0].get("submission_id") != submission_id:
                return None, "Parent comment not found"

        response = supabase.table("submission_comments").insert({
            "content": content,
            "author_id": user_id,
            "submission_id": submission_id,
            "parent_id": parent_id or None,
        }).execute()

        if not response.data:
            return None, "Failed to create comment"
        comment = response.data[0]

    except Exception as e:
        return None, f"Error creating comment: {str(e)}"

    try:
        supabase.rpc(INCREMENT_COMMENT_COUNT_FN, {"submission_id": submission_id}).execute()
    except Exception as e:
        # comment is already stored; counter drift is only logged
        _safe_log_error(f"Error updating comment count for {submission_id}: {e}")

    serialized = _serialize(comment)
    serialized["replies"] = []
    return serialized, None
