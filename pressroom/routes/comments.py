"""
Comment endpoints for published posts.

Endpoints:
- GET  /api/posts/<post_id>/comments: Top-level comments with replies
- POST /api/posts/<post_id>/comments: Add a comment (auth required)
- POST /api/moderation/check: Moderate text without saving it, so the
  comment box can show the reason inline before submit

Every new comment is sanitized and moderated here before it reaches the
comment service.
"""

from __future__ import annotations
from flask import Blueprint, request, jsonify, current_app
from pressroom.utils.auth import require_auth, get_current_user_id
from pressroom.services import comments as comments_service
from pressroom.services import moderation
from pressroom.extensions import limiter

comments_bp = Blueprint("comments", __name__, url_prefix="/api")

NOT_FOUND_ERRORS = {"Post not found", "Parent comment not found"}


def _engine() -> moderation.ModerationEngine:
    return current_app.extensions.get("moderation_engine") or moderation.get_default_engine()


@comments_bp.route("/posts/<post_id>/comments", methods=["GET"])
def list_comments(post_id):
    """Return comments for a post."""
    try:
        return jsonify({"success": True, "comments": comments_service.list_comments(post_id)})
    except Exception:
        current_app.logger.exception("Error fetching comments")
        return jsonify({"success": False, "error": "Failed to fetch comments"}), 500


@comments_bp.route("/posts/<post_id>/comments", methods=["POST"])
@require_auth
@limiter.limit(lambda: current_app.config["RATELIMIT_COMMENTS"])
def create_comment(post_id):
    """
    Add a comment to an approved post.

    Request body (JSON):
        {
            "content": "comment text",
            "parentId": "comment id" (optional, for replies)
        }

    Returns:
        200 {"success": true, "comment": {...}}
        400 {"success": false, "error": reason, "isClean": false, "reason": ..., "flaggedWords": [...]}
        404 when the post (or parent comment) does not exist
    """
    try:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return jsonify({"success": False, "error": "Invalid request body"}), 400

        raw_content = data.get("content")
        if not isinstance(raw_content, str) or not raw_content.strip():
            return jsonify({"success": False, "error": "Comment content is required"}), 400

        content = moderation.sanitize(raw_content)
        verdict = _engine().moderate(content)
        if not verdict.is_clean:
            return jsonify({"success": False, "error": verdict.reason, **verdict.to_dict()}), 400

        parent_id = data.get("parentId")
        if parent_id is not None and not isinstance(parent_id, str):
            return jsonify({"success": False, "error": "Invalid parentId"}), 400

        comment, error = comments_service.create_comment(
            user_id=get_current_user_id(),
            submission_id=post_id,
            content=content,
            parent_id=parent_id or None,
        )

        if error:
            if error in NOT_FOUND_ERRORS:
                return jsonify({"success": False, "error": error}), 404
            current_app.logger.error(f"Comment creation failed for post {post_id}: {error}")
            return jsonify({"success": False, "error": "Failed to create comment"}), 500

        return jsonify({"success": True, "comment": comment}), 200

    except Exception:
        current_app.logger.exception("Error creating comment")
        return jsonify({"success": False, "error": "Failed to create comment"}), 500


@comments_bp.route("/moderation/check", methods=["POST"])
@require_auth
@limiter.limit(lambda: current_app.config["RATELIMIT_COMMENTS"])
def check_comment():
    """
    Preview moderation for a comment.

    Request body: {"content": "..."}
    Returns the verdict plus the sanitized text that would be stored.
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not isinstance(data.get("content", ""), str):
        return jsonify({"success": False, "error": "Invalid request body"}), 400

    content = moderation.sanitize(data.get("content", ""))
    verdict = _engine().moderate(content)
    return jsonify({"success": True, "sanitized": content, **verdict.to_dict()}), 200
