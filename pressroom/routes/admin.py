"""
Moderator endpoints.

Provides:
- Assistant warnings for a pending submission (grammar and originality hints)
"""

from __future__ import annotations
from flask import Blueprint, jsonify, current_app
from pressroom.utils.auth import require_moderator, get_current_user_id
from pressroom.services import assistant_checks
from pressroom.services import supabase_client

admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


@admin_bp.route("/submissions/<submission_id>/assistant-warnings")
@require_moderator
def assistant_warnings(submission_id):
    """
    Run assistant checks for a submission.

    Moderators may not review their own submissions; admins may.

    Returns:
        {
            "success": true,
            "warnings": [...],
            "summary": {"totalCount": n, "blockingCount": n}
        }
    """
    try:
        submission = assistant_checks.get_submission_for_checks(submission_id)
        if not submission:
            return jsonify({"success": False, "error": "Submission not found."}), 404

        user_id = get_current_user_id()
        role = supabase_client.get_user_role(user_id)
        if role == "MODERATOR" and submission.get("author_id") == user_id:
            return jsonify({
                "success": False,
                "error": "Moderators cannot review their own submissions.",
            }), 403

        warnings = assistant_checks.get_assistant_warnings(submission)
        return jsonify({
            "success": True,
            "warnings": [w.to_dict() for w in warnings],
            "summary": {
                "totalCount": len(warnings),
                "blockingCount": sum(1 for w in warnings if w.blocking),
            },
        })

    except Exception:
        current_app.logger.exception("Failed to get assistant warnings")
        return jsonify({"success": False, "error": "Failed to run assistant warning checks."}), 500
