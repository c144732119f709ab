"""
Authentication utilities and decorators for API route protection.

Provides:
- @require_auth: Decorator to require an authenticated user (401 JSON otherwise)
- @require_moderator: Decorator to require MODERATOR or ADMIN role (403 JSON)
- Session helpers
"""

from __future__ import annotations
from functools import wraps
from typing import Optional, Dict, Any
from flask import session, jsonify, g
from pressroom.services import supabase_client


# ============================================================================
# Session Management
# ============================================================================

SESSION_USER_KEY = "user"
SESSION_ACCESS_TOKEN_KEY = "access_token"
SESSION_REFRESH_TOKEN_KEY = "refresh_token"


def get_current_user() -> Optional[Dict[str, Any]]:
    """
    Get currently logged-in user from session.

    Returns:
        User dict with id, email, etc. or None if not logged in
    """
    if hasattr(g, 'user'):
        return g.user

    access_token = session.get(SESSION_ACCESS_TOKEN_KEY)
    refresh_token = session.get(SESSION_REFRESH_TOKEN_KEY)

    if not access_token:
        g.user = None
        return None

    user = supabase_client.verify_session(access_token, refresh_token)
    if not user:
        clear_session()
        g.user = None
        return None

    g.user = user
    return user


def get_current_user_id() -> Optional[str]:
    """
    Get current user's ID.

    Returns:
        User UUID or None if not logged in
    """
    user = get_current_user()
    return user.get("id") if user else None


def clear_session() -> None:
    """Clear user session data."""
    session.pop(SESSION_USER_KEY, None)
    session.pop(SESSION_ACCESS_TOKEN_KEY, None)
    session.pop(SESSION_REFRESH_TOKEN_KEY, None)


def is_authenticated() -> bool:
    """Check if user is currently authenticated."""
    return get_current_user() is not None


# ============================================================================
# Decorators
# ============================================================================

def require_auth(f):
    """
    Decorator to require authentication for a JSON route.

    Usage:
        @bp.route('/api/posts/<post_id>/comments', methods=['POST'])
        @require_auth
        def create_comment(post_id):
            user_id = get_current_user_id()
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not is_authenticated():
            return jsonify({"success": False, "error": "You must be signed in"}), 401

        return f(*args, **kwargs)

    return decorated_function


def require_moderator(f):
    """
    Decorator to require MODERATOR or ADMIN role.

    Not signed in -> 401, signed in without the role -> 403.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not is_authenticated():
            return jsonify({"success": False, "error": "Unauthorized"}), 401

        if not supabase_client.is_moderator(get_current_user_id()):
            return jsonify({"success": False, "error": "Insufficient permissions"}), 403

        return f(*args, **kwargs)

    return decorated_function
