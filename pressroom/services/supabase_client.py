"""
Supabase client initialization and helper functions.

Provides centralized access to Supabase for:
- Authentication (session verification for API requests)
- Database queries (users, drafts, submissions, comments)
- The RecordStore used by the draft cleanup command
"""

from __future__ import annotations
from typing import Optional, Dict, Any
from flask import current_app, has_app_context
from supabase import create_client, Client

from pressroom.services.record_store import SupabaseRecordStore


def _safe_log_error(message: str) -> None:
    """
    Log error message only if Flask app context is available.

    This allows functions to be called from tests without app context.
    """
    try:
        if has_app_context():
            current_app.logger.error(message)
    except (ImportError, RuntimeError):
        pass


# Global client instances (initialized once per app)
_supabase_client: Optional[Client] = None  # User client (anon key)
_supabase_admin: Optional[Client] = None   # Admin client (service role key)

MODERATOR_ROLES = {"MODERATOR", "ADMIN"}


def init_supabase(app) -> None:
    """
    Initialize Supabase clients with app config.
    Creates two clients:
    - Regular client with anon key (session checks)
    - Admin client with service role key (comments, moderation, cleanup)

    Call this from the Flask app factory.
    """
    global _supabase_client, _supabase_admin

    url = app.config.get("SUPABASE_URL", "")
    anon_key = app.config.get("SUPABASE_ANON_KEY", "")
    service_key = app.config.get("SUPABASE_SERVICE_ROLE_KEY", "")

    if not url or not anon_key:
        app.logger.warning("Supabase URL or ANON_KEY not configured. Supabase features will be disabled.")
        _supabase_client = None
        _supabase_admin = None
        return

    try:
        _supabase_client = create_client(url, anon_key)
        app.logger.info("Supabase client initialized successfully")

        if service_key:
            _supabase_admin = create_client(url, service_key)
            app.logger.info("Supabase admin client initialized successfully")
        else:
            app.logger.warning("SUPABASE_SERVICE_ROLE_KEY not configured. Admin operations will be limited.")

    except Exception as e:
        app.logger.error(f"Failed to initialize Supabase client: {e}")
        _supabase_client = None
        _supabase_admin = None


def get_admin_client() -> Optional[Client]:
    """Get the admin Supabase client instance (admin client with service role key)."""
    return _supabase_admin


def get_record_store() -> Optional[SupabaseRecordStore]:
    """RecordStore over the admin client, or None when it isn't configured."""
    admin = get_admin_client()
    if not admin:
        return None
    return SupabaseRecordStore(admin)


# ============================================================================
# Authentication Helpers
# ============================================================================

def verify_session(access_token: str, refresh_token: Optional[str] = None) -> Optional[Dict[str, Any]]:
    """
    Verify a user session token and return user data.

    Args:
        access_token: JWT access token from Supabase Auth
        refresh_token: Optional refresh token

    Returns:
        User dict with id, email, etc. or None if invalid
    """
    if not _supabase_client:
        return None

    try:
        session_response = _supabase_client.auth.set_session(
            access_token=access_token,
            refresh_token=refresh_token or ""
        )

        if session_response and session_response.user:
            return session_response.user.model_dump()
        return None

    except Exception as e:
        _safe_log_error(f"Error verifying session: {e}")
        return None


# ============================================================================
# User Helpers
# ============================================================================

def get_user(user_id: str) -> Optional[Dict[str, Any]]:
    """
    Get the platform user row (role, banned flag, draft ids).

    Returns:
        User dict or None if not found
    """
    if not _supabase_admin:
        return None

    try:
        response = _supabase_admin.table("users").select("*").eq("id", user_id).maybe_single().execute()
        return response.data if response else None
    except Exception as e:
        _safe_log_error(f"Error fetching user: {e}")
        return None


def get_user_role(user_id: str) -> str:
    """Upper-cased role for a user; unknown users are plain USERs."""
    user = get_user(user_id)
    role = (user or {}).get("role")
    return role.upper() if isinstance(role, str) else "USER"


def is_moderator(user_id: str) -> bool:
    return get_user_role(user_id) in MODERATOR_ROLES
