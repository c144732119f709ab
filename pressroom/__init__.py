"""
Application factory and global configuration.

Creates the Flask app, applies security headers, configures rate limiting and
CSRF, builds the comment moderation engine from config, registers blueprints
and CLI commands. This file keeps startup/config concerns together and avoids
domain logic here.
"""

from __future__ import annotations
import os
from flask import Flask, Response
from flask_wtf.csrf import CSRFProtect
from dotenv import load_dotenv  # <-- ensure .env is loaded for local dev
from .extensions import limiter
from .routes.comments import comments_bp
from .routes.admin import admin_bp
from .services import supabase_client
from .services.moderation import engine_from_config
from .cli import cleanup_duplicate_drafts_command


def _validate_production_security(app: Flask, cfg_path: str) -> None:
    """
    Validate critical security settings in production environments.

    Raises RuntimeError if production security requirements are not met.

    Checks:
    - SESSION_COOKIE_SECURE must be True (cookies only over HTTPS)
    - SECRET_KEY must be set and strong (>= 32 characters)
    - DEBUG must be False (no debug mode in production)

    Args:
        app: Flask application instance
        cfg_path: Config path being used (e.g., "pressroom.config.ProdConfig")
    """
    is_production = "ProdConfig" in cfg_path
    is_test = app.config.get("TESTING", False)

    if not is_production or is_test:
        return

    errors = []

    if not app.config.get("SESSION_COOKIE_SECURE", False):
        errors.append(
            "SESSION_COOKIE_SECURE must be True in production. "
            "Cookies must only be sent over HTTPS to prevent session hijacking."
        )

    secret_key = app.config.get("SECRET_KEY", "")
    if not secret_key:
        errors.append(
            "SECRET_KEY is not set. Set FLASK_SECRET_KEY environment variable. "
            "Generate with: python -c 'import secrets; print(secrets.token_hex(32))'"
        )
    elif len(secret_key) < 32:
        errors.append(
            f"SECRET_KEY is too weak ({len(secret_key)} chars). "
            "Must be at least 32 characters for production security."
        )

    if app.config.get("DEBUG", False):
        errors.append("DEBUG must be False in production.")

    if errors:
        error_msg = "\n\n[ERROR] PRODUCTION SECURITY VALIDATION FAILED:\n\n" + "\n\n".join(f"  * {err}" for err in errors)
        error_msg += "\n\n[WARNING] The application will not start until these security issues are resolved.\n"
        raise RuntimeError(error_msg)

    app.logger.info("[OK] Production security validation passed")


def create_app() -> Flask:
    # Use override=True to ensure .env values take precedence over system environment
    load_dotenv(override=True)

    app = Flask(__name__)

    # Allow APP_CONFIG to override (e.g., pressroom.config.DevConfig)
    cfg_path = os.getenv("APP_CONFIG", "pressroom.config.ProdConfig")
    try:
        app.config.from_object(cfg_path)
    except (ImportError, AttributeError) as e:
        app.logger.warning(f"Could not load config object {cfg_path}: {e}")

    _validate_production_security(app, cfg_path)

    limiter.init_app(app)

    if not app.config.get("RATELIMIT_ENABLED", True):
        limiter.enabled = False

    if not app.secret_key:
        app.secret_key = app.config.get("SECRET_KEY", "")

    CSRFProtect(app)

    supabase_client.init_supabase(app)

    # One immutable engine per app; shared by all request threads
    app.extensions["moderation_engine"] = engine_from_config(app.config)

    @app.after_request
    def apply_security_headers(resp: Response) -> Response:
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        resp.headers["X-Frame-Options"] = "DENY"
        return resp

    # Blueprints
    app.register_blueprint(comments_bp)
    app.register_blueprint(admin_bp)

    # CLI
    app.cli.add_command(cleanup_duplicate_drafts_command)

    return app
