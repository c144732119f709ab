# tests/conftest.py
"""
Test configuration and shared fixtures.

Provides Flask app, test client, CLI runner and record fixtures for pytest.
"""

import os
import sys
from datetime import datetime, timedelta, timezone

import pytest

# Add the project root to sys.path
PROJECT_ROOT = os.path.dirname(os.path.dirname(__file__))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

# Config classes read the environment at import time
os.environ.setdefault("FLASK_SECRET_KEY", "test-secret-key-for-testing-only")
os.environ.setdefault("APP_CONFIG", "pressroom.config.TestConfig")

from pressroom.services.record_store import (  # noqa: E402
    DraftRecord,
    InMemoryRecordStore,
    SubmissionRecord,
)

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def app():
    """Create and configure a Flask app instance for testing."""
    os.environ["FLASK_ENV"] = "testing"
    os.environ["FLASK_SECRET_KEY"] = "test-secret-key-for-testing-only"
    os.environ["APP_CONFIG"] = "pressroom.config.TestConfig"

    from pressroom import create_app

    app = create_app()
    app.config.update({
        "TESTING": True,
        "WTF_CSRF_ENABLED": False,  # Disable CSRF for tests
        "RATELIMIT_ENABLED": False,  # Disable rate limiting for tests
    })

    yield app


@pytest.fixture
def client(app):
    """Create a test client for the Flask app."""
    return app.test_client()


@pytest.fixture
def runner(app):
    """Create a test CLI runner for the Flask app."""
    return app.test_cli_runner()


@pytest.fixture
def test_user():
    return {"id": "u1", "email": "student@example.com"}


def make_draft(
    draft_id="d1",
    author_id="u1",
    post_type="SM_NOW",
    title="Foo",
    content="Bar baz",
    minutes=0.0,
    draft_name=None,
):
    """Draft updated `minutes` after BASE_TIME."""
    return DraftRecord(
        id=draft_id,
        author_id=author_id,
        post_type=post_type,
        title=title,
        content=content,
        updated_at=BASE_TIME + timedelta(minutes=minutes),
        draft_name=draft_name,
    )


def make_submission(
    submission_id="s1",
    author_id="u1",
    post_type="SM_NOW",
    title="Foo",
    content="Bar baz",
    minutes=10.0,
    status="PENDING",
):
    """Submission created `minutes` after BASE_TIME."""
    return SubmissionRecord(
        id=submission_id,
        author_id=author_id,
        post_type=post_type,
        title=title,
        content=content,
        created_at=BASE_TIME + timedelta(minutes=minutes),
        status=status,
    )


@pytest.fixture
def draft_factory():
    return make_draft


@pytest.fixture
def submission_factory():
    return make_submission


@pytest.fixture
def store():
    """In-memory store with one duplicate pair and one unrelated draft."""
    return InMemoryRecordStore(
        drafts=[
            make_draft("d1", minutes=0),
            make_draft("d2", title="Unrelated", content="Something else", minutes=5),
        ],
        submissions=[make_submission("s1", minutes=10)],
        users={"u1": {"id": "u1", "draft_ids": ["d1", "d2"]}},
    )
