# =============================================================================
# tests/conftest.py - Pytest Configuration
# =============================================================================
# This module provides pytest fixtures and configuration for all tests.
#
# Key features:
# - Sets up mock environment variables before any imports
# - Provides a chainable Supabase query mock
# - Provides an authenticated TestClient
# =============================================================================

import os
from unittest.mock import MagicMock
from uuid import UUID

# =============================================================================
# Set up test environment BEFORE any imports
# =============================================================================
# This must happen before importing app.config which loads settings immediately

os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_ANON_KEY", "test-anon-key")
os.environ.setdefault("SUPABASE_SERVICE_KEY", "test-service-key")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret-with-enough-length")
os.environ.setdefault("FAL_KEY", "platform-fal-key")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_123")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test_123")
os.environ.setdefault("WASENDER_API_KEY", "test-wasender-key")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("DEBUG", "true")

import pytest

from app.auth.models import AuthUser


QUERY_METHODS = (
    "select", "insert", "update", "upsert", "delete",
    "eq", "gt", "order", "limit", "single",
)


def make_query(*results):
    """
    Build a chainable Supabase query mock.

    Every builder method returns the query itself; each execute() call
    returns the next entry of `results` as `.data`.

    Example:
        query = make_query([{"balance": 5}], [])
        client.table.return_value = query
    """
    query = MagicMock()
    for name in QUERY_METHODS:
        getattr(query, name).return_value = query
    query.execute.side_effect = [MagicMock(data=data) for data in results]
    return query


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def user_id():
    """A fixed user UUID."""
    return UUID("550e8400-e29b-41d4-a716-446655440000")


@pytest.fixture
def auth_user(user_id):
    """An authenticated email user."""
    return AuthUser(id=user_id, email="ada@example.com")


@pytest.fixture
def client(auth_user):
    """TestClient with authentication bypassed for `auth_user`."""
    from fastapi.testclient import TestClient

    from app.auth.dependencies import get_current_user
    from app.main import app

    app.dependency_overrides[get_current_user] = lambda: auth_user
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def fal_image_result():
    """A completed Nano Banana Pro result."""
    return {
        "images": [
            {"url": "https://fal.media/files/a.png", "content_type": "image/png"},
            {"url": "https://fal.media/files/b.png", "content_type": "image/png"},
        ],
        "description": "",
    }


@pytest.fixture
def fal_video_result():
    """A completed Veo 3.1 result."""
    return {"video": {"url": "https://fal.media/files/clip.mp4", "content_type": "video/mp4"}}
