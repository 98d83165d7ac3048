"""Pytest configuration and fixtures."""

import uuid
from collections.abc import Generator
from typing import Any
from unittest.mock import MagicMock, patch

import pytest

# Importing helpers seeds the test environment before any application import
from tests.helpers import OWNER_ID, FakeBackend, create_test_token


@pytest.fixture(scope="session")
def test_settings() -> Generator[Any, None, None]:
    """Provide test settings with cleared cache."""
    from src.core.config import get_settings

    get_settings.cache_clear()
    settings = get_settings()
    yield settings
    get_settings.cache_clear()


@pytest.fixture
def backend() -> FakeBackend:
    """In-memory backend seeded with no data."""
    return FakeBackend()


@pytest.fixture
def mock_auth_client() -> MagicMock:
    """Mocked Supabase client whose auth methods tests configure."""
    return MagicMock()


@pytest.fixture
def make_session(mock_auth_client: MagicMock):
    """Factory for SessionProviders around the mocked auth client."""
    from src.core.cooldown import CooldownRegistry
    from src.schemas.auth import UserContext
    from src.services.session_provider import SessionProvider

    def _make(user_id: uuid.UUID | None = OWNER_ID, email: str | None = "owner@acme.test") -> SessionProvider:
        identity = UserContext(user_id=user_id, email=email) if user_id else None
        return SessionProvider(
            client=mock_auth_client,
            identity=identity,
            cooldowns=CooldownRegistry(seconds=60),
        )

    return _make


@pytest.fixture
def make_store(backend: FakeBackend, make_session):
    """Factory for MembershipStores over the fake backend."""
    from src.services.membership_store import MembershipStore

    def _make(user_id: uuid.UUID | None = OWNER_ID, email: str | None = "owner@acme.test") -> MembershipStore:
        session = make_session(user_id, email)
        return MembershipStore(session, company_service=backend, invitation_service=backend)

    return _make


@pytest.fixture
def mock_supabase_client() -> Generator[MagicMock, None, None]:
    """Patch every Supabase client factory with one MagicMock."""
    mock_client = MagicMock()
    with (
        patch("src.core.supabase.get_supabase_client", return_value=mock_client),
        patch("src.services.company_service.get_supabase_client", return_value=mock_client),
        patch("src.services.invitation_service.get_supabase_client", return_value=mock_client),
        patch("src.services.invoice_service.get_supabase_client", return_value=mock_client),
        patch("src.services.session_provider.create_auth_client", return_value=mock_client),
    ):
        yield mock_client


@pytest.fixture
def client(mock_supabase_client: MagicMock) -> Generator[Any, None, None]:
    """TestClient for the app with Supabase mocked out."""
    from fastapi.testclient import TestClient

    from src.main import app

    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> dict[str, str]:
    """Authorization header for the owner identity."""
    return {"Authorization": f"Bearer {create_test_token()}"}


@pytest.fixture
def api_backend(backend: FakeBackend) -> Generator[FakeBackend, None, None]:
    """Back request-scoped MembershipStores with the in-memory backend."""
    with (
        patch("src.services.membership_store.CompanyService", return_value=backend),
        patch("src.services.membership_store.InvitationService", return_value=backend),
    ):
        yield backend
