"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It points settings at the testing environment and an in-memory credential
store before any app module is imported.
"""

import os

# CRITICAL: Set these before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = "memory://"

# Set default env vars that all tests might need
os.environ.setdefault("LLM_PROVIDER", "openai")
os.environ.setdefault("LLM_MODEL", "gpt-4o")
os.environ.setdefault("LLM_API_KEY", "test-key-123")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from datetime import datetime, timedelta, timezone  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app.adapters.credential_store import ApiKeyRecord, InMemoryCredentialStore, KeyStatus  # noqa: E402
from app.core.rate_limit import set_credential_store  # noqa: E402
from app.services.admission import AdmissionController  # noqa: E402

OWNER_ID = "user-1"
BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_record(
    key: str,
    *,
    status: KeyStatus = KeyStatus.ACTIVE,
    usage: float | None = 0,
    limit: float | None = 1000,
    owner_id: str = OWNER_ID,
    name: str = "test key",
    record_id: str | None = None,
    age_minutes: int = 0,
) -> ApiKeyRecord:
    """Build a fully-formed record for seeding a store."""
    return ApiKeyRecord(
        id=record_id or f"id-{key}",
        name=name,
        key=key,
        status=status,
        usage=usage,
        limit=limit,
        owner_id=owner_id,
        created_at=BASE_TIME - timedelta(minutes=age_minutes),
    )


@pytest.fixture
def store() -> InMemoryCredentialStore:
    """Empty in-memory credential store."""
    return InMemoryCredentialStore()


@pytest.fixture
def controller(store: InMemoryCredentialStore) -> AdmissionController:
    return AdmissionController(store, default_limit=1000)


@pytest.fixture
def installed_store(store: InMemoryCredentialStore):
    """Route every metered endpoint through ``store`` for the duration of a test."""
    set_credential_store(store)
    yield store
    set_credential_store(None)


@pytest.fixture
def client(installed_store: InMemoryCredentialStore):
    """Test client for the full application backed by ``installed_store``."""
    from app.core.app_factory import create_app

    with TestClient(create_app()) as test_client:
        yield test_client


@pytest.fixture
def seed(store: InMemoryCredentialStore):
    """Insert a record into ``store``: ``seed("sk-abc", usage=999)``."""

    def _seed(key: str, **kwargs) -> ApiKeyRecord:
        return store.add(make_record(key, **kwargs))

    return _seed
