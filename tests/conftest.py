"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from typing import Any, Callable

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from genealogy_records.auth import MemoryAuthProvider, TokenManager
from genealogy_records.config import Settings
from genealogy_records.core.errors import StoreError
from genealogy_records.core.models import User
from genealogy_records.services import (
    GenealogyService,
    PersonEventService,
    PersonService,
    RelationshipService,
)
from genealogy_records.store import MemoryStore
from genealogy_records.store.query import Filter
from genealogy_records.web import create_app

STRONG_PASSWORD = "Aa1!aaaa"


class FailingStore(MemoryStore):
    """MemoryStore whose deletes fail for selected tables."""

    def __init__(self, fail_tables: set[str] | None = None):
        super().__init__()
        self.fail_tables = set(fail_tables or ())

    async def delete(self, table: str, filters: list[Filter]) -> list[dict[str, Any]]:
        if table in self.fail_tables:
            raise StoreError(503, f"{table} unavailable")
        return await super().delete(table, filters)


# =============================================================================
# Identities
# =============================================================================

@pytest.fixture
def alice() -> User:
    """Owner of most test genealogies."""
    return User(id="user-alice", email="alice@example.com", username="alice")


@pytest.fixture
def bob() -> User:
    """A second, unrelated identity."""
    return User(id="user-bob", email="bob@example.com", username="bob")


# =============================================================================
# Store and Services
# =============================================================================

@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def genealogies(store: MemoryStore) -> GenealogyService:
    return GenealogyService(store)


@pytest.fixture
def persons(store: MemoryStore) -> PersonService:
    return PersonService(store)


@pytest.fixture
def relationships(store: MemoryStore) -> RelationshipService:
    return RelationshipService(store)


@pytest.fixture
def events(store: MemoryStore) -> PersonEventService:
    return PersonEventService(store)


# =============================================================================
# Auth
# =============================================================================

@pytest.fixture
def settings() -> Settings:
    return Settings.for_development()


@pytest.fixture
def auth_provider() -> MemoryAuthProvider:
    return MemoryAuthProvider(rounds=4)


@pytest.fixture
def tokens(settings: Settings) -> TokenManager:
    return TokenManager(settings.token_config())


# =============================================================================
# Web Application
# =============================================================================

@pytest.fixture
def app(settings: Settings, store: MemoryStore, auth_provider: MemoryAuthProvider) -> FastAPI:
    """Application backed by in-memory store and accounts."""
    return create_app(settings, store=store, auth_provider=auth_provider)


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


@pytest.fixture
def login_as(client: TestClient) -> Callable[[str], dict[str, str]]:
    """Register a user by name and return bearer headers for them."""

    def _login(username: str) -> dict[str, str]:
        email = f"{username}@example.com"
        response = client.post("/api/auth/register", json={
            "email": email, "password": STRONG_PASSWORD, "username": username,
        })
        assert response.status_code == 201, response.text
        response = client.post("/api/auth/login", json={
            "email": email, "password": STRONG_PASSWORD,
        })
        assert response.status_code == 200, response.text
        token = response.json()["data"]["access_token"]
        return {"Authorization": f"Bearer {token}"}

    return _login


@pytest.fixture
def failing_store() -> FailingStore:
    """In-memory store; set ``fail_tables`` to make deletes on those tables fail."""
    return FailingStore()
