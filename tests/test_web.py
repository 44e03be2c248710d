"""Tests for the HTTP API: envelopes, status codes, access rules and throttling."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from genealogy_records.auth import MemoryAuthProvider
from genealogy_records.config import Settings
from genealogy_records.store import MemoryStore
from genealogy_records.store.base import USERS
from genealogy_records.store.query import Eq
from genealogy_records.web import create_app

STRONG_PASSWORD = "Aa1!aaaa"


def create_genealogy(client, headers, name="Zhang Family", privacy_level="private") -> dict:
    response = client.post("/api/genealogies", headers=headers, json={
        "name": name, "privacy_level": privacy_level,
    })
    assert response.status_code == 201, response.text
    return response.json()["genealogy"]


def create_person(client, headers, genealogy_id, name, **fields) -> dict:
    response = client.post("/api/persons", headers=headers, json={
        "genealogy_id": genealogy_id, "name": name, **fields,
    })
    assert response.status_code == 201, response.text
    return response.json()["person"]


# =============================================================================
# Service Endpoints
# =============================================================================


class TestServiceEndpoints:

    def test_uses_given_collaborators_even_when_empty(self, settings: Settings):
        """An empty in-memory store or provider must not be replaced by the hosted ones."""
        store, provider = MemoryStore(), MemoryAuthProvider(rounds=4)
        assert len(store) == 0

        app = create_app(settings, store=store, auth_provider=provider)
        assert app.state.context.store is store
        assert app.state.context.provider is provider

        response = TestClient(app).post("/api/auth/register", json={
            "email": "user1@example.com", "password": STRONG_PASSWORD, "username": "user1",
        })
        assert response.status_code == 201, response.text

    def test_health(self, client: TestClient):
        response = client.get("/health")
        body = response.json()
        assert response.status_code == 200
        assert body["success"] is True
        assert body["message"] == "Service is running"
        assert body["environment"] == "development"
        assert body["uptime"] >= 0

    def test_service_index(self, client: TestClient):
        body = client.get("/api").json()
        assert body["version"] == "0.1.0"
        assert body["endpoints"]["persons"] == "/api/persons"

    def test_unknown_route(self, client: TestClient):
        response = client.get("/api/nowhere")
        assert response.status_code == 404
        assert response.json() == {
            "success": False,
            "message": "Route not found",
            "code": "NOT_FOUND",
            "path": "/api/nowhere",
        }


# =============================================================================
# Accounts
# =============================================================================


class TestAccounts:

    def test_register_then_duplicate_email(self, client: TestClient):
        payload = {"email": "user1@example.com", "password": STRONG_PASSWORD, "username": "user1"}

        response = client.post("/api/auth/register", json=payload)
        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["user"]["email"] == "user1@example.com"
        assert body["user"]["role"] == "user"

        response = client.post("/api/auth/register", json={**payload, "username": "user2"})
        assert response.status_code == 400
        assert response.json()["code"] == "EMAIL_EXISTS"
        assert response.json()["success"] is False

    def test_register_validation(self, client: TestClient):
        response = client.post("/api/auth/register", json={
            "email": "not-an-email", "password": "short", "username": "x",
        })
        body = response.json()
        assert response.status_code == 400
        assert body["code"] == "VALIDATION_FAILED"
        assert body["message"] == "Input validation failed"
        fields = {error.split(":")[0] for error in body["errors"]}
        assert fields == {"email", "password", "username"}

    def test_login_failure(self, client: TestClient, login_as):
        login_as("alice")
        response = client.post("/api/auth/login", json={
            "email": "alice@example.com", "password": "Wrong1!pass",
        })
        assert response.status_code == 401
        assert response.json()["code"] == "INVALID_CREDENTIALS"

    def test_me_requires_token(self, client: TestClient):
        response = client.get("/api/auth/me")
        assert response.status_code == 401
        assert response.json()["code"] == "TOKEN_MISSING"

        response = client.get("/api/auth/me", headers={"Authorization": "Bearer nonsense"})
        assert response.status_code == 401
        assert response.json()["code"] == "TOKEN_INVALID"

    def test_me(self, client: TestClient, login_as):
        headers = login_as("alice")
        response = client.get("/api/auth/me", headers=headers)
        assert response.status_code == 200
        assert response.json()["user"]["username"] == "alice"
        assert "X-Token-Expiring" not in response.headers

    def test_refresh(self, client: TestClient, login_as):
        login_as("alice")
        login = client.post("/api/auth/login", json={
            "email": "alice@example.com", "password": STRONG_PASSWORD,
        }).json()["data"]

        response = client.post("/api/auth/refresh", json={"refresh_token": login["refresh_token"]})
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["expires_in"] == 86400
        assert client.get("/api/auth/me", headers={
            "Authorization": f"Bearer {data['access_token']}",
        }).status_code == 200

        response = client.post("/api/auth/refresh", json={"refresh_token": login["access_token"]})
        assert response.status_code == 401

    def test_status(self, client: TestClient, login_as):
        assert client.get("/api/auth/status").json()["data"] == {
            "authenticated": False, "user": None,
        }
        data = client.get("/api/auth/status", headers=login_as("alice")).json()["data"]
        assert data["authenticated"] is True
        assert data["user"]["username"] == "alice"

    def test_logout(self, client: TestClient, login_as, auth_provider: MemoryAuthProvider):
        headers = login_as("alice")
        response = client.post("/api/auth/logout", headers=headers)
        assert response.status_code == 200
        assert response.json()["message"] == "Logged out"
        assert auth_provider.signed_out == [headers["Authorization"].split(" ", 1)[1]]

    def test_profile_update(self, client: TestClient, login_as):
        headers = login_as("alice")
        response = client.put("/api/auth/profile", headers=headers, json={
            "full_name": "Alice Zhang", "phone": "13800138000",
        })
        assert response.status_code == 200
        assert response.json()["user"]["full_name"] == "Alice Zhang"

        response = client.put("/api/auth/profile", headers=headers, json={"phone": "12345"})
        assert response.status_code == 400

    def test_change_password(self, client: TestClient, login_as):
        headers = login_as("alice")

        response = client.put("/api/auth/password", headers=headers, json={
            "current_password": STRONG_PASSWORD, "new_password": "Password1!",
        })
        assert response.status_code == 400
        assert response.json()["code"] == "WEAK_PASSWORD"
        assert response.json()["errors"]

        response = client.put("/api/auth/password", headers=headers, json={
            "current_password": STRONG_PASSWORD, "new_password": "Tr1cky!Horse",
        })
        assert response.status_code == 200
        assert client.post("/api/auth/login", json={
            "email": "alice@example.com", "password": "Tr1cky!Horse",
        }).status_code == 200

    def test_forgot_password(self, client: TestClient, auth_provider: MemoryAuthProvider):
        response = client.post("/api/auth/forgot-password", json={"email": "ghost@example.com"})
        assert response.status_code == 200
        assert "If that email is registered" in response.json()["message"]
        assert auth_provider.reset_requests[0][0] == "ghost@example.com"

    def test_verify_email(self, client: TestClient, login_as, auth_provider: MemoryAuthProvider):
        login_as("alice")
        token = auth_provider.issue_email_token("alice@example.com")

        assert client.get("/api/auth/verify-email", params={"token": token}).status_code == 200
        response = client.get("/api/auth/verify-email", params={"token": token})
        assert response.status_code == 400
        assert response.json()["code"] == "VERIFICATION_FAILED"
        assert client.get("/api/auth/verify-email").status_code == 400

    def test_disabled_account(self, client: TestClient, login_as, store: MemoryStore):
        headers = login_as("alice")
        user_id = client.get("/api/auth/me", headers=headers).json()["user"]["id"]
        store._tables[USERS][user_id]["status"] = "inactive"

        response = client.get("/api/auth/me", headers=headers)
        assert response.status_code == 403
        assert response.json()["code"] == "ACCOUNT_DISABLED"


# =============================================================================
# Genealogies
# =============================================================================


class TestGenealogies:

    def test_privacy_scenario(self, client: TestClient, login_as):
        alice, bob = login_as("alice"), login_as("bob")
        genealogy = create_genealogy(client, alice, "Zhang Family", "private")
        url = f"/api/genealogies/{genealogy['id']}"

        response = client.get(url, headers=bob)
        assert response.status_code == 403
        assert response.json()["code"] == "FORBIDDEN"

        response = client.put(url, headers=alice, json={"privacy_level": "public"})
        assert response.status_code == 200
        assert response.json()["genealogy"]["privacy_level"] == "public"

        assert client.get(url, headers=bob).status_code == 200
        assert client.put(url, headers=bob, json={"name": "Taken"}).status_code == 403
        assert client.delete(url, headers=bob).status_code == 403

    def test_list_includes_public_with_counts(self, client: TestClient, login_as):
        alice, bob = login_as("alice"), login_as("bob")
        mine = create_genealogy(client, alice, "Mine")
        public = create_genealogy(client, bob, "Public Tree", "public")
        create_genealogy(client, bob, "Hidden Tree", "private")
        create_person(client, bob, public["id"], "Zhang Wei")

        genealogies = client.get("/api/genealogies", headers=alice).json()["genealogies"]
        counts = {g["id"]: g["person_count"] for g in genealogies}
        assert counts == {mine["id"]: 0, public["id"]: 1}

    def test_family_only_alias(self, client: TestClient, login_as):
        genealogy = create_genealogy(client, login_as("alice"), "Family", "family_only")
        assert genealogy["privacy_level"] == "family"

    def test_name_validation(self, client: TestClient, login_as):
        response = client.post("/api/genealogies", headers=login_as("alice"), json={"name": "Z"})
        assert response.status_code == 400
        assert response.json()["errors"] == ["name: Genealogy name must be at least 2 characters"]

    def test_not_found(self, client: TestClient, login_as):
        response = client.get("/api/genealogies/missing", headers=login_as("alice"))
        assert response.status_code == 404
        assert response.json()["code"] == "NOT_FOUND"

    def test_delete_cascades(self, client: TestClient, login_as):
        alice = login_as("alice")
        genealogy = create_genealogy(client, alice)
        father = create_person(client, alice, genealogy["id"], "Zhang San")
        son = create_person(client, alice, genealogy["id"], "Zhang Xiao")
        client.post(f"/api/persons/{father['id']}/relationships", headers=alice, json={
            "person2_id": son["id"], "relationship_type": "parent",
        })

        response = client.delete(f"/api/genealogies/{genealogy['id']}", headers=alice)
        assert response.status_code == 200
        assert response.json()["removed"] == {
            "person_events": 0, "relationships": 1, "persons": 2, "genealogies": 1,
        }
        assert client.get(f"/api/persons/{son['id']}", headers=alice).status_code == 404


# =============================================================================
# Persons, Relationships and Events
# =============================================================================


class TestPersons:

    def test_person_crud(self, client: TestClient, login_as):
        alice = login_as("alice")
        genealogy = create_genealogy(client, alice)
        person = create_person(
            client, alice, genealogy["id"], "  Zhang San ",
            birth_date="1950-01-01", gender="male",
        )
        assert person["name"] == "Zhang San"

        response = client.get(f"/api/persons/{person['id']}", headers=alice)
        assert response.json()["person"]["genealogy"]["name"] == "Zhang Family"

        response = client.put(f"/api/persons/{person['id']}", headers=alice, json={
            "occupation": "Teacher",
        })
        assert response.json()["person"]["occupation"] == "Teacher"
        assert response.json()["person"]["birth_date"] == "1950-01-01"

        listed = client.get("/api/persons", headers=alice, params={"genealogy_id": genealogy["id"]})
        assert [p["id"] for p in listed.json()["persons"]] == [person["id"]]

        response = client.delete(f"/api/persons/{person['id']}", headers=alice)
        assert response.status_code == 200
        assert response.json()["removed"]["persons"] == 1

    def test_only_owner_adds_persons(self, client: TestClient, login_as):
        alice, bob = login_as("alice"), login_as("bob")
        genealogy = create_genealogy(client, alice, privacy_level="public")
        response = client.post("/api/persons", headers=bob, json={
            "genealogy_id": genealogy["id"], "name": "Intruder",
        })
        assert response.status_code == 403

    def test_parent_relationship_scenario(self, client: TestClient, login_as):
        alice = login_as("alice")
        genealogy = create_genealogy(client, alice)
        father = create_person(client, alice, genealogy["id"], "Zhang San")
        son = create_person(client, alice, genealogy["id"], "Zhang Xiao")

        response = client.post(f"/api/persons/{father['id']}/relationships", headers=alice, json={
            "person2_id": son["id"], "relationship_type": "parent",
        })
        assert response.status_code == 201
        relationship = response.json()["relationship"]
        assert relationship["person1"]["name"] == "Zhang San"
        assert relationship["person2"]["name"] == "Zhang Xiao"

        listed = client.get(f"/api/persons/{son['id']}/relationships", headers=alice).json()
        assert [r["id"] for r in listed["relationships"]] == [relationship["id"]]

        response = client.post(f"/api/persons/{son['id']}/relationships", headers=alice, json={
            "person2_id": father["id"], "relationship_type": "child",
        })
        assert response.status_code == 400
        assert response.json()["code"] == "RELATIONSHIP_EXISTS"

        url = f"/api/persons/{son['id']}/relationships/{relationship['id']}"
        assert client.delete(url, headers=alice).status_code == 200
        assert client.delete(url, headers=alice).status_code == 404

    def test_relationship_across_genealogies(self, client: TestClient, login_as):
        alice = login_as("alice")
        first = create_person(client, alice, create_genealogy(client, alice, "One")["id"], "A")
        second = create_person(client, alice, create_genealogy(client, alice, "Two")["id"], "B")

        response = client.post(f"/api/persons/{first['id']}/relationships", headers=alice, json={
            "person2_id": second["id"], "relationship_type": "sibling",
        })
        assert response.status_code == 400
        assert response.json()["code"] == "CROSS_GENEALOGY"

    def test_events(self, client: TestClient, login_as):
        alice = login_as("alice")
        person = create_person(client, alice, create_genealogy(client, alice)["id"], "Zhang San")
        url = f"/api/persons/{person['id']}/events"

        response = client.post(url, headers=alice, json={
            "event_type": "marriage", "event_date": "1975-05-01", "event_place": "Beijing",
        })
        assert response.status_code == 201
        event = response.json()["event"]

        response = client.put(f"{url}/{event['id']}", headers=alice, json={"description": "Spring"})
        assert response.json()["event"]["description"] == "Spring"
        assert response.json()["event"]["event_place"] == "Beijing"

        assert len(client.get(url, headers=alice).json()["events"]) == 1
        assert client.delete(f"{url}/{event['id']}", headers=alice).status_code == 200
        assert client.get(url, headers=alice).json()["events"] == []

        response = client.post(url, headers=alice, json={"event_type": "graduation"})
        assert response.status_code == 400


# =============================================================================
# Token Expiry, Throttling and Server Errors
# =============================================================================


class TestCrossCutting:

    def test_expiring_token_headers(self, store: MemoryStore, auth_provider: MemoryAuthProvider):
        settings = Settings.for_development(jwt_expires_in="10m")
        client = TestClient(create_app(settings, store=store, auth_provider=auth_provider))
        client.post("/api/auth/register", json={
            "email": "a@example.com", "password": STRONG_PASSWORD, "username": "alice",
        })
        token = client.post("/api/auth/login", json={
            "email": "a@example.com", "password": STRONG_PASSWORD,
        }).json()["data"]["access_token"]

        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 200
        assert response.headers["X-Token-Expiring"] == "true"
        assert response.headers["X-Token-Refresh-Needed"] == "true"

    def test_rate_limited(self, client: TestClient):
        for _ in range(3):
            response = client.post("/api/auth/forgot-password", json={"email": "a@example.com"})
            assert response.status_code == 200

        response = client.post("/api/auth/forgot-password", json={"email": "a@example.com"})
        assert response.status_code == 429
        assert response.json()["code"] == "RATE_LIMIT_EXCEEDED"
        assert int(response.headers["Retry-After"]) == response.json()["retry_after"]
        assert 1 <= response.json()["retry_after"] <= 3600

    def test_store_failure_is_a_server_error(self, failing_store, auth_provider):
        client = TestClient(create_app(
            Settings.for_development(), store=failing_store, auth_provider=auth_provider,
        ))
        client.post("/api/auth/register", json={
            "email": "a@example.com", "password": STRONG_PASSWORD, "username": "alice",
        })
        token = client.post("/api/auth/login", json={
            "email": "a@example.com", "password": STRONG_PASSWORD,
        }).json()["data"]["access_token"]
        headers = {"Authorization": f"Bearer {token}"}
        genealogy = create_genealogy(client, headers)

        failing_store.fail_tables = {"genealogies"}
        response = client.delete(f"/api/genealogies/{genealogy['id']}", headers=headers)
        assert response.status_code == 500
        body = response.json()
        assert body["message"] == "Internal server error"
        assert body["code"] == "STORE_ERROR"
        assert "genealogies unavailable" in body["error"]

    @pytest.mark.parametrize("environment,expected", [
        ("production", ["https://family.example.com"]),
        ("development", [
            "http://127.0.0.1:5173", "http://localhost:3000",
            "http://localhost:5173", "https://family.example.com",
        ]),
    ])
    def test_cors_origins(self, environment, expected):
        settings = Settings.for_development(
            environment=environment, frontend_url="https://family.example.com",
        )
        assert settings.cors_origins == expected
