"""Tests for the async API client and the person form."""

from __future__ import annotations

import httpx
import pytest

from genealogy_records.client import ApiError, GenealogyApiClient, PersonForm
from genealogy_records.core.errors import ValidationError

PASSWORD = "Aa1!aaaa"


@pytest.fixture
def api(app) -> GenealogyApiClient:
    return GenealogyApiClient(base_url="http://testserver", transport=httpx.ASGITransport(app=app))


async def signed_in(api: GenealogyApiClient, username: str = "alice") -> None:
    await api.register(f"{username}@example.com", PASSWORD, username)
    await api.login(f"{username}@example.com", PASSWORD)


# =============================================================================
# PersonForm
# =============================================================================


class TestPersonForm:

    def test_valid_form(self):
        form = PersonForm(
            name=" Zhang San ", genealogy_id="g1",
            birth_date="1950-01-01", death_date="2020-06-30", occupation="  ",
        )
        assert form.errors() == []
        assert form.payload() == {
            "name": "Zhang San",
            "genealogy_id": "g1",
            "gender": "unknown",
            "birth_date": "1950-01-01",
            "death_date": "2020-06-30",
        }

    @pytest.mark.parametrize("birth,death", [
        ("2000-01-01", "1990-01-01"),
        ("2000-01-01", "2000-01-01"),
    ])
    def test_death_must_follow_birth(self, birth, death):
        form = PersonForm(name="Zhang San", birth_date=birth, death_date=death)
        assert form.errors() == ["death_date: Death date must be after birth date"]
        with pytest.raises(ValidationError):
            form.payload()

    def test_missing_name_and_bad_date(self):
        errors = PersonForm(name="  ", birth_date="01/02/1950").errors()
        assert errors == [
            "name: Name is required",
            "birth_date: Birth date is not a valid date",
        ]

    @pytest.mark.parametrize("value", ["1950-01-01xyz", "1950-01-01T00:00:00"])
    def test_trailing_text_makes_date_invalid(self, value):
        errors = PersonForm(name="Zhang San", birth_date=value).errors()
        assert errors == ["birth_date: Birth date is not a valid date"]


# =============================================================================
# GenealogyApiClient
# =============================================================================


class TestGenealogyApiClient:

    @pytest.mark.asyncio
    async def test_invalid_form_sends_nothing(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(201, json={})

        form = PersonForm(
            name="Zhang San", genealogy_id="g1",
            birth_date="2000-01-01", death_date="1990-01-01",
        )
        async with GenealogyApiClient(transport=httpx.MockTransport(handler)) as api:
            with pytest.raises(ValidationError) as exc_info:
                await api.create_person(form)

        assert requests == []
        assert exc_info.value.errors == ["death_date: Death date must be after birth date"]

    @pytest.mark.asyncio
    async def test_requires_genealogy(self):
        async with GenealogyApiClient(transport=httpx.MockTransport(lambda r: httpx.Response(500))) as api:
            with pytest.raises(ValidationError):
                await api.create_person(PersonForm(name="Zhang San"))

    @pytest.mark.asyncio
    async def test_not_connected(self):
        with pytest.raises(RuntimeError):
            await GenealogyApiClient().me()

    @pytest.mark.asyncio
    async def test_login_keeps_token(self, api: GenealogyApiClient):
        async with api:
            await signed_in(api)
            assert api.token
            me = await api.me()
            assert me.username == "alice"

            await api.logout()
            assert api.token is None

    @pytest.mark.asyncio
    async def test_refresh(self, api: GenealogyApiClient):
        async with api:
            await api.register("alice@example.com", PASSWORD, "alice")
            login = await api.login("alice@example.com", PASSWORD)
            refreshed = await api.refresh(login.refresh_token)
            assert api.token == refreshed.access_token
            assert (await api.me()).username == "alice"

    @pytest.mark.asyncio
    async def test_api_error_carries_server_message(self, api: GenealogyApiClient):
        async with api:
            with pytest.raises(ApiError) as exc_info:
                await api.login("nobody@example.com", PASSWORD)
        assert exc_info.value.status_code == 401
        assert exc_info.value.message == "Invalid email or password"

    @pytest.mark.asyncio
    async def test_family_tree_workflow(self, api: GenealogyApiClient):
        async with api:
            await signed_in(api)
            genealogy = await api.create_genealogy("Zhang Family", "Beijing branch")

            father = await api.create_person(PersonForm(
                name="Zhang San", genealogy_id=genealogy.id, gender="male", birth_date="1950-01-01",
            ))
            son = await api.create_person(PersonForm(name="Zhang Xiao", genealogy_id=genealogy.id))
            relationship = await api.create_relationship(son.id, father.id, "child")
            event = await api.create_event(father.id, "birth", event_date="1950-01-01")

            assert relationship.person1_id == father.id
            assert relationship.relationship_type.value == "parent"
            assert [r.id for r in await api.list_relationships(son.id)] == [relationship.id]
            assert {p.id for p in await api.list_persons(genealogy.id)} == {father.id, son.id}

            updated = await api.update_event(father.id, event.id, event_place="Beijing")
            assert updated.event_place == "Beijing"

            renamed = await api.update_person(son.id, PersonForm(name="Zhang Xiaoming"))
            assert renamed.name == "Zhang Xiaoming"

            await api.delete_relationship(son.id, relationship.id)
            await api.delete_event(father.id, event.id)
            assert await api.list_events(father.id) == []

            removed = await api.delete_genealogy(genealogy.id)
            assert removed["persons"] == 2
            with pytest.raises(ApiError) as exc_info:
                await api.get_genealogy(genealogy.id)
            assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_get_retries_transport_errors(self, monkeypatch):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) < 3:
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200, json={"success": True, "genealogies": []})

        async def no_sleep(seconds):
            pass

        monkeypatch.setattr("asyncio.sleep", no_sleep)
        async with GenealogyApiClient(transport=httpx.MockTransport(handler)) as api:
            assert await api.list_genealogies() == []
        assert len(calls) == 3
