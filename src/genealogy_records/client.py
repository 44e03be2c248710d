"""
Genealogy Records API client.

Async wrapper around the REST API for scripts and the command line.

Endpoints used (all under /api):
- /auth/register, /auth/login, /auth/refresh, /auth/logout, /auth/me
- /genealogies, /genealogies/{id}, /genealogies/{id}/persons
- /persons, /persons/{id}
- /persons/{id}/relationships, /persons/{id}/relationships/{relationship_id}
- /persons/{id}/events, /persons/{id}/events/{event_id}
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date
from typing import Any

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from genealogy_records.core.errors import ValidationError
from genealogy_records.core.models import (
    Genealogy,
    LoginResult,
    Person,
    PersonEvent,
    RefreshResult,
    Relationship,
    User,
)


class ApiError(Exception):
    """Non-2xx response from the API. ``message`` is the server's message verbatim."""

    def __init__(self, status_code: int, message: str, errors: list[str] | None = None):
        self.status_code = status_code
        self.message = message
        self.errors = errors or []
        super().__init__(f"API error {status_code}: {message}")


@dataclass
class PersonForm:
    """
    Person form as filled in by a user.

    Dates are ISO ``YYYY-MM-DD`` strings. ``payload()`` checks the form
    before anything is sent: the name is required, dates must parse, and a
    death date must fall strictly after the birth date.
    """
    name: str
    genealogy_id: str | None = None
    gender: str = "unknown"
    birth_date: str | None = None
    death_date: str | None = None
    birth_place: str | None = None
    death_place: str | None = None
    occupation: str | None = None
    biography: str | None = None
    photo_url: str | None = None
    generation: int | None = None

    def errors(self) -> list[str]:
        problems = []
        if not (self.name or "").strip():
            problems.append("name: Name is required")

        birth = _parse_date(self.birth_date)
        death = _parse_date(self.death_date)
        if self.birth_date and birth is None:
            problems.append("birth_date: Birth date is not a valid date")
        if self.death_date and death is None:
            problems.append("death_date: Death date is not a valid date")
        if birth and death and death <= birth:
            problems.append("death_date: Death date must be after birth date")
        return problems

    def payload(self) -> dict[str, Any]:
        """Request body for this form. Raises ValidationError if the form is invalid."""
        problems = self.errors()
        if problems:
            raise ValidationError("Person form is invalid", errors=problems)

        body = {}
        for key, value in asdict(self).items():
            if isinstance(value, str):
                value = value.strip() or None
            if value is not None:
                body[key] = value
        return body


def _parse_date(value: str | None) -> date | None:
    if not value or not value.strip():
        return None
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        return None


class GenealogyApiClient:
    """
    Client for the Genealogy Records REST API.

    Use as an async context manager, or call ``connect()``/``close()``.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:3001",
        token: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def connect(self) -> None:
        self._client = httpx.AsyncClient(
            base_url=self.base_url + "/api",
            timeout=self.timeout,
            transport=self._transport,
        )

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> GenealogyApiClient:
        await self.connect()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _send(
        self,
        method: str,
        endpoint: str,
        json: dict | None = None,
        params: dict | None = None,
    ) -> dict[str, Any]:
        if not self._client:
            raise RuntimeError("Client not connected")

        response = await self._client.request(
            method, endpoint, json=json, params=params, headers=self._headers(),
        )
        try:
            data = response.json()
        except ValueError:
            data = {}

        if response.status_code >= 400:
            raise ApiError(
                response.status_code,
                data.get("message") or response.text,
                data.get("errors"),
            )
        return data

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        reraise=True,
    )
    async def _get(self, endpoint: str, params: dict | None = None) -> dict[str, Any]:
        return await self._send("GET", endpoint, params=params)

    async def _post(self, endpoint: str, data: dict | None = None) -> dict[str, Any]:
        return await self._send("POST", endpoint, json=data or {})

    async def _put(self, endpoint: str, data: dict) -> dict[str, Any]:
        return await self._send("PUT", endpoint, json=data)

    async def _delete(self, endpoint: str) -> dict[str, Any]:
        return await self._send("DELETE", endpoint)

    # =========================================
    # Account
    # =========================================

    async def register(self, email: str, password: str, username: str, **fields: Any) -> User:
        data = await self._post("/auth/register", {
            "email": email, "password": password, "username": username, **fields,
        })
        return User.model_validate(data["user"])

    async def login(self, email: str, password: str) -> LoginResult:
        """Sign in and use the issued access token for later calls."""
        data = await self._post("/auth/login", {"email": email, "password": password})
        result = LoginResult.model_validate(data["data"])
        self.token = result.access_token
        return result

    async def refresh(self, refresh_token: str) -> RefreshResult:
        data = await self._post("/auth/refresh", {"refresh_token": refresh_token})
        result = RefreshResult.model_validate(data["data"])
        self.token = result.access_token
        return result

    async def logout(self) -> None:
        await self._post("/auth/logout")
        self.token = None

    async def me(self) -> User:
        data = await self._get("/auth/me")
        return User.model_validate(data["user"])

    # =========================================
    # Genealogies
    # =========================================

    async def list_genealogies(self) -> list[Genealogy]:
        data = await self._get("/genealogies")
        return [Genealogy.model_validate(g) for g in data["genealogies"]]

    async def create_genealogy(
        self,
        name: str,
        description: str | None = None,
        privacy_level: str = "private",
    ) -> Genealogy:
        data = await self._post("/genealogies", {
            "name": name, "description": description, "privacy_level": privacy_level,
        })
        return Genealogy.model_validate(data["genealogy"])

    async def get_genealogy(self, genealogy_id: str) -> Genealogy:
        data = await self._get(f"/genealogies/{genealogy_id}")
        return Genealogy.model_validate(data["genealogy"])

    async def update_genealogy(self, genealogy_id: str, **fields: Any) -> Genealogy:
        data = await self._put(f"/genealogies/{genealogy_id}", fields)
        return Genealogy.model_validate(data["genealogy"])

    async def delete_genealogy(self, genealogy_id: str) -> dict[str, int]:
        data = await self._delete(f"/genealogies/{genealogy_id}")
        return data.get("removed", {})

    # =========================================
    # Persons
    # =========================================

    async def list_persons(self, genealogy_id: str) -> list[Person]:
        data = await self._get(f"/genealogies/{genealogy_id}/persons")
        return [Person.model_validate(p) for p in data["persons"]]

    async def create_person(self, form: PersonForm) -> Person:
        """Create a person from a form. An invalid form raises before any request."""
        body = form.payload()
        if not body.get("genealogy_id"):
            raise ValidationError("Person form is invalid", errors=["genealogy_id: Genealogy is required"])
        data = await self._post("/persons", body)
        return Person.model_validate(data["person"])

    async def get_person(self, person_id: str) -> Person:
        data = await self._get(f"/persons/{person_id}")
        return Person.model_validate(data["person"])

    async def update_person(self, person_id: str, form: PersonForm) -> Person:
        body = form.payload()
        body.pop("genealogy_id", None)
        data = await self._put(f"/persons/{person_id}", body)
        return Person.model_validate(data["person"])

    async def delete_person(self, person_id: str) -> dict[str, int]:
        data = await self._delete(f"/persons/{person_id}")
        return data.get("removed", {})

    # =========================================
    # Relationships
    # =========================================

    async def list_relationships(self, person_id: str) -> list[Relationship]:
        data = await self._get(f"/persons/{person_id}/relationships")
        return [Relationship.model_validate(r) for r in data["relationships"]]

    async def create_relationship(
        self,
        person1_id: str,
        person2_id: str,
        relationship_type: str,
    ) -> Relationship:
        data = await self._post(f"/persons/{person1_id}/relationships", {
            "person2_id": person2_id, "relationship_type": relationship_type,
        })
        return Relationship.model_validate(data["relationship"])

    async def delete_relationship(self, person_id: str, relationship_id: str) -> None:
        await self._delete(f"/persons/{person_id}/relationships/{relationship_id}")

    # =========================================
    # Life events
    # =========================================

    async def list_events(self, person_id: str) -> list[PersonEvent]:
        data = await self._get(f"/persons/{person_id}/events")
        return [PersonEvent.model_validate(e) for e in data["events"]]

    async def create_event(self, person_id: str, event_type: str, **fields: Any) -> PersonEvent:
        data = await self._post(f"/persons/{person_id}/events", {"event_type": event_type, **fields})
        return PersonEvent.model_validate(data["event"])

    async def update_event(self, person_id: str, event_id: str, **fields: Any) -> PersonEvent:
        data = await self._put(f"/persons/{person_id}/events/{event_id}", fields)
        return PersonEvent.model_validate(data["event"])

    async def delete_event(self, person_id: str, event_id: str) -> None:
        await self._delete(f"/persons/{person_id}/events/{event_id}")
