"""
Hosted Postgres record store, accessed through Supabase's PostgREST API.

Reference: https://postgrest.org/en/stable/references/api/tables_views.html

Endpoints used:
- GET    /rest/v1/{table}?{filters}  - select (Prefer: count=exact, paged by offset)
- POST   /rest/v1/{table}            - insert (Prefer: return=representation)
- PATCH  /rest/v1/{table}?{filters}  - update (Prefer: return=representation)
- DELETE /rest/v1/{table}?{filters}  - delete (Prefer: return=representation)
- HEAD   /rest/v1/{table}?{filters}  - count  (Prefer: count=exact)

The service-role key is used for every call; authorization is enforced by
the services, not by row-level security.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from genealogy_records.core.errors import StoreError
from genealogy_records.store.base import RecordStore
from genealogy_records.store.query import Filter, to_params

logger = logging.getLogger(__name__)


@dataclass
class SupabaseConfig:
    """Connection settings for a Supabase project."""
    url: str
    service_key: str
    timeout: float = 30.0
    schema: str = "public"


class SupabaseStore(RecordStore):
    """
    PostgREST-backed store.

    Each method is a single HTTP request, except ``select`` which pages
    through results. Failures surface immediately as StoreError; there is no
    retry at this layer.
    """

    name = "supabase"

    def __init__(self, config: SupabaseConfig, transport: httpx.AsyncBaseTransport | None = None):
        self.config = config
        self._client = httpx.AsyncClient(
            base_url=config.url.rstrip("/") + "/rest/v1",
            timeout=config.timeout,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    def _headers(self, prefer: str | None = None) -> dict[str, str]:
        headers = {
            "apikey": self.config.service_key,
            "Authorization": f"Bearer {self.config.service_key}",
            "Accept": "application/json",
            "Accept-Profile": self.config.schema,
            "Content-Profile": self.config.schema,
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    async def _request(
        self,
        method: str,
        table: str,
        params: list[tuple[str, str]] | None = None,
        json: Any = None,
        prefer: str | None = None,
    ) -> httpx.Response:
        try:
            response = await self._client.request(
                method,
                f"/{table}",
                params=params or [],
                json=json,
                headers=self._headers(prefer),
            )
        except httpx.HTTPError as e:
            logger.error("Store %s %s failed: %s", method, table, e)
            raise StoreError(503, str(e)) from e

        if response.status_code >= 400:
            logger.error(
                "Store %s %s returned %d: %s",
                method, table, response.status_code, response.text,
            )
            raise StoreError(response.status_code, _error_message(response))

        return response

    async def select(
        self,
        table: str,
        filters: list[Filter] | None = None,
        *,
        columns: str = "*",
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[dict[str, Any]]:
        """
        Return every matching row.

        PostgREST caps a response at its max-rows setting, so pages are
        requested by offset until the exact count from ``Content-Range`` is
        reached.
        """
        params = [("select", columns), *to_params(filters)]
        if order_by:
            params.append(("order", f"{order_by}.{'desc' if descending else 'asc'}"))

        rows: list[dict[str, Any]] = []
        while True:
            page_params = [*params, ("offset", str(len(rows)))] if rows else params
            response = await self._request("GET", table, params=page_params, prefer="count=exact")
            page = response.json()
            rows.extend(page)

            total = parse_content_range(response.headers.get("content-range"))
            if not page or len(rows) >= total:
                return rows

    async def insert(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        response = await self._request(
            "POST", table, json=row, prefer="return=representation",
        )
        data = response.json()
        return data[0] if isinstance(data, list) else data

    async def update(
        self,
        table: str,
        values: dict[str, Any],
        filters: list[Filter],
    ) -> list[dict[str, Any]]:
        response = await self._request(
            "PATCH", table, params=to_params(filters), json=values,
            prefer="return=representation",
        )
        return response.json()

    async def delete(self, table: str, filters: list[Filter]) -> list[dict[str, Any]]:
        response = await self._request(
            "DELETE", table, params=to_params(filters),
            prefer="return=representation",
        )
        return response.json()

    async def count(self, table: str, filters: list[Filter] | None = None) -> int:
        params = [("select", "id"), *to_params(filters)]
        response = await self._request("HEAD", table, params=params, prefer="count=exact")
        return parse_content_range(response.headers.get("content-range"))


def parse_content_range(header: str | None) -> int:
    """Extract the total from a ``Content-Range: 0-9/42`` header."""
    if not header or "/" not in header:
        return 0
    total = header.rsplit("/", 1)[1]
    return int(total) if total.isdigit() else 0


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text
    if isinstance(data, dict):
        return data.get("message") or data.get("msg") or response.text
    return response.text
