"""
External identity provider boundary.

Credentials never touch the record store: the provider owns password
storage, sign-in, password reset and email verification. The identity row
in the ``users`` table shares the provider's user id.

Reference: https://supabase.com/docs/reference/self-hosting-auth/introduction

Endpoints used (all under /auth/v1):
- POST   /admin/users                 - create a confirmed user
- DELETE /admin/users/{id}            - delete a user
- PUT    /admin/users/{id}            - set a new password
- POST   /token?grant_type=password   - password sign-in
- POST   /logout?scope=global         - revoke the sessions behind a bearer token
- POST   /recover                     - send a password reset email
- POST   /verify                      - confirm an email token hash
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class AuthProviderError(Exception):
    """The provider rejected or failed a request."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"Auth provider error {status_code}: {message}")


class AuthProvider(ABC):
    """Abstract identity provider."""

    name: str = "base"

    @abstractmethod
    async def create_user(
        self, email: str, password: str, metadata: dict[str, Any] | None = None,
    ) -> str:
        """Create a confirmed user and return its id."""
        pass

    @abstractmethod
    async def delete_user(self, user_id: str) -> None:
        pass

    @abstractmethod
    async def sign_in(self, email: str, password: str) -> str:
        """Check a password and return the user id. Raises AuthProviderError on failure."""
        pass

    @abstractmethod
    async def sign_out(self, token: str) -> None:
        pass

    @abstractmethod
    async def update_password(self, user_id: str, password: str) -> None:
        pass

    @abstractmethod
    async def send_password_reset(self, email: str, redirect_to: str) -> None:
        pass

    @abstractmethod
    async def verify_email(self, token_hash: str) -> None:
        pass

    async def close(self) -> None:
        pass


@dataclass
class SupabaseAuthConfig:
    url: str
    anon_key: str
    service_key: str
    timeout: float = 30.0


class SupabaseAuthProvider(AuthProvider):
    """GoTrue client. Admin calls use the service-role key, user calls the anon key."""

    name = "supabase"

    def __init__(self, config: SupabaseAuthConfig, transport: httpx.AsyncBaseTransport | None = None):
        self.config = config
        self._client = httpx.AsyncClient(
            base_url=config.url.rstrip("/") + "/auth/v1",
            timeout=config.timeout,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    def _headers(self, admin: bool = False, bearer: str | None = None) -> dict[str, str]:
        key = self.config.service_key if admin else self.config.anon_key
        return {
            "apikey": key,
            "Authorization": f"Bearer {bearer or key}",
            "Accept": "application/json",
        }

    async def _request(
        self,
        method: str,
        path: str,
        *,
        admin: bool = False,
        bearer: str | None = None,
        params: dict[str, str] | None = None,
        json: Any = None,
    ) -> httpx.Response:
        try:
            response = await self._client.request(
                method,
                path,
                params=params,
                json=json,
                headers=self._headers(admin, bearer),
            )
        except httpx.HTTPError as e:
            raise AuthProviderError(503, str(e)) from e

        if response.status_code >= 400:
            raise AuthProviderError(response.status_code, _error_message(response))
        return response

    async def create_user(
        self, email: str, password: str, metadata: dict[str, Any] | None = None,
    ) -> str:
        response = await self._request(
            "POST", "/admin/users", admin=True,
            json={
                "email": email,
                "password": password,
                "email_confirm": True,
                "user_metadata": metadata or {},
            },
        )
        return response.json()["id"]

    async def delete_user(self, user_id: str) -> None:
        await self._request("DELETE", f"/admin/users/{user_id}", admin=True)

    async def sign_in(self, email: str, password: str) -> str:
        response = await self._request(
            "POST", "/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        user = response.json().get("user") or {}
        if not user.get("id"):
            raise AuthProviderError(400, "Sign-in response did not include a user")
        return user["id"]

    async def sign_out(self, token: str) -> None:
        await self._request("POST", "/logout", bearer=token, params={"scope": "global"})

    async def update_password(self, user_id: str, password: str) -> None:
        await self._request(
            "PUT", f"/admin/users/{user_id}", admin=True, json={"password": password},
        )

    async def send_password_reset(self, email: str, redirect_to: str) -> None:
        await self._request(
            "POST", "/recover",
            params={"redirect_to": redirect_to},
            json={"email": email},
        )

    async def verify_email(self, token_hash: str) -> None:
        await self._request(
            "POST", "/verify", json={"type": "email", "token_hash": token_hash},
        )


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text
    if isinstance(data, dict):
        return (
            data.get("msg")
            or data.get("error_description")
            or data.get("message")
            or response.text
        )
    return response.text
