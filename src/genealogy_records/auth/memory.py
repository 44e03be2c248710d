"""
In-process identity provider for tests and ``serve --memory``.

Passwords are kept as bcrypt hashes. Reset emails and email verification
tokens are recorded instead of sent.
"""

from __future__ import annotations

import hashlib
import secrets
from dataclasses import dataclass, field
from typing import Any
from uuid import uuid4

import bcrypt

from genealogy_records.auth.provider import AuthProvider, AuthProviderError


def _prehash(password: str) -> bytes:
    # bcrypt reads at most 72 bytes; passwords may be longer
    return hashlib.sha256(password.encode()).hexdigest().encode()


@dataclass
class _Account:
    id: str
    email: str
    password_hash: bytes
    metadata: dict[str, Any] = field(default_factory=dict)
    email_verified: bool = True


class MemoryAuthProvider(AuthProvider):

    name = "memory"

    def __init__(self, rounds: int = 12):
        self.rounds = rounds
        self._accounts: dict[str, _Account] = {}
        self._email_tokens: dict[str, str] = {}
        self.reset_requests: list[tuple[str, str]] = []
        self.signed_out: list[str] = []

    def _hash(self, password: str) -> bytes:
        return bcrypt.hashpw(_prehash(password), bcrypt.gensalt(self.rounds))

    def _by_id(self, user_id: str) -> _Account:
        for account in self._accounts.values():
            if account.id == user_id:
                return account
        raise AuthProviderError(404, "User not found")

    async def create_user(
        self, email: str, password: str, metadata: dict[str, Any] | None = None,
    ) -> str:
        if email in self._accounts:
            raise AuthProviderError(422, "A user with this email address has already been registered")
        account = _Account(
            id=str(uuid4()),
            email=email,
            password_hash=self._hash(password),
            metadata=dict(metadata or {}),
        )
        self._accounts[email] = account
        return account.id

    async def delete_user(self, user_id: str) -> None:
        account = self._by_id(user_id)
        del self._accounts[account.email]

    async def sign_in(self, email: str, password: str) -> str:
        account = self._accounts.get(email)
        if account is None or not bcrypt.checkpw(_prehash(password), account.password_hash):
            raise AuthProviderError(400, "Invalid login credentials")
        return account.id

    async def sign_out(self, token: str) -> None:
        self.signed_out.append(token)

    async def update_password(self, user_id: str, password: str) -> None:
        account = self._by_id(user_id)
        account.password_hash = self._hash(password)

    async def send_password_reset(self, email: str, redirect_to: str) -> None:
        self.reset_requests.append((email, redirect_to))

    def issue_email_token(self, email: str) -> str:
        """Create a verification token hash for an account, as a sign-up email would."""
        account = self._accounts.get(email)
        if account is None:
            raise AuthProviderError(404, "User not found")
        account.email_verified = False
        token = secrets.token_urlsafe(16)
        self._email_tokens[token] = email
        return token

    async def verify_email(self, token_hash: str) -> None:
        email = self._email_tokens.pop(token_hash, None)
        if email is None or email not in self._accounts:
            raise AuthProviderError(403, "Email link is invalid or has expired")
        self._accounts[email].email_verified = True
