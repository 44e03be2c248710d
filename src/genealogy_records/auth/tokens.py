"""
Access and refresh tokens.

Access tokens carry the identity claims used by the web layer; refresh
tokens carry only the subject and are signed with a separate secret so one
can never be accepted in place of the other.
"""

from __future__ import annotations

import re
import time
from dataclasses import dataclass
from typing import Any

import jwt

from genealogy_records.core.errors import AuthenticationError
from genealogy_records.core.models import User

ALGORITHM = "HS256"
EXPIRING_SOON_SECONDS = 30 * 60

_DURATION = re.compile(r"^(\d+)\s*([mhd])$")
_UNIT_SECONDS = {"m": 60, "h": 3600, "d": 86400}


def parse_duration(value: str, default: int = 24 * 3600) -> int:
    """Parse ``30m`` / ``24h`` / ``7d`` into seconds."""
    match = _DURATION.match(value.strip().lower()) if value else None
    if not match:
        return default
    return int(match.group(1)) * _UNIT_SECONDS[match.group(2)]


@dataclass
class TokenConfig:
    secret: str
    refresh_secret: str
    expires_in: str = "24h"
    refresh_expires_in: str = "7d"
    issuer: str = "genealogy-system"
    audience: str = "genealogy-users"


class TokenManager:
    """Issues and verifies HS256 tokens."""

    def __init__(self, config: TokenConfig):
        self.config = config

    def expires_in_seconds(self) -> int:
        return parse_duration(self.config.expires_in)

    def _sign(self, claims: dict[str, Any], secret: str, lifetime: int) -> str:
        now = int(time.time())
        payload = {
            **claims,
            "iat": now,
            "exp": now + lifetime,
            "iss": self.config.issuer,
            "aud": self.config.audience,
        }
        return jwt.encode(payload, secret, algorithm=ALGORITHM)

    def _decode(self, token: str, secret: str) -> dict[str, Any]:
        return jwt.decode(
            token,
            secret,
            algorithms=[ALGORITHM],
            audience=self.config.audience,
            issuer=self.config.issuer,
        )

    def issue_access(self, user: User) -> str:
        return self._sign(
            {
                "sub": user.id,
                "email": user.email,
                "username": user.username,
                "role": user.role.value,
            },
            self.config.secret,
            self.expires_in_seconds(),
        )

    def issue_refresh(self, user_id: str) -> str:
        return self._sign(
            {"sub": user_id, "type": "refresh"},
            self.config.refresh_secret,
            parse_duration(self.config.refresh_expires_in, default=7 * 86400),
        )

    def verify_access(self, token: str) -> dict[str, Any]:
        try:
            return self._decode(token, self.config.secret)
        except jwt.PyJWTError as e:
            raise AuthenticationError("Invalid access token", code="TOKEN_INVALID") from e

    def verify_refresh(self, token: str) -> dict[str, Any]:
        try:
            claims = self._decode(token, self.config.refresh_secret)
        except jwt.PyJWTError as e:
            raise AuthenticationError("Invalid refresh token", code="TOKEN_INVALID") from e
        if claims.get("type") != "refresh":
            raise AuthenticationError("Invalid refresh token", code="TOKEN_INVALID")
        return claims

    def is_expiring_soon(self, token: str, within: int = EXPIRING_SOON_SECONDS) -> bool:
        """True when the token expires within ``within`` seconds or cannot be read."""
        try:
            claims = jwt.decode(token, options={"verify_signature": False})
        except jwt.PyJWTError:
            return True
        exp = claims.get("exp")
        if not exp:
            return True
        return exp - int(time.time()) < within
