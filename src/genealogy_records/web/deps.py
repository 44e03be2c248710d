"""Request-scoped dependencies: services, the acting identity, and throttling."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field

from fastapi import Depends, Request, Response

from genealogy_records.auth.provider import AuthProvider
from genealogy_records.auth.tokens import TokenManager
from genealogy_records.config import Settings
from genealogy_records.core.errors import AuthenticationError, GenealogyError
from genealogy_records.core.models import User
from genealogy_records.services import (
    AuthService,
    GenealogyService,
    PersonEventService,
    PersonService,
    RelationshipService,
)
from genealogy_records.store.base import RecordStore
from genealogy_records.web.ratelimit import RateLimitPolicy

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Everything a request handler needs, built once per application."""
    settings: Settings
    store: RecordStore
    provider: AuthProvider
    tokens: TokenManager
    rate_limits: RateLimitPolicy
    started_at: float = field(default_factory=time.monotonic)

    def __post_init__(self):
        self.auth = AuthService(
            self.store, self.provider, self.tokens, self.settings.frontend_url,
        )
        self.genealogies = GenealogyService(self.store)
        self.persons = PersonService(self.store)
        self.relationships = RelationshipService(self.store)
        self.events = PersonEventService(self.store)


def get_context(request: Request) -> AppContext:
    return request.app.state.context


def client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def bearer_token(request: Request) -> str | None:
    header = request.headers.get("authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def current_user(
    request: Request,
    response: Response,
    ctx: AppContext = Depends(get_context),
) -> User:
    """The active identity behind the bearer token. Flags tokens close to expiry."""
    token = bearer_token(request)
    if token is None:
        raise AuthenticationError("Access token is missing", code="TOKEN_MISSING")

    user = await ctx.auth.authenticate(token)
    if ctx.tokens.is_expiring_soon(token):
        response.headers["X-Token-Expiring"] = "true"
        response.headers["X-Token-Refresh-Needed"] = "true"

    request.state.user = user
    request.state.token = token
    return user


async def optional_user(
    request: Request,
    ctx: AppContext = Depends(get_context),
) -> User | None:
    """The active identity if a valid token was sent, otherwise None."""
    token = bearer_token(request)
    if token is None:
        return None
    try:
        return await ctx.auth.authenticate(token)
    except GenealogyError as e:
        logger.debug("Ignoring unusable token on optional route: %s", e.message)
        return None


def rate_limit(policy: str, per_user: bool = False):
    """
    Throttle a route with a named policy.

    ``per_user`` routes are keyed by the authenticated identity; the rest by
    client IP.
    """
    if per_user:
        async def dependency(
            user: User = Depends(current_user),
            ctx: AppContext = Depends(get_context),
        ) -> None:
            ctx.rate_limits.limiter(policy).hit(f"user:{user.id}")
    else:
        async def dependency(
            request: Request,
            ctx: AppContext = Depends(get_context),
        ) -> None:
            ctx.rate_limits.limiter(policy).hit(f"ip:{client_ip(request)}")

    return Depends(dependency)
