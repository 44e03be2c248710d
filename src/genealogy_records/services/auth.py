"""
Account lifecycle on top of the external identity provider.

The provider owns credentials; this service owns the identity row in the
``users`` table and the tokens the API accepts.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from genealogy_records.auth.passwords import check_password_strength
from genealogy_records.auth.provider import AuthProvider, AuthProviderError
from genealogy_records.auth.tokens import TokenManager
from genealogy_records.core.access import ensure_active
from genealogy_records.core.errors import (
    AuthenticationError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from genealogy_records.core.models import (
    ChangePasswordRequest,
    LoginRequest,
    LoginResult,
    RefreshResult,
    RegisterRequest,
    UpdateProfileRequest,
    User,
    UserRole,
    UserStatus,
)
from genealogy_records.services.base import Service
from genealogy_records.store.base import USERS, RecordStore
from genealogy_records.store.query import Eq

logger = logging.getLogger(__name__)

RESET_REQUESTED_MESSAGE = (
    "If that email is registered, a password reset link has been sent"
)


class AuthService(Service):

    def __init__(
        self,
        store: RecordStore,
        provider: AuthProvider,
        tokens: TokenManager,
        frontend_url: str = "http://localhost:5173",
    ):
        super().__init__(store)
        self.provider = provider
        self.tokens = tokens
        self.frontend_url = frontend_url.rstrip("/")

    async def register(self, data: RegisterRequest) -> User:
        """Create the provider account and the matching identity row."""
        if await self.store.select_one(USERS, [Eq("email", data.email)], columns="id"):
            raise ValidationError("Email is already registered", code="EMAIL_EXISTS")
        if await self.store.select_one(USERS, [Eq("username", data.username)], columns="id"):
            raise ValidationError("Username is already taken", code="USERNAME_EXISTS")

        try:
            user_id = await self.provider.create_user(
                data.email,
                data.password,
                {"username": data.username, "full_name": data.full_name, "phone": data.phone},
            )
        except AuthProviderError as e:
            logger.warning("Provider rejected registration for %s: %s", data.email, e)
            raise ValidationError(e.message, code="REGISTRATION_FAILED") from e

        try:
            row = await self.store.insert(USERS, {
                "id": user_id,
                "email": data.email,
                "username": data.username,
                "full_name": data.full_name,
                "phone": data.phone,
                "role": UserRole.USER.value,
                "status": UserStatus.ACTIVE.value,
            })
        except StoreError:
            logger.error("Identity row insert failed for %s; removing provider user", user_id)
            try:
                await self.provider.delete_user(user_id)
            except AuthProviderError as e:
                logger.error("Could not remove provider user %s: %s", user_id, e)
            raise

        logger.info("Registered user %s (%s)", user_id, data.username)
        return User.model_validate(row)

    async def login(self, data: LoginRequest) -> LoginResult:
        try:
            user_id = await self.provider.sign_in(data.email, data.password)
        except AuthProviderError as e:
            logger.info("Failed login for %s: %s", data.email, e.message)
            raise AuthenticationError(
                "Invalid email or password", code="INVALID_CREDENTIALS",
            ) from e

        user = await self._identity(user_id)
        ensure_active(user)

        rows = await self.store.update(
            USERS,
            {"last_login_at": datetime.now(timezone.utc).isoformat()},
            [Eq("id", user.id)],
        )
        if rows:
            user = User.model_validate(rows[0])

        logger.info("User %s logged in", user.id)
        return LoginResult(
            user=user,
            access_token=self.tokens.issue_access(user),
            refresh_token=self.tokens.issue_refresh(user.id),
            expires_in=self.tokens.expires_in_seconds(),
        )

    async def refresh(self, refresh_token: str) -> RefreshResult:
        claims = self.tokens.verify_refresh(refresh_token)
        user = await self._identity(claims["sub"])
        ensure_active(user)
        return RefreshResult(
            access_token=self.tokens.issue_access(user),
            expires_in=self.tokens.expires_in_seconds(),
        )

    async def authenticate(self, token: str) -> User:
        """Resolve a bearer access token to an active identity."""
        claims = self.tokens.verify_access(token)
        user = await self._identity(claims["sub"])
        ensure_active(user)
        return user

    async def get_user(self, user_id: str) -> User:
        row = await self.store.select_one(USERS, [Eq("id", user_id)])
        if row is None:
            raise NotFoundError("User not found")
        return User.model_validate(row)

    async def logout(self, user: User, token: str) -> None:
        """Revoke provider sessions. Failures are logged; the client discards its tokens regardless."""
        try:
            await self.provider.sign_out(token)
        except AuthProviderError as e:
            logger.warning("Provider sign-out failed for %s: %s", user.id, e)
        logger.info("User %s logged out", user.id)

    async def update_profile(self, user: User, data: UpdateProfileRequest) -> User:
        values = data.model_dump(mode="json", exclude_unset=True)
        if not values:
            return user
        rows = await self.store.update(USERS, values, [Eq("id", user.id)])
        if not rows:
            raise NotFoundError("User not found")
        return User.model_validate(rows[0])

    async def change_password(self, user: User, data: ChangePasswordRequest) -> None:
        problems = check_password_strength(data.new_password)
        if problems:
            raise ValidationError(
                "New password does not meet security requirements",
                errors=problems,
                code="WEAK_PASSWORD",
            )

        try:
            await self.provider.sign_in(user.email, data.current_password)
        except AuthProviderError as e:
            raise ValidationError(
                "Current password is incorrect", code="INVALID_PASSWORD",
            ) from e

        try:
            await self.provider.update_password(user.id, data.new_password)
        except AuthProviderError as e:
            logger.error("Password update failed for %s: %s", user.id, e)
            raise StoreError(e.status_code, e.message) from e
        logger.info("User %s changed password", user.id)

    async def forgot_password(self, email: str) -> str:
        """Request a reset email. The reply never reveals whether the address is registered."""
        try:
            await self.provider.send_password_reset(
                email.strip().lower(), f"{self.frontend_url}/reset-password",
            )
        except AuthProviderError as e:
            logger.warning("Password reset request failed: %s", e)
        return RESET_REQUESTED_MESSAGE

    async def verify_email(self, token: str | None) -> None:
        if not token:
            raise ValidationError("Verification token is invalid", code="TOKEN_INVALID")
        try:
            await self.provider.verify_email(token)
        except AuthProviderError as e:
            raise ValidationError("Email verification failed", code="VERIFICATION_FAILED") from e

    async def _identity(self, user_id: str) -> User:
        try:
            return await self.get_user(user_id)
        except NotFoundError:
            raise AuthenticationError("User not found", code="USER_NOT_FOUND") from None
