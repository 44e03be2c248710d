"""Account endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request

from genealogy_records.core.models import (
    ChangePasswordRequest,
    ForgotPasswordRequest,
    LoginRequest,
    RefreshTokenRequest,
    RegisterRequest,
    UpdateProfileRequest,
    User,
)
from genealogy_records.web.deps import (
    AppContext,
    current_user,
    get_context,
    optional_user,
    rate_limit,
)
from genealogy_records.web.schemas import (
    AuthStatus,
    AuthStatusResponse,
    Envelope,
    LoginResponse,
    RefreshResponse,
    UserResponse,
)

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post(
    "/register",
    response_model=UserResponse,
    status_code=201,
    dependencies=[rate_limit("register")],
)
async def register(
    body: RegisterRequest,
    ctx: AppContext = Depends(get_context),
) -> UserResponse:
    user = await ctx.auth.register(body)
    return UserResponse(message="Registration successful", user=user)


@router.post("/login", response_model=LoginResponse, dependencies=[rate_limit("login")])
async def login(
    body: LoginRequest,
    ctx: AppContext = Depends(get_context),
) -> LoginResponse:
    result = await ctx.auth.login(body)
    return LoginResponse(message="Login successful", data=result)


@router.post("/refresh", response_model=RefreshResponse, dependencies=[rate_limit("refresh")])
async def refresh(
    body: RefreshTokenRequest,
    ctx: AppContext = Depends(get_context),
) -> RefreshResponse:
    result = await ctx.auth.refresh(body.refresh_token)
    return RefreshResponse(message="Token refreshed", data=result)


@router.post("/logout", response_model=Envelope)
async def logout(
    request: Request,
    user: User = Depends(current_user),
    ctx: AppContext = Depends(get_context),
) -> Envelope:
    await ctx.auth.logout(user, request.state.token)
    return Envelope(message="Logged out")


@router.get("/me", response_model=UserResponse)
async def me(user: User = Depends(current_user)) -> UserResponse:
    return UserResponse(user=user)


@router.put(
    "/profile",
    response_model=UserResponse,
    dependencies=[rate_limit("profile", per_user=True)],
)
async def update_profile(
    body: UpdateProfileRequest,
    user: User = Depends(current_user),
    ctx: AppContext = Depends(get_context),
) -> UserResponse:
    updated = await ctx.auth.update_profile(user, body)
    return UserResponse(message="Profile updated", user=updated)


@router.put(
    "/password",
    response_model=Envelope,
    dependencies=[rate_limit("password", per_user=True)],
)
async def change_password(
    body: ChangePasswordRequest,
    user: User = Depends(current_user),
    ctx: AppContext = Depends(get_context),
) -> Envelope:
    await ctx.auth.change_password(user, body)
    return Envelope(message="Password changed")


@router.post(
    "/forgot-password",
    response_model=Envelope,
    dependencies=[rate_limit("forgot_password")],
)
async def forgot_password(
    body: ForgotPasswordRequest,
    ctx: AppContext = Depends(get_context),
) -> Envelope:
    message = await ctx.auth.forgot_password(body.email)
    return Envelope(message=message)


@router.get("/verify-email", response_model=Envelope)
async def verify_email(
    token: str | None = Query(None),
    ctx: AppContext = Depends(get_context),
) -> Envelope:
    await ctx.auth.verify_email(token)
    return Envelope(message="Email verified")


@router.get("/status", response_model=AuthStatusResponse)
async def status(user: User | None = Depends(optional_user)) -> AuthStatusResponse:
    return AuthStatusResponse(data=AuthStatus(authenticated=user is not None, user=user))
