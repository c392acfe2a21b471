"""Routes handling user authentication flows."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, status

from ...core.rate_limit import LOGIN, REGISTER
from ...deps import AuthServiceDependency, CurrentUserDependency, client_ip, rate_limit_by_ip
from ...schemas import (
    ApiResponse,
    AuthPayload,
    LoginRequest,
    ProfilePayload,
    RefreshRequest,
    RegisterRequest,
    TokenPairPayload,
    UserPublic,
)
from ...services import AuthResult

router = APIRouter(prefix="/auth", tags=["auth"])


def _auth_payload(result: AuthResult) -> AuthPayload:
    return AuthPayload(
        user=UserPublic.model_validate(result.user),
        access_token=result.tokens.access.token,
        refresh_token=result.tokens.refresh.token,
    )


@router.post(
    "/register",
    response_model=ApiResponse[AuthPayload],
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user account",
    dependencies=[Depends(rate_limit_by_ip(REGISTER))],
)
async def register(payload: RegisterRequest, service: AuthServiceDependency) -> ApiResponse[AuthPayload]:
    result = await service.register(email=payload.email, name=payload.name, password=payload.password)
    return ApiResponse(message="User registered successfully", data=_auth_payload(result))


@router.post(
    "/login",
    response_model=ApiResponse[AuthPayload],
    summary="Authenticate using email and password",
    dependencies=[Depends(rate_limit_by_ip(LOGIN))],
)
async def login(
    payload: LoginRequest,
    request: Request,
    service: AuthServiceDependency,
) -> ApiResponse[AuthPayload]:
    result = await service.login(
        email=payload.email,
        password=payload.password,
        ip_address=client_ip(request),
    )
    return ApiResponse(message="Login successful", data=_auth_payload(result))


@router.post(
    "/refresh",
    response_model=ApiResponse[TokenPairPayload],
    summary="Rotate the refresh token and issue a new access token",
)
async def refresh_tokens(payload: RefreshRequest, service: AuthServiceDependency) -> ApiResponse[TokenPairPayload]:
    tokens = await service.refresh(payload.refresh_token)
    return ApiResponse(
        message="Token refreshed successfully",
        data=TokenPairPayload(access_token=tokens.access.token, refresh_token=tokens.refresh.token),
    )


@router.get(
    "/profile",
    response_model=ApiResponse[ProfilePayload],
    summary="Return the authenticated user's profile",
)
async def profile(current_user: CurrentUserDependency) -> ApiResponse[ProfilePayload]:
    return ApiResponse(
        message="Profile retrieved successfully",
        data=ProfilePayload(user=UserPublic.model_validate(current_user)),
    )
