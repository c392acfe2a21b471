"""Service health and metadata endpoints."""

from __future__ import annotations

from fastapi import APIRouter

from ...deps import SettingsDependency
from ...models import utcnow
from ...schemas import ApiResponse, HealthPayload, InfoPayload

router = APIRouter(tags=["system"])


@router.get("/health", response_model=ApiResponse[HealthPayload], summary="Service health check")
async def health(settings: SettingsDependency) -> ApiResponse[HealthPayload]:
    return ApiResponse(
        message="Server is running",
        data=HealthPayload(timestamp=utcnow(), environment=settings.environment),
    )


@router.get("/info", response_model=ApiResponse[InfoPayload], summary="Service metadata")
async def info(settings: SettingsDependency) -> ApiResponse[InfoPayload]:
    return ApiResponse(
        message="Service information",
        data=InfoPayload(
            name=settings.project_name,
            environment=settings.environment,
            version=settings.version,
            api_prefix=settings.api_prefix,
        ),
    )
