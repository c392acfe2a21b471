"""Common system-level response models."""

from __future__ import annotations

from pydantic import Field

from .common import CamelModel, UtcDatetime


class InfoPayload(CamelModel):
    """Metadata payload returned by the info endpoint."""

    name: str = Field(description="Human-friendly service name")
    environment: str = Field(description="Deployment environment identifier")
    version: str = Field(description="Semantic version of the service")
    api_prefix: str = Field(description="Base path for API routes")


class HealthPayload(CamelModel):
    """Payload returned by the health check endpoint."""

    status: str = Field(default="ok", description="Service health indicator")
    timestamp: UtcDatetime
    environment: str


__all__ = ["HealthPayload", "InfoPayload"]
