"""Pydantic schemas exposed by the API."""

from __future__ import annotations

from .audit import AuditEntryRead, AuditLogPayload
from .auth import AuthPayload, LoginRequest, RefreshRequest, RegisterRequest, TokenPairPayload
from .common import ApiResponse, CamelModel, ErrorDetail, ErrorResponse, ObjectIdStr
from .system import HealthPayload, InfoPayload
from .task import (
    Pagination,
    ShareRead,
    ShareRequest,
    TaskCreate,
    TaskEnvelope,
    TaskListPayload,
    TaskRead,
    TaskUpdate,
)
from .user import ProfilePayload, UserPublic, UserSummary

__all__ = [
    "ApiResponse",
    "AuditEntryRead",
    "AuditLogPayload",
    "AuthPayload",
    "CamelModel",
    "ErrorDetail",
    "ErrorResponse",
    "HealthPayload",
    "InfoPayload",
    "LoginRequest",
    "ObjectIdStr",
    "Pagination",
    "ProfilePayload",
    "RefreshRequest",
    "RegisterRequest",
    "ShareRead",
    "ShareRequest",
    "TaskCreate",
    "TaskEnvelope",
    "TaskListPayload",
    "TaskRead",
    "TaskUpdate",
    "TokenPairPayload",
    "UserPublic",
    "UserSummary",
]
