"""Pydantic schemas for request/response validation"""
from membership.schemas.audit_log import AuditLogResponse
from membership.schemas.user import (
    AdminCreateRequest,
    AdminProfileUpdate,
    AdminUserUpdate,
    BatchActionRequest,
    ChangePasswordRequest,
    LoginRequest,
    ProfileUpdate,
    RegisterRequest,
    RejectRequest,
    RoleUpdate,
    StatusUpdate,
    UserResponse,
)

__all__ = [
    "AdminCreateRequest",
    "AdminProfileUpdate",
    "AdminUserUpdate",
    "AuditLogResponse",
    "BatchActionRequest",
    "ChangePasswordRequest",
    "LoginRequest",
    "ProfileUpdate",
    "RegisterRequest",
    "RejectRequest",
    "RoleUpdate",
    "StatusUpdate",
    "UserResponse",
]
