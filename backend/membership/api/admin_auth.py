"""Admin portal authentication and own-profile endpoints"""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from membership.api.deps import client_origin, gate, get_registry
from membership.database import get_db
from membership.middleware.rate_limit import get_rate_limit, limiter
from membership.schemas.user import AdminProfileUpdate, ChangePasswordRequest, LoginRequest, UserResponse
from membership.services import authentication, lifecycle
from membership.utils.gate import RequestContext, effective_permissions, require_admin
from membership.utils.permissions import PermissionRegistry

router = APIRouter(prefix="/admin/auth", tags=["admin-auth"])

ADMIN_PROFILE_FIELDS = ("first_name", "last_name", "phone")


@router.post("/login")
@limiter.limit(get_rate_limit("admin_login"))
def admin_login(
    request: Request,
    credentials: LoginRequest,
    db: Session = Depends(get_db),
    registry: PermissionRegistry = Depends(get_registry),
):
    """Admin login. Returns a token plus the caller's effective permissions."""
    user, token = authentication.admin_login(
        db,
        credentials.email,
        credentials.password,
        origin=client_origin(request),
        agent=request.headers.get("user-agent"),
    )
    return {
        "success": True,
        "message": "Admin login successful",
        "token": token,
        "user": UserResponse.model_validate(user),
        "permissions": effective_permissions(user.role, registry),
    }


@router.post("/logout")
def admin_logout(ctx: RequestContext = Depends(gate(require_admin)), db: Session = Depends(get_db)):
    authentication.admin_logout(db, ctx)
    return {"success": True, "message": "Logout successful"}


@router.get("/verify")
def verify(
    ctx: RequestContext = Depends(gate(require_admin)),
    registry: PermissionRegistry = Depends(get_registry),
    db: Session = Depends(get_db),
):
    """
    Confirm the admin token and report what the caller may do.

    ``accessible_resources`` is capability discovery for the admin UI; route
    protection is always decided by permissions.
    """
    user = lifecycle.get_account(db, ctx.account.id)
    return {
        "success": True,
        "user": UserResponse.model_validate(user),
        "permissions": effective_permissions(ctx.account.role, registry),
        "accessible_resources": registry.accessible_resources(ctx.account.role),
    }


@router.get("/profile")
def get_admin_profile(ctx: RequestContext = Depends(gate(require_admin)), db: Session = Depends(get_db)):
    user = lifecycle.get_account(db, ctx.account.id)
    return {"success": True, "user": UserResponse.model_validate(user)}


@router.put("/profile")
def update_admin_profile(
    data: AdminProfileUpdate,
    ctx: RequestContext = Depends(gate(require_admin)),
    db: Session = Depends(get_db),
):
    user = lifecycle.update_own_profile(
        db, ctx.account.id, data.model_dump(exclude_unset=True), allowed=ADMIN_PROFILE_FIELDS
    )
    return {"success": True, "message": "Profile updated successfully", "user": UserResponse.model_validate(user)}


@router.put("/change-password")
def change_password(
    data: ChangePasswordRequest,
    ctx: RequestContext = Depends(gate(require_admin)),
    db: Session = Depends(get_db),
):
    authentication.change_password(db, ctx, data.current_password, data.new_password)
    return {"success": True, "message": "Password changed successfully"}
