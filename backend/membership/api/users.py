"""Admin user management endpoints"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from membership.api.deps import gate
from membership.database import get_db
from membership.schemas.user import AdminCreateRequest, AdminUserUpdate, RoleUpdate, StatusUpdate, UserResponse
from membership.services import lifecycle
from membership.utils.gate import RequestContext, require_admin, require_permission, require_super_admin
from membership.utils.permissions import AccountStatus, Permission, Role

router = APIRouter(prefix="/admin/users", tags=["admin-users"])


@router.get("")
def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    role: Optional[Role] = Query(None, description="Filter by role"),
    status_filter: Optional[AccountStatus] = Query(None, alias="status", description="Filter by status"),
    search: Optional[str] = Query(None, description="Match email, name or member ID"),
    ctx: RequestContext = Depends(gate(require_admin)),
    db: Session = Depends(get_db),
):
    """List all accounts, members and admins alike (Admin only)"""
    users, total = lifecycle.list_accounts(
        db,
        page=page,
        limit=limit,
        role=role.value if role else None,
        status=status_filter.value if status_filter else None,
        search=search,
    )
    return {
        "success": True,
        "users": [UserResponse.model_validate(u) for u in users],
        "pagination": lifecycle.pagination(page, limit, total),
    }


@router.get("/{id}")
def get_user(id: str, ctx: RequestContext = Depends(gate(require_admin)), db: Session = Depends(get_db)):
    """Get one account by ID (Admin only)"""
    user = lifecycle.get_account(db, id)
    return {"success": True, "user": UserResponse.model_validate(user)}


@router.post("/create-admin", status_code=status.HTTP_201_CREATED)
def create_admin(
    data: AdminCreateRequest,
    ctx: RequestContext = Depends(gate(require_super_admin)),
    db: Session = Depends(get_db),
):
    """
    Create an admin-tier account (Super admin only).

    The new account is APPROVED immediately; there is no pending phase.
    """
    user = lifecycle.create_admin(db, ctx, data)
    return {"success": True, "message": "Admin account created successfully", "user": UserResponse.model_validate(user)}


@router.patch("/{id}/role")
def update_role(
    id: str,
    data: RoleUpdate,
    ctx: RequestContext = Depends(gate(require_super_admin)),
    db: Session = Depends(get_db),
):
    """Change an account's role (Super admin only)"""
    user = lifecycle.change_role(db, ctx, id, data.role)
    return {"success": True, "message": "User role updated successfully", "user": UserResponse.model_validate(user)}


@router.patch("/{id}/status")
def update_status(
    id: str,
    data: StatusUpdate,
    ctx: RequestContext = Depends(gate(require_admin)),
    db: Session = Depends(get_db),
):
    """Set an account's status directly (Admin only). Used to reactivate suspended accounts."""
    user = lifecycle.update_status(db, ctx, id, data.status)
    return {"success": True, "message": "User status updated successfully", "user": UserResponse.model_validate(user)}


@router.post("/{id}/suspend")
def suspend_user(
    id: str,
    ctx: RequestContext = Depends(gate(require_permission(Permission.SUSPEND_USER))),
    db: Session = Depends(get_db),
):
    """Suspend an APPROVED account"""
    user = lifecycle.suspend_account(db, ctx, id)
    return {"success": True, "message": "User suspended successfully", "user": UserResponse.model_validate(user)}


@router.put("/{id}")
def update_user(
    id: str,
    data: AdminUserUpdate,
    ctx: RequestContext = Depends(gate(require_admin)),
    db: Session = Depends(get_db),
):
    """Edit an account's profile details (Admin only). Role and status are not editable here."""
    user = lifecycle.update_details(db, ctx, id, data.model_dump(exclude_unset=True))
    return {"success": True, "message": "User updated successfully", "user": UserResponse.model_validate(user)}


@router.delete("/{id}")
def delete_user(id: str, ctx: RequestContext = Depends(gate(require_super_admin)), db: Session = Depends(get_db)):
    """Permanently delete an account (Super admin only). Past audit entries are kept."""
    snapshot = lifecycle.delete_account(db, ctx, id)
    return {"success": True, "message": "User deleted successfully", "deleted_user": snapshot}
