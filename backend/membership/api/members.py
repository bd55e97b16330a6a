"""Member approval workflow endpoints"""
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.orm import Session

from membership.api.deps import gate
from membership.database import get_db
from membership.schemas.user import AdminUserUpdate, BatchActionRequest, RejectRequest, UserResponse
from membership.services import lifecycle
from membership.utils.gate import RequestContext, require_any_permission, require_permission
from membership.utils.permissions import AccountStatus, Permission

router = APIRouter(prefix="/admin/members", tags=["admin-members"])

can_manage = require_permission(Permission.MANAGE_ALL_USERS)


@router.get("/pending")
def pending_registrations(
    ctx: RequestContext = Depends(gate(require_any_permission(Permission.APPROVE_USER, Permission.REJECT_USER))),
    db: Session = Depends(get_db),
):
    """Registrations waiting for a decision, oldest first"""
    users = lifecycle.list_pending(db)
    return {"success": True, "count": len(users), "users": [UserResponse.model_validate(u) for u in users]}


@router.get("/stats")
def stats(ctx: RequestContext = Depends(gate(can_manage)), db: Session = Depends(get_db)):
    return {"success": True, "stats": lifecycle.member_stats(db)}


@router.post("/batch")
def batch_action(
    data: BatchActionRequest,
    ctx: RequestContext = Depends(gate(require_permission(Permission.APPROVE_USER, Permission.REJECT_USER))),
    db: Session = Depends(get_db),
):
    """
    Approve or reject many registrations at once.

    Each id is handled on its own; failures are reported per item and the
    call itself still succeeds.
    """
    results = lifecycle.batch_decide(db, ctx, data.user_ids, data.action)
    return {
        "success": True,
        "message": f"Batch {data.action} completed: {len(results['success'])} succeeded, {len(results['failed'])} failed",
        "results": results,
    }


@router.get("")
def list_members(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status_filter: Optional[AccountStatus] = Query(None, alias="status"),
    search: Optional[str] = Query(None),
    ctx: RequestContext = Depends(gate(can_manage)),
    db: Session = Depends(get_db),
):
    users, total = lifecycle.list_accounts(
        db,
        page=page,
        limit=limit,
        status=status_filter.value if status_filter else None,
        search=search,
        members_only=True,
    )
    return {
        "success": True,
        "members": [UserResponse.model_validate(u) for u in users],
        "pagination": lifecycle.pagination(page, limit, total),
    }


@router.get("/{user_id}")
def member_details(user_id: str, ctx: RequestContext = Depends(gate(can_manage)), db: Session = Depends(get_db)):
    user = lifecycle.get_account(db, user_id)
    return {"success": True, "member": UserResponse.model_validate(user)}


@router.put("/{user_id}")
def update_member(
    user_id: str,
    data: AdminUserUpdate,
    ctx: RequestContext = Depends(gate(can_manage)),
    db: Session = Depends(get_db),
):
    user = lifecycle.update_details(db, ctx, user_id, data.model_dump(exclude_unset=True), action="UPDATE_MEMBER")
    return {"success": True, "message": "Member updated successfully", "member": UserResponse.model_validate(user)}


@router.post("/{user_id}/approve")
def approve_member(
    user_id: str,
    ctx: RequestContext = Depends(gate(require_permission(Permission.APPROVE_USER))),
    db: Session = Depends(get_db),
):
    """Approve a PENDING registration"""
    user = lifecycle.approve_account(db, ctx, user_id)
    return {"success": True, "message": "User approved successfully", "user": UserResponse.model_validate(user)}


@router.post("/{user_id}/reject")
def reject_member(
    user_id: str,
    data: Optional[RejectRequest] = Body(None),
    ctx: RequestContext = Depends(gate(require_permission(Permission.REJECT_USER))),
    db: Session = Depends(get_db),
):
    """Reject a PENDING registration, optionally with a reason"""
    reason = data.reason if data else None
    user = lifecycle.reject_account(db, ctx, user_id, reason)
    return {"success": True, "message": "User rejected", "user": UserResponse.model_validate(user)}
