"""Audit trail read endpoints"""
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from membership.api.deps import gate
from membership.config import settings
from membership.database import get_db
from membership.errors import bad_request
from membership.schemas.audit_log import AuditLogResponse
from membership.services import audit
from membership.services.lifecycle import pagination
from membership.utils.gate import RequestContext, require_permission, require_super_admin
from membership.utils.permissions import Permission

router = APIRouter(prefix="/admin/audit-logs", tags=["audit-logs"])


def _as_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Stored timestamps are naive UTC; offset-aware bounds are converted to match."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


@router.get("")
def list_audit_logs(
    admin_id: Optional[str] = Query(None, description="Filter by acting admin"),
    action: Optional[str] = Query(None, description="Filter by action kind"),
    start_date: Optional[datetime] = Query(None, description="Filter by start date"),
    end_date: Optional[datetime] = Query(None, description="Filter by end date"),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    ctx: RequestContext = Depends(gate(require_permission(Permission.VIEW_AUDIT_LOGS))),
    db: Session = Depends(get_db),
):
    """
    Query the admin action log, newest first.

    Entries are append-only; there is no update or delete endpoint.
    """
    start_date, end_date = _as_naive_utc(start_date), _as_naive_utc(end_date)
    if start_date and end_date and end_date < start_date:
        raise bad_request("VALIDATION_ERROR", "end_date must not be before start_date")

    items, total = audit.query_logs(
        db,
        admin_id=admin_id,
        action=action,
        start=start_date,
        end=end_date,
        page=page,
        limit=limit,
    )
    return {
        "success": True,
        "logs": [AuditLogResponse.model_validate(entry) for entry in items],
        "pagination": pagination(page, limit, total),
    }


@router.get("/stats")
def audit_log_stats(
    days: int = Query(settings.AUDIT_STATS_WINDOW_DAYS, ge=1, le=365),
    ctx: RequestContext = Depends(gate(require_super_admin)),
    db: Session = Depends(get_db),
):
    """Action counts and most active admins over a trailing window (Super admin only)"""
    return {"success": True, "stats": audit.log_stats(db, days=days)}
