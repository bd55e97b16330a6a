"""Audit trail recorder.

Entries are written after the business change has been committed, in their
own transaction. A failed write is logged and counted but never raised: an
approval that succeeded stays succeeded even when its audit row is lost.
"""
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from membership.middleware.monitoring import record_audit_failure
from membership.models.admin_action_log import AdminActionLog
from membership.models.user import User
from membership.utils.gate import AccountIdentity
from membership.utils.logger import logger

# Substring of the action name -> resource type label
_RESOURCE_HINTS = (
    ("user", "User"),
    ("admin", "Admin"),
    ("role", "User"),
    ("member", "User"),
    ("newsletter", "Newsletter"),
    ("project", "Project"),
    ("lms", "LMS"),
    ("scholarship", "Scholarship"),
    ("content", "Content"),
)

_DESCRIPTIONS = {
    "CREATE_ADMIN": "Created new admin: {resource_id}",
    "UPDATE_USER": "Updated user: {resource_id}",
    "UPDATE_MEMBER": "Updated member: {resource_id}",
    "DELETE_USER": "Deleted user: {resource_id}",
    "APPROVE_USER": "Approved user registration: {resource_id}",
    "REJECT_USER": "Rejected user registration: {resource_id}",
    "SUSPEND_USER": "Suspended user account: {resource_id}",
    "REACTIVATE_USER": "Reactivated user account: {resource_id}",
    "CHANGE_ROLE": "Changed user role: {resource_id}",
    "LOGIN": "Admin logged in",
    "LOGOUT": "Admin logged out",
}


def resource_type_for(action: str) -> Optional[str]:
    lowered = action.lower()
    for hint, label in _RESOURCE_HINTS:
        if hint in lowered:
            return label
    return None


def default_description(action: str, resource_id: Optional[str]) -> str:
    template = _DESCRIPTIONS.get(action)
    if template is None:
        return f"Performed action: {action}"
    return template.format(resource_id=resource_id or "unknown")


def build_entry(
    actor: AccountIdentity,
    action: str,
    resource_type: Optional[str] = None,
    resource_id: Optional[str] = None,
    description: Optional[str] = None,
    before_state: Optional[Dict[str, Any]] = None,
    after_state: Optional[Dict[str, Any]] = None,
    origin: Optional[str] = None,
    agent: Optional[str] = None,
) -> AdminActionLog:
    """Build (but do not persist) an entry, denormalizing the actor."""
    return AdminActionLog(
        admin_id=actor.id,
        admin_email=actor.email,
        admin_role=actor.role,
        action=action,
        resource_type=resource_type or resource_type_for(action),
        resource_id=resource_id,
        description=description or default_description(action, resource_id),
        before_state=before_state,
        after_state=after_state,
        ip_address=origin,
        user_agent=agent,
        created_at=datetime.utcnow(),
    )


def record(
    db: Session,
    actor: AccountIdentity,
    action: str,
    resource_type: Optional[str] = None,
    resource_id: Optional[str] = None,
    description: Optional[str] = None,
    before_state: Optional[Dict[str, Any]] = None,
    after_state: Optional[Dict[str, Any]] = None,
    origin: Optional[str] = None,
    agent: Optional[str] = None,
) -> Optional[AdminActionLog]:
    """Persist one audit entry. Returns None when the write fails."""
    try:
        entry = build_entry(
            actor,
            action,
            resource_type=resource_type,
            resource_id=resource_id,
            description=description,
            before_state=before_state,
            after_state=after_state,
            origin=origin,
            agent=agent,
        )
        db.add(entry)
        db.commit()
        db.refresh(entry)
    except Exception as exc:
        db.rollback()
        record_audit_failure(action)
        logger.error(
            "Failed to write audit entry",
            extra={"actor_id": actor.id, "action": action, "error": str(exc)},
            exc_info=True,
        )
        return None

    logger.info(
        f"Audit entry recorded: {action}",
        extra={"actor_id": actor.id, "action": action},
    )
    return entry


# ---------------------------------------------------------------------------
# Read side
# ---------------------------------------------------------------------------

def query_logs(
    db: Session,
    admin_id: Optional[str] = None,
    action: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    page: int = 1,
    limit: int = 50,
) -> Tuple[List[AdminActionLog], int]:
    """Filtered, newest-first page of entries plus the total match count."""
    query = db.query(AdminActionLog)

    if admin_id:
        query = query.filter(AdminActionLog.admin_id == admin_id)
    if action:
        query = query.filter(AdminActionLog.action == action)
    if start:
        query = query.filter(AdminActionLog.created_at >= start)
    if end:
        query = query.filter(AdminActionLog.created_at <= end)

    total = query.count()
    items = (
        query.order_by(AdminActionLog.created_at.desc(), AdminActionLog.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return items, total


def log_stats(db: Session, days: int = 30, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Counts per action and the ten most active actors over a trailing window."""
    now = now or datetime.utcnow()
    since = now - timedelta(days=days)
    window = db.query(AdminActionLog).filter(AdminActionLog.created_at >= since)

    total = window.count()

    per_action = (
        db.query(AdminActionLog.action, func.count(AdminActionLog.id).label("count"))
        .filter(AdminActionLog.created_at >= since)
        .group_by(AdminActionLog.action)
        .order_by(func.count(AdminActionLog.id).desc())
        .all()
    )

    # Grouped on the denormalized email so deleted actors still show up
    active = (
        db.query(
            AdminActionLog.admin_id,
            AdminActionLog.admin_email,
            func.count(AdminActionLog.id).label("count"),
        )
        .filter(AdminActionLog.created_at >= since)
        .group_by(AdminActionLog.admin_id, AdminActionLog.admin_email)
        .order_by(func.count(AdminActionLog.id).desc())
        .limit(10)
        .all()
    )

    actor_ids = [row.admin_id for row in active if row.admin_id]
    roles = {}
    if actor_ids:
        roles = dict(db.query(User.id, User.role).filter(User.id.in_(actor_ids)).all())

    return {
        "period_days": days,
        "total_actions": total,
        "action_stats": [{"action": row.action, "count": row.count} for row in per_action],
        "most_active_admins": [
            {
                "admin_id": row.admin_id,
                "email": row.admin_email,
                "role": roles.get(row.admin_id),
                "action_count": row.count,
            }
            for row in active
        ],
    }
