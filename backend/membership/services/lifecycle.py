"""Account lifecycle: registration, admin creation, status and role changes.

Status moves follow a small state machine::

    PENDING  --approve-->  APPROVED
    PENDING  --reject--->  REJECTED
    APPROVED --suspend-->  SUSPENDED
    SUSPENDED --reactivate (generic status update)--> APPROVED

plus a generic admin status update that accepts any valid status. Every
status write is a conditional UPDATE on the status that was read, so two
admins racing on the same account produce one success and one INVALID_STATUS,
never two audit entries.

Each mutating operation commits first and then calls the audit recorder.
"""
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from membership.config import settings
from membership.errors import MembershipError, bad_request, forbidden, not_found
from membership.middleware.monitoring import record_transition
from membership.models.user import User
from membership.schemas.user import AdminCreateRequest, RegisterRequest
from membership.services import audit
from membership.utils.auth import generate_member_id, hash_password
from membership.utils.gate import RequestContext
from membership.utils.logger import logger
from membership.utils.permissions import (
    ADMIN_ROLES,
    AccountStatus,
    Role,
    is_valid_role,
    is_valid_status,
)

PENDING = AccountStatus.PENDING.value
APPROVED = AccountStatus.APPROVED.value
REJECTED = AccountStatus.REJECTED.value
SUSPENDED = AccountStatus.SUSPENDED.value

BATCH_ACTIONS = ("approve", "reject")

SELF_EDITABLE_FIELDS = (
    "first_name", "last_name", "name_with_initials", "address", "date_of_birth",
    "country", "phone", "batch", "admission_number", "al_shy", "university",
    "faculty", "university_level", "engineering_field",
)
ADMIN_EDITABLE_FIELDS = SELF_EDITABLE_FIELDS + ("is_active",)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def get_account(db: Session, user_id: str) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise not_found()
    return user


def _email_taken(db: Session, email: str) -> bool:
    return db.query(User.id).filter(User.email == email).first() is not None


def check_password_strength(password: str) -> None:
    if len(password) < settings.MIN_PASSWORD_LENGTH:
        raise bad_request(
            "WEAK_PASSWORD",
            f"Password must be at least {settings.MIN_PASSWORD_LENGTH} characters long",
        )


def _invalid_status(user_status: str, verb: str, required: str) -> MembershipError:
    return bad_request(
        "INVALID_STATUS",
        f"User status is {user_status}. Can only {verb} {required} users.",
        current_status=user_status,
    )


def _compare_and_set_status(db: Session, user_id: str, expected: str, values: Dict[Any, Any]) -> bool:
    """UPDATE users SET ... WHERE id = :id AND status = :expected; True if a row changed."""
    values = dict(values)
    values[User.updated_at] = datetime.utcnow()
    changed = (
        db.query(User)
        .filter(User.id == user_id, User.status == expected)
        .update(values, synchronize_session=False)
    )
    db.commit()
    return changed == 1


def _lost_race(db: Session, user_id: str, verb: str, required: str) -> MembershipError:
    """Error for a conditional update that matched nothing."""
    db.expire_all()
    current = db.query(User.status).filter(User.id == user_id).first()
    if current is None:
        return not_found()
    return _invalid_status(current[0], verb, required)


def _transition(
    db: Session,
    ctx: RequestContext,
    user_id: str,
    expected: str,
    target: str,
    verb: str,
    action: str,
    extra_values: Optional[Dict[Any, Any]] = None,
    description: Optional[str] = None,
) -> User:
    user = get_account(db, user_id)
    if user.status != expected:
        raise _invalid_status(user.status, verb, expected)

    values = {User.status: target}
    values.update(extra_values or {})
    if not _compare_and_set_status(db, user.id, expected, values):
        raise _lost_race(db, user.id, verb, expected)

    db.refresh(user)
    record_transition(action)
    logger.info(
        f"Account {verb}: {user.id}",
        extra={"actor_id": ctx.account.id, "user_id": user.id, "action": action},
    )
    audit.record(
        db,
        ctx.account,
        action,
        resource_type="User",
        resource_id=user.id,
        description=description,
        before_state={"status": expected},
        after_state={"status": target},
        origin=ctx.origin,
        agent=ctx.agent,
    )
    return user


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------

def register_account(db: Session, data: RegisterRequest) -> User:
    """Self-registration. The account always starts as USER / PENDING / not admin."""
    check_password_strength(data.password)
    if _email_taken(db, data.email):
        raise MembershipError(409, "EMAIL_ALREADY_EXISTS", "An account with this email already exists")

    profile = data.model_dump(exclude={"email", "password", "first_name", "last_name"})

    # member_id is unique; a concurrent registration can claim the same number
    for attempt in range(3):
        user = User(
            email=data.email,
            password_hash=hash_password(data.password),
            first_name=data.first_name.strip(),
            last_name=data.last_name.strip(),
            member_id=generate_member_id(db),
            status=PENDING,
            **profile,
        )
        user.assign_role(Role.USER.value)
        db.add(user)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            if _email_taken(db, data.email):
                raise MembershipError(409, "EMAIL_ALREADY_EXISTS", "An account with this email already exists")
            if attempt == 2:
                raise
            continue
        break

    db.refresh(user)
    logger.info("Account registered", extra={"user_id": user.id})
    return user


def create_admin(db: Session, ctx: RequestContext, data: AdminCreateRequest) -> User:
    """Create an admin-tier account, APPROVED from the start. Super admins only."""
    actor = ctx.account
    if actor.role != Role.SUPER_ADMIN.value:
        raise forbidden(
            "INSUFFICIENT_PERMISSIONS",
            "Only super admins can create admin accounts",
            required_roles=[Role.SUPER_ADMIN.value],
            current_role=actor.role,
        )
    if data.role not in ADMIN_ROLES:
        raise bad_request(
            "INVALID_ROLE",
            f"Invalid admin role. Must be one of: {', '.join(sorted(ADMIN_ROLES))}",
        )
    check_password_strength(data.password)
    if _email_taken(db, data.email):
        raise MembershipError(409, "EMAIL_ALREADY_EXISTS", "An account with this email already exists")

    now = datetime.utcnow()
    user = User(
        email=data.email,
        password_hash=hash_password(data.password),
        first_name=data.first_name.strip(),
        last_name=data.last_name.strip(),
        status=APPROVED,
        approved_by_id=actor.id,
        approval_date=now,
        created_by_id=actor.id,
    )
    user.assign_role(data.role)
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise MembershipError(409, "EMAIL_ALREADY_EXISTS", "An account with this email already exists")
    db.refresh(user)

    record_transition("CREATE_ADMIN")
    audit.record(
        db,
        actor,
        "CREATE_ADMIN",
        resource_type="Admin",
        resource_id=user.id,
        description=f"Created new admin: {user.email} ({user.role})",
        after_state=user.snapshot(),
        origin=ctx.origin,
        agent=ctx.agent,
    )
    return user


# ---------------------------------------------------------------------------
# Status transitions
# ---------------------------------------------------------------------------

def approve_account(db: Session, ctx: RequestContext, user_id: str) -> User:
    return _transition(
        db, ctx, user_id,
        expected=PENDING,
        target=APPROVED,
        verb="approve",
        action="APPROVE_USER",
        extra_values={User.approved_by_id: ctx.account.id, User.approval_date: datetime.utcnow()},
    )


def reject_account(db: Session, ctx: RequestContext, user_id: str, reason: Optional[str] = None) -> User:
    description = f"Rejected user registration: {user_id}"
    if reason:
        description = f"{description}. Reason: {reason}"
    return _transition(
        db, ctx, user_id,
        expected=PENDING,
        target=REJECTED,
        verb="reject",
        action="REJECT_USER",
        description=description,
    )


def suspend_account(db: Session, ctx: RequestContext, user_id: str) -> User:
    return _transition(
        db, ctx, user_id,
        expected=APPROVED,
        target=SUSPENDED,
        verb="suspend",
        action="SUSPEND_USER",
    )


def status_action_label(old_status: str, new_status: str) -> str:
    """Audit label for a generic status change. Never used to gate the change."""
    if new_status == SUSPENDED:
        return "SUSPEND_USER"
    if old_status == SUSPENDED and new_status == APPROVED:
        return "REACTIVATE_USER"
    return "UPDATE_USER"


def update_status(db: Session, ctx: RequestContext, user_id: str, new_status: str) -> User:
    """Admin tool: move an account to any valid status."""
    if not is_valid_status(new_status):
        raise bad_request(
            "INVALID_STATUS",
            f"Invalid status. Must be one of: {', '.join(s.value for s in AccountStatus)}",
        )

    user = get_account(db, user_id)
    old_status = user.status

    values = {User.status: new_status}
    if new_status == APPROVED and user.approved_by_id is None:
        values[User.approved_by_id] = ctx.account.id
        values[User.approval_date] = datetime.utcnow()

    if not _compare_and_set_status(db, user.id, old_status, values):
        db.expire_all()
        current = db.query(User.status).filter(User.id == user.id).first()
        if current is None:
            raise not_found()
        raise bad_request(
            "INVALID_STATUS",
            "User status changed while the update was in progress",
            current_status=current[0],
        )

    db.refresh(user)
    action = status_action_label(old_status, new_status)
    record_transition(action)
    audit.record(
        db,
        ctx.account,
        action,
        resource_type="User",
        resource_id=user.id,
        description=f"Changed status of {user.email} from {old_status} to {new_status}",
        before_state={"status": old_status},
        after_state={"status": new_status},
        origin=ctx.origin,
        agent=ctx.agent,
    )
    return user


def batch_decide(db: Session, ctx: RequestContext, user_ids: Iterable[str], action: str) -> Dict[str, List[dict]]:
    """Approve or reject each id independently; one failure never stops the rest."""
    user_ids = list(user_ids or [])
    if not user_ids:
        raise bad_request("INVALID_INPUT", "user_ids must be a non-empty list")
    if action not in BATCH_ACTIONS:
        raise bad_request("INVALID_ACTION", "Action must be either 'approve' or 'reject'")

    decide = approve_account if action == "approve" else reject_account
    results: Dict[str, List[dict]] = {"success": [], "failed": []}

    for user_id in user_ids:
        try:
            user = decide(db, ctx, user_id)
        except MembershipError as exc:
            if exc.error == "INVALID_STATUS":
                reason = f"User status is {exc.context.get('current_status')}"
            elif exc.error == "USER_NOT_FOUND":
                reason = "User not found"
            else:
                reason = exc.message
            results["failed"].append({"user_id": user_id, "reason": reason})
            continue
        results["success"].append({"user_id": user.id, "email": user.email})

    logger.info(
        f"Batch {action} completed",
        extra={"actor_id": ctx.account.id, "action": action},
    )
    return results


# ---------------------------------------------------------------------------
# Role, details, deletion
# ---------------------------------------------------------------------------

def change_role(db: Session, ctx: RequestContext, user_id: str, new_role: str) -> User:
    actor = ctx.account
    if actor.role != Role.SUPER_ADMIN.value:
        raise forbidden(
            "INSUFFICIENT_PERMISSIONS",
            "Only super admins can change roles",
            required_roles=[Role.SUPER_ADMIN.value],
            current_role=actor.role,
        )
    if not is_valid_role(new_role):
        raise bad_request(
            "INVALID_ROLE",
            f"Invalid role. Must be one of: {', '.join(r.value for r in Role)}",
        )
    if user_id == actor.id and new_role != Role.SUPER_ADMIN.value:
        raise forbidden("CANNOT_DEMOTE_SELF", "You cannot demote yourself from Super Admin")

    user = get_account(db, user_id)
    before = {"role": user.role, "is_admin": user.is_admin}

    user.assign_role(new_role)
    user.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(user)

    record_transition("CHANGE_ROLE")
    audit.record(
        db,
        actor,
        "CHANGE_ROLE",
        resource_type="User",
        resource_id=user.id,
        description=f"Changed role of {user.email} from {before['role']} to {new_role}",
        before_state=before,
        after_state={"role": user.role, "is_admin": user.is_admin},
        origin=ctx.origin,
        agent=ctx.agent,
    )
    return user


def _apply_fields(user: User, fields: Dict[str, Any], allowed: Tuple[str, ...]) -> Tuple[dict, dict]:
    before, after = {}, {}
    for name, value in fields.items():
        if name not in allowed:
            continue
        current = getattr(user, name)
        if current == value:
            continue
        before[name] = current
        after[name] = value
        setattr(user, name, value)
    return before, after


def _jsonable(values: dict) -> dict:
    return {k: (v.isoformat() if hasattr(v, "isoformat") else v) for k, v in values.items()}


def update_details(
    db: Session,
    ctx: RequestContext,
    user_id: str,
    fields: Dict[str, Any],
    action: str = "UPDATE_USER",
) -> User:
    """Admin edit of profile fields. Status and role are never touched here."""
    user = get_account(db, user_id)
    before, after = _apply_fields(user, fields, ADMIN_EDITABLE_FIELDS)
    if not after:
        return user

    user.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(user)

    audit.record(
        db,
        ctx.account,
        action,
        resource_type="User",
        resource_id=user.id,
        description=f"Updated user details: {user.email}",
        before_state=_jsonable(before),
        after_state=_jsonable(after),
        origin=ctx.origin,
        agent=ctx.agent,
    )
    return user


def update_own_profile(db: Session, user_id: str, fields: Dict[str, Any], allowed: Tuple[str, ...] = SELF_EDITABLE_FIELDS) -> User:
    user = get_account(db, user_id)
    _, after = _apply_fields(user, fields, allowed)
    if after:
        user.updated_at = datetime.utcnow()
        db.commit()
        db.refresh(user)
        logger.info("Profile updated", extra={"user_id": user.id})
    return user


def delete_account(db: Session, ctx: RequestContext, user_id: str) -> dict:
    """Hard delete, super admins only. Returns the pre-deletion snapshot."""
    actor = ctx.account
    if actor.role != Role.SUPER_ADMIN.value:
        raise forbidden(
            "INSUFFICIENT_PERMISSIONS",
            "Only super admins can delete accounts",
            required_roles=[Role.SUPER_ADMIN.value],
            current_role=actor.role,
        )
    if user_id == actor.id:
        raise forbidden("CANNOT_DELETE_SELF", "You cannot delete your own account")

    user = get_account(db, user_id)
    snapshot = user.snapshot()

    # Clear self-references first; SQLite does not apply ON DELETE SET NULL by default
    db.query(User).filter(User.approved_by_id == user.id).update(
        {User.approved_by_id: None}, synchronize_session=False
    )
    db.query(User).filter(User.created_by_id == user.id).update(
        {User.created_by_id: None}, synchronize_session=False
    )
    db.delete(user)
    db.commit()

    record_transition("DELETE_USER")
    audit.record(
        db,
        actor,
        "DELETE_USER",
        resource_type="Admin" if snapshot["is_admin"] else "User",
        resource_id=snapshot["id"],
        description=f"Deleted user: {snapshot['email']}",
        before_state=snapshot,
        origin=ctx.origin,
        agent=ctx.agent,
    )
    return snapshot


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

def list_accounts(
    db: Session,
    page: int = 1,
    limit: int = 20,
    role: Optional[str] = None,
    status: Optional[str] = None,
    search: Optional[str] = None,
    members_only: bool = False,
) -> Tuple[List[User], int]:
    query = db.query(User)
    if members_only:
        query = query.filter(User.is_admin == False)  # noqa: E712
    if role:
        query = query.filter(User.role == role)
    if status:
        query = query.filter(User.status == status)
    if search:
        pattern = f"%{search.lower()}%"
        query = query.filter(or_(
            User.email.ilike(pattern),
            User.first_name.ilike(pattern),
            User.last_name.ilike(pattern),
            User.member_id.ilike(pattern),
        ))

    total = query.count()
    items = query.order_by(User.created_at.desc()).offset((page - 1) * limit).limit(limit).all()
    return items, total


def list_pending(db: Session) -> List[User]:
    return (
        db.query(User)
        .filter(User.status == PENDING, User.is_admin == False)  # noqa: E712
        .order_by(User.created_at.asc())
        .all()
    )


def member_stats(db: Session) -> Dict[str, Any]:
    members = db.query(User).filter(User.is_admin == False)  # noqa: E712
    by_status = {s.value: members.filter(User.status == s.value).count() for s in AccountStatus}
    by_role = {
        r.value: db.query(User).filter(User.role == r.value).count()
        for r in Role
    }
    return {
        "total_members": members.count(),
        "total_admins": db.query(User).filter(User.is_admin == True).count(),  # noqa: E712
        "by_status": by_status,
        "by_role": by_role,
    }


def pagination(page: int, limit: int, total: int) -> Dict[str, Any]:
    pages = (total + limit - 1) // limit if limit else 0
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": pages,
        "has_next": page < pages,
        "has_prev": page > 1,
    }
