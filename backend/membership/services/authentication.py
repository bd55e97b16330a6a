"""Login and credential management for the member and admin portals"""
import math
from datetime import datetime
from typing import Tuple

from sqlalchemy.orm import Session

from membership.errors import MembershipError, forbidden
from membership.middleware.monitoring import record_login_failure
from membership.models.user import User
from membership.services import audit
from membership.services.lifecycle import check_password_strength, get_account
from membership.utils.auth import hash_password, record_failed_login, record_successful_login, verify_password
from membership.utils.gate import AccountIdentity, RequestContext
from membership.utils.jwt_utils import create_access_token
from membership.utils.logger import logger
from membership.utils.permissions import AccountStatus

_NOT_APPROVED_MESSAGES = {
    AccountStatus.PENDING.value: "Your account is pending approval. Please wait for administrator verification.",
    AccountStatus.REJECTED.value: "Your registration has been rejected. Please contact support for more information.",
    AccountStatus.SUSPENDED.value: "Your account has been suspended. Please contact support.",
}


def _invalid_credentials(portal: str) -> MembershipError:
    record_login_failure(portal, "INVALID_CREDENTIALS")
    return MembershipError(401, "INVALID_CREDENTIALS", "Invalid email or password")


def _locked(user: User, now: datetime) -> MembershipError:
    remaining = math.ceil((user.account_locked_until - now).total_seconds() / 60)
    return forbidden(
        "ACCOUNT_LOCKED",
        "Account temporarily locked due to too many failed login attempts. "
        f"Please try again in {remaining} minutes.",
        lockout_ends_at=user.account_locked_until.isoformat(),
        remaining_minutes=remaining,
    )


def _check_password(db: Session, user: User, password: str, portal: str) -> None:
    if not verify_password(password, user.password_hash):
        attempts = record_failed_login(db, user)
        logger.warning(
            "Failed login attempt",
            extra={"user_id": user.id, "action": f"{portal}_login"},
        )
        if user.is_locked():
            record_login_failure(portal, "ACCOUNT_LOCKED")
            logger.warning(f"Account locked after {attempts} failed attempts", extra={"user_id": user.id})
        raise _invalid_credentials(portal)


def member_login(db: Session, email: str, password: str) -> Tuple[User, str]:
    """Member portal login. Admin accounts are sent to the admin portal."""
    now = datetime.utcnow()
    user = db.query(User).filter(User.email == email).first()
    if user is None:
        raise _invalid_credentials("user")

    if user.is_admin:
        raise forbidden(
            "ADMIN_LOGIN_REQUIRED",
            "Admin accounts must login through the admin portal",
        )

    if user.status != AccountStatus.APPROVED.value:
        record_login_failure("user", "ACCOUNT_NOT_APPROVED")
        raise forbidden(
            "ACCOUNT_NOT_APPROVED",
            _NOT_APPROVED_MESSAGES.get(user.status, "Account access denied"),
            status=user.status,
        )

    if user.is_locked(now):
        raise _locked(user, now)

    if not user.is_active:
        raise forbidden("ACCOUNT_INACTIVE", "Your account is inactive. Please contact support.")

    _check_password(db, user, password, "user")

    record_successful_login(db, user, now)
    token = create_access_token(user.id, "user", {"email": user.email, "role": user.role})
    logger.info("Member logged in", extra={"user_id": user.id})
    return user, token


def admin_login(db: Session, email: str, password: str, origin: str = None, agent: str = None) -> Tuple[User, str]:
    """Admin portal login; a successful login is written to the audit trail."""
    now = datetime.utcnow()
    user = db.query(User).filter(User.email == email).first()
    if user is None:
        raise _invalid_credentials("admin")

    if not user.is_admin:
        record_login_failure("admin", "NOT_ADMIN_ACCOUNT")
        raise forbidden("NOT_ADMIN_ACCOUNT", "This account does not have admin privileges")

    if user.is_locked(now):
        raise _locked(user, now)

    if user.status == AccountStatus.SUSPENDED.value:
        raise forbidden("ACCOUNT_SUSPENDED", "Your admin account has been suspended")

    if not user.is_active:
        raise forbidden("ACCOUNT_INACTIVE", "Your account is inactive. Please contact support.")

    _check_password(db, user, password, "admin")

    record_successful_login(db, user, now)
    token = create_access_token(user.id, "admin", {"email": user.email, "role": user.role})

    audit.record(
        db,
        AccountIdentity.from_user(user),
        "LOGIN",
        resource_type="Admin",
        resource_id=user.id,
        origin=origin,
        agent=agent,
    )
    return user, token


def admin_logout(db: Session, ctx: RequestContext) -> None:
    audit.record(
        db,
        ctx.account,
        "LOGOUT",
        resource_type="Admin",
        resource_id=ctx.account.id,
        origin=ctx.origin,
        agent=ctx.agent,
    )


def change_password(db: Session, ctx: RequestContext, current_password: str, new_password: str) -> None:
    user = get_account(db, ctx.account.id)
    if not verify_password(current_password, user.password_hash):
        raise MembershipError(401, "INVALID_PASSWORD", "Current password is incorrect")
    check_password_strength(new_password)

    user.password_hash = hash_password(new_password)
    user.updated_at = datetime.utcnow()
    db.commit()

    logger.info("Password changed", extra={"user_id": user.id})
    if ctx.account.is_admin:
        audit.record(
            db,
            ctx.account,
            "UPDATE_USER",
            resource_type="Admin",
            resource_id=user.id,
            description="Changed own password",
            origin=ctx.origin,
            agent=ctx.agent,
        )
