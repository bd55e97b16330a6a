"""Authorization gate: identity resolution and composable request checks.

Every check is a plain function ``(ctx, registry) -> RequestContext | Denial``.
A check never mutates the context and never raises; it either hands the
context on or returns the Denial that ends the request. ``run_checks`` applies
a route's chain in order and stops at the first Denial.

Checks that need an identity fail with 401 NOT_AUTHENTICATED when none is
present, so "who are you" is never reported as "you may not".

This module knows nothing about FastAPI. The HTTP glue lives in
``membership.api.deps``.
"""
import math
from datetime import datetime
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Sequence, Union

from membership.errors import MembershipError
from membership.utils.permissions import AccountStatus, PermissionRegistry, Role, as_key


class Denial(NamedTuple):
    """Why a request was stopped. Rendered as the structured error body."""
    status_code: int
    error: str
    message: str
    context: Optional[Dict[str, Any]] = None

    def to_error(self) -> MembershipError:
        return MembershipError(self.status_code, self.error, self.message, dict(self.context or {}))


class AccountIdentity(NamedTuple):
    """Snapshot of the authenticated account. Never carries the credential."""
    id: str
    email: str
    role: str
    status: str
    is_admin: bool
    first_name: str = ""
    last_name: str = ""

    @classmethod
    def from_user(cls, user) -> "AccountIdentity":
        return cls(
            id=user.id,
            email=user.email,
            role=user.role,
            status=user.status,
            is_admin=bool(user.is_admin),
            first_name=user.first_name or "",
            last_name=user.last_name or "",
        )


class RequestContext(NamedTuple):
    """Immutable per-request state threaded through the checks."""
    account: Optional[AccountIdentity]
    target_id: Optional[str] = None   # path-supplied account id, for ownership checks
    origin: Optional[str] = None      # client IP
    agent: Optional[str] = None       # User-Agent


CheckResult = Union[RequestContext, Denial]
Check = Callable[[Optional[RequestContext], PermissionRegistry], CheckResult]

NOT_AUTHENTICATED = Denial(401, "NOT_AUTHENTICATED", "Authentication required.")


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------

def parse_bearer(header: Optional[str]) -> Union[str, Denial]:
    """Extract the token from an ``Authorization: Bearer <token>`` header."""
    if not header or not header.startswith("Bearer "):
        return Denial(401, "MISSING_TOKEN", "Access denied. No token provided.")
    token = header[len("Bearer "):].strip()
    if not token:
        return Denial(401, "INVALID_TOKEN_FORMAT", "Invalid token format.")
    return token


def verify_identity(user, now: Optional[datetime] = None) -> Union[AccountIdentity, Denial]:
    """Decide whether a resolved account row may act at all.

    Order matters: existence, then deactivation, then lockout, then standing.
    Admins bypass the approval requirement so they can always operate, but a
    suspended admin is still stopped.
    """
    if user is None:
        return Denial(404, "USER_NOT_FOUND", "User not found.")

    if not user.is_active:
        return Denial(403, "ACCOUNT_INACTIVE", "Account is inactive. Please contact support.")

    now = now or datetime.utcnow()
    if user.account_locked_until is not None and user.account_locked_until > now:
        remaining = math.ceil((user.account_locked_until - now).total_seconds() / 60)
        return Denial(
            403,
            "ACCOUNT_LOCKED",
            f"Account is temporarily locked. Try again in {remaining} minutes.",
            {"lockout_ends_at": user.account_locked_until.isoformat(), "remaining_minutes": remaining},
        )

    if user.status != AccountStatus.APPROVED.value and not user.is_admin:
        return Denial(
            403,
            "ACCOUNT_NOT_APPROVED",
            "Your account is not approved yet.",
            {"status": user.status},
        )

    if user.status == AccountStatus.SUSPENDED.value:
        return Denial(403, "ACCOUNT_SUSPENDED", "Your account has been suspended.")

    return AccountIdentity.from_user(user)


# ---------------------------------------------------------------------------
# Checks
# ---------------------------------------------------------------------------

def _authenticated(ctx: Optional[RequestContext]) -> bool:
    return ctx is not None and ctx.account is not None


def _named(check: Callable, name: str) -> Check:
    check.__name__ = name
    return check


def require_admin(ctx: Optional[RequestContext], registry: PermissionRegistry) -> CheckResult:
    if not _authenticated(ctx):
        return NOT_AUTHENTICATED
    if not ctx.account.is_admin:
        return Denial(
            403,
            "INSUFFICIENT_PERMISSIONS",
            "Admin access required.",
            {"current_role": ctx.account.role},
        )
    return ctx


def require_role(*roles: str) -> Check:
    """Pass iff the account's role is one of ``roles``."""
    allowed = [as_key(r) for r in roles]

    def _check(ctx: Optional[RequestContext], registry: PermissionRegistry) -> CheckResult:
        if not _authenticated(ctx):
            return NOT_AUTHENTICATED
        if ctx.account.role not in allowed:
            return Denial(
                403,
                "INSUFFICIENT_PERMISSIONS",
                "You do not have the required role for this action.",
                {"required_roles": allowed, "current_role": ctx.account.role},
            )
        return ctx

    return _named(_check, "require_role_" + "_".join(a.lower() for a in allowed))


require_super_admin = require_role(Role.SUPER_ADMIN)


def require_permission(*permissions: str) -> Check:
    """Pass iff the role holds every permission listed."""
    required = [as_key(p) for p in permissions]

    def _check(ctx: Optional[RequestContext], registry: PermissionRegistry) -> CheckResult:
        if not _authenticated(ctx):
            return NOT_AUTHENTICATED
        if not registry.has_all_permissions(ctx.account.role, required):
            return Denial(
                403,
                "INSUFFICIENT_PERMISSIONS",
                "You do not have permission to perform this action.",
                {"required_permissions": required, "current_role": ctx.account.role},
            )
        return ctx

    return _named(_check, "require_permission_" + "_".join(required))


def require_any_permission(*permissions: str) -> Check:
    """Pass iff the role holds at least one permission listed."""
    required = [as_key(p) for p in permissions]

    def _check(ctx: Optional[RequestContext], registry: PermissionRegistry) -> CheckResult:
        if not _authenticated(ctx):
            return NOT_AUTHENTICATED
        if not registry.has_any_permission(ctx.account.role, required):
            return Denial(
                403,
                "INSUFFICIENT_PERMISSIONS",
                "You do not have permission to perform this action.",
                {"required_permissions": required, "current_role": ctx.account.role},
            )
        return ctx

    return _named(_check, "require_any_permission_" + "_".join(required))


def require_ownership(resource_type: str) -> Check:
    """Admins pass; everyone else only when the path targets their own account."""

    def _check(ctx: Optional[RequestContext], registry: PermissionRegistry) -> CheckResult:
        if not _authenticated(ctx):
            return NOT_AUTHENTICATED
        if ctx.account.is_admin:
            return ctx
        if ctx.target_id is not None and ctx.target_id == ctx.account.id:
            return ctx
        return Denial(
            403,
            "INSUFFICIENT_PERMISSIONS",
            f"You can only access your own {resource_type}.",
            {"resource_type": resource_type},
        )

    return _named(_check, f"require_ownership_{resource_type}")


def require_self_or_admin(ctx: Optional[RequestContext], registry: PermissionRegistry) -> CheckResult:
    if not _authenticated(ctx):
        return NOT_AUTHENTICATED
    if ctx.account.is_admin or (ctx.target_id is not None and ctx.target_id == ctx.account.id):
        return ctx
    return Denial(
        403,
        "INSUFFICIENT_PERMISSIONS",
        "You can only modify your own account.",
        {"current_role": ctx.account.role},
    )


def require_approved_account(ctx: Optional[RequestContext], registry: PermissionRegistry) -> CheckResult:
    if not _authenticated(ctx):
        return NOT_AUTHENTICATED
    if ctx.account.status != AccountStatus.APPROVED.value:
        return Denial(
            403,
            "ACCOUNT_NOT_APPROVED",
            "This feature is only available to approved members.",
            {"current_status": ctx.account.status},
        )
    return ctx


def run_checks(
    ctx: Optional[RequestContext],
    registry: PermissionRegistry,
    checks: Sequence[Check],
) -> CheckResult:
    """Apply ``checks`` in order; the first Denial wins and the rest never run."""
    for check in checks:
        result = check(ctx, registry)
        if isinstance(result, Denial):
            return result
        ctx = result
    if ctx is None:
        return NOT_AUTHENTICATED
    return ctx


def effective_permissions(role: str, registry: PermissionRegistry) -> List[str]:
    """Sorted permission names held by ``role``, as reported to clients."""
    return sorted(registry.permissions_of(role))
