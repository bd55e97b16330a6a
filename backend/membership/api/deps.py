"""API dependencies for authentication and authorization.

Routes declare their gate chain with :func:`gate`::

    @router.post("/{user_id}/approve")
    def approve(ctx: RequestContext = Depends(gate(require_permission(Permission.APPROVE_USER)))):
        ...

Identity is resolved once per request by :func:`get_request_context`; the
checks themselves are the pure functions in :mod:`membership.utils.gate`. The
first Denial is raised here as a :class:`MembershipError`, the only place the
gate's result turns into an exception.
"""
from typing import Callable, Optional

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from membership.database import get_db
from membership.middleware.monitoring import record_gate_denial
from membership.models.user import User
from membership.utils.gate import (
    Check,
    Denial,
    RequestContext,
    parse_bearer,
    run_checks,
    verify_identity,
)
from membership.utils.jwt_utils import decode_access_token
from membership.utils.logger import logger
from membership.utils.permissions import PermissionRegistry, default_registry

# Path parameters treated as the target account for ownership checks
_TARGET_PARAMS = ("user_id", "id")


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

def get_registry() -> PermissionRegistry:
    """The permission registry used by the gate. Override in tests to inject another."""
    return default_registry


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _deny(denial: Denial, request: Request) -> None:
    record_gate_denial(denial.error)
    logger.info(
        f"Request denied: {denial.error}",
        extra={"path": request.url.path, "method": request.method, "error": denial.error},
    )
    raise denial.to_error()


def client_origin(request: Request) -> Optional[str]:
    return request.client.host if request.client else None


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------

def get_request_context(
    request: Request,
    authorization: Optional[str] = Header(None),
    db: Session = Depends(get_db),
) -> RequestContext:
    """Resolve the bearer token to an account and build the request context.

    The token only identifies the account; role and status are always read
    fresh from the database.
    """
    token = parse_bearer(authorization)
    if isinstance(token, Denial):
        _deny(token, request)

    payload = decode_access_token(token)
    if isinstance(payload, Denial):
        _deny(payload, request)

    user = db.query(User).filter(User.id == payload["sub"]).first()
    identity = verify_identity(user)
    if isinstance(identity, Denial):
        _deny(identity, request)

    target_id = next(
        (request.path_params[name] for name in _TARGET_PARAMS if name in request.path_params),
        None,
    )
    return RequestContext(
        account=identity,
        target_id=target_id,
        origin=client_origin(request),
        agent=request.headers.get("user-agent"),
    )


# ---------------------------------------------------------------------------
# gate factory
# ---------------------------------------------------------------------------

def gate(*checks: Check) -> Callable:
    """Return a FastAPI dependency that runs ``checks`` in order after identity.

    Resolves to the :class:`RequestContext` when every check passes.
    """

    def _gate_dep(
        request: Request,
        ctx: RequestContext = Depends(get_request_context),
        registry: PermissionRegistry = Depends(get_registry),
    ) -> RequestContext:
        result = run_checks(ctx, registry, checks)
        if isinstance(result, Denial):
            _deny(result, request)
        return result

    # Give FastAPI a unique name so it doesn't collapse distinct dependencies
    _gate_dep.__name__ = "gate_" + "_".join(getattr(c, "__name__", "check") for c in checks)
    return _gate_dep
