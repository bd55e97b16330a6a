"""Member portal: registration, login and own-profile endpoints"""
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from membership.api.deps import gate, get_request_context
from membership.database import get_db
from membership.middleware.rate_limit import get_rate_limit, limiter
from membership.schemas.user import LoginRequest, ProfileUpdate, RegisterRequest, UserResponse
from membership.services import authentication, lifecycle
from membership.utils.gate import RequestContext, require_approved_account, require_ownership, require_self_or_admin

router = APIRouter(tags=["auth"])


@router.post("/auth/register", status_code=status.HTTP_201_CREATED)
@limiter.limit(get_rate_limit("register"))
def register(request: Request, data: RegisterRequest, db: Session = Depends(get_db)):
    """
    Self-register a member account.

    The account lands in USER / PENDING and cannot log in until an admin
    approves it.
    """
    user = lifecycle.register_account(db, data)
    return {
        "success": True,
        "message": "Registration successful. Your account is pending approval.",
        "user": UserResponse.model_validate(user),
    }


@router.post("/auth/login")
@limiter.limit(get_rate_limit("login"))
def login(request: Request, credentials: LoginRequest, db: Session = Depends(get_db)):
    """Member login. Admin accounts must use /admin/auth/login."""
    user, token = authentication.member_login(db, credentials.email, credentials.password)
    return {
        "success": True,
        "message": "Login successful",
        "token": token,
        "user": {
            "id": user.id,
            "email": user.email,
            "first_name": user.first_name,
            "last_name": user.last_name,
            "full_name": user.full_name,
            "role": user.role,
        },
    }


@router.post("/auth/logout")
def logout(ctx: RequestContext = Depends(get_request_context)):
    """Tokens are stateless; the client discards its copy."""
    return {"success": True, "message": "Logout successful"}


@router.get("/auth/profile")
def get_profile(ctx: RequestContext = Depends(get_request_context), db: Session = Depends(get_db)):
    user = lifecycle.get_account(db, ctx.account.id)
    return {"success": True, "user": UserResponse.model_validate(user)}


@router.put("/auth/profile")
def update_profile(
    data: ProfileUpdate,
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    user = lifecycle.update_own_profile(db, ctx.account.id, data.model_dump(exclude_unset=True))
    return {"success": True, "message": "Profile updated successfully", "user": UserResponse.model_validate(user)}


# ---------------------------------------------------------------------------
# Account-addressed routes, gated by ownership
# ---------------------------------------------------------------------------

@router.get("/users/{user_id}")
def get_user_profile(
    user_id: str,
    ctx: RequestContext = Depends(gate(require_ownership("profile"))),
    db: Session = Depends(get_db),
):
    """A member may read their own profile; admins may read any."""
    user = lifecycle.get_account(db, user_id)
    return {"success": True, "user": UserResponse.model_validate(user)}


@router.put("/users/{user_id}/profile")
def update_user_profile(
    user_id: str,
    data: ProfileUpdate,
    ctx: RequestContext = Depends(gate(require_self_or_admin, require_approved_account)),
    db: Session = Depends(get_db),
):
    """Member-only profile edit: the caller must own the account and be APPROVED."""
    user = lifecycle.update_own_profile(db, user_id, data.model_dump(exclude_unset=True))
    return {"success": True, "message": "Profile updated successfully", "user": UserResponse.model_validate(user)}
