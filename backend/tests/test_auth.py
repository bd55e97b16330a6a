"""Tests for registration, login and token-based identity"""
from datetime import datetime, timedelta

from jose import jwt

from conftest import DEFAULT_PASSWORD, token_headers
from membership.config import settings
from membership.middleware.rate_limit import get_rate_limit
from membership.models.user import User
from membership.utils.jwt_utils import get_private_key


def registration(**overrides):
    payload = {
        "email": "new.member@example.org",
        "password": "secret123",
        "first_name": "New",
        "last_name": "Member",
        "batch": "2015",
        "university": "University of Moratuwa",
    }
    payload.update(overrides)
    return payload


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------

def test_register_creates_pending_user(client, db):
    """Test self-registration lands in USER / PENDING with a member id"""
    response = client.post("/auth/register", json=registration())

    assert response.status_code == 201
    data = response.json()
    assert data["success"] is True
    user = data["user"]
    assert user["role"] == "USER"
    assert user["status"] == "PENDING"
    assert user["is_admin"] is False
    assert user["member_id"] == f"SC/{datetime.utcnow().strftime('%y')}/0001"
    assert "password" not in user
    assert "password_hash" not in user


def test_register_numbers_member_ids_sequentially(client):
    """Test consecutive registrations get consecutive member ids"""
    first = client.post("/auth/register", json=registration(email="a@example.org")).json()["user"]
    second = client.post("/auth/register", json=registration(email="b@example.org")).json()["user"]

    assert first["member_id"].endswith("/0001")
    assert second["member_id"].endswith("/0002")


def test_register_ignores_requested_role(client, db):
    """Test a client cannot pick its own role or status at registration"""
    response = client.post(
        "/auth/register",
        json=registration(role="SUPER_ADMIN", status="APPROVED", is_admin=True),
    )

    assert response.status_code == 201
    stored = db.query(User).filter(User.email == "new.member@example.org").first()
    assert stored.role == "USER"
    assert stored.status == "PENDING"
    assert stored.is_admin is False


def test_register_normalises_email(client):
    """Test email is stored trimmed and lower-cased"""
    response = client.post("/auth/register", json=registration(email="  Mixed.Case@Example.ORG "))
    assert response.json()["user"]["email"] == "mixed.case@example.org"


def test_register_duplicate_email(client, member):
    """Test registering an existing email"""
    response = client.post("/auth/register", json=registration(email=member.email))

    assert response.status_code == 409
    assert response.json()["error"] == "EMAIL_ALREADY_EXISTS"


def test_register_weak_password(client):
    """Test passwords below the minimum length are refused"""
    response = client.post("/auth/register", json=registration(password="123"))

    assert response.status_code == 400
    assert response.json()["error"] == "WEAK_PASSWORD"


def test_register_missing_fields(client):
    """Test malformed bodies produce a structured validation error"""
    response = client.post("/auth/register", json={"password": "secret123"})

    assert response.status_code == 400
    data = response.json()
    assert data["success"] is False
    assert data["error"] == "VALIDATION_ERROR"
    fields = {e["field"] for e in data["errors"]}
    assert {"email", "first_name", "last_name"} <= fields


# ---------------------------------------------------------------------------
# Member login
# ---------------------------------------------------------------------------

def test_member_login_success(client, member, db):
    """Test an approved member gets a token that works on the profile route"""
    response = client.post("/auth/login", json={"email": member.email, "password": DEFAULT_PASSWORD})

    assert response.status_code == 200
    data = response.json()
    assert data["user"]["id"] == member.id
    assert data["user"]["role"] == "USER"

    profile = client.get("/auth/profile", headers={"Authorization": f"Bearer {data['token']}"})
    assert profile.status_code == 200
    assert profile.json()["user"]["email"] == member.email

    db.refresh(member)
    assert member.last_login is not None


def test_member_login_pending(client, pending_user):
    """Test a pending registration cannot log in"""
    response = client.post("/auth/login", json={"email": pending_user.email, "password": DEFAULT_PASSWORD})

    assert response.status_code == 403
    data = response.json()
    assert data["error"] == "ACCOUNT_NOT_APPROVED"
    assert data["status"] == "PENDING"


def test_member_login_rejected(client, make_user):
    """Test a rejected registration gets its own message"""
    user = make_user(status="REJECTED")
    response = client.post("/auth/login", json={"email": user.email, "password": DEFAULT_PASSWORD})

    assert response.status_code == 403
    assert response.json()["status"] == "REJECTED"
    assert "rejected" in response.json()["message"]


def test_member_login_unknown_email(client):
    """Test unknown emails and wrong passwords look the same"""
    response = client.post("/auth/login", json={"email": "nobody@example.org", "password": "whatever"})

    assert response.status_code == 401
    assert response.json()["error"] == "INVALID_CREDENTIALS"


def test_member_login_refuses_admins(client, member_admin):
    """Test admin accounts are sent to the admin portal"""
    response = client.post("/auth/login", json={"email": member_admin.email, "password": DEFAULT_PASSWORD})

    assert response.status_code == 403
    assert response.json()["error"] == "ADMIN_LOGIN_REQUIRED"


def test_member_login_lockout(client, member, db):
    """Test the account locks after repeated failures, even for the right password"""
    for _ in range(settings.MAX_LOGIN_ATTEMPTS):
        response = client.post("/auth/login", json={"email": member.email, "password": "wrong-password"})
        assert response.status_code == 401
        assert response.json()["error"] == "INVALID_CREDENTIALS"

    db.refresh(member)
    assert member.login_attempts == settings.MAX_LOGIN_ATTEMPTS
    assert member.account_locked_until is not None

    response = client.post("/auth/login", json={"email": member.email, "password": DEFAULT_PASSWORD})
    assert response.status_code == 403
    data = response.json()
    assert data["error"] == "ACCOUNT_LOCKED"
    assert 0 < data["remaining_minutes"] <= settings.LOCKOUT_MINUTES


def test_successful_login_resets_failure_count(client, member, db):
    """Test a good login clears earlier failures"""
    client.post("/auth/login", json={"email": member.email, "password": "wrong-password"})
    client.post("/auth/login", json={"email": member.email, "password": DEFAULT_PASSWORD})

    db.refresh(member)
    assert member.login_attempts == 0


def test_expired_lock_restarts_count(client, member, db):
    """Test a failure after the lock expired counts as the first"""
    member.login_attempts = settings.MAX_LOGIN_ATTEMPTS
    member.account_locked_until = datetime.utcnow() - timedelta(minutes=1)
    db.commit()

    client.post("/auth/login", json={"email": member.email, "password": "wrong-password"})

    db.refresh(member)
    assert member.login_attempts == 1
    assert member.account_locked_until is None


# ---------------------------------------------------------------------------
# Admin login
# ---------------------------------------------------------------------------

def test_admin_login_success(client, member_admin, audit_entries):
    """Test admin login returns effective permissions and writes a LOGIN entry"""
    response = client.post("/admin/auth/login", json={"email": member_admin.email, "password": DEFAULT_PASSWORD})

    assert response.status_code == 200
    data = response.json()
    assert data["token"]
    assert data["user"]["role"] == "MEMBER_ADMIN"
    assert "approve_user" in data["permissions"]
    assert "create_admin" not in data["permissions"]

    entries = audit_entries("LOGIN")
    assert len(entries) == 1
    assert entries[0].admin_id == member_admin.id
    assert entries[0].admin_email == member_admin.email


def test_admin_login_refuses_members(client, member):
    """Test non-admin accounts cannot use the admin portal"""
    response = client.post("/admin/auth/login", json={"email": member.email, "password": DEFAULT_PASSWORD})

    assert response.status_code == 403
    assert response.json()["error"] == "NOT_ADMIN_ACCOUNT"


def test_admin_login_suspended(client, make_user):
    """Test suspended admins cannot log in"""
    admin = make_user(role="CONTENT_ADMIN", status="SUSPENDED")
    response = client.post("/admin/auth/login", json={"email": admin.email, "password": DEFAULT_PASSWORD})

    assert response.status_code == 403
    assert response.json()["error"] == "ACCOUNT_SUSPENDED"


def test_admin_login_wrong_password(client, member_admin, audit_entries):
    """Test a failed admin login leaves no audit entry"""
    response = client.post("/admin/auth/login", json={"email": member_admin.email, "password": "nope-nope"})

    assert response.status_code == 401
    assert audit_entries("LOGIN") == []


def test_admin_verify_reports_capabilities(client, content_admin):
    """Test verify lists permissions and accessible resources"""
    response = client.get("/admin/auth/verify", headers=token_headers(content_admin))

    assert response.status_code == 200
    data = response.json()
    assert data["accessible_resources"] == ["lms", "project", "scholarship"]
    assert "manage_projects" in data["permissions"]
    assert "approve_user" not in data["permissions"]


def test_admin_logout_is_audited(client, member_admin, audit_entries):
    """Test admin logout writes a LOGOUT entry"""
    response = client.post("/admin/auth/logout", headers=token_headers(member_admin))

    assert response.status_code == 200
    assert len(audit_entries("LOGOUT")) == 1


def test_admin_routes_refuse_member_tokens(client, member):
    """Test admin portal routes need an admin account"""
    response = client.get("/admin/auth/verify", headers=token_headers(member))

    assert response.status_code == 403
    data = response.json()
    assert data["error"] == "INSUFFICIENT_PERMISSIONS"
    assert data["current_role"] == "USER"


def test_admin_change_password(client, member_admin, audit_entries):
    """Test password change checks the current password and is audited"""
    headers = token_headers(member_admin)

    wrong = client.put(
        "/admin/auth/change-password",
        json={"current_password": "not-it", "new_password": "brand-new-pass"},
        headers=headers,
    )
    assert wrong.status_code == 401
    assert wrong.json()["error"] == "INVALID_PASSWORD"

    weak = client.put(
        "/admin/auth/change-password",
        json={"current_password": DEFAULT_PASSWORD, "new_password": "123"},
        headers=headers,
    )
    assert weak.status_code == 400
    assert weak.json()["error"] == "WEAK_PASSWORD"

    ok = client.put(
        "/admin/auth/change-password",
        json={"current_password": DEFAULT_PASSWORD, "new_password": "brand-new-pass"},
        headers=headers,
    )
    assert ok.status_code == 200
    assert len(audit_entries("UPDATE_USER")) == 1

    login = client.post("/admin/auth/login", json={"email": member_admin.email, "password": "brand-new-pass"})
    assert login.status_code == 200


def test_admin_profile_update_limited_fields(client, member_admin, db):
    """Test admins edit only their name and phone through the admin profile"""
    response = client.put(
        "/admin/auth/profile",
        json={"phone": "+94 77 123 4567", "university": "Elsewhere"},
        headers=token_headers(member_admin),
    )

    assert response.status_code == 200
    db.refresh(member_admin)
    assert member_admin.phone == "+94 77 123 4567"
    assert member_admin.university is None


# ---------------------------------------------------------------------------
# Token handling
# ---------------------------------------------------------------------------

def test_missing_token(client):
    """Test requests without a token"""
    response = client.get("/auth/profile")

    assert response.status_code == 401
    data = response.json()
    assert data["success"] is False
    assert data["error"] == "MISSING_TOKEN"


def test_non_bearer_header(client):
    """Test a non-bearer Authorization header counts as missing"""
    response = client.get("/auth/profile", headers={"Authorization": "Basic dXNlcjpwYXNz"})
    assert response.json()["error"] == "MISSING_TOKEN"


def test_invalid_token(client):
    """Test garbage tokens"""
    response = client.get("/auth/profile", headers={"Authorization": "Bearer not.a.jwt"})

    assert response.status_code == 401
    assert response.json()["error"] == "INVALID_TOKEN"


def test_expired_token(client, member):
    """Test tokens past their expiry"""
    response = client.get("/auth/profile", headers=token_headers(member, expires_in=-60))

    assert response.status_code == 401
    assert response.json()["error"] == "TOKEN_EXPIRED"


def test_token_without_subject(client):
    """Test a correctly signed token that names no account"""
    token = jwt.encode(
        {"exp": int((datetime.utcnow() + timedelta(hours=1)).timestamp()), "type": "user"},
        get_private_key(),
        algorithm=settings.JWT_ALGORITHM,
    )
    response = client.get("/auth/profile", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert response.json()["error"] == "INVALID_TOKEN_PAYLOAD"


def test_token_for_deleted_account(client, member, db):
    """Test a valid token whose account no longer exists"""
    headers = token_headers(member)
    db.delete(member)
    db.commit()

    response = client.get("/auth/profile", headers=headers)
    assert response.status_code == 404
    assert response.json()["error"] == "USER_NOT_FOUND"


def test_token_for_locked_account(client, member, db):
    """Test lockout applies to already-issued tokens"""
    member.account_locked_until = datetime.utcnow() + timedelta(minutes=10)
    db.commit()

    response = client.get("/auth/profile", headers=token_headers(member))
    assert response.status_code == 403
    data = response.json()
    assert data["error"] == "ACCOUNT_LOCKED"
    assert data["remaining_minutes"] in (10, 11)


def test_token_for_inactive_account(client, member, db):
    """Test deactivated accounts are refused"""
    member.is_active = False
    db.commit()

    response = client.get("/auth/profile", headers=token_headers(member))
    assert response.status_code == 403
    assert response.json()["error"] == "ACCOUNT_INACTIVE"


def test_role_is_read_fresh_not_from_token(client, member_admin, db):
    """Test a demoted admin loses access with the token they already hold"""
    headers = token_headers(member_admin)
    assert client.get("/admin/auth/verify", headers=headers).status_code == 200

    member_admin.assign_role("USER")
    db.commit()

    response = client.get("/admin/auth/verify", headers=headers)
    assert response.status_code == 403
    assert response.json()["current_role"] == "USER"


# ---------------------------------------------------------------------------
# Own profile
# ---------------------------------------------------------------------------

def test_update_own_profile(client, member, db):
    """Test members edit their profile fields but not role or status"""
    response = client.put(
        "/auth/profile",
        json={"phone": "0771234567", "faculty": "Engineering", "role": "SUPER_ADMIN", "status": "APPROVED"},
        headers=token_headers(member),
    )

    assert response.status_code == 200
    db.refresh(member)
    assert member.phone == "0771234567"
    assert member.faculty == "Engineering"
    assert member.role == "USER"


def test_member_logout(client, member):
    """Test logout needs a valid identity"""
    assert client.post("/auth/logout").status_code == 401
    assert client.post("/auth/logout", headers=token_headers(member)).status_code == 200


def test_rate_limits_per_endpoint():
    """Test the login and registration limits come from settings"""
    assert get_rate_limit("login") == settings.RATE_LIMIT_LOGIN
    assert get_rate_limit("admin_login") == settings.RATE_LIMIT_LOGIN
    assert get_rate_limit("register") == settings.RATE_LIMIT_REGISTER
    assert get_rate_limit("anything-else") == settings.RATE_LIMIT_DEFAULT[0]
