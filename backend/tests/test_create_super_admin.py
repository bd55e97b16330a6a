"""Tests for the super admin bootstrap script"""
import pytest

from create_super_admin import BootstrapError, create_super_admin
from membership.utils.auth import verify_password


def test_create_super_admin(db):
    """Test the bootstrap account is an approved, active super admin"""
    user = create_super_admin(db, " Root@Example.org ", "long-enough-pass", "Ada", "Lovelace")

    assert user.email == "root@example.org"
    assert user.role == "SUPER_ADMIN"
    assert user.is_admin is True
    assert user.status == "APPROVED"
    assert user.is_active is True
    assert verify_password("long-enough-pass", user.password_hash)


def test_bootstrap_admin_can_log_in(client, db):
    """Test the bootstrap account works on the admin portal"""
    create_super_admin(db, "root@example.org", "long-enough-pass", "Ada", "Lovelace")

    response = client.post("/admin/auth/login", json={"email": "root@example.org", "password": "long-enough-pass"})
    assert response.status_code == 200
    assert "create_admin" in response.json()["permissions"]


def test_create_super_admin_existing_email(db, member):
    """Test the bootstrap refuses to reuse an email"""
    with pytest.raises(BootstrapError):
        create_super_admin(db, member.email, "long-enough-pass", "Ada", "Lovelace")


@pytest.mark.parametrize("email,password,first,last", [
    ("not-an-email", "long-enough-pass", "Ada", "Lovelace"),
    ("root@example.org", "short", "Ada", "Lovelace"),
    ("root@example.org", "long-enough-pass", "A", "Lovelace"),
])
def test_create_super_admin_validation(db, email, password, first, last):
    """Test bootstrap input validation"""
    with pytest.raises(BootstrapError):
        create_super_admin(db, email, password, first, last)
