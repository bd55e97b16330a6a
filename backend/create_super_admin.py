"""
Super Admin Bootstrap

Creates the first SUPER_ADMIN account directly in the database. Every other
admin account is created through POST /admin/users/create-admin by a super
admin, so a fresh deployment needs this once.

Usage:
    python create_super_admin.py --email admin@example.org --first-name Ada --last-name Lovelace
    (the password is prompted for when --password is omitted)
"""
import argparse
import getpass
import sys
from datetime import datetime

from sqlalchemy.orm import Session

from membership.database import SessionLocal
from membership.models.user import User
from membership.utils.auth import hash_password
from membership.utils.permissions import AccountStatus, Role

MIN_PASSWORD_LENGTH = 8
MIN_NAME_LENGTH = 2


class BootstrapError(Exception):
    """Invalid input or an existing conflicting account"""


def validate(email: str, password: str, first_name: str, last_name: str) -> None:
    if "@" not in email:
        raise BootstrapError("Please provide a valid email address")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise BootstrapError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if len(first_name.strip()) < MIN_NAME_LENGTH or len(last_name.strip()) < MIN_NAME_LENGTH:
        raise BootstrapError(f"First and last name must be at least {MIN_NAME_LENGTH} characters")


def create_super_admin(db: Session, email: str, password: str, first_name: str, last_name: str) -> User:
    """Create a SUPER_ADMIN account, APPROVED and active"""
    email = email.strip().lower()
    validate(email, password, first_name, last_name)

    existing = db.query(User).filter(User.email == email).first()
    if existing:
        raise BootstrapError(f"An account with email {email} already exists (role: {existing.role})")

    user = User(
        email=email,
        password_hash=hash_password(password),
        first_name=first_name.strip(),
        last_name=last_name.strip(),
        status=AccountStatus.APPROVED.value,
        approval_date=datetime.utcnow(),
    )
    user.assign_role(Role.SUPER_ADMIN.value)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create a SUPER_ADMIN account")
    parser.add_argument("--email")
    parser.add_argument("--password")
    parser.add_argument("--first-name")
    parser.add_argument("--last-name")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)

    print("Super Admin Bootstrap")
    print("=" * 50)

    email = args.email or input("Email: ")
    first_name = args.first_name or input("First name: ")
    last_name = args.last_name or input("Last name: ")
    password = args.password or getpass.getpass("Password: ")

    db = SessionLocal()
    try:
        user = create_super_admin(db, email, password, first_name, last_name)
    except BootstrapError as e:
        print(f"[-] {e}")
        return 1
    finally:
        db.close()

    print(f"[+] Created super admin: {user.email} (ID: {user.id})")
    print("    Log in through /admin/auth/login")
    return 0


if __name__ == "__main__":
    sys.exit(main())
