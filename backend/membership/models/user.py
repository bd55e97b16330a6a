"""User model - one platform identity, member or admin"""
import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Integer, String, Text

from membership.database import Base
from membership.utils.permissions import AccountStatus, Role, is_admin_role


def generate_uuid_string():
    """Generate UUID as string for SQLite compatibility"""
    return str(uuid.uuid4())


class User(Base):
    """A member or admin account.

    ``is_admin`` mirrors ``role`` and is only ever written by :meth:`assign_role`.
    """

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_uuid_string)
    email = Column(String(255), unique=True, nullable=False, index=True)     # stored lower-case
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)

    # Profile
    name_with_initials = Column(String(255), nullable=True)
    address = Column(Text, nullable=True)
    date_of_birth = Column(Date, nullable=True)
    country = Column(String(100), nullable=True)
    phone = Column(String(50), nullable=True)
    batch = Column(String(20), nullable=True)
    admission_number = Column(String(50), nullable=True)
    al_shy = Column(String(20), nullable=True)
    university = Column(String(255), nullable=True)
    faculty = Column(String(255), nullable=True)
    university_level = Column(String(50), nullable=True)
    engineering_field = Column(String(255), nullable=True)
    member_id = Column(String(20), unique=True, nullable=True, index=True)   # "SC/24/0001"

    # Authorization
    role = Column(String(30), nullable=False, default=Role.USER.value, index=True)
    status = Column(String(20), nullable=False, default=AccountStatus.PENDING.value, index=True)
    is_admin = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)

    # Login tracking
    login_attempts = Column(Integer, nullable=False, default=0)
    account_locked_until = Column(DateTime, nullable=True)
    last_login = Column(DateTime, nullable=True)

    # Approval
    approved_by_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    approval_date = Column(DateTime, nullable=True)
    created_by_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def assign_role(self, role: str) -> None:
        self.role = role
        self.is_admin = is_admin_role(role)

    def is_locked(self, now: datetime = None) -> bool:
        now = now or datetime.utcnow()
        return self.account_locked_until is not None and self.account_locked_until > now

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def snapshot(self) -> dict:
        """Audit-friendly view of the row, without the credential."""
        return {
            "id": self.id,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "member_id": self.member_id,
            "role": self.role,
            "status": self.status,
            "is_admin": self.is_admin,
            "is_active": self.is_active,
        }
