"""Admin action log model"""
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, JSON, String, Text

from membership.database import Base
from membership.models.user import generate_uuid_string


class AdminActionLog(Base):
    """AdminActionLog model - append-only record of mutating admin actions.

    Actor email and role are copied at write time so history survives later
    role changes, and ``admin_id`` is nulled rather than cascaded when the
    actor account is deleted.
    """

    __tablename__ = "admin_action_logs"

    id = Column(Integer, primary_key=True, index=True)
    log_id = Column(String(36), default=generate_uuid_string, unique=True, nullable=False, index=True)
    admin_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    admin_email = Column(String(255), nullable=False)
    admin_role = Column(String(30), nullable=False)
    action = Column(String(50), nullable=False, index=True)
    resource_type = Column(String(50), nullable=True)
    resource_id = Column(String(36), nullable=True)
    description = Column(Text, nullable=True)
    before_state = Column(JSON, nullable=True)
    after_state = Column(JSON, nullable=True)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
