"""Database models"""
from membership.models.admin_action_log import AdminActionLog
from membership.models.user import User

__all__ = ["AdminActionLog", "User"]
