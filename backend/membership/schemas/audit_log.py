"""Admin action log schemas"""
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel


class AuditLogResponse(BaseModel):
    log_id: str
    admin_id: Optional[str]
    admin_email: str
    admin_role: str
    action: str
    resource_type: Optional[str]
    resource_id: Optional[str]
    description: Optional[str]
    before_state: Optional[Dict[str, Any]]
    after_state: Optional[Dict[str, Any]]
    ip_address: Optional[str]
    user_agent: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True
