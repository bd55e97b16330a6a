"""Middleware modules for production-ready features"""
from membership.middleware.monitoring import (
    MonitoringMiddleware,
    record_audit_failure,
    record_gate_denial,
    record_login_failure,
    record_transition,
)
from membership.middleware.rate_limit import limiter, get_rate_limit

__all__ = [
    "MonitoringMiddleware",
    "record_audit_failure",
    "record_gate_denial",
    "record_login_failure",
    "record_transition",
    "limiter",
    "get_rate_limit"
]
