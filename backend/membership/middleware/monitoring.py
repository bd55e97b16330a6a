"""Monitoring and observability middleware"""
import time
from typing import Callable
from fastapi import Request, Response
from prometheus_client import Counter, Histogram
from starlette.middleware.base import BaseHTTPMiddleware
from membership.utils.logger import logger


# ===== Prometheus Metrics =====

http_requests_total = Counter(
    "membership_http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"]
)

http_request_duration_seconds = Histogram(
    "membership_http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "endpoint"]
)

gate_denials_total = Counter(
    "membership_gate_denials_total",
    "Requests stopped by the authorization gate",
    ["error"]  # MISSING_TOKEN, INSUFFICIENT_PERMISSIONS, ...
)

account_transitions_total = Counter(
    "membership_account_transitions_total",
    "Completed account lifecycle operations",
    ["action"]  # APPROVE_USER, REJECT_USER, SUSPEND_USER, ...
)

audit_write_failures_total = Counter(
    "membership_audit_write_failures_total",
    "Audit entries that could not be persisted",
    ["action"]
)

login_failures_total = Counter(
    "membership_login_failures_total",
    "Rejected login attempts",
    ["portal", "reason"]  # portal: user, admin
)


def _endpoint_label(request: Request) -> str:
    """Route template rather than raw path, so account ids don't explode cardinality."""
    route = request.scope.get("route")
    return getattr(route, "path", request.url.path)


class MonitoringMiddleware(BaseHTTPMiddleware):
    """Middleware for monitoring and metrics collection"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.time()
        method = request.method

        request_id = request.headers.get("x-request-id", f"req_{int(time.time() * 1000)}")
        request.state.request_id = request_id

        try:
            response = await call_next(request)
        except Exception as e:
            duration = time.time() - start_time
            http_requests_total.labels(method=method, endpoint=_endpoint_label(request), status=500).inc()
            logger.error(
                f"Request failed: {method} {request.url.path}",
                extra={
                    "request_id": request_id,
                    "method": method,
                    "path": request.url.path,
                    "error": str(e)
                },
                exc_info=True
            )
            raise

        duration = time.time() - start_time
        endpoint = _endpoint_label(request)
        http_requests_total.labels(method=method, endpoint=endpoint, status=response.status_code).inc()
        http_request_duration_seconds.labels(method=method, endpoint=endpoint).observe(duration)

        if duration > 1.0:
            logger.warning(
                f"Slow request detected: {method} {request.url.path}",
                extra={"request_id": request_id, "method": method, "path": request.url.path}
            )

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{duration:.3f}s"
        return response


def record_gate_denial(error: str):
    """Record a request refused by the gate"""
    gate_denials_total.labels(error=error).inc()


def record_transition(action: str):
    """Record a completed lifecycle operation"""
    account_transitions_total.labels(action=action).inc()


def record_audit_failure(action: str):
    """Record an audit entry that was lost"""
    audit_write_failures_total.labels(action=action).inc()


def record_login_failure(portal: str, reason: str):
    """Record a rejected login"""
    login_failures_total.labels(portal=portal, reason=reason).inc()
