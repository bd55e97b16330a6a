"""Rate limiting for the public authentication endpoints"""
from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from membership.config import settings


def get_identifier(request: Request) -> str:
    """
    Rate limit key: the client IP address

    Login and registration are called before an identity exists, so the
    address is the only stable key.
    """
    if settings.TRUST_PROXY_HEADERS:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[0].strip()
    return get_remote_address(request)


limiter = Limiter(
    key_func=get_identifier,
    default_limits=settings.RATE_LIMIT_DEFAULT,
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    strategy="fixed-window",
    enabled=settings.RATE_LIMIT_ENABLED,
)


# Per-endpoint limits
RATE_LIMITS = {
    "login": settings.RATE_LIMIT_LOGIN,
    "admin_login": settings.RATE_LIMIT_LOGIN,
    "register": settings.RATE_LIMIT_REGISTER,
}


def get_rate_limit(endpoint: str) -> str:
    """Get rate limit for specific endpoint"""
    return RATE_LIMITS.get(endpoint, settings.RATE_LIMIT_DEFAULT[0])
