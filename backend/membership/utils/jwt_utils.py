"""JWT utilities: RS256 keypair management, token signing and verification"""
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from jose import ExpiredSignatureError, JWTError, jwt

from membership.config import settings
from membership.utils.gate import Denial
from membership.utils.logger import logger

# ---------------------------------------------------------------------------
# Keypair management
# ---------------------------------------------------------------------------

_private_key: Any = None   # cryptography RSAPrivateKey object
_public_key: Any = None    # cryptography RSAPublicKey object


def _load_keypair() -> None:
    """Load or auto-generate the RSA keypair.

    Reads JWT_PRIVATE_KEY from settings (PEM string).
    If absent, generates a fresh RSA-2048 keypair for this process; tokens
    will not survive a restart.
    """
    global _private_key, _public_key

    from cryptography.hazmat.primitives import serialization
    from cryptography.hazmat.primitives.asymmetric import rsa

    if settings.JWT_PRIVATE_KEY:
        pem = settings.JWT_PRIVATE_KEY.encode()
        _private_key = serialization.load_pem_private_key(pem, password=None)
        _public_key = _private_key.public_key()
        logger.info("JWT keypair loaded from JWT_PRIVATE_KEY setting")
    else:
        _private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
        _public_key = _private_key.public_key()
        logger.warning(
            "JWT_PRIVATE_KEY not set, auto-generated RSA-2048 keypair for this session. "
            "All tokens will be invalidated on restart."
        )


def get_private_key() -> Any:
    """Return the loaded private key, initialising on first call."""
    if _private_key is None:
        _load_keypair()
    return _private_key


def get_public_key() -> Any:
    """Return the loaded public key, initialising on first call."""
    if _public_key is None:
        _load_keypair()
    return _public_key


# ---------------------------------------------------------------------------
# Token creation
# ---------------------------------------------------------------------------

def create_access_token(
    subject: str,
    token_type: str,
    extra_claims: Optional[Dict[str, Any]] = None,
    expires_in: Optional[int] = None,
) -> str:
    """Sign and return a JWT access token.

    Args:
        subject:      Account id, stored as the 'sub' claim.
        token_type:   'user' or 'admin'; selects the default lifetime.
        extra_claims: Additional informational claims (email, role). The gate
                      never trusts them; it reloads the account on every request.
        expires_in:   Lifetime override in seconds. May be negative.

    Returns:
        Signed JWT string.
    """
    if expires_in is None:
        expires_in = (
            settings.JWT_ADMIN_EXPIRE_SECONDS
            if token_type == "admin"
            else settings.JWT_USER_EXPIRE_SECONDS
        )

    now = int(datetime.now(timezone.utc).timestamp())

    payload: Dict[str, Any] = {
        "sub": subject,
        "jti": str(uuid.uuid4()),
        "iat": now,
        "exp": now + expires_in,
        "type": token_type,
        **(extra_claims or {}),
    }

    if settings.JWT_KEY_ID:
        payload["kid"] = settings.JWT_KEY_ID

    return jwt.encode(payload, get_private_key(), algorithm=settings.JWT_ALGORITHM)


# ---------------------------------------------------------------------------
# Token verification
# ---------------------------------------------------------------------------

def decode_access_token(token: str) -> Union[Dict[str, Any], Denial]:
    """Verify a JWT and return its payload, or the Denial describing why not.

    Checks signature, expiry and presence of the 'sub' claim.
    """
    try:
        payload = jwt.decode(token, get_public_key(), algorithms=[settings.JWT_ALGORITHM])
    except ExpiredSignatureError:
        return Denial(401, "TOKEN_EXPIRED", "Token has expired. Please login again.")
    except JWTError as exc:
        logger.debug(f"JWT decode failed: {exc}")
        return Denial(401, "INVALID_TOKEN", "Invalid token. Please login again.")
    except Exception as exc:
        logger.warning("JWT verification failed", extra={"error": str(exc)})
        return Denial(401, "TOKEN_VERIFICATION_FAILED", "Token verification failed.")

    if not payload.get("sub"):
        return Denial(401, "INVALID_TOKEN_PAYLOAD", "Invalid token payload.")

    return payload
