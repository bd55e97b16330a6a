"""Authentication utilities"""
from datetime import datetime, timedelta

from passlib.context import CryptContext
from sqlalchemy.orm import Session

from membership.config import settings
from membership.models.user import User

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)


def hash_password(password: str) -> str:
    """Hash a password with bcrypt"""
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Check a plain password against its stored hash"""
    if not password_hash:
        return False
    return pwd_context.verify(password, password_hash)


def generate_member_id(db: Session, now: datetime = None) -> str:
    """
    Generate the next member ID for the current year

    Format is ``<prefix>/<yy>/<nnnn>``, numbered per year from 0001.
    """
    now = now or datetime.utcnow()
    year_prefix = f"{settings.MEMBER_ID_PREFIX}/{now.strftime('%y')}/"

    last = (
        db.query(User.member_id)
        .filter(User.member_id.like(f"{year_prefix}%"))
        .order_by(User.member_id.desc())
        .first()
    )

    next_number = 1
    if last and last[0]:
        try:
            next_number = int(last[0].rsplit("/", 1)[1]) + 1
        except (IndexError, ValueError):
            next_number = db.query(User).filter(User.member_id.like(f"{year_prefix}%")).count() + 1

    return f"{year_prefix}{next_number:04d}"


def record_failed_login(db: Session, user: User, now: datetime = None) -> int:
    """
    Count a failed login against ``user``, locking the account at the limit

    The counter is incremented in the UPDATE itself so concurrent failures
    are never undercounted. An expired lock restarts the count at one.

    Returns:
        The attempt count after this failure
    """
    now = now or datetime.utcnow()

    if user.account_locked_until is not None and user.account_locked_until <= now:
        db.query(User).filter(User.id == user.id).update(
            {User.login_attempts: 1, User.account_locked_until: None},
            synchronize_session=False,
        )
    else:
        db.query(User).filter(User.id == user.id).update(
            {User.login_attempts: User.login_attempts + 1},
            synchronize_session=False,
        )
    db.commit()
    db.refresh(user)

    if user.login_attempts >= settings.MAX_LOGIN_ATTEMPTS and not user.is_locked(now):
        db.query(User).filter(User.id == user.id).update(
            {User.account_locked_until: now + timedelta(minutes=settings.LOCKOUT_MINUTES)},
            synchronize_session=False,
        )
        db.commit()
        db.refresh(user)

    return user.login_attempts


def record_successful_login(db: Session, user: User, now: datetime = None) -> None:
    """Clear the failure counter and stamp last_login"""
    now = now or datetime.utcnow()
    user.login_attempts = 0
    user.account_locked_until = None
    user.last_login = now
    db.commit()
    db.refresh(user)
