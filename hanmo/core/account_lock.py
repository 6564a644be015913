"""
Account Lockout

Consecutive failed logins lock an account for a progressively longer time.
State lives on the ``User`` row so it survives restarts and is shared by
every worker.
"""

from datetime import datetime, timedelta

from pydantic import BaseModel
from sqlmodel import Session, col, func, select

from hanmo.core.config import settings
from hanmo.core.observability import get_logger
from hanmo.models import User, as_utc, utcnow

logger = get_logger(__name__)

# Upper bound for the progressive multiplier
MAX_LOCKOUT_MULTIPLIER = 10


class LockConfig(BaseModel):
    max_failed_attempts: int = settings.LOGIN_MAX_FAILED_ATTEMPTS
    lockout_minutes: int = settings.LOGIN_LOCKOUT_MINUTES
    max_lockout_hours: int = settings.LOGIN_MAX_LOCKOUT_HOURS
    progressive: bool = settings.LOGIN_PROGRESSIVE_LOCKOUT


class LockStatus(BaseModel):
    is_locked: bool
    reason: str | None = None
    lock_expires_at: datetime | None = None
    remaining_attempts: int | None = None


def lockout_duration(attempts: int, config: LockConfig) -> timedelta:
    base = timedelta(minutes=config.lockout_minutes)
    if not config.progressive:
        return base
    multiplier = min(attempts - config.max_failed_attempts + 1, MAX_LOCKOUT_MULTIPLIER)
    return min(base * max(multiplier, 1), timedelta(hours=config.max_lockout_hours))


def _clear(user: User) -> None:
    user.is_locked = False
    user.lock_reason = None
    user.locked_at = None
    user.lock_expires_at = None
    user.failed_login_attempts = 0
    user.last_failed_login_at = None


def check_account_lock(
    session: Session, user: User, config: LockConfig | None = None
) -> LockStatus:
    config = config or LockConfig()
    if user.is_locked:
        if user.lock_expires_at and as_utc(user.lock_expires_at) <= utcnow():
            _clear(user)
            session.add(user)
            session.commit()
            logger.info("Account lock expired", user_id=str(user.id))
        else:
            return LockStatus(
                is_locked=True,
                reason=user.lock_reason,
                lock_expires_at=user.lock_expires_at,
            )
    return LockStatus(
        is_locked=False,
        remaining_attempts=max(
            0, config.max_failed_attempts - user.failed_login_attempts
        ),
    )


def record_login_failure(
    session: Session, user: User, config: LockConfig | None = None
) -> LockStatus:
    config = config or LockConfig()
    now = utcnow()
    user.failed_login_attempts += 1
    user.last_failed_login_at = now

    if user.failed_login_attempts >= config.max_failed_attempts:
        user.is_locked = True
        user.locked_at = now
        user.lock_expires_at = now + lockout_duration(
            user.failed_login_attempts, config
        )
        user.lock_reason = (
            f"Too many failed login attempts ({user.failed_login_attempts})"
        )
        logger.warning(
            "Account locked",
            user_id=str(user.id),
            attempts=user.failed_login_attempts,
            lock_expires_at=user.lock_expires_at.isoformat(),
        )

    session.add(user)
    session.commit()
    session.refresh(user)
    if user.is_locked:
        return LockStatus(
            is_locked=True, reason=user.lock_reason, lock_expires_at=user.lock_expires_at
        )
    return LockStatus(
        is_locked=False,
        remaining_attempts=config.max_failed_attempts - user.failed_login_attempts,
    )


def record_login_success(session: Session, user: User) -> None:
    _clear(user)
    user.last_login_at = utcnow()
    session.add(user)
    session.commit()
    session.refresh(user)


def unlock_account(session: Session, user: User) -> User:
    _clear(user)
    session.add(user)
    session.commit()
    session.refresh(user)
    logger.info("Account unlocked", user_id=str(user.id))
    return user


def get_lock_stats(session: Session) -> dict[str, int]:
    locked = session.exec(
        select(func.count()).select_from(User).where(col(User.is_locked).is_(True))
    ).one()
    with_failures = session.exec(
        select(func.count())
        .select_from(User)
        .where(col(User.failed_login_attempts) > 0)
    ).one()
    return {"locked_accounts": locked, "accounts_with_failures": with_failures}
