from datetime import timedelta

from sqlmodel import Session

from hanmo.core.account_lock import (
    LockConfig,
    check_account_lock,
    lockout_duration,
    record_login_failure,
    record_login_success,
    unlock_account,
)
from hanmo.models import utcnow
from hanmo.tests.utils.user import create_random_user


def test_lockout_duration_progressive() -> None:
    config = LockConfig(
        max_failed_attempts=5, lockout_minutes=15, max_lockout_hours=2, progressive=True
    )
    assert lockout_duration(5, config) == timedelta(minutes=15)
    assert lockout_duration(6, config) == timedelta(minutes=30)
    assert lockout_duration(8, config) == timedelta(minutes=60)
    # Capped by the maximum lockout
    assert lockout_duration(50, config) == timedelta(hours=2)


def test_lockout_duration_fixed() -> None:
    config = LockConfig(max_failed_attempts=3, lockout_minutes=10, progressive=False)
    assert lockout_duration(3, config) == timedelta(minutes=10)
    assert lockout_duration(9, config) == timedelta(minutes=10)


def test_failures_lock_account(db: Session) -> None:
    user = create_random_user(db)
    config = LockConfig(max_failed_attempts=2, lockout_minutes=5, progressive=False)

    status = record_login_failure(db, user, config)
    assert status.is_locked is False
    assert status.remaining_attempts == 1

    status = record_login_failure(db, user, config)
    assert status.is_locked is True
    assert status.reason == "Too many failed login attempts (2)"
    assert status.lock_expires_at is not None

    assert check_account_lock(db, user, config).is_locked is True

    unlock_account(db, user)
    status = check_account_lock(db, user, config)
    assert status.is_locked is False
    assert status.remaining_attempts == 2


def test_expired_lock_is_cleared(db: Session) -> None:
    user = create_random_user(db)
    user.is_locked = True
    user.failed_login_attempts = 5
    user.lock_expires_at = utcnow() - timedelta(minutes=1)
    db.add(user)
    db.commit()

    status = check_account_lock(db, user)
    assert status.is_locked is False
    db.refresh(user)
    assert user.failed_login_attempts == 0
    assert user.lock_expires_at is None


def test_success_resets_counter(db: Session) -> None:
    user = create_random_user(db)
    record_login_failure(db, user)
    assert user.failed_login_attempts == 1
    record_login_success(db, user)
    assert user.failed_login_attempts == 0
    assert user.last_login_at is not None
