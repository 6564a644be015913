from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from hanmo.models import ComicLike, User
from hanmo.tests.utils.user import create_random_user


def test_sqlite_enforces_foreign_keys(db: Session) -> None:
    assert db.connection().exec_driver_sql("PRAGMA foreign_keys").scalar() == 1

    user = create_random_user(db)
    db.add(ComicLike(user_id=user.id, comic_id=987654))
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()


def test_timestamps_come_back_aware(db: Session) -> None:
    user = create_random_user(db)
    db.expire(user)
    assert user.created_at.tzinfo is not None
    assert user.created_at.utcoffset() == timedelta(0)


def test_offset_values_are_stored_as_utc(db: Session) -> None:
    user = create_random_user(db)
    plus_eight = timezone(timedelta(hours=8))
    user.created_at = datetime(2024, 5, 1, 8, 0, tzinfo=plus_eight)
    db.add(user)
    db.commit()
    db.expire(user)

    loaded = db.get(User, user.id)
    assert loaded is not None
    assert loaded.created_at == datetime(2024, 5, 1, 0, 0, tzinfo=timezone.utc)
    assert loaded.created_at.tzinfo == timezone.utc
