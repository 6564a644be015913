from sqlmodel import Session, select

from hanmo import backend_pre_start, initial_data
from hanmo.core.config import settings
from hanmo.core.db import engine
from hanmo.models import User


def test_prestart_reaches_database() -> None:
    backend_pre_start.init(engine)


def test_initial_data_is_idempotent(db: Session) -> None:
    initial_data.init()
    initial_data.init()
    users = db.exec(select(User).where(User.email == settings.FIRST_SUPERUSER)).all()
    assert len(users) == 1
