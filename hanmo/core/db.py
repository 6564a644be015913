from typing import Any

from sqlalchemy import event
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine, select

from hanmo import crud
from hanmo.core.config import settings
from hanmo.core.observability import get_logger
from hanmo.models import User, UserCreate

logger = get_logger(__name__)

engine_kwargs: dict[str, Any] = {
    "pool_pre_ping": True,  # Verify connections before use
}

if settings.SQLALCHEMY_DATABASE_URI.startswith("sqlite"):
    # Single shared connection so an in-memory database survives across sessions
    engine_kwargs["connect_args"] = {"check_same_thread": False}
    engine_kwargs["poolclass"] = StaticPool
else:
    engine_kwargs["pool_recycle"] = settings.DATABASE_POOL_RECYCLE
    engine_kwargs["pool_size"] = settings.DATABASE_POOL_SIZE
    engine_kwargs["max_overflow"] = 20
    if settings.ENVIRONMENT != "local":
        engine_kwargs["connect_args"] = {
            "sslmode": "require",
            "connect_timeout": 10,
            "application_name": settings.PROJECT_NAME,
        }

engine = create_engine(settings.SQLALCHEMY_DATABASE_URI, **engine_kwargs)

if engine.dialect.name == "sqlite":

    @event.listens_for(engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection: Any, _record: Any) -> None:
        # SQLite only enforces foreign keys when asked, per connection
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


# make sure all SQLModel models are imported (hanmo.models) before initializing DB
# otherwise, SQLModel might fail to initialize relationships properly


def init_db(session: Session) -> None:
    # Models are registered on SQLModel.metadata by importing hanmo.models
    SQLModel.metadata.create_all(engine)

    user = session.exec(
        select(User).where(User.email == settings.FIRST_SUPERUSER)
    ).first()
    if not user:
        user_in = UserCreate(
            email=settings.FIRST_SUPERUSER,
            password=settings.FIRST_SUPERUSER_PASSWORD,
            is_superuser=True,
        )
        user = crud.create_user(session=session, user_create=user_in)
        logger.info("First superuser created", email=user.email)

    crud.seed_defaults(session=session)
