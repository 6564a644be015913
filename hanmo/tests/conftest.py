import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("ENVIRONMENT", "local")

from collections.abc import Generator  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlmodel import Session  # noqa: E402

from hanmo.core.config import settings  # noqa: E402
from hanmo.core.db import engine, init_db  # noqa: E402
from hanmo.core.rate_limiter import reset_all_limiters  # noqa: E402
from hanmo.main import app  # noqa: E402
from hanmo.tests.utils.user import authentication_token_from_email  # noqa: E402
from hanmo.tests.utils.utils import get_superuser_token_headers  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def db() -> Generator[Session, None, None]:
    with Session(engine) as session:
        init_db(session)
        yield session


@pytest.fixture(autouse=True)
def _reset_rate_limits() -> Generator[None, None, None]:
    reset_all_limiters()
    yield
    reset_all_limiters()


@pytest.fixture(scope="module")
def client() -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c


@pytest.fixture(scope="module")
def superuser_token_headers(client: TestClient) -> dict[str, str]:
    reset_all_limiters()
    return get_superuser_token_headers(client)


@pytest.fixture(scope="module")
def normal_user_token_headers(client: TestClient, db: Session) -> dict[str, str]:
    reset_all_limiters()
    return authentication_token_from_email(
        client=client, email=settings.EMAIL_TEST_USER, db=db
    )
