import uuid
from datetime import timedelta

from fastapi.testclient import TestClient
from sqlmodel import Session

from hanmo.core.config import settings
from hanmo.core.security import create_access_token
from hanmo.tests.utils.user import create_random_user
from hanmo.tests.utils.utils import random_lower_string


def test_get_access_token(client: TestClient) -> None:
    login_data = {
        "username": settings.FIRST_SUPERUSER,
        "password": settings.FIRST_SUPERUSER_PASSWORD,
    }
    r = client.post(f"{settings.API_V1_STR}/login/access-token", data=login_data)
    tokens = r.json()
    assert r.status_code == 200
    assert "access_token" in tokens
    assert tokens["access_token"]


def test_get_access_token_incorrect_password(client: TestClient) -> None:
    login_data = {
        "username": settings.FIRST_SUPERUSER,
        "password": "incorrect",
    }
    r = client.post(f"{settings.API_V1_STR}/login/access-token", data=login_data)
    assert r.status_code == 400
    # Reset the counter so the superuser is never locked out by this test
    client.post(
        f"{settings.API_V1_STR}/login/access-token",
        data={
            "username": settings.FIRST_SUPERUSER,
            "password": settings.FIRST_SUPERUSER_PASSWORD,
        },
    )


def test_use_access_token(
    client: TestClient, superuser_token_headers: dict[str, str]
) -> None:
    r = client.post(
        f"{settings.API_V1_STR}/login/test-token",
        headers=superuser_token_headers,
    )
    result = r.json()
    assert r.status_code == 200
    assert "email" in result


def test_invalid_token_rejected(client: TestClient) -> None:
    r = client.post(
        f"{settings.API_V1_STR}/login/test-token",
        headers={"Authorization": "Bearer not-a-token"},
    )
    assert r.status_code == 401


def test_token_with_malformed_subject_rejected(client: TestClient) -> None:
    token = create_access_token("not-a-uuid", timedelta(minutes=5))
    r = client.get(
        f"{settings.API_V1_STR}/users/me",
        headers={"Authorization": f"Bearer {token}"},
    )
    assert r.status_code == 401
    assert r.json()["detail"] == "Could not validate credentials"


def test_token_for_unknown_user(client: TestClient) -> None:
    token = create_access_token(str(uuid.uuid4()), timedelta(minutes=5))
    r = client.get(
        f"{settings.API_V1_STR}/users/me",
        headers={"Authorization": f"Bearer {token}"},
    )
    assert r.status_code == 404


def test_token_subject_resolves_user(client: TestClient, db: Session) -> None:
    user = create_random_user(db)
    token = create_access_token(str(user.id), timedelta(minutes=5))
    r = client.get(
        f"{settings.API_V1_STR}/users/me",
        headers={"Authorization": f"Bearer {token}"},
    )
    assert r.status_code == 200
    assert r.json()["id"] == str(user.id)


def test_account_locks_after_repeated_failures(client: TestClient, db: Session) -> None:
    password = random_lower_string()
    user = create_random_user(db, password=password)
    bad = {"username": user.email, "password": "wrong-password"}

    for _ in range(settings.LOGIN_MAX_FAILED_ATTEMPTS - 1):
        r = client.post(f"{settings.API_V1_STR}/login/access-token", data=bad)
        assert r.status_code == 400

    r = client.post(f"{settings.API_V1_STR}/login/access-token", data=bad)
    assert r.status_code == 423
    assert "locked" in r.json()["detail"]

    # Even the right password is refused while the lock holds
    r = client.post(
        f"{settings.API_V1_STR}/login/access-token",
        data={"username": user.email, "password": password},
    )
    assert r.status_code == 423


def test_login_rate_limited(client: TestClient) -> None:
    data = {"username": "nobody@example.com", "password": "whatever1"}
    codes = [
        client.post(f"{settings.API_V1_STR}/login/access-token", data=data).status_code
        for _ in range(11)
    ]
    assert codes[:10] == [400] * 10
    assert codes[10] == 429
