from fastapi.testclient import TestClient
from sqlmodel import Session, select

from hanmo.core.config import settings
from hanmo.models import SystemLog
from hanmo.tests.utils.user import new_user_headers
from hanmo.tests.utils.utils import random_lower_string

API = f"{settings.API_V1_STR}/feedback"


def submit(client: TestClient, headers: dict[str, str], **fields: object) -> dict:
    data = {
        "name": "Reader",
        "email": "reader@example.com",
        "type": "bug",
        "title": f"Broken page {random_lower_string()[:8]}",
        "description": "The third panel does not load",
        **fields,
    }
    r = client.post(f"{API}/", headers=headers, json=data)
    assert r.status_code == 200, r.text
    return r.json()


def test_submit_and_review_feedback(
    client: TestClient, superuser_token_headers: dict[str, str], db: Session
) -> None:
    user, headers = new_user_headers(client, db)
    feedback = submit(client, headers, priority="high")
    assert feedback["status"] == "pending"
    assert feedback["user_id"] == str(user.id)
    assert feedback["priority"] == "high"

    logs = db.exec(
        select(SystemLog).where(
            SystemLog.module == "feedback", SystemLog.user_id == user.id
        )
    ).all()
    assert [log.action for log in logs] == ["create"]

    r = client.get(
        f"{API}/",
        headers=superuser_token_headers,
        params={"status": "pending", "type": "bug", "page_size": 100},
    )
    assert r.status_code == 200
    assert feedback["id"] in [f["id"] for f in r.json()["data"]]

    r = client.patch(
        f"{API}/{feedback['id']}",
        headers=superuser_token_headers,
        json={"status": "resolved"},
    )
    assert r.status_code == 200
    assert r.json()["status"] == "resolved"

    r = client.delete(f"{API}/{feedback['id']}", headers=superuser_token_headers)
    assert r.status_code == 200
    r = client.get(f"{API}/{feedback['id']}", headers=superuser_token_headers)
    assert r.status_code == 404


def test_feedback_defaults_and_validation(client: TestClient, db: Session) -> None:
    _, headers = new_user_headers(client, db)
    feedback = submit(client, headers, email=None)
    assert feedback["priority"] == "medium"

    r = client.post(
        f"{API}/",
        headers=headers,
        json={"name": "Reader", "type": "bug", "title": "", "description": "x"},
    )
    assert r.status_code == 422


def test_feedback_requires_login(client: TestClient) -> None:
    r = client.post(
        f"{API}/",
        json={"name": "Anon", "type": "other", "title": "Hi", "description": "Hello"},
    )
    assert r.status_code == 401


def test_normal_user_cannot_review_feedback(
    client: TestClient, normal_user_token_headers: dict[str, str]
) -> None:
    r = client.get(f"{API}/", headers=normal_user_token_headers)
    assert r.status_code == 403


def test_feedback_rate_limited(client: TestClient, db: Session) -> None:
    _, headers = new_user_headers(client, db)
    for _ in range(5):
        submit(client, headers)
    r = client.post(
        f"{API}/",
        headers=headers,
        json={"name": "Reader", "type": "bug", "title": "Again", "description": "x"},
    )
    assert r.status_code == 429
