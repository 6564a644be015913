from fastapi.testclient import TestClient
from sqlmodel import Session

from hanmo.core.config import settings
from hanmo.models import LogLevel
from hanmo.services import audit
from hanmo.tests.utils.utils import random_lower_string

API = f"{settings.API_V1_STR}/system/logs"


def test_read_logs_filters(
    client: TestClient, superuser_token_headers: dict[str, str], db: Session
) -> None:
    marker = random_lower_string()[:12]
    audit.log_event(db, module="comic", action="publish", description=f"pub {marker}")
    audit.log_event(
        db,
        module="vip",
        action="approve",
        description=f"vip {marker}",
        level=LogLevel.WARN,
    )

    r = client.get(API, headers=superuser_token_headers, params={"search": marker})
    assert r.status_code == 200
    body = r.json()
    assert body["pagination"]["total"] == 2
    # Newest first
    assert [e["action"] for e in body["data"]] == ["approve", "publish"]

    r = client.get(
        API,
        headers=superuser_token_headers,
        params={"search": marker, "level": "warn"},
    )
    assert [e["module"] for e in r.json()["data"]] == ["vip"]

    r = client.get(
        API,
        headers=superuser_token_headers,
        params={"search": marker, "module": "comic"},
    )
    assert [e["description"] for e in r.json()["data"]] == [f"pub {marker}"]


def test_read_logs_pagination(
    client: TestClient, superuser_token_headers: dict[str, str], db: Session
) -> None:
    marker = random_lower_string()[:12]
    for i in range(3):
        audit.log_event(db, module="test", action=f"step-{i}", description=marker)
    r = client.get(
        API,
        headers=superuser_token_headers,
        params={"search": marker, "page": 2, "page_size": 2},
    )
    body = r.json()
    assert body["pagination"] == {
        "page": 2,
        "page_size": 2,
        "total": 3,
        "total_pages": 2,
    }
    assert [e["action"] for e in body["data"]] == ["step-0"]


def test_read_logs_requires_permission(
    client: TestClient, normal_user_token_headers: dict[str, str]
) -> None:
    r = client.get(API, headers=normal_user_token_headers)
    assert r.status_code == 403
    assert r.json()["detail"] == "Insufficient permissions. Required: system.read"
