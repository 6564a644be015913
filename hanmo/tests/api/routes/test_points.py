from fastapi.testclient import TestClient
from sqlmodel import Session

from hanmo.core.config import settings
from hanmo.services import points
from hanmo.tests.utils.user import new_user_headers

API = f"{settings.API_V1_STR}/points"


def test_check_in_once_per_day(client: TestClient, db: Session) -> None:
    _, headers = new_user_headers(client, db)

    r = client.post(f"{API}/check-in", headers=headers)
    assert r.status_code == 200
    result = r.json()
    assert result["consecutive_days"] == 1
    assert result["points"] == 10
    assert result["balance"] == 10

    r = client.post(f"{API}/check-in", headers=headers)
    assert r.status_code == 400
    assert r.json()["detail"] == "You have already checked in today"

    status = client.get(f"{API}/check-in/status", headers=headers).json()
    assert status["has_checked_in_today"] is True
    assert status["consecutive_days"] == 1
    assert status["month_check_in_days"] == 1
    assert status["today_check_in"]["points"] == 10

    history = client.get(f"{API}/check-in/history", headers=headers).json()
    assert history["pagination"]["total"] == 1

    txs = client.get(f"{API}/me/transactions", headers=headers).json()
    assert txs["data"][0]["source"] == "check_in"
    assert txs["data"][0]["type"] == "earn"


def test_status_before_check_in(client: TestClient, db: Session) -> None:
    _, headers = new_user_headers(client, db)
    status = client.get(f"{API}/check-in/status", headers=headers).json()
    assert status["has_checked_in_today"] is False
    assert status["today_check_in"] is None
    assert status["consecutive_days"] == 0
    assert status["recent_check_ins"] == []


def test_exchange_default_rate(client: TestClient, db: Session) -> None:
    user, headers = new_user_headers(client, db)
    points.add_points(db, user.id, 250, "test")

    r = client.post(f"{API}/exchange", headers=headers, json={"credits": 2})
    assert r.status_code == 200
    result = r.json()
    assert result["points_spent"] == 2 * settings.POINTS_PER_CREDIT
    assert result["points_balance"] == 250 - 2 * settings.POINTS_PER_CREDIT
    assert result["credits_balance"] == 2

    credits = client.get(f"{settings.API_V1_STR}/credits/me", headers=headers).json()
    assert credits["balance"] == 2

    history = client.get(f"{API}/exchange/history", headers=headers).json()
    assert history["data"][0]["exchange_rate"] == settings.POINTS_PER_CREDIT


def test_exchange_insufficient_points(client: TestClient, db: Session) -> None:
    _, headers = new_user_headers(client, db)
    r = client.post(f"{API}/exchange", headers=headers, json={"credits": 1})
    assert r.status_code == 402
    assert r.json()["details"]["kind"] == "points"

    credits = client.get(f"{settings.API_V1_STR}/credits/me", headers=headers).json()
    assert credits["balance"] == 0


def test_exchange_with_rate_rounds_up(
    client: TestClient, superuser_token_headers: dict[str, str], db: Session
) -> None:
    r = client.post(
        f"{API}/rates",
        headers=superuser_token_headers,
        json={"name": "Bulk", "points_required": 30, "credits_received": 2},
    )
    assert r.status_code == 200
    rate = r.json()

    user, headers = new_user_headers(client, db)
    points.add_points(db, user.id, 100, "test")
    r = client.post(
        f"{API}/exchange", headers=headers, json={"credits": 3, "rate_id": rate["id"]}
    )
    assert r.status_code == 200
    assert r.json()["points_spent"] == 45

    client.patch(
        f"{API}/rates/{rate['id']}",
        headers=superuser_token_headers,
        json={"status": "inactive"},
    )
    active = client.get(f"{API}/exchange/rates", headers=headers).json()
    assert rate["id"] not in [x["id"] for x in active]
    r = client.post(
        f"{API}/exchange", headers=headers, json={"credits": 1, "rate_id": rate["id"]}
    )
    assert r.status_code == 404

    r = client.delete(f"{API}/rates/{rate['id']}", headers=superuser_token_headers)
    assert r.status_code == 200


def test_rule_administration(
    client: TestClient,
    superuser_token_headers: dict[str, str],
    normal_user_token_headers: dict[str, str],
) -> None:
    r = client.post(
        f"{API}/rules",
        headers=superuser_token_headers,
        json={
            "name": "Hundred days",
            "consecutive_days": 100,
            "points": 500,
            "status": "inactive",
        },
    )
    assert r.status_code == 200
    rule = r.json()

    r = client.get(f"{API}/check-in/rules", headers=normal_user_token_headers)
    assert rule["id"] not in [x["id"] for x in r.json()]
    r = client.get(f"{API}/rules", headers=superuser_token_headers)
    assert rule["id"] in [x["id"] for x in r.json()]

    r = client.patch(
        f"{API}/rules/{rule['id']}",
        headers=superuser_token_headers,
        json={"points": 600},
    )
    assert r.json()["points"] == 600

    r = client.post(
        f"{API}/rules",
        headers=normal_user_token_headers,
        json={"name": "Mine", "consecutive_days": 1, "points": 9999},
    )
    assert r.status_code == 403

    r = client.delete(f"{API}/rules/{rule['id']}", headers=superuser_token_headers)
    assert r.status_code == 200
    r = client.delete(f"{API}/rules/{rule['id']}", headers=superuser_token_headers)
    assert r.status_code == 404
