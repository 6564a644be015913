from fastapi.testclient import TestClient
from sqlmodel import Session

from hanmo.core.config import settings
from hanmo.tests.utils.user import new_user_headers

API = f"{settings.API_V1_STR}/game"


def create_achievement(
    client: TestClient, headers: dict[str, str], **fields: object
) -> dict:
    r = client.post(f"{API}/achievements", headers=headers, json=fields)
    assert r.status_code == 200, r.text
    return r.json()


def deactivate(client: TestClient, headers: dict[str, str], achievement_id: int) -> None:
    r = client.patch(
        f"{API}/achievements/{achievement_id}",
        headers=headers,
        json={"is_active": False},
    )
    assert r.status_code == 200


def test_signin_once_per_day(client: TestClient, db: Session) -> None:
    _, headers = new_user_headers(client, db)

    r = client.post(f"{API}/signin", headers=headers)
    assert r.status_code == 200
    result = r.json()
    assert result["points"] == settings.SIGNIN_BASE_POINTS
    assert result["bonus_points"] == 0
    assert result["streak"] == 1
    assert result["summary"]["longest_streak"] == 1
    assert result["message"].startswith("Signed in")

    r = client.post(f"{API}/signin", headers=headers)
    assert r.status_code == 409

    status = client.get(f"{API}/signin", headers=headers).json()
    assert status["signed_in_today"] is True
    assert len(status["history"]) == 1


def test_profile_for_new_player(client: TestClient, db: Session) -> None:
    _, headers = new_user_headers(client, db)
    r = client.get(f"{API}/profile", headers=headers)
    assert r.status_code == 200
    profile = r.json()
    assert profile["summary"]["total_points"] == 0
    assert profile["level"] == {
        "level": 1,
        "total_points": 0,
        "level_progress": 0,
        "next_level_points": 100,
        "current_level_points": 0,
    }
    assert profile["achievements"]["completed"] == 0


def test_signin_grants_achievement(
    client: TestClient, superuser_token_headers: dict[str, str], db: Session
) -> None:
    achievement = create_achievement(
        client,
        superuser_token_headers,
        name="First Step",
        condition={"type": "signin_streak", "target": 1},
        rewards={"points": 5},
    )
    try:
        _, headers = new_user_headers(client, db)
        result = client.post(f"{API}/signin", headers=headers).json()
        assert achievement["id"] in [a["id"] for a in result["new_achievements"]]

        earned = client.get(
            f"{API}/achievements/me", headers=headers, params={"completed": True}
        ).json()
        mine = next(a for a in earned if a["achievement"]["id"] == achievement["id"])
        assert mine["progress"] == 1
        assert mine["notified"] is False

        unread = client.get(f"{API}/achievements/unread", headers=headers).json()
        assert achievement["id"] in [a["achievement"]["id"] for a in unread]

        # An empty selection marks nothing
        r = client.post(
            f"{API}/achievements/notified",
            headers=headers,
            json={"achievement_ids": []},
        )
        assert r.json()["message"] == "0 achievements marked as notified"

        r = client.post(
            f"{API}/achievements/notified",
            headers=headers,
            json={"achievement_ids": [achievement["id"]]},
        )
        assert r.json()["message"] == "1 achievements marked as notified"
        unread = client.get(f"{API}/achievements/unread", headers=headers).json()
        assert achievement["id"] not in [a["achievement"]["id"] for a in unread]

        # Reward points flow into the game summary
        profile = client.get(f"{API}/profile", headers=headers).json()
        assert profile["summary"]["total_points"] >= settings.SIGNIN_BASE_POINTS + 5
    finally:
        deactivate(client, superuser_token_headers, achievement["id"])


def test_check_achievements_tracks_progress(
    client: TestClient, superuser_token_headers: dict[str, str], db: Session
) -> None:
    achievement = create_achievement(
        client,
        superuser_token_headers,
        name="Prolific",
        condition={"type": "couplets_created", "target": 3},
    )
    try:
        _, headers = new_user_headers(client, db)
        r = client.post(f"{API}/achievements/check", headers=headers)
        assert r.status_code == 200
        assert achievement["id"] not in [a["id"] for a in r.json()]

        pending = client.get(
            f"{API}/achievements/me", headers=headers, params={"completed": False}
        ).json()
        mine = next(a for a in pending if a["achievement"]["id"] == achievement["id"])
        assert mine["progress"] == 0
        assert mine["max_progress"] == 3

        stats = client.get(f"{API}/achievements/me/stats", headers=headers).json()
        assert stats["total"] >= 1
    finally:
        deactivate(client, superuser_token_headers, achievement["id"])


def test_achievement_administration(
    client: TestClient,
    superuser_token_headers: dict[str, str],
    normal_user_token_headers: dict[str, str],
) -> None:
    achievement = create_achievement(
        client,
        superuser_token_headers,
        name="Collector",
        is_active=False,
        condition={"type": "total_points", "target": 1000},
    )
    assert achievement["condition"] == {"type": "total_points", "target": 1000}
    assert achievement["rewards"] == {"points": 0}

    active = client.get(f"{API}/achievements", headers=superuser_token_headers).json()
    assert achievement["id"] not in [a["id"] for a in active]
    everything = client.get(
        f"{API}/achievements",
        headers=superuser_token_headers,
        params={"include_inactive": True},
    ).json()
    assert achievement["id"] in [a["id"] for a in everything]

    r = client.patch(
        f"{API}/achievements/{achievement['id']}",
        headers=superuser_token_headers,
        json={"rarity": "legendary", "condition": {"type": "total_points", "target": 2000}},
    )
    assert r.json()["rarity"] == "legendary"
    assert r.json()["condition"]["target"] == 2000

    r = client.post(
        f"{API}/achievements",
        headers=normal_user_token_headers,
        json={"name": "Cheat", "condition": {"type": "total_points", "target": 1}},
    )
    assert r.status_code == 403

    r = client.post(
        f"{API}/achievements",
        headers=superuser_token_headers,
        json={"name": "Broken", "condition": {"type": "unknown", "target": 1}},
    )
    assert r.status_code == 422

    r = client.delete(
        f"{API}/achievements/{achievement['id']}", headers=superuser_token_headers
    )
    assert r.status_code == 200
    r = client.get(
        f"{API}/achievements/{achievement['id']}", headers=superuser_token_headers
    )
    assert r.status_code == 404
