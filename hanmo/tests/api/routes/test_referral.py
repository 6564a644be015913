from fastapi.testclient import TestClient
from sqlmodel import Session

from hanmo.core.config import settings
from hanmo.tests.utils.user import new_user_headers
from hanmo.tests.utils.utils import random_email, random_lower_string

API = f"{settings.API_V1_STR}/referral"
CREDITS = f"{settings.API_V1_STR}/credits/me"


def code_of(client: TestClient, headers: dict[str, str]) -> str:
    r = client.get(f"{API}/code", headers=headers)
    assert r.status_code == 200
    return r.json()["referral_code"]


def balance(client: TestClient, headers: dict[str, str]) -> int:
    return client.get(CREDITS, headers=headers).json()["balance"]


def test_code_is_stable(client: TestClient, db: Session) -> None:
    _, headers = new_user_headers(client, db)
    code = code_of(client, headers)
    assert len(code) == 8
    assert code == code.upper()
    assert code_of(client, headers) == code


def test_apply_rewards_both_sides(client: TestClient, db: Session) -> None:
    _, inviter = new_user_headers(client, db)
    invitee_user, invitee = new_user_headers(client, db)

    r = client.post(
        f"{API}/apply",
        headers=invitee,
        json={"referral_code": code_of(client, inviter).lower()},
    )
    assert r.status_code == 200
    assert r.json() == {
        "completed": True,
        "depth": 0,
        "inviter_reward": settings.REFERRAL_INVITER_REWARD,
        "invitee_reward": settings.REFERRAL_INVITEE_REWARD,
    }
    assert balance(client, inviter) == settings.REFERRAL_INVITER_REWARD
    assert balance(client, invitee) == settings.REFERRAL_INVITEE_REWARD

    stats = client.get(f"{API}/stats", headers=inviter).json()
    assert stats["total_invites"] == 1
    assert stats["successful_invites"] == 1
    assert stats["total_rewards"] == settings.REFERRAL_INVITER_REWARD
    assert stats["invitees"][0]["email"] == invitee_user.email
    assert stats["invitees"][0]["status"] == "completed"

    # One inviter per account
    _, another = new_user_headers(client, db)
    r = client.post(
        f"{API}/apply", headers=invitee, json={"referral_code": code_of(client, another)}
    )
    assert r.status_code == 409


def test_rewards_shrink_down_the_chain(client: TestClient, db: Session) -> None:
    accounts = [new_user_headers(client, db)[1] for _ in range(5)]
    results = []
    for inviter, invitee in zip(accounts, accounts[1:]):
        r = client.post(
            f"{API}/apply",
            headers=invitee,
            json={"referral_code": code_of(client, inviter)},
        )
        assert r.status_code == 200
        results.append(r.json())

    full = settings.REFERRAL_INVITER_REWARD
    welcome = settings.REFERRAL_INVITEE_REWARD
    assert [r["depth"] for r in results] == [0, 1, 2, 3]
    assert [r["inviter_reward"] for r in results] == [full, full // 2, 0, 0]
    assert [r["invitee_reward"] for r in results] == [welcome, welcome, welcome, 0]
    assert all(r["completed"] for r in results)

    assert balance(client, accounts[0]) == full
    assert balance(client, accounts[1]) == welcome + full // 2
    assert balance(client, accounts[4]) == 0


def test_invalid_codes(client: TestClient, db: Session) -> None:
    _, headers = new_user_headers(client, db)
    r = client.post(
        f"{API}/apply", headers=headers, json={"referral_code": code_of(client, headers)}
    )
    assert r.status_code == 400
    assert r.json()["detail"] == "You cannot use your own referral code"

    r = client.post(f"{API}/apply", headers=headers, json={"referral_code": "ZZZZ0000"})
    assert r.status_code == 404


def test_signup_with_referral_code(client: TestClient, db: Session) -> None:
    _, inviter = new_user_headers(client, db)
    email, password = random_email(), random_lower_string()
    r = client.post(
        f"{settings.API_V1_STR}/users/signup",
        json={
            "email": email,
            "password": password,
            "referral_code": code_of(client, inviter),
        },
    )
    assert r.status_code == 200
    assert balance(client, inviter) == settings.REFERRAL_INVITER_REWARD


def test_signup_with_bad_code_still_registers(client: TestClient) -> None:
    r = client.post(
        f"{settings.API_V1_STR}/users/signup",
        json={
            "email": random_email(),
            "password": random_lower_string(),
            "referral_code": "NOPE1234",
        },
    )
    assert r.status_code == 200


def test_campaign_gates_completion(
    client: TestClient, superuser_token_headers: dict[str, str], db: Session
) -> None:
    campaigns = client.get(f"{API}/campaigns", headers=superuser_token_headers).json()
    campaign = next(c for c in campaigns if c["is_active"])
    r = client.patch(
        f"{API}/campaigns/{campaign['id']}",
        headers=superuser_token_headers,
        json={"requirement_type": "verified_email"},
    )
    assert r.json()["requirement_type"] == "verified_email"
    try:
        _, inviter = new_user_headers(client, db)
        _, invitee = new_user_headers(client, db)
        r = client.post(
            f"{API}/apply",
            headers=invitee,
            json={"referral_code": code_of(client, inviter)},
        )
        assert r.json() == {
            "completed": False,
            "depth": 0,
            "inviter_reward": 0,
            "invitee_reward": 0,
        }
        stats = client.get(f"{API}/stats", headers=inviter).json()
        assert stats["invitees"][0]["status"] == "pending"
    finally:
        client.patch(
            f"{API}/campaigns/{campaign['id']}",
            headers=superuser_token_headers,
            json={"requirement_type": campaign["requirement_type"]},
        )


def test_campaigns_require_permission(
    client: TestClient, normal_user_token_headers: dict[str, str]
) -> None:
    r = client.get(f"{API}/campaigns", headers=normal_user_token_headers)
    assert r.status_code == 403
