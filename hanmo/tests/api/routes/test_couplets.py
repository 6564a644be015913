from fastapi.testclient import TestClient
from sqlmodel import Session

from hanmo.core.config import settings
from hanmo.tests.utils.user import new_user_headers
from hanmo.tests.utils.utils import random_lower_string

API = f"{settings.API_V1_STR}/couplets"

SPRING = {
    "upper_line": "Spring rain moistens ten thousand fields",
    "lower_line": "East wind warms a thousand homes",
    "horizontal_scroll": "Renewal",
}


def create_couplet(
    client: TestClient, headers: dict[str, str], **fields: object
) -> dict:
    data = {
        "title": f"Couplet {random_lower_string()[:12]}",
        "contents": [SPRING],
        **fields,
    }
    r = client.post(f"{API}/", headers=headers, json=data)
    assert r.status_code == 200, r.text
    return r.json()


def test_create_couplet_with_contents(
    client: TestClient, superuser_token_headers: dict[str, str]
) -> None:
    couplet = create_couplet(client, superuser_token_headers, title="Spring Festival")
    assert couplet["slug"].startswith("spring-festival")

    r = client.get(f"{API}/{couplet['id']}", headers=superuser_token_headers)
    assert r.status_code == 200
    latest = r.json()["latest_version"]
    assert latest["version"] == 1
    assert latest["version_description"] == "Initial version"
    assert latest["contents"][0]["upper_line"] == SPRING["upper_line"]


def test_versions(
    client: TestClient, superuser_token_headers: dict[str, str]
) -> None:
    couplet = create_couplet(client, superuser_token_headers)
    couplet_id = couplet["id"]

    r = client.post(
        f"{API}/{couplet_id}/versions",
        headers=superuser_token_headers,
        json={
            "version_description": "Tighter parallelism",
            "contents": [
                {"upper_line": "Plum blossoms greet spring", "lower_line": "Snow bids farewell"},
                {"upper_line": "Second pair", "lower_line": "Second reply"},
            ],
        },
    )
    assert r.status_code == 200
    v2 = r.json()
    assert v2["version"] == 2
    assert v2["is_latest_version"] is True
    assert v2["original_couplet_id"] == couplet_id
    assert [c["order_index"] for c in v2["contents"]] == [0, 1]

    versions = client.get(
        f"{API}/{couplet_id}/versions", headers=superuser_token_headers
    ).json()
    assert [v["version"] for v in versions] == [2, 1]
    v1 = versions[1]
    assert v1["is_latest_version"] is False

    r = client.delete(
        f"{API}/{couplet_id}/versions/{v2['id']}", headers=superuser_token_headers
    )
    assert r.status_code == 400

    r = client.put(
        f"{API}/{couplet_id}/versions/{v1['id']}/latest",
        headers=superuser_token_headers,
    )
    assert r.json()["is_latest_version"] is True

    r = client.delete(
        f"{API}/{couplet_id}/versions/{v2['id']}", headers=superuser_token_headers
    )
    assert r.status_code == 200


def test_version_requires_contents(
    client: TestClient, superuser_token_headers: dict[str, str]
) -> None:
    couplet = create_couplet(client, superuser_token_headers)
    r = client.post(
        f"{API}/{couplet['id']}/versions",
        headers=superuser_token_headers,
        json={"contents": []},
    )
    assert r.status_code == 422


def test_public_couplets(
    client: TestClient, superuser_token_headers: dict[str, str], db: Session
) -> None:
    marker = random_lower_string()[:10]
    shown = create_couplet(client, superuser_token_headers, title=f"Shown {marker}")
    draft = create_couplet(
        client, superuser_token_headers, title=f"Draft {marker}", status="draft"
    )

    r = client.get(f"{API}/public", params={"search": marker})
    assert [c["id"] for c in r.json()["data"]] == [shown["id"]]
    assert client.get(f"{API}/public/{draft['id']}").status_code == 404

    r = client.get(f"{API}/public/{shown['id']}")
    assert r.json()["view_count"] == 1
    assert r.json()["liked"] is False

    _, headers = new_user_headers(client, db)
    r = client.post(f"{API}/public/{shown['id']}/like", headers=headers)
    assert r.json()["like_count"] == 1
    r = client.post(f"{API}/public/{shown['id']}/favorite", headers=headers)
    assert r.json()["favorite_count"] == 1
    r = client.post(f"{API}/public/{shown['id']}/favorite", headers=headers)
    assert r.json()["favorite_count"] == 1

    favorites = client.get(f"{API}/public/favorites", headers=headers).json()
    assert [c["id"] for c in favorites["data"]] == [shown["id"]]
    likes = client.get(f"{API}/public/likes", headers=headers).json()
    assert [c["id"] for c in likes["data"]] == [shown["id"]]

    r = client.delete(f"{API}/public/{shown['id']}/like", headers=headers)
    assert r.json()["like_count"] == 0
    # Removing a missing like leaves the counter at zero
    r = client.delete(f"{API}/public/{shown['id']}/like", headers=headers)
    assert r.json()["like_count"] == 0


def test_normal_user_cannot_manage_couplets(
    client: TestClient, normal_user_token_headers: dict[str, str]
) -> None:
    r = client.post(
        f"{API}/", headers=normal_user_token_headers, json={"title": "Nope"}
    )
    assert r.status_code == 403


def test_update_and_delete_couplet(
    client: TestClient, superuser_token_headers: dict[str, str]
) -> None:
    couplet = create_couplet(client, superuser_token_headers)
    slug = f"renamed-{random_lower_string()[:8]}"
    r = client.patch(
        f"{API}/{couplet['id']}",
        headers=superuser_token_headers,
        json={"slug": slug, "is_featured": True},
    )
    assert r.status_code == 200
    assert r.json()["slug"] == slug
    assert r.json()["is_featured"] is True

    r = client.delete(f"{API}/{couplet['id']}", headers=superuser_token_headers)
    assert r.status_code == 200
    r = client.get(f"{API}/{couplet['id']}", headers=superuser_token_headers)
    assert r.status_code == 404


def test_my_couplets(
    client: TestClient, superuser_token_headers: dict[str, str], db: Session
) -> None:
    couplet = create_couplet(client, superuser_token_headers, status="draft")
    r = client.get(
        f"{API}/public/mine",
        headers=superuser_token_headers,
        params={"status": "draft", "page_size": 100},
    )
    assert r.status_code == 200
    assert couplet["id"] in [c["id"] for c in r.json()["data"]]

    _, headers = new_user_headers(client, db)
    r = client.get(f"{API}/public/mine", headers=headers)
    assert r.json()["pagination"]["total"] == 0
