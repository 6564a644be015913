from fastapi.testclient import TestClient
from sqlmodel import Session

from hanmo.core.config import settings
from hanmo.models import Comic
from hanmo.tests.utils.user import new_user_headers
from hanmo.tests.utils.utils import random_lower_string

API = f"{settings.API_V1_STR}/comics"


def create_comic(
    client: TestClient, headers: dict[str, str], **fields: object
) -> dict:
    data = {"title": f"Comic {random_lower_string()[:12]}", **fields}
    r = client.post(f"{API}/", headers=headers, json=data)
    assert r.status_code == 200, r.text
    return r.json()


def test_create_comic_with_initial_version(
    client: TestClient, superuser_token_headers: dict[str, str]
) -> None:
    comic = create_comic(
        client, superuser_token_headers, title="The Moon Gate", description="ink"
    )
    assert comic["slug"].startswith("the-moon-gate")
    assert comic["volume_count"] == 0

    r = client.get(f"{API}/{comic['id']}/versions", headers=superuser_token_headers)
    versions = r.json()
    assert len(versions) == 1
    assert versions[0]["version"] == 1
    assert versions[0]["is_latest_version"] is True


def test_duplicate_explicit_slug_conflicts(
    client: TestClient, superuser_token_headers: dict[str, str]
) -> None:
    slug = f"fixed-{random_lower_string()[:10]}"
    create_comic(client, superuser_token_headers, slug=slug)
    r = client.post(
        f"{API}/",
        headers=superuser_token_headers,
        json={"title": "Another", "slug": slug},
    )
    assert r.status_code == 409
    assert r.json()["type"] == "conflict"


def test_structure_and_version_copy(
    client: TestClient, superuser_token_headers: dict[str, str]
) -> None:
    comic = create_comic(client, superuser_token_headers)
    comic_id = comic["id"]
    v1 = client.get(f"{API}/{comic_id}/versions", headers=superuser_token_headers).json()[0]

    r = client.post(
        f"{API}/{comic_id}/versions/{v1['id']}/volumes",
        headers=superuser_token_headers,
        json={"volume_number": 1, "title": "Book One"},
    )
    assert r.status_code == 200
    volume = r.json()

    r = client.post(
        f"{API}/{comic_id}/versions/{v1['id']}/volumes",
        headers=superuser_token_headers,
        json={"volume_number": 1, "title": "Duplicate"},
    )
    assert r.status_code == 409

    r = client.post(
        f"{API}/{comic_id}/versions/{v1['id']}/episodes",
        headers=superuser_token_headers,
        json={"episode_number": 1, "title": "Arrival", "volume_id": volume["id"]},
    )
    assert r.status_code == 200
    episode = r.json()

    r = client.post(
        f"{API}/episodes/{episode['id']}/pages",
        headers=superuser_token_headers,
        json={"page_number": 1},
    )
    page = r.json()
    r = client.post(
        f"{API}/pages/{page['id']}/panels",
        headers=superuser_token_headers,
        json={"panel_number": 1, "dialogue": "Who goes there?"},
    )
    assert r.status_code == 200

    r = client.get(f"{API}/{comic_id}", headers=superuser_token_headers)
    detail = r.json()
    assert detail["volume_count"] == 1
    assert detail["episode_count"] == 1
    tree = detail["latest_version"]
    assert tree["volumes"][0]["episodes"][0]["pages"][0]["panels"][0]["dialogue"] == (
        "Who goes there?"
    )

    # A new version copies the whole tree from its parent and becomes latest
    r = client.post(
        f"{API}/{comic_id}/versions",
        headers=superuser_token_headers,
        json={"version_description": "Redraw"},
    )
    assert r.status_code == 200
    v2 = r.json()
    assert v2["version"] == 2
    assert v2["parent_version_id"] == v1["id"]
    assert v2["is_latest_version"] is True

    r = client.get(
        f"{API}/{comic_id}/versions/{v2['id']}", headers=superuser_token_headers
    )
    copied = r.json()
    copied_episode = copied["volumes"][0]["episodes"][0]
    assert copied_episode["id"] != episode["id"]
    assert copied_episode["pages"][0]["panels"][0]["dialogue"] == "Who goes there?"

    versions = client.get(
        f"{API}/{comic_id}/versions", headers=superuser_token_headers
    ).json()
    assert [v["is_latest_version"] for v in versions if v["id"] == v1["id"]] == [False]

    # An empty version moves the counts back to zero once it is latest
    r = client.post(
        f"{API}/{comic_id}/versions",
        headers=superuser_token_headers,
        json={"copy_from_parent": False},
    )
    v3 = r.json()
    detail = client.get(f"{API}/{comic_id}", headers=superuser_token_headers).json()
    assert detail["latest_version"]["id"] == v3["id"]
    assert detail["episode_count"] == 0

    r = client.put(
        f"{API}/{comic_id}/versions/{v1['id']}/latest", headers=superuser_token_headers
    )
    assert r.status_code == 200
    detail = client.get(f"{API}/{comic_id}", headers=superuser_token_headers).json()
    assert detail["episode_count"] == 1

    r = client.delete(
        f"{API}/{comic_id}/versions/{v1['id']}", headers=superuser_token_headers
    )
    assert r.status_code == 400

    r = client.delete(
        f"{API}/{comic_id}/versions/{v3['id']}", headers=superuser_token_headers
    )
    assert r.status_code == 200


def test_public_listing_hides_drafts(
    client: TestClient, superuser_token_headers: dict[str, str]
) -> None:
    marker = random_lower_string()[:10]
    published = create_comic(client, superuser_token_headers, title=f"Pub {marker}")
    create_comic(client, superuser_token_headers, title=f"Draft {marker}", status="draft")
    create_comic(client, superuser_token_headers, title=f"Hidden {marker}", is_public=False)

    r = client.get(f"{API}/public", params={"search": marker})
    assert r.status_code == 200
    body = r.json()
    assert [c["id"] for c in body["data"]] == [published["id"]]
    assert body["pagination"]["page_size"] == 12


def test_public_filter_by_category_and_tag(
    client: TestClient, superuser_token_headers: dict[str, str]
) -> None:
    suffix = random_lower_string()[:8]
    category = client.post(
        f"{settings.API_V1_STR}/comic-categories/",
        headers=superuser_token_headers,
        json={"name": f"Wuxia {suffix}"},
    ).json()
    tag = client.post(
        f"{settings.API_V1_STR}/comic-tags/",
        headers=superuser_token_headers,
        json={"name": f"Sword {suffix}"},
    ).json()
    tagged = create_comic(
        client, superuser_token_headers, category_id=category["id"], tag_ids=[tag["id"]]
    )
    create_comic(client, superuser_token_headers)

    r = client.get(f"{API}/public", params={"category": category["slug"]})
    assert [c["id"] for c in r.json()["data"]] == [tagged["id"]]
    r = client.get(f"{API}/public", params={"tag": tag["slug"]})
    assert [c["id"] for c in r.json()["data"]] == [tagged["id"]]

    detail = client.get(f"{API}/public/{tagged['id']}").json()
    assert detail["category"]["id"] == category["id"]
    assert [t["id"] for t in detail["tags"]] == [tag["id"]]


def test_public_view_counts(
    client: TestClient, superuser_token_headers: dict[str, str], db: Session
) -> None:
    comic = create_comic(client, superuser_token_headers)
    for _ in range(2):
        r = client.get(f"{API}/public/{comic['id']}")
        assert r.status_code == 200
    assert r.json()["view_count"] == 2
    db_comic = db.get(Comic, comic["id"])
    assert db_comic
    db.refresh(db_comic)
    assert db_comic.view_count == 2


def test_draft_not_visible_publicly(
    client: TestClient, superuser_token_headers: dict[str, str]
) -> None:
    comic = create_comic(client, superuser_token_headers, status="draft")
    r = client.get(f"{API}/public/{comic['id']}")
    assert r.status_code == 404


def test_like_and_favorite(
    client: TestClient, superuser_token_headers: dict[str, str], db: Session
) -> None:
    comic = create_comic(client, superuser_token_headers)
    _, headers = new_user_headers(client, db)

    r = client.post(f"{API}/public/{comic['id']}/like", headers=headers)
    assert r.json()["like_count"] == 1
    # Liking twice is a no-op
    r = client.post(f"{API}/public/{comic['id']}/like", headers=headers)
    assert r.json()["like_count"] == 1

    r = client.post(f"{API}/public/{comic['id']}/favorite", headers=headers)
    assert r.json()["favorite_count"] == 1

    detail = client.get(f"{API}/public/{comic['id']}", headers=headers).json()
    assert detail["liked"] is True
    assert detail["favorited"] is True

    favorites = client.get(f"{API}/public/favorites", headers=headers).json()
    assert [c["id"] for c in favorites["data"]] == [comic["id"]]
    likes = client.get(f"{API}/public/likes", headers=headers).json()
    assert [c["id"] for c in likes["data"]] == [comic["id"]]

    r = client.delete(f"{API}/public/{comic['id']}/like", headers=headers)
    assert r.json()["like_count"] == 0
    r = client.delete(f"{API}/public/{comic['id']}/favorite", headers=headers)
    assert r.json()["favorite_count"] == 0


def test_like_requires_login(
    client: TestClient, superuser_token_headers: dict[str, str]
) -> None:
    comic = create_comic(client, superuser_token_headers)
    r = client.post(f"{API}/public/{comic['id']}/like")
    assert r.status_code == 401


def test_update_and_delete_comic(
    client: TestClient, superuser_token_headers: dict[str, str]
) -> None:
    comic = create_comic(client, superuser_token_headers)
    r = client.patch(
        f"{API}/{comic['id']}",
        headers=superuser_token_headers,
        json={"hot": 42, "status": "archived"},
    )
    assert r.status_code == 200
    assert r.json()["hot"] == 42
    assert r.json()["status"] == "archived"

    r = client.delete(f"{API}/{comic['id']}", headers=superuser_token_headers)
    assert r.status_code == 200
    r = client.get(f"{API}/{comic['id']}", headers=superuser_token_headers)
    assert r.status_code == 404


def test_my_comics_include_drafts(
    client: TestClient, superuser_token_headers: dict[str, str], db: Session
) -> None:
    draft = create_comic(client, superuser_token_headers, status="draft")
    r = client.get(
        f"{API}/public/mine",
        headers=superuser_token_headers,
        params={"status": "draft", "page_size": 100},
    )
    assert r.status_code == 200
    mine = r.json()["data"]
    assert draft["id"] in [c["id"] for c in mine]
    assert all(c["status"] == "draft" for c in mine)

    _, headers = new_user_headers(client, db)
    r = client.get(f"{API}/public/mine", headers=headers)
    assert r.json()["data"] == []
    assert client.get(f"{API}/public/likes").status_code == 401
