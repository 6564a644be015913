from fastapi.testclient import TestClient

from hanmo.core.config import settings
from hanmo.tests.utils.utils import random_lower_string

API = f"{settings.API_V1_STR}/main-menus"


def create_menu(client: TestClient, headers: dict[str, str], **fields: object) -> dict:
    data = {
        "path": f"/{random_lower_string()[:10]}",
        "translations": [
            {"lang": "en", "name": "Comics", "meta_title": "Read comics"},
            {"lang": "zh", "name": "漫画"},
        ],
        **fields,
    }
    r = client.post(f"{API}/admin", headers=headers, json=data)
    assert r.status_code == 200, r.text
    return r.json()


def test_public_menu_is_localized(
    client: TestClient, superuser_token_headers: dict[str, str]
) -> None:
    menu = create_menu(client, superuser_token_headers)
    assert {t["lang"] for t in menu["translations"]} == {"en", "zh"}

    r = client.get(f"{API}/", params={"path": menu["path"]})
    assert r.status_code == 200
    assert r.headers["cache-control"] == "no-cache, no-store, must-revalidate"
    assert r.headers["pragma"] == "no-cache"
    assert r.headers["expires"] == "0"
    items = r.json()
    assert len(items) == 1
    assert items[0]["name"] == "Comics"
    assert items[0]["meta_title"] == "Read comics"
    assert items[0]["meta_description"] == ""

    r = client.get(f"{API}/", params={"path": menu["path"], "lang": "zh"})
    assert r.json()[0]["name"] == "漫画"

    # Languages without a translation fall back to empty text
    r = client.get(f"{API}/", params={"path": menu["path"], "lang": "fr"})
    assert r.json()[0]["name"] == ""


def test_inactive_menus_hidden_by_default(
    client: TestClient, superuser_token_headers: dict[str, str]
) -> None:
    menu = create_menu(client, superuser_token_headers, status="inactive")
    r = client.get(f"{API}/", params={"path": menu["path"]})
    assert r.json() == []
    r = client.get(f"{API}/", params={"path": menu["path"], "status": "inactive"})
    assert [m["id"] for m in r.json()] == [menu["id"]]


def test_duplicate_language_rejected(
    client: TestClient, superuser_token_headers: dict[str, str]
) -> None:
    r = client.post(
        f"{API}/admin",
        headers=superuser_token_headers,
        json={
            "path": "/twice",
            "translations": [
                {"lang": "en", "name": "One"},
                {"lang": "en", "name": "Two"},
            ],
        },
    )
    assert r.status_code == 400
    assert r.json()["details"] == {"field": "translations"}


def test_update_replaces_translations(
    client: TestClient, superuser_token_headers: dict[str, str]
) -> None:
    menu = create_menu(client, superuser_token_headers)
    r = client.patch(
        f"{API}/admin/{menu['id']}",
        headers=superuser_token_headers,
        json={"order": 3, "translations": [{"lang": "en", "name": "Stories"}]},
    )
    assert r.status_code == 200
    updated = r.json()
    assert updated["order"] == 3
    assert updated["translations"] == [
        {
            "lang": "en",
            "name": "Stories",
            "meta_title": None,
            "meta_description": None,
            "meta_keywords": None,
        }
    ]

    r = client.patch(
        f"{API}/admin/{menu['id']}",
        headers=superuser_token_headers,
        json={"parent_id": menu["id"]},
    )
    assert r.status_code == 400


def test_delete_parent_detaches_children(
    client: TestClient, superuser_token_headers: dict[str, str]
) -> None:
    parent = create_menu(client, superuser_token_headers)
    child = create_menu(
        client, superuser_token_headers, parent_id=parent["id"], is_top=False
    )
    assert child["parent_id"] == parent["id"]

    r = client.delete(f"{API}/admin/{parent['id']}", headers=superuser_token_headers)
    assert r.status_code == 200
    r = client.get(f"{API}/admin/{child['id']}", headers=superuser_token_headers)
    assert r.json()["parent_id"] is None
    r = client.get(f"{API}/admin/{parent['id']}", headers=superuser_token_headers)
    assert r.status_code == 404


def test_admin_requires_permission(
    client: TestClient, normal_user_token_headers: dict[str, str]
) -> None:
    r = client.get(f"{API}/admin", headers=normal_user_token_headers)
    assert r.status_code == 403
