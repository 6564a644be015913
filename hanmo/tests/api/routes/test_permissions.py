from fastapi.testclient import TestClient
from sqlmodel import Session, select

from hanmo.core.config import settings
from hanmo.models import Permission, PermissionLog, Role
from hanmo.tests.utils.user import new_user_headers
from hanmo.tests.utils.utils import random_lower_string

API = f"{settings.API_V1_STR}/permissions"


def _role(db: Session, name: str) -> Role:
    role = db.exec(select(Role).where(Role.name == name)).first()
    assert role
    return role


def _permission(db: Session, name: str) -> Permission:
    permission = db.exec(select(Permission).where(Permission.name == name)).first()
    assert permission
    return permission


def test_system_roles_seeded(
    client: TestClient, superuser_token_headers: dict[str, str]
) -> None:
    r = client.get(f"{API}/roles", headers=superuser_token_headers)
    assert r.status_code == 200
    names = {role["name"] for role in r.json()}
    assert {"super_admin", "admin", "editor", "user"} <= names


def test_superuser_has_wildcard(
    client: TestClient, superuser_token_headers: dict[str, str]
) -> None:
    r = client.get(f"{API}/me", headers=superuser_token_headers)
    assert r.status_code == 200
    assert r.json()["permissions"] == ["*"]


def test_assign_role_grants_permissions(
    client: TestClient, superuser_token_headers: dict[str, str], db: Session
) -> None:
    user, headers = new_user_headers(client, db)
    r = client.get(f"{settings.API_V1_STR}/comics/", headers=headers)
    assert r.status_code == 403
    assert r.json()["detail"] == "Insufficient permissions. Required: comic.read"

    editor = _role(db, "editor")
    r = client.post(
        f"{API}/users/{user.id}/roles",
        headers=superuser_token_headers,
        json={"role_id": editor.id, "reason": "joins the editorial team"},
    )
    assert r.status_code == 200

    r = client.get(f"{settings.API_V1_STR}/comics/", headers=headers)
    assert r.status_code == 200

    r = client.get(f"{API}/me", headers=headers)
    body = r.json()
    assert "editor" in body["roles"]
    assert "comic.create" in body["permissions"]
    assert "comic.delete" not in body["permissions"]

    # Assigning the same role twice conflicts
    r = client.post(
        f"{API}/users/{user.id}/roles",
        headers=superuser_token_headers,
        json={"role_id": editor.id},
    )
    assert r.status_code == 409

    r = client.delete(
        f"{API}/users/{user.id}/roles/{editor.id}", headers=superuser_token_headers
    )
    assert r.status_code == 200
    r = client.get(f"{settings.API_V1_STR}/comics/", headers=headers)
    assert r.status_code == 403

    logs = db.exec(
        select(PermissionLog).where(PermissionLog.target_id == str(editor.id))
    ).all()
    assert {log.action for log in logs} >= {"grant", "revoke"}


def test_restricted_override_removes_role_permission(
    client: TestClient, superuser_token_headers: dict[str, str], db: Session
) -> None:
    user, headers = new_user_headers(client, db)
    editor = _role(db, "editor")
    client.post(
        f"{API}/users/{user.id}/roles",
        headers=superuser_token_headers,
        json={"role_id": editor.id},
    )
    comic_read = _permission(db, "comic.read")
    r = client.post(
        f"{API}/users/{user.id}/overrides",
        headers=superuser_token_headers,
        json={"permission_id": comic_read.id, "type": "restricted"},
    )
    assert r.status_code == 200
    assert r.json()["type"] == "restricted"

    r = client.get(f"{settings.API_V1_STR}/comics/", headers=headers)
    assert r.status_code == 403

    r = client.delete(
        f"{API}/users/{user.id}/overrides/{comic_read.id}",
        headers=superuser_token_headers,
    )
    assert r.status_code == 200
    r = client.get(f"{settings.API_V1_STR}/comics/", headers=headers)
    assert r.status_code == 200


def test_direct_override_grants_single_permission(
    client: TestClient, superuser_token_headers: dict[str, str], db: Session
) -> None:
    user, headers = new_user_headers(client, db)
    r = client.get(f"{API}/logs", headers=headers)
    assert r.status_code == 403
    assert r.json()["detail"] == (
        "Insufficient permissions. Required: permission.read or system.read"
    )

    system_read = _permission(db, "system.read")
    r = client.post(
        f"{API}/users/{user.id}/overrides",
        headers=superuser_token_headers,
        json={"permission_id": system_read.id},
    )
    assert r.status_code == 200
    r = client.get(f"{settings.API_V1_STR}/system/logs", headers=headers)
    assert r.status_code == 200
    # Either permission opens the permission log
    r = client.get(f"{API}/logs", headers=headers)
    assert r.status_code == 200

    r = client.put(
        f"{API}/roles/1/permissions", headers=headers, json={"permission_ids": []}
    )
    assert r.status_code == 403
    assert r.json()["detail"] == (
        "Insufficient permissions. Required: role.update, permission.read"
    )


def test_permission_request_flow(
    client: TestClient, superuser_token_headers: dict[str, str], db: Session
) -> None:
    user, headers = new_user_headers(client, db)
    editor = _role(db, "editor")

    r = client.post(
        f"{API}/requests",
        headers=headers,
        json={"role_id": editor.id, "reason": "I write couplets"},
    )
    assert r.status_code == 200
    request_id = r.json()["id"]
    assert r.json()["status"] == "pending"

    r = client.post(
        f"{API}/requests",
        headers=headers,
        json={"role_id": editor.id, "reason": "again"},
    )
    assert r.status_code == 409

    r = client.get(
        f"{API}/requests", headers=superuser_token_headers, params={"status": "pending"}
    )
    assert request_id in [item["id"] for item in r.json()["data"]]

    r = client.post(
        f"{API}/requests/{request_id}/review",
        headers=superuser_token_headers,
        json={"status": "approved", "review_comment": "welcome"},
    )
    assert r.status_code == 200
    assert r.json()["status"] == "approved"

    r = client.get(f"{API}/me", headers=headers)
    assert "editor" in r.json()["roles"]

    r = client.post(
        f"{API}/requests/{request_id}/review",
        headers=superuser_token_headers,
        json={"status": "rejected"},
    )
    assert r.status_code == 400


def test_role_crud_and_permissions(
    client: TestClient, superuser_token_headers: dict[str, str], db: Session
) -> None:
    name = f"role_{random_lower_string()[:10]}"
    r = client.post(
        f"{API}/roles",
        headers=superuser_token_headers,
        json={"name": name, "display_name": "Reviewer"},
    )
    assert r.status_code == 200
    role_id = r.json()["id"]
    assert r.json()["is_system"] is False

    r = client.post(
        f"{API}/roles",
        headers=superuser_token_headers,
        json={"name": name, "display_name": "Duplicate"},
    )
    assert r.status_code == 409

    ids = [_permission(db, "order.read").id, _permission(db, "order.update").id]
    r = client.put(
        f"{API}/roles/{role_id}/permissions",
        headers=superuser_token_headers,
        json={"permission_ids": ids},
    )
    assert r.status_code == 200
    assert {p["name"] for p in r.json()} == {"order.read", "order.update"}

    r = client.put(
        f"{API}/roles/{role_id}/permissions",
        headers=superuser_token_headers,
        json={"permission_ids": [999999]},
    )
    assert r.status_code == 404

    r = client.delete(f"{API}/roles/{role_id}", headers=superuser_token_headers)
    assert r.status_code == 200


def test_system_role_and_permission_cannot_be_deleted(
    client: TestClient, superuser_token_headers: dict[str, str], db: Session
) -> None:
    r = client.delete(
        f"{API}/roles/{_role(db, 'editor').id}", headers=superuser_token_headers
    )
    assert r.status_code == 400
    assert r.json()["type"] == "business_rule"

    r = client.delete(
        f"{API}/{_permission(db, 'comic.read').id}", headers=superuser_token_headers
    )
    assert r.status_code == 400


def test_normal_user_cannot_manage_roles(
    client: TestClient, normal_user_token_headers: dict[str, str]
) -> None:
    r = client.get(f"{API}/roles", headers=normal_user_token_headers)
    assert r.status_code == 403


def test_permission_log_records_forwarded_ip(
    client: TestClient, superuser_token_headers: dict[str, str], db: Session
) -> None:
    user, _ = new_user_headers(client, db)
    editor = _role(db, "editor")
    r = client.post(
        f"{API}/users/{user.id}/roles",
        headers={**superuser_token_headers, "X-Real-IP": "198.51.100.23"},
        json={"role_id": editor.id},
    )
    assert r.status_code == 200
    log = db.exec(
        select(PermissionLog).where(
            PermissionLog.action == "grant",
            PermissionLog.target_id == str(editor.id),
            PermissionLog.ip == "198.51.100.23",
        )
    ).first()
    assert log
    assert log.details and log.details["target_user_id"] == str(user.id)
