from fastapi.testclient import TestClient
from sqlmodel import Session

from hanmo.core.config import settings
from hanmo.models import Comic, ContentStatus, Couplet
from hanmo.tests.utils.utils import random_lower_string

API = f"{settings.API_V1_STR}/search/"


def add(db: Session, model: type, marker: str, **fields: object) -> object:
    item = model(slug=f"{marker}-{random_lower_string()[:8]}", **fields)
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


def test_search_ranks_title_matches_first(client: TestClient, db: Session) -> None:
    marker = random_lower_string()[:12]
    described = add(
        db, Comic, marker, title="Lantern night", description=f"About {marker}"
    )
    titled = add(db, Comic, marker, title=f"The {marker} scroll")
    couplet = add(db, Couplet, marker, title=f"{marker} couplet")
    add(db, Comic, marker, title=f"{marker} draft", status=ContentStatus.DRAFT)
    add(db, Couplet, marker, title=f"{marker} private", is_public=False)

    r = client.get(API, params={"q": marker})
    assert r.status_code == 200
    body = r.json()
    assert body["total"] == 3
    results = body["results"]
    assert {res["id"] for res in results if res["type"] == "comic"} == {
        described.id,
        titled.id,
    }
    assert results[-1]["id"] == described.id
    assert results[-1]["relevance"] == 1
    assert all(res["relevance"] == 2 for res in results[:-1])

    comic_hit = next(res for res in results if res["id"] == titled.id)
    assert comic_hit["url"] == f"/comics/{titled.slug}"

    r = client.get(API, params={"q": marker, "type": "couplet"})
    body = r.json()
    assert body["total"] == 1
    assert body["results"][0]["id"] == couplet.id
    assert body["results"][0]["url"] == f"/couplets/{couplet.slug}"


def test_search_limit_keeps_total(client: TestClient, db: Session) -> None:
    marker = random_lower_string()[:12]
    for _ in range(3):
        add(db, Comic, marker, title=f"{marker} page")

    r = client.get(API, params={"q": marker, "type": "comic", "limit": 2})
    body = r.json()
    assert body["total"] == 3
    assert len(body["results"]) == 2


def test_blank_query_returns_nothing(client: TestClient) -> None:
    r = client.get(API, params={"q": "   "})
    assert r.status_code == 200
    assert r.json() == {"query": "", "type": "all", "total": 0, "results": []}

    r = client.get(API, params={"q": "x", "limit": 0})
    assert r.status_code == 422
