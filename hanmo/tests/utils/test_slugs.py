import pytest
from sqlmodel import Session

from hanmo.core.exceptions import EntityAlreadyExistsError
from hanmo.models import ComicTag
from hanmo.tests.utils.utils import random_lower_string
from hanmo.utils.slugs import SLUG_MAX_LENGTH, resolve_slug, slugify, unique_slug


def test_slugify() -> None:
    assert slugify("Hello, World!") == "hello-world"
    assert slugify("  --Spaced  Out--  ") == "spaced-out"
    assert slugify("春联") == "item"
    assert len(slugify("a" * 300)) == SLUG_MAX_LENGTH


def test_unique_slug_appends_counter(db: Session) -> None:
    name = f"Tag {random_lower_string()[:8]}"
    first = unique_slug(db, ComicTag, name)
    db.add(ComicTag(name=name, slug=first))
    db.commit()
    assert unique_slug(db, ComicTag, name) == f"{first}-2"


def test_resolve_slug_rejects_taken_explicit(db: Session) -> None:
    slug = f"taken-{random_lower_string()[:8]}"
    db.add(ComicTag(name="Taken", slug=slug))
    db.commit()
    with pytest.raises(EntityAlreadyExistsError):
        resolve_slug(db, ComicTag, explicit=slug, source="ignored")
    assert resolve_slug(db, ComicTag, explicit=None, source=slug) == f"{slug}-2"
