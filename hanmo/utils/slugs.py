import re
from typing import Any

from sqlmodel import Session, select

from hanmo.core.exceptions import EntityAlreadyExistsError

SLUG_MAX_LENGTH = 100
_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(text: str) -> str:
    slug = _NON_ALNUM.sub("-", text.lower()).strip("-")[:SLUG_MAX_LENGTH]
    # Truncation can leave a trailing separator
    return slug.rstrip("-") or "item"


def slug_exists(
    session: Session, model: type[Any], slug: str, exclude_id: int | None = None
) -> bool:
    statement = select(model.id).where(model.slug == slug)
    if exclude_id is not None:
        statement = statement.where(model.id != exclude_id)
    return session.exec(statement).first() is not None


def unique_slug(session: Session, model: type[Any], text: str) -> str:
    base = slugify(text)
    slug = base
    suffix = 2
    while slug_exists(session, model, slug):
        tail = f"-{suffix}"
        slug = f"{base[: SLUG_MAX_LENGTH - len(tail)]}{tail}"
        suffix += 1
    return slug


def resolve_slug(
    session: Session,
    model: type[Any],
    *,
    explicit: str | None,
    source: str,
    exclude_id: int | None = None,
) -> str:
    """Use an admin supplied slug when free, otherwise derive one from ``source``."""
    if explicit:
        slug = slugify(explicit)
        if slug_exists(session, model, slug, exclude_id=exclude_id):
            raise EntityAlreadyExistsError(
                f"Slug '{slug}' is already in use", {"slug": slug}
            )
        return slug
    return unique_slug(session, model, source)
