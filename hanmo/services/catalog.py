"""Tag links, views, likes and favorites shared by comics and couplets."""

import uuid
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col, select

from hanmo.core.exceptions import EntityNotFoundError


def load_tags(session: Session, tag_model: type[Any], tag_ids: list[int]) -> list[Any]:
    if not tag_ids:
        return []
    unique_ids = list(dict.fromkeys(tag_ids))
    tags = session.exec(select(tag_model).where(col(tag_model.id).in_(unique_ids))).all()
    missing = set(unique_ids) - {t.id for t in tags}
    if missing:
        raise EntityNotFoundError("Tag", sorted(missing)[0])
    return list(tags)


def replace_tags(
    session: Session,
    link_model: type[Any],
    owner_field: str,
    owner_id: int,
    tag_model: type[Any],
    tag_ids: list[int],
) -> None:
    """Replace the tag links of one comic or couplet; flushes only."""
    tags = load_tags(session, tag_model, tag_ids)
    owner_column = getattr(link_model, owner_field)
    for link in session.exec(select(link_model).where(owner_column == owner_id)).all():
        session.delete(link)
    session.flush()
    for tag in tags:
        session.add(link_model(**{owner_field: owner_id, "tag_id": tag.id}))
    session.flush()


def tags_of(
    session: Session,
    link_model: type[Any],
    owner_field: str,
    owner_id: int,
    tag_model: type[Any],
) -> list[Any]:
    return list(
        session.exec(
            select(tag_model)
            .join(link_model, col(link_model.tag_id) == tag_model.id)
            .where(getattr(link_model, owner_field) == owner_id)
            .order_by(col(tag_model.name))
        ).all()
    )


def record_view(
    session: Session,
    view_model: type[Any],
    owner_field: str,
    item: Any,
    *,
    user_id: uuid.UUID | None,
    ip: str | None,
) -> None:
    session.add(view_model(**{owner_field: item.id, "user_id": user_id, "ip": ip}))
    item.view_count += 1
    session.add(item)
    session.commit()
    session.refresh(item)


def has_reaction(
    session: Session,
    reaction_model: type[Any],
    owner_field: str,
    owner_id: int,
    user_id: uuid.UUID | None,
) -> bool:
    if user_id is None:
        return False
    return (
        session.exec(
            select(reaction_model.id).where(
                getattr(reaction_model, owner_field) == owner_id,
                reaction_model.user_id == user_id,
            )
        ).first()
        is not None
    )


def add_reaction(
    session: Session,
    reaction_model: type[Any],
    owner_field: str,
    item: Any,
    counter: str,
    user_id: uuid.UUID,
) -> bool:
    """Add a like or favorite; returns False when it was already there."""
    if has_reaction(session, reaction_model, owner_field, item.id, user_id):
        return False
    session.add(reaction_model(**{owner_field: item.id, "user_id": user_id}))
    setattr(item, counter, getattr(item, counter) + 1)
    session.add(item)
    try:
        session.commit()
    except IntegrityError:
        # Lost a race with a concurrent request from the same user
        session.rollback()
        return False
    session.refresh(item)
    return True


def remove_reaction(
    session: Session,
    reaction_model: type[Any],
    owner_field: str,
    item: Any,
    counter: str,
    user_id: uuid.UUID,
) -> bool:
    row = session.exec(
        select(reaction_model).where(
            getattr(reaction_model, owner_field) == item.id,
            reaction_model.user_id == user_id,
        )
    ).first()
    if row is None:
        return False
    session.delete(row)
    setattr(item, counter, max(0, getattr(item, counter) - 1))
    session.add(item)
    session.commit()
    session.refresh(item)
    return True
