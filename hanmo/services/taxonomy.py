"""Category and tag administration shared by the comic and couplet catalogues."""

from typing import Any

from sqlmodel import Session, col, or_, select

from hanmo.core.exceptions import EntityNotFoundError
from hanmo.models import TaxonomyStatus
from hanmo.utils.pagination import PageParams, fetch_page
from hanmo.utils.slugs import resolve_slug


def list_items(
    session: Session,
    model: type[Any],
    params: PageParams,
    *,
    search: str | None = None,
    status: TaxonomyStatus | None = None,
):
    statement = select(model)
    if search:
        pattern = f"%{search}%"
        statement = statement.where(
            or_(col(model.name).ilike(pattern), col(model.slug).ilike(pattern))
        )
    if status:
        statement = statement.where(model.status == status)
    if hasattr(model, "sort_order"):
        statement = statement.order_by(col(model.sort_order), col(model.id))
    else:
        statement = statement.order_by(col(model.name))
    return fetch_page(session, statement, params)


def list_active(session: Session, model: type[Any]) -> list[Any]:
    statement = select(model).where(model.status == TaxonomyStatus.ACTIVE)
    if hasattr(model, "sort_order"):
        statement = statement.order_by(col(model.sort_order), col(model.id))
    else:
        statement = statement.order_by(col(model.name))
    return list(session.exec(statement).all())


def get_item(session: Session, model: type[Any], item_id: int, label: str) -> Any:
    item = session.get(model, item_id)
    if not item:
        raise EntityNotFoundError(label, item_id)
    return item


def create_item(session: Session, model: type[Any], item_in: Any) -> Any:
    slug = resolve_slug(session, model, explicit=item_in.slug, source=item_in.name)
    item = model.model_validate(item_in, update={"slug": slug})
    session.add(item)
    session.commit()
    session.refresh(item)
    return item


def update_item(
    session: Session, model: type[Any], item_id: int, item_in: Any, label: str
) -> Any:
    item = get_item(session, model, item_id, label)
    data = item_in.model_dump(exclude_unset=True)
    if data.get("slug"):
        data["slug"] = resolve_slug(
            session, model, explicit=data["slug"], source=item.name, exclude_id=item.id
        )
    else:
        data.pop("slug", None)
    item.sqlmodel_update(data)
    session.add(item)
    session.commit()
    session.refresh(item)
    return item


def delete_item(
    session: Session,
    model: type[Any],
    item_id: int,
    label: str,
    *,
    relation_model: type[Any] | None = None,
    relation_field: str | None = None,
) -> None:
    """Delete a category or tag; tag relations are removed, categorised rows detached."""
    item = get_item(session, model, item_id, label)
    if relation_model is not None and relation_field is not None:
        field = getattr(relation_model, relation_field)
        for row in session.exec(select(relation_model).where(field == item_id)).all():
            if relation_field == "category_id":
                row.category_id = None
                session.add(row)
            else:
                session.delete(row)
    session.flush()
    session.delete(item)
    session.commit()
