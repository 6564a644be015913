"""Couplet catalogue: couplets and their content versions."""

import uuid
from enum import Enum

from sqlmodel import Session, col, func, or_, select

from hanmo.core.exceptions import BusinessRuleViolation, EntityNotFoundError
from hanmo.core.observability import get_logger
from hanmo.models import (
    CategoryPublic,
    ContentStatus,
    Couplet,
    CoupletCategory,
    CoupletContent,
    CoupletContentIn,
    CoupletContentPublic,
    CoupletCreate,
    CoupletDetail,
    CoupletFavorite,
    CoupletLike,
    CoupletTag,
    CoupletTagRelation,
    CoupletUpdate,
    CoupletVersion,
    CoupletVersionCreate,
    CoupletVersionPublic,
    CoupletView,
    TagPublic,
)
from hanmo.services import catalog
from hanmo.utils.pagination import PageParams, fetch_page
from hanmo.utils.slugs import resolve_slug

logger = get_logger(__name__)


class PublicSort(str, Enum):
    LATEST = "latest"
    POPULAR = "popular"
    HOT = "hot"


def get_couplet(session: Session, couplet_id: int) -> Couplet:
    couplet = session.get(Couplet, couplet_id)
    if not couplet:
        raise EntityNotFoundError("Couplet", couplet_id)
    return couplet


def _check_category(session: Session, category_id: int | None) -> None:
    if category_id is not None and not session.get(CoupletCategory, category_id):
        raise EntityNotFoundError("Couplet category", category_id)


def _add_contents(
    session: Session,
    couplet_id: int,
    version_id: int,
    contents: list[CoupletContentIn],
) -> None:
    for index, content in enumerate(contents):
        data = content.model_dump()
        if not data.get("order_index"):
            data["order_index"] = index
        session.add(
            CoupletContent.model_validate(
                data, update={"couplet_id": couplet_id, "version_id": version_id}
            )
        )
    session.flush()


def list_couplets(
    session: Session,
    params: PageParams,
    *,
    search: str | None = None,
    category_id: int | None = None,
    status: ContentStatus | None = None,
):
    statement = select(Couplet)
    if search:
        pattern = f"%{search}%"
        statement = statement.where(
            or_(col(Couplet.title).ilike(pattern), col(Couplet.description).ilike(pattern))
        )
    if category_id is not None:
        statement = statement.where(Couplet.category_id == category_id)
    if status:
        statement = statement.where(Couplet.status == status)
    statement = statement.order_by(col(Couplet.created_at).desc(), col(Couplet.id).desc())
    return fetch_page(session, statement, params)


def create_couplet(
    session: Session, couplet_in: CoupletCreate, author_id: uuid.UUID | None
) -> Couplet:
    _check_category(session, couplet_in.category_id)
    slug = resolve_slug(
        session, Couplet, explicit=couplet_in.slug, source=couplet_in.title
    )
    couplet = Couplet.model_validate(
        couplet_in.model_dump(
            exclude={"slug", "tag_ids", "contents", "version_description"}
        ),
        update={"slug": slug, "author_id": author_id},
    )
    session.add(couplet)
    session.flush()
    catalog.replace_tags(
        session, CoupletTagRelation, "couplet_id", couplet.id, CoupletTag, couplet_in.tag_ids
    )
    version = CoupletVersion(
        couplet_id=couplet.id,
        version=1,
        version_description=couplet_in.version_description or "Initial version",
        is_latest_version=True,
    )
    session.add(version)
    session.flush()
    _add_contents(session, couplet.id, version.id, couplet_in.contents)
    session.commit()
    session.refresh(couplet)
    logger.info("Couplet created", couplet_id=couplet.id, slug=couplet.slug)
    return couplet


def update_couplet(
    session: Session, couplet_id: int, couplet_in: CoupletUpdate
) -> Couplet:
    couplet = get_couplet(session, couplet_id)
    data = couplet_in.model_dump(exclude_unset=True)
    tag_ids = data.pop("tag_ids", None)
    if "category_id" in data:
        _check_category(session, data["category_id"])
    if data.get("slug"):
        data["slug"] = resolve_slug(
            session,
            Couplet,
            explicit=data["slug"],
            source=couplet.title,
            exclude_id=couplet.id,
        )
    else:
        data.pop("slug", None)
    couplet.sqlmodel_update(data)
    session.add(couplet)
    if tag_ids is not None:
        catalog.replace_tags(
            session, CoupletTagRelation, "couplet_id", couplet.id, CoupletTag, tag_ids
        )
    session.commit()
    session.refresh(couplet)
    return couplet


def delete_couplet(session: Session, couplet_id: int) -> None:
    couplet = get_couplet(session, couplet_id)
    session.delete(couplet)
    session.commit()
    logger.info("Couplet deleted", couplet_id=couplet_id)


def latest_version(session: Session, couplet_id: int) -> CoupletVersion | None:
    return session.exec(
        select(CoupletVersion).where(
            CoupletVersion.couplet_id == couplet_id,
            col(CoupletVersion.is_latest_version).is_(True),
        )
    ).first()


def get_version(session: Session, couplet_id: int, version_id: int) -> CoupletVersion:
    version = session.get(CoupletVersion, version_id)
    if not version or version.couplet_id != couplet_id:
        raise EntityNotFoundError("Couplet version", version_id)
    return version


def version_public(session: Session, version: CoupletVersion) -> CoupletVersionPublic:
    contents = session.exec(
        select(CoupletContent)
        .where(CoupletContent.version_id == version.id)
        .order_by(col(CoupletContent.order_index), col(CoupletContent.id))
    ).all()
    return CoupletVersionPublic.model_validate(
        version,
        update={"contents": [CoupletContentPublic.model_validate(c) for c in contents]},
    )


def list_versions(session: Session, couplet_id: int) -> list[CoupletVersionPublic]:
    get_couplet(session, couplet_id)
    versions = session.exec(
        select(CoupletVersion)
        .where(CoupletVersion.couplet_id == couplet_id)
        .order_by(col(CoupletVersion.version).desc())
    ).all()
    return [version_public(session, v) for v in versions]


def _flip_latest(session: Session, couplet_id: int, version: CoupletVersion) -> None:
    for other in session.exec(
        select(CoupletVersion).where(
            CoupletVersion.couplet_id == couplet_id,
            col(CoupletVersion.is_latest_version).is_(True),
            CoupletVersion.id != version.id,
        )
    ).all():
        other.is_latest_version = False
        session.add(other)
    version.is_latest_version = True
    session.add(version)
    session.flush()


def create_version(
    session: Session, couplet_id: int, version_in: CoupletVersionCreate
) -> CoupletVersionPublic:
    get_couplet(session, couplet_id)
    if version_in.parent_version_id is not None:
        parent = get_version(session, couplet_id, version_in.parent_version_id)
    else:
        parent = latest_version(session, couplet_id)
    current_max = session.exec(
        select(func.max(CoupletVersion.version)).where(
            CoupletVersion.couplet_id == couplet_id
        )
    ).one()
    version = CoupletVersion(
        couplet_id=couplet_id,
        version=(current_max or 0) + 1,
        parent_version_id=parent.id if parent else None,
        version_description=version_in.version_description,
        is_latest_version=False,
        original_couplet_id=couplet_id,
    )
    session.add(version)
    session.flush()
    _add_contents(session, couplet_id, version.id, version_in.contents)
    if version_in.is_latest:
        _flip_latest(session, couplet_id, version)
    session.commit()
    session.refresh(version)
    logger.info("Couplet version created", couplet_id=couplet_id, version=version.version)
    return version_public(session, version)


def set_latest_version(
    session: Session, couplet_id: int, version_id: int
) -> CoupletVersionPublic:
    get_couplet(session, couplet_id)
    version = get_version(session, couplet_id, version_id)
    _flip_latest(session, couplet_id, version)
    session.commit()
    session.refresh(version)
    return version_public(session, version)


def delete_version(session: Session, couplet_id: int, version_id: int) -> None:
    version = get_version(session, couplet_id, version_id)
    if version.is_latest_version:
        raise BusinessRuleViolation(
            "The latest version cannot be deleted", {"version_id": version_id}
        )
    session.delete(version)
    session.commit()


def couplet_detail(
    session: Session, couplet: Couplet, user_id: uuid.UUID | None = None
) -> CoupletDetail:
    category = (
        session.get(CoupletCategory, couplet.category_id) if couplet.category_id else None
    )
    latest = latest_version(session, couplet.id)
    return CoupletDetail.model_validate(
        couplet,
        update={
            "category": CategoryPublic.model_validate(category) if category else None,
            "tags": [
                TagPublic.model_validate(t)
                for t in catalog.tags_of(
                    session, CoupletTagRelation, "couplet_id", couplet.id, CoupletTag
                )
            ],
            "latest_version": version_public(session, latest) if latest else None,
            "liked": catalog.has_reaction(
                session, CoupletLike, "couplet_id", couplet.id, user_id
            ),
            "favorited": catalog.has_reaction(
                session, CoupletFavorite, "couplet_id", couplet.id, user_id
            ),
        },
    )


def _public_statement():
    return select(Couplet).where(
        Couplet.status == ContentStatus.PUBLISHED, col(Couplet.is_public).is_(True)
    )


def list_public(
    session: Session,
    params: PageParams,
    *,
    category: str | None = None,
    tag: str | None = None,
    search: str | None = None,
    sort: PublicSort = PublicSort.LATEST,
):
    statement = _public_statement()
    if category:
        statement = statement.join(
            CoupletCategory, col(CoupletCategory.id) == Couplet.category_id
        ).where(CoupletCategory.slug == category)
    if tag:
        statement = (
            statement.join(
                CoupletTagRelation, col(CoupletTagRelation.couplet_id) == Couplet.id
            )
            .join(CoupletTag, col(CoupletTag.id) == CoupletTagRelation.tag_id)
            .where(CoupletTag.slug == tag)
        )
    if search:
        pattern = f"%{search}%"
        statement = statement.where(
            or_(col(Couplet.title).ilike(pattern), col(Couplet.description).ilike(pattern))
        )
    if sort == PublicSort.POPULAR:
        statement = statement.order_by(
            col(Couplet.like_count).desc(), col(Couplet.view_count).desc()
        )
    elif sort == PublicSort.HOT:
        statement = statement.order_by(col(Couplet.hot).desc(), col(Couplet.view_count).desc())
    else:
        statement = statement.order_by(col(Couplet.created_at).desc())
    statement = statement.order_by(col(Couplet.id).desc())
    return fetch_page(session, statement, params)


def get_public_couplet(session: Session, couplet_id: int) -> Couplet:
    couplet = session.exec(_public_statement().where(Couplet.id == couplet_id)).first()
    if not couplet:
        raise EntityNotFoundError("Couplet", couplet_id)
    return couplet


def view_public_couplet(
    session: Session, couplet_id: int, *, user_id: uuid.UUID | None, ip: str | None
) -> CoupletDetail:
    couplet = get_public_couplet(session, couplet_id)
    catalog.record_view(
        session, CoupletView, "couplet_id", couplet, user_id=user_id, ip=ip
    )
    return couplet_detail(session, couplet, user_id)


def like(session: Session, couplet_id: int, user_id: uuid.UUID) -> Couplet:
    couplet = get_public_couplet(session, couplet_id)
    catalog.add_reaction(session, CoupletLike, "couplet_id", couplet, "like_count", user_id)
    return couplet


def unlike(session: Session, couplet_id: int, user_id: uuid.UUID) -> Couplet:
    couplet = get_couplet(session, couplet_id)
    catalog.remove_reaction(
        session, CoupletLike, "couplet_id", couplet, "like_count", user_id
    )
    return couplet


def favorite(session: Session, couplet_id: int, user_id: uuid.UUID) -> Couplet:
    couplet = get_public_couplet(session, couplet_id)
    catalog.add_reaction(
        session, CoupletFavorite, "couplet_id", couplet, "favorite_count", user_id
    )
    return couplet


def unfavorite(session: Session, couplet_id: int, user_id: uuid.UUID) -> Couplet:
    couplet = get_couplet(session, couplet_id)
    catalog.remove_reaction(
        session, CoupletFavorite, "couplet_id", couplet, "favorite_count", user_id
    )
    return couplet


def list_favorites(session: Session, user_id: uuid.UUID, params: PageParams):
    statement = (
        select(Couplet)
        .join(CoupletFavorite, col(CoupletFavorite.couplet_id) == Couplet.id)
        .where(CoupletFavorite.user_id == user_id)
        .order_by(col(CoupletFavorite.created_at).desc(), col(CoupletFavorite.id).desc())
    )
    return fetch_page(session, statement, params)


def list_likes(session: Session, user_id: uuid.UUID, params: PageParams):
    statement = (
        select(Couplet)
        .join(CoupletLike, col(CoupletLike.couplet_id) == Couplet.id)
        .where(CoupletLike.user_id == user_id)
        .order_by(col(CoupletLike.created_at).desc(), col(CoupletLike.id).desc())
    )
    return fetch_page(session, statement, params)


def list_authored(
    session: Session,
    user_id: uuid.UUID,
    params: PageParams,
    *,
    status: ContentStatus | None = None,
):
    statement = select(Couplet).where(Couplet.author_id == user_id)
    if status:
        statement = statement.where(Couplet.status == status)
    statement = statement.order_by(
        col(Couplet.created_at).desc(), col(Couplet.id).desc()
    )
    return fetch_page(session, statement, params)
