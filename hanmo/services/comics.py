"""
Comic catalogue: comics, their versions and the
volume -> episode -> page -> panel structure of each version.

Exactly one version per comic is flagged ``is_latest_version``; the comic's
volume and episode counts describe that version.
"""

import uuid
from enum import Enum

from sqlmodel import Session, col, func, or_, select

from hanmo.core.exceptions import (
    BusinessRuleViolation,
    EntityAlreadyExistsError,
    EntityNotFoundError,
)
from hanmo.core.observability import get_logger
from hanmo.models import (
    CategoryPublic,
    Comic,
    ComicCategory,
    ComicCreate,
    ComicDetail,
    ComicEpisode,
    ComicEpisodeCreate,
    ComicEpisodeTree,
    ComicFavorite,
    ComicLike,
    ComicPage,
    ComicPageCreate,
    ComicPageTree,
    ComicPanel,
    ComicPanelCreate,
    ComicPanelPublic,
    ComicTag,
    ComicTagRelation,
    ComicUpdate,
    ComicVersion,
    ComicVersionCreate,
    ComicVersionTree,
    ComicView,
    ComicVolume,
    ComicVolumeCreate,
    ComicVolumeTree,
    ContentStatus,
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


def get_comic(session: Session, comic_id: int) -> Comic:
    comic = session.get(Comic, comic_id)
    if not comic:
        raise EntityNotFoundError("Comic", comic_id)
    return comic


def _check_category(session: Session, category_id: int | None) -> None:
    if category_id is not None and not session.get(ComicCategory, category_id):
        raise EntityNotFoundError("Comic category", category_id)


def list_comics(
    session: Session,
    params: PageParams,
    *,
    search: str | None = None,
    category_id: int | None = None,
    status: ContentStatus | None = None,
):
    statement = select(Comic)
    if search:
        pattern = f"%{search}%"
        statement = statement.where(
            or_(col(Comic.title).ilike(pattern), col(Comic.description).ilike(pattern))
        )
    if category_id is not None:
        statement = statement.where(Comic.category_id == category_id)
    if status:
        statement = statement.where(Comic.status == status)
    statement = statement.order_by(col(Comic.created_at).desc(), col(Comic.id).desc())
    return fetch_page(session, statement, params)


def create_comic(
    session: Session, comic_in: ComicCreate, author_id: uuid.UUID | None
) -> Comic:
    _check_category(session, comic_in.category_id)
    slug = resolve_slug(session, Comic, explicit=comic_in.slug, source=comic_in.title)
    comic = Comic.model_validate(
        comic_in.model_dump(exclude={"slug", "tag_ids", "version_description"}),
        update={"slug": slug, "author_id": author_id},
    )
    session.add(comic)
    session.flush()
    catalog.replace_tags(
        session, ComicTagRelation, "comic_id", comic.id, ComicTag, comic_in.tag_ids
    )
    session.add(
        ComicVersion(
            comic_id=comic.id,
            version=1,
            version_description=comic_in.version_description or "Initial version",
            is_latest_version=True,
        )
    )
    session.commit()
    session.refresh(comic)
    logger.info("Comic created", comic_id=comic.id, slug=comic.slug)
    return comic


def update_comic(session: Session, comic_id: int, comic_in: ComicUpdate) -> Comic:
    comic = get_comic(session, comic_id)
    data = comic_in.model_dump(exclude_unset=True)
    tag_ids = data.pop("tag_ids", None)
    if "category_id" in data:
        _check_category(session, data["category_id"])
    if data.get("slug"):
        data["slug"] = resolve_slug(
            session, Comic, explicit=data["slug"], source=comic.title, exclude_id=comic.id
        )
    else:
        data.pop("slug", None)
    comic.sqlmodel_update(data)
    session.add(comic)
    if tag_ids is not None:
        catalog.replace_tags(
            session, ComicTagRelation, "comic_id", comic.id, ComicTag, tag_ids
        )
    session.commit()
    session.refresh(comic)
    return comic


def delete_comic(session: Session, comic_id: int) -> None:
    comic = get_comic(session, comic_id)
    session.delete(comic)
    session.commit()
    logger.info("Comic deleted", comic_id=comic_id)


def latest_version(session: Session, comic_id: int) -> ComicVersion | None:
    return session.exec(
        select(ComicVersion).where(
            ComicVersion.comic_id == comic_id,
            col(ComicVersion.is_latest_version).is_(True),
        )
    ).first()


def list_versions(session: Session, comic_id: int) -> list[ComicVersion]:
    get_comic(session, comic_id)
    return list(
        session.exec(
            select(ComicVersion)
            .where(ComicVersion.comic_id == comic_id)
            .order_by(col(ComicVersion.version).desc())
        ).all()
    )


def get_version(session: Session, comic_id: int, version_id: int) -> ComicVersion:
    version = session.get(ComicVersion, version_id)
    if not version or version.comic_id != comic_id:
        raise EntityNotFoundError("Comic version", version_id)
    return version


def _refresh_comic_counts(session: Session, comic: Comic) -> None:
    latest = latest_version(session, comic.id)
    if latest is None:
        comic.volume_count = comic.episode_count = 0
    else:
        comic.volume_count = session.exec(
            select(func.count())
            .select_from(ComicVolume)
            .where(ComicVolume.version_id == latest.id)
        ).one()
        comic.episode_count = session.exec(
            select(func.count())
            .select_from(ComicEpisode)
            .where(ComicEpisode.version_id == latest.id)
        ).one()
    session.add(comic)


def _flip_latest(session: Session, comic_id: int, version: ComicVersion) -> None:
    for other in session.exec(
        select(ComicVersion).where(
            ComicVersion.comic_id == comic_id,
            col(ComicVersion.is_latest_version).is_(True),
            ComicVersion.id != version.id,
        )
    ).all():
        other.is_latest_version = False
        session.add(other)
    version.is_latest_version = True
    session.add(version)
    session.flush()


def _copy_structure(session: Session, source: ComicVersion, target: ComicVersion) -> None:
    volume_ids: dict[int, int] = {}
    for volume in session.exec(
        select(ComicVolume).where(ComicVolume.version_id == source.id)
    ).all():
        copy = ComicVolume.model_validate(
            volume.model_dump(exclude={"id", "version_id", "created_at", "updated_at"}),
            update={"version_id": target.id},
        )
        session.add(copy)
        session.flush()
        volume_ids[volume.id] = copy.id

    for episode in session.exec(
        select(ComicEpisode).where(ComicEpisode.version_id == source.id)
    ).all():
        episode_copy = ComicEpisode.model_validate(
            episode.model_dump(
                exclude={"id", "version_id", "volume_id", "created_at", "updated_at"}
            ),
            update={
                "version_id": target.id,
                "volume_id": volume_ids.get(episode.volume_id)
                if episode.volume_id
                else None,
            },
        )
        session.add(episode_copy)
        session.flush()
        for page in session.exec(
            select(ComicPage).where(ComicPage.episode_id == episode.id)
        ).all():
            page_copy = ComicPage.model_validate(
                page.model_dump(exclude={"id", "episode_id", "created_at", "updated_at"}),
                update={"episode_id": episode_copy.id},
            )
            session.add(page_copy)
            session.flush()
            for panel in session.exec(
                select(ComicPanel).where(ComicPanel.page_id == page.id)
            ).all():
                session.add(
                    ComicPanel.model_validate(
                        panel.model_dump(
                            exclude={"id", "page_id", "created_at", "updated_at"}
                        ),
                        update={"page_id": page_copy.id},
                    )
                )
    session.flush()


def create_version(
    session: Session, comic_id: int, version_in: ComicVersionCreate
) -> ComicVersion:
    comic = get_comic(session, comic_id)
    if version_in.parent_version_id is not None:
        parent = get_version(session, comic_id, version_in.parent_version_id)
    else:
        parent = latest_version(session, comic_id)

    current_max = session.exec(
        select(func.max(ComicVersion.version)).where(ComicVersion.comic_id == comic_id)
    ).one()
    version = ComicVersion(
        comic_id=comic_id,
        version=(current_max or 0) + 1,
        parent_version_id=parent.id if parent else None,
        version_description=version_in.version_description,
        is_latest_version=False,
    )
    session.add(version)
    session.flush()

    if parent and version_in.copy_from_parent:
        _copy_structure(session, parent, version)
    if version_in.is_latest:
        _flip_latest(session, comic_id, version)
    _refresh_comic_counts(session, comic)
    session.commit()
    session.refresh(version)
    logger.info("Comic version created", comic_id=comic_id, version=version.version)
    return version


def set_latest_version(session: Session, comic_id: int, version_id: int) -> ComicVersion:
    comic = get_comic(session, comic_id)
    version = get_version(session, comic_id, version_id)
    _flip_latest(session, comic_id, version)
    _refresh_comic_counts(session, comic)
    session.commit()
    session.refresh(version)
    return version


def delete_version(session: Session, comic_id: int, version_id: int) -> None:
    version = get_version(session, comic_id, version_id)
    if version.is_latest_version:
        raise BusinessRuleViolation(
            "The latest version cannot be deleted", {"version_id": version_id}
        )
    session.delete(version)
    session.commit()


def add_volume(
    session: Session, comic_id: int, version_id: int, volume_in: ComicVolumeCreate
) -> ComicVolume:
    comic = get_comic(session, comic_id)
    version = get_version(session, comic_id, version_id)
    duplicate = session.exec(
        select(ComicVolume.id).where(
            ComicVolume.version_id == version.id,
            ComicVolume.volume_number == volume_in.volume_number,
        )
    ).first()
    if duplicate:
        raise EntityAlreadyExistsError(
            f"Volume {volume_in.volume_number} already exists in this version"
        )
    volume = ComicVolume.model_validate(
        volume_in, update={"comic_id": comic_id, "version_id": version.id}
    )
    session.add(volume)
    session.flush()
    _refresh_comic_counts(session, comic)
    session.commit()
    session.refresh(volume)
    return volume


def add_episode(
    session: Session, comic_id: int, version_id: int, episode_in: ComicEpisodeCreate
) -> ComicEpisode:
    comic = get_comic(session, comic_id)
    version = get_version(session, comic_id, version_id)
    volume = None
    if episode_in.volume_id is not None:
        volume = session.get(ComicVolume, episode_in.volume_id)
        if not volume or volume.version_id != version.id:
            raise EntityNotFoundError("Comic volume", episode_in.volume_id)
    duplicate = session.exec(
        select(ComicEpisode.id).where(
            ComicEpisode.version_id == version.id,
            ComicEpisode.episode_number == episode_in.episode_number,
        )
    ).first()
    if duplicate:
        raise EntityAlreadyExistsError(
            f"Episode {episode_in.episode_number} already exists in this version"
        )
    episode = ComicEpisode.model_validate(
        episode_in, update={"comic_id": comic_id, "version_id": version.id}
    )
    session.add(episode)
    if volume is not None:
        volume.episode_count += 1
        session.add(volume)
    session.flush()
    _refresh_comic_counts(session, comic)
    session.commit()
    session.refresh(episode)
    return episode


def get_episode(session: Session, episode_id: int) -> ComicEpisode:
    episode = session.get(ComicEpisode, episode_id)
    if not episode:
        raise EntityNotFoundError("Comic episode", episode_id)
    return episode


def add_page(session: Session, episode_id: int, page_in: ComicPageCreate) -> ComicPage:
    episode = get_episode(session, episode_id)
    page = ComicPage.model_validate(page_in, update={"episode_id": episode.id})
    session.add(page)
    episode.page_count += 1
    session.add(episode)
    session.commit()
    session.refresh(page)
    return page


def add_panel(session: Session, page_id: int, panel_in: ComicPanelCreate) -> ComicPanel:
    page = session.get(ComicPage, page_id)
    if not page:
        raise EntityNotFoundError("Comic page", page_id)
    panel = ComicPanel.model_validate(panel_in, update={"page_id": page.id})
    session.add(panel)
    page.panel_count += 1
    session.add(page)
    session.commit()
    session.refresh(panel)
    return panel


def version_tree(session: Session, version: ComicVersion) -> ComicVersionTree:
    volumes = session.exec(
        select(ComicVolume)
        .where(ComicVolume.version_id == version.id)
        .order_by(col(ComicVolume.volume_number))
    ).all()
    episodes = session.exec(
        select(ComicEpisode)
        .where(ComicEpisode.version_id == version.id)
        .order_by(col(ComicEpisode.episode_number))
    ).all()
    episode_ids = [e.id for e in episodes]
    pages = (
        session.exec(
            select(ComicPage)
            .where(col(ComicPage.episode_id).in_(episode_ids))
            .order_by(col(ComicPage.page_number))
        ).all()
        if episode_ids
        else []
    )
    page_ids = [p.id for p in pages]
    panels = (
        session.exec(
            select(ComicPanel)
            .where(col(ComicPanel.page_id).in_(page_ids))
            .order_by(col(ComicPanel.panel_number))
        ).all()
        if page_ids
        else []
    )

    panels_by_page: dict[int, list[ComicPanelPublic]] = {}
    for panel in panels:
        panels_by_page.setdefault(panel.page_id, []).append(
            ComicPanelPublic.model_validate(panel)
        )
    pages_by_episode: dict[int, list[ComicPageTree]] = {}
    for page in pages:
        pages_by_episode.setdefault(page.episode_id, []).append(
            ComicPageTree.model_validate(
                page, update={"panels": panels_by_page.get(page.id, [])}
            )
        )
    episodes_by_volume: dict[int | None, list[ComicEpisodeTree]] = {}
    for episode in episodes:
        episodes_by_volume.setdefault(episode.volume_id, []).append(
            ComicEpisodeTree.model_validate(
                episode, update={"pages": pages_by_episode.get(episode.id, [])}
            )
        )
    return ComicVersionTree.model_validate(
        version,
        update={
            "volumes": [
                ComicVolumeTree.model_validate(
                    volume, update={"episodes": episodes_by_volume.get(volume.id, [])}
                )
                for volume in volumes
            ],
            "loose_episodes": episodes_by_volume.get(None, []),
        },
    )


def comic_detail(
    session: Session, comic: Comic, user_id: uuid.UUID | None = None
) -> ComicDetail:
    category = session.get(ComicCategory, comic.category_id) if comic.category_id else None
    latest = latest_version(session, comic.id)
    return ComicDetail.model_validate(
        comic,
        update={
            "category": CategoryPublic.model_validate(category) if category else None,
            "tags": [
                TagPublic.model_validate(t)
                for t in catalog.tags_of(
                    session, ComicTagRelation, "comic_id", comic.id, ComicTag
                )
            ],
            "latest_version": version_tree(session, latest) if latest else None,
            "liked": catalog.has_reaction(session, ComicLike, "comic_id", comic.id, user_id),
            "favorited": catalog.has_reaction(
                session, ComicFavorite, "comic_id", comic.id, user_id
            ),
        },
    )


def _public_statement():
    return select(Comic).where(
        Comic.status == ContentStatus.PUBLISHED, col(Comic.is_public).is_(True)
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
            ComicCategory, col(ComicCategory.id) == Comic.category_id
        ).where(ComicCategory.slug == category)
    if tag:
        statement = (
            statement.join(ComicTagRelation, col(ComicTagRelation.comic_id) == Comic.id)
            .join(ComicTag, col(ComicTag.id) == ComicTagRelation.tag_id)
            .where(ComicTag.slug == tag)
        )
    if search:
        pattern = f"%{search}%"
        statement = statement.where(
            or_(col(Comic.title).ilike(pattern), col(Comic.description).ilike(pattern))
        )
    if sort == PublicSort.POPULAR:
        statement = statement.order_by(col(Comic.like_count).desc(), col(Comic.view_count).desc())
    elif sort == PublicSort.HOT:
        statement = statement.order_by(col(Comic.hot).desc(), col(Comic.view_count).desc())
    else:
        statement = statement.order_by(col(Comic.created_at).desc())
    statement = statement.order_by(col(Comic.id).desc())
    return fetch_page(session, statement, params)


def get_public_comic(session: Session, comic_id: int) -> Comic:
    comic = session.exec(_public_statement().where(Comic.id == comic_id)).first()
    if not comic:
        raise EntityNotFoundError("Comic", comic_id)
    return comic


def view_public_comic(
    session: Session, comic_id: int, *, user_id: uuid.UUID | None, ip: str | None
) -> ComicDetail:
    comic = get_public_comic(session, comic_id)
    catalog.record_view(session, ComicView, "comic_id", comic, user_id=user_id, ip=ip)
    return comic_detail(session, comic, user_id)


def like(session: Session, comic_id: int, user_id: uuid.UUID) -> Comic:
    comic = get_public_comic(session, comic_id)
    catalog.add_reaction(session, ComicLike, "comic_id", comic, "like_count", user_id)
    return comic


def unlike(session: Session, comic_id: int, user_id: uuid.UUID) -> Comic:
    comic = get_comic(session, comic_id)
    catalog.remove_reaction(session, ComicLike, "comic_id", comic, "like_count", user_id)
    return comic


def favorite(session: Session, comic_id: int, user_id: uuid.UUID) -> Comic:
    comic = get_public_comic(session, comic_id)
    catalog.add_reaction(
        session, ComicFavorite, "comic_id", comic, "favorite_count", user_id
    )
    return comic


def unfavorite(session: Session, comic_id: int, user_id: uuid.UUID) -> Comic:
    comic = get_comic(session, comic_id)
    catalog.remove_reaction(
        session, ComicFavorite, "comic_id", comic, "favorite_count", user_id
    )
    return comic


def list_favorites(session: Session, user_id: uuid.UUID, params: PageParams):
    statement = (
        select(Comic)
        .join(ComicFavorite, col(ComicFavorite.comic_id) == Comic.id)
        .where(ComicFavorite.user_id == user_id)
        .order_by(col(ComicFavorite.created_at).desc(), col(ComicFavorite.id).desc())
    )
    return fetch_page(session, statement, params)


def list_likes(session: Session, user_id: uuid.UUID, params: PageParams):
    statement = (
        select(Comic)
        .join(ComicLike, col(ComicLike.comic_id) == Comic.id)
        .where(ComicLike.user_id == user_id)
        .order_by(col(ComicLike.created_at).desc(), col(ComicLike.id).desc())
    )
    return fetch_page(session, statement, params)


def list_authored(
    session: Session,
    user_id: uuid.UUID,
    params: PageParams,
    *,
    status: ContentStatus | None = None,
):
    """Comics the user created, drafts and private ones included."""
    statement = select(Comic).where(Comic.author_id == user_id)
    if status:
        statement = statement.where(Comic.status == status)
    statement = statement.order_by(col(Comic.created_at).desc(), col(Comic.id).desc())
    return fetch_page(session, statement, params)
