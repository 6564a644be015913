from typing import Any

from fastapi import APIRouter, Depends, Query, Request

from hanmo.api.deps import CurrentUser, OptionalUser, SessionDep
from hanmo.core.rate_limiter import get_client_ip
from hanmo.core.rbac import require_permission
from hanmo.models import (
    ComicCreate,
    ComicDetail,
    ComicEpisodeCreate,
    ComicEpisodePublic,
    ComicPageCreate,
    ComicPagePublic,
    ComicPanelCreate,
    ComicPanelPublic,
    ComicPublic,
    ComicUpdate,
    ComicVersionCreate,
    ComicVersionPublic,
    ComicVersionTree,
    ComicVolumeCreate,
    ComicVolumePublic,
    ContentStatus,
    Message,
    Page,
)
from hanmo.services import comics
from hanmo.services.comics import PublicSort
from hanmo.utils.pagination import PageDep, PublicPageDep

router = APIRouter(prefix="/comics", tags=["comics"])


# Public catalogue
@router.get("/public", response_model=Page[ComicPublic])
def read_public_comics(
    session: SessionDep,
    params: PublicPageDep,
    category: str | None = None,
    tag: str | None = None,
    search: str | None = Query(None, max_length=100),
    sort: PublicSort = PublicSort.LATEST,
) -> Any:
    items, pagination = comics.list_public(
        session, params, category=category, tag=tag, search=search, sort=sort
    )
    return Page(data=items, pagination=pagination)


@router.get("/public/favorites", response_model=Page[ComicPublic])
def read_favorite_comics(
    session: SessionDep, current_user: CurrentUser, params: PublicPageDep
) -> Any:
    items, pagination = comics.list_favorites(session, current_user.id, params)
    return Page(data=items, pagination=pagination)


@router.get("/public/likes", response_model=Page[ComicPublic])
def read_liked_comics(
    session: SessionDep, current_user: CurrentUser, params: PublicPageDep
) -> Any:
    items, pagination = comics.list_likes(session, current_user.id, params)
    return Page(data=items, pagination=pagination)


@router.get("/public/mine", response_model=Page[ComicPublic])
def read_my_comics(
    session: SessionDep,
    current_user: CurrentUser,
    params: PublicPageDep,
    status: ContentStatus | None = None,
) -> Any:
    """
    Comics created by the caller, whatever their status.
    """
    items, pagination = comics.list_authored(
        session, current_user.id, params, status=status
    )
    return Page(data=items, pagination=pagination)


@router.get("/public/{comic_id}", response_model=ComicDetail)
def read_public_comic(
    session: SessionDep, request: Request, current_user: OptionalUser, comic_id: int
) -> Any:
    """
    Comic with its latest version; counts as a view.
    """
    return comics.view_public_comic(
        session,
        comic_id,
        user_id=current_user.id if current_user else None,
        ip=get_client_ip(request),
    )


@router.post("/public/{comic_id}/like", response_model=ComicPublic)
def like_comic(session: SessionDep, current_user: CurrentUser, comic_id: int) -> Any:
    return comics.like(session, comic_id, current_user.id)


@router.delete("/public/{comic_id}/like", response_model=ComicPublic)
def unlike_comic(session: SessionDep, current_user: CurrentUser, comic_id: int) -> Any:
    return comics.unlike(session, comic_id, current_user.id)


@router.post("/public/{comic_id}/favorite", response_model=ComicPublic)
def favorite_comic(
    session: SessionDep, current_user: CurrentUser, comic_id: int
) -> Any:
    return comics.favorite(session, comic_id, current_user.id)


@router.delete("/public/{comic_id}/favorite", response_model=ComicPublic)
def unfavorite_comic(
    session: SessionDep, current_user: CurrentUser, comic_id: int
) -> Any:
    return comics.unfavorite(session, comic_id, current_user.id)


# Structure below a version
@router.post(
    "/episodes/{episode_id}/pages",
    dependencies=[Depends(require_permission("comic.update"))],
    response_model=ComicPagePublic,
)
def create_page(session: SessionDep, episode_id: int, page_in: ComicPageCreate) -> Any:
    return comics.add_page(session, episode_id, page_in)


@router.post(
    "/pages/{page_id}/panels",
    dependencies=[Depends(require_permission("comic.update"))],
    response_model=ComicPanelPublic,
)
def create_panel(session: SessionDep, page_id: int, panel_in: ComicPanelCreate) -> Any:
    return comics.add_panel(session, page_id, panel_in)


# Administration
@router.get(
    "/",
    dependencies=[Depends(require_permission("comic.read"))],
    response_model=Page[ComicPublic],
)
def read_comics(
    session: SessionDep,
    params: PageDep,
    search: str | None = Query(None, max_length=100),
    category_id: int | None = None,
    status: ContentStatus | None = None,
) -> Any:
    items, pagination = comics.list_comics(
        session, params, search=search, category_id=category_id, status=status
    )
    return Page(data=items, pagination=pagination)


@router.post(
    "/",
    dependencies=[Depends(require_permission("comic.create"))],
    response_model=ComicPublic,
)
def create_comic(
    session: SessionDep, current_user: CurrentUser, comic_in: ComicCreate
) -> Any:
    return comics.create_comic(session, comic_in, current_user.id)


@router.get(
    "/{comic_id}",
    dependencies=[Depends(require_permission("comic.read"))],
    response_model=ComicDetail,
)
def read_comic(session: SessionDep, current_user: CurrentUser, comic_id: int) -> Any:
    return comics.comic_detail(
        session, comics.get_comic(session, comic_id), current_user.id
    )


@router.patch(
    "/{comic_id}",
    dependencies=[Depends(require_permission("comic.update"))],
    response_model=ComicPublic,
)
def update_comic(session: SessionDep, comic_id: int, comic_in: ComicUpdate) -> Any:
    return comics.update_comic(session, comic_id, comic_in)


@router.delete(
    "/{comic_id}", dependencies=[Depends(require_permission("comic.delete"))]
)
def delete_comic(session: SessionDep, comic_id: int) -> Message:
    comics.delete_comic(session, comic_id)
    return Message(message="Comic deleted successfully")


@router.get(
    "/{comic_id}/versions",
    dependencies=[Depends(require_permission("comic.read"))],
    response_model=list[ComicVersionPublic],
)
def read_versions(session: SessionDep, comic_id: int) -> Any:
    return comics.list_versions(session, comic_id)


@router.post(
    "/{comic_id}/versions",
    dependencies=[Depends(require_permission("comic.update"))],
    response_model=ComicVersionPublic,
)
def create_version(
    session: SessionDep, comic_id: int, version_in: ComicVersionCreate
) -> Any:
    return comics.create_version(session, comic_id, version_in)


@router.get(
    "/{comic_id}/versions/{version_id}",
    dependencies=[Depends(require_permission("comic.read"))],
    response_model=ComicVersionTree,
)
def read_version(session: SessionDep, comic_id: int, version_id: int) -> Any:
    return comics.version_tree(session, comics.get_version(session, comic_id, version_id))


@router.put(
    "/{comic_id}/versions/{version_id}/latest",
    dependencies=[Depends(require_permission("comic.update"))],
    response_model=ComicVersionPublic,
)
def set_latest_version(session: SessionDep, comic_id: int, version_id: int) -> Any:
    return comics.set_latest_version(session, comic_id, version_id)


@router.delete(
    "/{comic_id}/versions/{version_id}",
    dependencies=[Depends(require_permission("comic.update"))],
)
def delete_version(session: SessionDep, comic_id: int, version_id: int) -> Message:
    comics.delete_version(session, comic_id, version_id)
    return Message(message="Version deleted successfully")


@router.post(
    "/{comic_id}/versions/{version_id}/volumes",
    dependencies=[Depends(require_permission("comic.update"))],
    response_model=ComicVolumePublic,
)
def create_volume(
    session: SessionDep, comic_id: int, version_id: int, volume_in: ComicVolumeCreate
) -> Any:
    return comics.add_volume(session, comic_id, version_id, volume_in)


@router.post(
    "/{comic_id}/versions/{version_id}/episodes",
    dependencies=[Depends(require_permission("comic.update"))],
    response_model=ComicEpisodePublic,
)
def create_episode(
    session: SessionDep,
    comic_id: int,
    version_id: int,
    episode_in: ComicEpisodeCreate,
) -> Any:
    return comics.add_episode(session, comic_id, version_id, episode_in)
