from typing import Any

from fastapi import APIRouter, Depends, Query, Request

from hanmo.api.deps import CurrentUser, OptionalUser, SessionDep
from hanmo.core.rate_limiter import get_client_ip
from hanmo.core.rbac import require_permission
from hanmo.models import (
    ContentStatus,
    CoupletCreate,
    CoupletDetail,
    CoupletPublic,
    CoupletUpdate,
    CoupletVersionCreate,
    CoupletVersionPublic,
    Message,
    Page,
)
from hanmo.services import couplets
from hanmo.services.couplets import PublicSort
from hanmo.utils.pagination import PageDep, PublicPageDep

router = APIRouter(prefix="/couplets", tags=["couplets"])


# Public catalogue
@router.get("/public", response_model=Page[CoupletPublic])
def read_public_couplets(
    session: SessionDep,
    params: PublicPageDep,
    category: str | None = None,
    tag: str | None = None,
    search: str | None = Query(None, max_length=100),
    sort: PublicSort = PublicSort.LATEST,
) -> Any:
    items, pagination = couplets.list_public(
        session, params, category=category, tag=tag, search=search, sort=sort
    )
    return Page(data=items, pagination=pagination)


@router.get("/public/favorites", response_model=Page[CoupletPublic])
def read_favorite_couplets(
    session: SessionDep, current_user: CurrentUser, params: PublicPageDep
) -> Any:
    items, pagination = couplets.list_favorites(session, current_user.id, params)
    return Page(data=items, pagination=pagination)


@router.get("/public/likes", response_model=Page[CoupletPublic])
def read_liked_couplets(
    session: SessionDep, current_user: CurrentUser, params: PublicPageDep
) -> Any:
    items, pagination = couplets.list_likes(session, current_user.id, params)
    return Page(data=items, pagination=pagination)


@router.get("/public/mine", response_model=Page[CoupletPublic])
def read_my_couplets(
    session: SessionDep,
    current_user: CurrentUser,
    params: PublicPageDep,
    status: ContentStatus | None = None,
) -> Any:
    items, pagination = couplets.list_authored(
        session, current_user.id, params, status=status
    )
    return Page(data=items, pagination=pagination)


@router.get("/public/{couplet_id}", response_model=CoupletDetail)
def read_public_couplet(
    session: SessionDep, request: Request, current_user: OptionalUser, couplet_id: int
) -> Any:
    return couplets.view_public_couplet(
        session,
        couplet_id,
        user_id=current_user.id if current_user else None,
        ip=get_client_ip(request),
    )


@router.post("/public/{couplet_id}/like", response_model=CoupletPublic)
def like_couplet(session: SessionDep, current_user: CurrentUser, couplet_id: int) -> Any:
    return couplets.like(session, couplet_id, current_user.id)


@router.delete("/public/{couplet_id}/like", response_model=CoupletPublic)
def unlike_couplet(
    session: SessionDep, current_user: CurrentUser, couplet_id: int
) -> Any:
    return couplets.unlike(session, couplet_id, current_user.id)


@router.post("/public/{couplet_id}/favorite", response_model=CoupletPublic)
def favorite_couplet(
    session: SessionDep, current_user: CurrentUser, couplet_id: int
) -> Any:
    return couplets.favorite(session, couplet_id, current_user.id)


@router.delete("/public/{couplet_id}/favorite", response_model=CoupletPublic)
def unfavorite_couplet(
    session: SessionDep, current_user: CurrentUser, couplet_id: int
) -> Any:
    return couplets.unfavorite(session, couplet_id, current_user.id)


# Administration
@router.get(
    "/",
    dependencies=[Depends(require_permission("couplet.read"))],
    response_model=Page[CoupletPublic],
)
def read_couplets(
    session: SessionDep,
    params: PageDep,
    search: str | None = Query(None, max_length=100),
    category_id: int | None = None,
    status: ContentStatus | None = None,
) -> Any:
    items, pagination = couplets.list_couplets(
        session, params, search=search, category_id=category_id, status=status
    )
    return Page(data=items, pagination=pagination)


@router.post(
    "/",
    dependencies=[Depends(require_permission("couplet.create"))],
    response_model=CoupletPublic,
)
def create_couplet(
    session: SessionDep, current_user: CurrentUser, couplet_in: CoupletCreate
) -> Any:
    return couplets.create_couplet(session, couplet_in, current_user.id)


@router.get(
    "/{couplet_id}",
    dependencies=[Depends(require_permission("couplet.read"))],
    response_model=CoupletDetail,
)
def read_couplet(session: SessionDep, current_user: CurrentUser, couplet_id: int) -> Any:
    return couplets.couplet_detail(
        session, couplets.get_couplet(session, couplet_id), current_user.id
    )


@router.patch(
    "/{couplet_id}",
    dependencies=[Depends(require_permission("couplet.update"))],
    response_model=CoupletPublic,
)
def update_couplet(
    session: SessionDep, couplet_id: int, couplet_in: CoupletUpdate
) -> Any:
    return couplets.update_couplet(session, couplet_id, couplet_in)


@router.delete(
    "/{couplet_id}", dependencies=[Depends(require_permission("couplet.delete"))]
)
def delete_couplet(session: SessionDep, couplet_id: int) -> Message:
    couplets.delete_couplet(session, couplet_id)
    return Message(message="Couplet deleted successfully")


@router.get(
    "/{couplet_id}/versions",
    dependencies=[Depends(require_permission("couplet.read"))],
    response_model=list[CoupletVersionPublic],
)
def read_versions(session: SessionDep, couplet_id: int) -> Any:
    return couplets.list_versions(session, couplet_id)


@router.post(
    "/{couplet_id}/versions",
    dependencies=[Depends(require_permission("couplet.update"))],
    response_model=CoupletVersionPublic,
)
def create_version(
    session: SessionDep, couplet_id: int, version_in: CoupletVersionCreate
) -> Any:
    return couplets.create_version(session, couplet_id, version_in)


@router.put(
    "/{couplet_id}/versions/{version_id}/latest",
    dependencies=[Depends(require_permission("couplet.update"))],
    response_model=CoupletVersionPublic,
)
def set_latest_version(session: SessionDep, couplet_id: int, version_id: int) -> Any:
    return couplets.set_latest_version(session, couplet_id, version_id)


@router.delete(
    "/{couplet_id}/versions/{version_id}",
    dependencies=[Depends(require_permission("couplet.update"))],
)
def delete_version(session: SessionDep, couplet_id: int, version_id: int) -> Message:
    couplets.delete_version(session, couplet_id, version_id)
    return Message(message="Version deleted successfully")
