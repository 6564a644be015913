from typing import Any

from fastapi import APIRouter, Depends, Response

from hanmo.api.deps import SessionDep
from hanmo.core.rate_limiter import public_api_limiter
from hanmo.core.rbac import require_permission
from hanmo.models import (
    MainMenuAdminPublic,
    MainMenuCreate,
    MainMenuLocalized,
    MainMenuUpdate,
    Message,
    TaxonomyStatus,
)
from hanmo.services import menus

router = APIRouter(prefix="/main-menus", tags=["main-menus"])

NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


@router.get(
    "/",
    dependencies=[Depends(public_api_limiter)],
    response_model=list[MainMenuLocalized],
)
def read_public_menus(
    session: SessionDep,
    response: Response,
    lang: str = "en",
    status: TaxonomyStatus | None = TaxonomyStatus.ACTIVE,
    is_top: bool | None = None,
    path: str | None = None,
) -> Any:
    """
    Navigation menus localized to ``lang``.
    """
    response.headers.update(NO_CACHE_HEADERS)
    return menus.list_localized(
        session, lang=lang, status=status, is_top=is_top, path=path
    )


@router.get(
    "/admin",
    dependencies=[Depends(require_permission("main-menu.read"))],
    response_model=list[MainMenuAdminPublic],
)
def read_menus(session: SessionDep) -> Any:
    return menus.list_menus(session)


@router.post(
    "/admin",
    dependencies=[Depends(require_permission("main-menu.create"))],
    response_model=MainMenuAdminPublic,
)
def create_menu(session: SessionDep, menu_in: MainMenuCreate) -> Any:
    return menus.create_menu(session, menu_in)


@router.get(
    "/admin/{menu_id}",
    dependencies=[Depends(require_permission("main-menu.read"))],
    response_model=MainMenuAdminPublic,
)
def read_menu(session: SessionDep, menu_id: int) -> Any:
    return menus.admin_view(session, menus.get_menu(session, menu_id))


@router.patch(
    "/admin/{menu_id}",
    dependencies=[Depends(require_permission("main-menu.update"))],
    response_model=MainMenuAdminPublic,
)
def update_menu(session: SessionDep, menu_id: int, menu_in: MainMenuUpdate) -> Any:
    return menus.update_menu(session, menu_id, menu_in)


@router.delete(
    "/admin/{menu_id}",
    dependencies=[Depends(require_permission("main-menu.delete"))],
)
def delete_menu(session: SessionDep, menu_id: int) -> Message:
    menus.delete_menu(session, menu_id)
    return Message(message="Menu deleted successfully")
