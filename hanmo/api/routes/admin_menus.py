from typing import Any

from fastapi import APIRouter, Depends

from hanmo.api.deps import CurrentUser, SessionDep
from hanmo.core.rbac import PermissionService, require_permission
from hanmo.models import (
    AdminMenuCreate,
    AdminMenuNode,
    AdminMenuPublic,
    AdminMenuUpdate,
    Message,
)
from hanmo.services import admin_menus

router = APIRouter(prefix="/admin-menus", tags=["admin-menus"])


@router.get("/", response_model=list[AdminMenuNode])
def read_navigation(session: SessionDep, current_user: CurrentUser) -> Any:
    """
    Visible back-office menu tree, limited to entries the caller may open.
    """
    permissions = PermissionService(session).get_user_permissions(current_user)
    return admin_menus.menu_tree_for(session, permissions)


@router.get(
    "/all",
    dependencies=[Depends(require_permission("admin-menu.read"))],
    response_model=list[AdminMenuPublic],
)
def read_menus(session: SessionDep) -> Any:
    return admin_menus.list_menus(session)


@router.post(
    "/",
    dependencies=[Depends(require_permission("admin-menu.create"))],
    response_model=AdminMenuPublic,
)
def create_menu(session: SessionDep, menu_in: AdminMenuCreate) -> Any:
    return admin_menus.create_menu(session, menu_in)


@router.get(
    "/{menu_id}",
    dependencies=[Depends(require_permission("admin-menu.read"))],
    response_model=AdminMenuPublic,
)
def read_menu(session: SessionDep, menu_id: int) -> Any:
    return admin_menus.get_menu(session, menu_id)


@router.patch(
    "/{menu_id}",
    dependencies=[Depends(require_permission("admin-menu.update"))],
    response_model=AdminMenuPublic,
)
def update_menu(session: SessionDep, menu_id: int, menu_in: AdminMenuUpdate) -> Any:
    return admin_menus.update_menu(session, menu_id, menu_in)


@router.delete(
    "/{menu_id}",
    dependencies=[Depends(require_permission("admin-menu.delete"))],
)
def delete_menu(session: SessionDep, menu_id: int) -> Message:
    admin_menus.delete_menu(session, menu_id)
    return Message(message="Menu deleted successfully")
