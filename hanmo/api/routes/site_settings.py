from typing import Any

from fastapi import APIRouter, Depends, Query

from hanmo.api.deps import SessionDep
from hanmo.core.rbac import require_permission
from hanmo.models import (
    Message,
    SiteSettingCreate,
    SiteSettingPublic,
    SiteSettingUpdate,
)
from hanmo.services import site_settings

router = APIRouter(prefix="/site-settings", tags=["site-settings"])


@router.get(
    "/",
    dependencies=[Depends(require_permission("site-settings.read"))],
    response_model=list[SiteSettingPublic],
)
def read_settings(
    session: SessionDep,
    search: str | None = Query(None, max_length=100),
    key_prefix: str | None = Query(None, max_length=100),
) -> Any:
    return site_settings.list_settings(session, search=search, key_prefix=key_prefix)


@router.post(
    "/",
    dependencies=[Depends(require_permission("site-settings.create"))],
    response_model=SiteSettingPublic,
)
def create_setting(session: SessionDep, setting_in: SiteSettingCreate) -> Any:
    return site_settings.create_setting(session, setting_in)


@router.patch(
    "/{setting_id}",
    dependencies=[Depends(require_permission("site-settings.update"))],
    response_model=SiteSettingPublic,
)
def update_setting(
    session: SessionDep, setting_id: int, setting_in: SiteSettingUpdate
) -> Any:
    return site_settings.update_setting(session, setting_id, setting_in)


@router.delete(
    "/{setting_id}",
    dependencies=[Depends(require_permission("site-settings.delete"))],
)
def delete_setting(session: SessionDep, setting_id: int) -> Message:
    site_settings.delete_setting(session, setting_id)
    return Message(message="Setting deleted successfully")
