from typing import Any

from fastapi import APIRouter, Depends, Query

from hanmo.api.deps import SessionDep
from hanmo.core.rbac import require_permission
from hanmo.models import LogLevel, Page, SystemLogPublic
from hanmo.services import audit
from hanmo.utils.pagination import PageDep

router = APIRouter(prefix="/system", tags=["system"])


@router.get(
    "/logs",
    dependencies=[Depends(require_permission("system.read"))],
    response_model=Page[SystemLogPublic],
)
def read_logs(
    session: SessionDep,
    params: PageDep,
    level: LogLevel | None = None,
    module: str | None = Query(None, max_length=50),
    search: str | None = Query(None, max_length=100),
) -> Any:
    """
    Audit trail, newest first.
    """
    items, pagination = audit.list_logs(
        session, params, level=level, module=module, search=search
    )
    return Page(data=items, pagination=pagination)
