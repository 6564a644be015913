"""Business audit trail stored in ``system_logs``."""

import uuid

from fastapi import Request
from sqlmodel import Session, col, or_, select

from hanmo.core.observability import get_logger
from hanmo.core.rate_limiter import get_client_ip
from hanmo.models import LogLevel, SystemLog
from hanmo.utils.pagination import PageParams, fetch_page

logger = get_logger(__name__)


def log_event(
    session: Session,
    *,
    module: str,
    action: str,
    description: str | None = None,
    level: LogLevel = LogLevel.INFO,
    user_id: uuid.UUID | None = None,
    request: Request | None = None,
) -> SystemLog:
    entry = SystemLog(
        level=level,
        module=module,
        action=action,
        description=description,
        user_id=user_id,
    )
    if request is not None:
        entry.ip = get_client_ip(request)
        entry.user_agent = request.headers.get("User-Agent")
        entry.language = request.headers.get("Accept-Language", "")[:10] or None
    session.add(entry)
    session.commit()
    session.refresh(entry)
    logger.info(
        "Audit event",
        module=module,
        action=action,
        level=level.value,
        user_id=str(user_id) if user_id else None,
    )
    return entry


def list_logs(
    session: Session,
    params: PageParams,
    *,
    level: LogLevel | None = None,
    module: str | None = None,
    search: str | None = None,
):
    statement = select(SystemLog)
    if level:
        statement = statement.where(SystemLog.level == level)
    if module:
        statement = statement.where(SystemLog.module == module)
    if search:
        pattern = f"%{search}%"
        statement = statement.where(
            or_(
                col(SystemLog.action).ilike(pattern),
                col(SystemLog.description).ilike(pattern),
            )
        )
    statement = statement.order_by(col(SystemLog.created_at).desc(), col(SystemLog.id).desc())
    return fetch_page(session, statement, params)
