"""Site configuration rows, looked up by unique key."""

from sqlmodel import Session, col, select

from hanmo.core.exceptions import EntityAlreadyExistsError, EntityNotFoundError
from hanmo.core.observability import get_logger
from hanmo.models import SiteSetting, SiteSettingCreate, SiteSettingUpdate

logger = get_logger(__name__)


def list_settings(
    session: Session, *, search: str | None = None, key_prefix: str | None = None
) -> list[SiteSetting]:
    statement = select(SiteSetting)
    if search:
        statement = statement.where(col(SiteSetting.key).contains(search))
    if key_prefix:
        statement = statement.where(col(SiteSetting.key).startswith(key_prefix))
    statement = statement.order_by(col(SiteSetting.created_at), col(SiteSetting.id))
    return list(session.exec(statement).all())


def get_setting(session: Session, setting_id: int) -> SiteSetting:
    setting = session.get(SiteSetting, setting_id)
    if not setting:
        raise EntityNotFoundError("Setting", setting_id)
    return setting


def _check_key(session: Session, key: str, exclude_id: int | None = None) -> None:
    statement = select(SiteSetting.id).where(SiteSetting.key == key)
    if exclude_id is not None:
        statement = statement.where(SiteSetting.id != exclude_id)
    if session.exec(statement).first():
        raise EntityAlreadyExistsError(
            "A setting with this key already exists", {"key": key}
        )


def create_setting(session: Session, setting_in: SiteSettingCreate) -> SiteSetting:
    _check_key(session, setting_in.key)
    setting = SiteSetting.model_validate(setting_in)
    session.add(setting)
    session.commit()
    session.refresh(setting)
    logger.info("Site setting created", key=setting.key)
    return setting


def update_setting(
    session: Session, setting_id: int, setting_in: SiteSettingUpdate
) -> SiteSetting:
    setting = get_setting(session, setting_id)
    data = setting_in.model_dump(exclude_unset=True, exclude_none=True)
    if "key" in data:
        _check_key(session, data["key"], exclude_id=setting.id)
    setting.sqlmodel_update(data)
    session.add(setting)
    session.commit()
    session.refresh(setting)
    logger.info("Site setting updated", key=setting.key)
    return setting


def delete_setting(session: Session, setting_id: int) -> None:
    setting = get_setting(session, setting_id)
    session.delete(setting)
    session.commit()
    logger.info("Site setting deleted", key=setting.key)
