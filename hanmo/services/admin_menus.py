"""Back-office navigation, trimmed to what the caller may open."""

from sqlmodel import Session, col, select

from hanmo.core.exceptions import (
    BusinessRuleViolation,
    EntityAlreadyExistsError,
    EntityNotFoundError,
    ValidationError,
)
from hanmo.core.observability import get_logger
from hanmo.core.rbac import WILDCARD
from hanmo.models import (
    AdminMenu,
    AdminMenuCreate,
    AdminMenuNode,
    AdminMenuUpdate,
)

logger = get_logger(__name__)


def _ordered(statement):
    return statement.order_by(
        col(AdminMenu.order), col(AdminMenu.created_at), col(AdminMenu.id)
    )


def list_menus(session: Session) -> list[AdminMenu]:
    return list(session.exec(_ordered(select(AdminMenu))).all())


def get_menu(session: Session, menu_id: int) -> AdminMenu:
    menu = session.get(AdminMenu, menu_id)
    if not menu:
        raise EntityNotFoundError("Menu", menu_id)
    return menu


def build_tree(menus: list[AdminMenu]) -> list[AdminMenuNode]:
    """Nest ``menus`` under their parents, dropping entries whose parent is absent."""
    nodes = {m.id: AdminMenuNode.model_validate(m) for m in menus}
    roots = []
    for menu in menus:
        node = nodes[menu.id]
        if menu.parent_id is None:
            roots.append(node)
        elif menu.parent_id in nodes:
            nodes[menu.parent_id].children.append(node)
    return roots


def menu_tree_for(session: Session, permissions: set[str]) -> list[AdminMenuNode]:
    visible = session.exec(
        _ordered(select(AdminMenu).where(col(AdminMenu.is_visible).is_(True)))
    ).all()
    allowed = [
        m
        for m in visible
        if not m.permission or WILDCARD in permissions or m.permission in permissions
    ]
    return build_tree(allowed)


def _check_key(session: Session, key: str, exclude_id: int | None = None) -> None:
    statement = select(AdminMenu.id).where(AdminMenu.key == key)
    if exclude_id is not None:
        statement = statement.where(AdminMenu.id != exclude_id)
    if session.exec(statement).first():
        raise EntityAlreadyExistsError(
            "A menu with this key already exists", {"key": key}
        )


def _check_parent(
    session: Session, parent_id: int | None, menu_id: int | None = None
) -> None:
    if parent_id is None:
        return
    if parent_id == menu_id:
        raise ValidationError("parent_id", "A menu cannot be its own parent")
    if not session.get(AdminMenu, parent_id):
        raise EntityNotFoundError("Menu", parent_id)


def create_menu(session: Session, menu_in: AdminMenuCreate) -> AdminMenu:
    _check_key(session, menu_in.key)
    _check_parent(session, menu_in.parent_id)
    menu = AdminMenu.model_validate(menu_in)
    session.add(menu)
    session.commit()
    session.refresh(menu)
    logger.info("Admin menu created", key=menu.key)
    return menu


def update_menu(session: Session, menu_id: int, menu_in: AdminMenuUpdate) -> AdminMenu:
    menu = get_menu(session, menu_id)
    data = menu_in.model_dump(exclude_unset=True)
    if data.get("key"):
        _check_key(session, data["key"], exclude_id=menu.id)
    if "parent_id" in data:
        _check_parent(session, data["parent_id"], menu.id)
    menu.sqlmodel_update(data)
    session.add(menu)
    session.commit()
    session.refresh(menu)
    return menu


def delete_menu(session: Session, menu_id: int) -> None:
    menu = get_menu(session, menu_id)
    if menu.is_system:
        raise BusinessRuleViolation(
            "System menus cannot be deleted", {"key": menu.key}
        )
    child = session.exec(
        select(AdminMenu.id).where(AdminMenu.parent_id == menu_id)
    ).first()
    if child:
        raise BusinessRuleViolation(
            "Delete the child menus first", {"key": menu.key}
        )
    session.delete(menu)
    session.commit()
    logger.info("Admin menu deleted", key=menu.key)
