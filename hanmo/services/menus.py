"""Navigation menus and their per-language translations."""

from sqlmodel import Session, col, select

from hanmo.core.exceptions import EntityNotFoundError, ValidationError
from hanmo.models import (
    MainMenu,
    MainMenuAdminPublic,
    MainMenuCreate,
    MainMenuLocalized,
    MainMenuTranslation,
    MainMenuTranslationIn,
    MainMenuUpdate,
    TaxonomyStatus,
)


def _translations(session: Session, menu_ids: list[int]) -> list[MainMenuTranslation]:
    if not menu_ids:
        return []
    return list(
        session.exec(
            select(MainMenuTranslation)
            .where(col(MainMenuTranslation.menu_id).in_(menu_ids))
            .order_by(col(MainMenuTranslation.lang))
        ).all()
    )


def _replace_translations(
    session: Session, menu_id: int, translations: list[MainMenuTranslationIn]
) -> None:
    langs = [t.lang for t in translations]
    if len(langs) != len(set(langs)):
        raise ValidationError("translations", "Each language may appear only once")
    for row in _translations(session, [menu_id]):
        session.delete(row)
    session.flush()
    for translation in translations:
        session.add(
            MainMenuTranslation.model_validate(translation, update={"menu_id": menu_id})
        )
    session.flush()


def _check_parent(session: Session, parent_id: int | None, menu_id: int | None = None) -> None:
    if parent_id is None:
        return
    if parent_id == menu_id:
        raise ValidationError("parent_id", "A menu cannot be its own parent")
    if not session.get(MainMenu, parent_id):
        raise EntityNotFoundError("Menu", parent_id)


def admin_view(session: Session, menu: MainMenu) -> MainMenuAdminPublic:
    return MainMenuAdminPublic.model_validate(
        menu,
        update={
            "translations": [
                MainMenuTranslationIn.model_validate(t)
                for t in _translations(session, [menu.id])
            ]
        },
    )


def list_menus(session: Session) -> list[MainMenuAdminPublic]:
    menus = session.exec(
        select(MainMenu).order_by(col(MainMenu.order), col(MainMenu.id))
    ).all()
    by_menu: dict[int, list[MainMenuTranslationIn]] = {}
    for t in _translations(session, [m.id for m in menus]):
        by_menu.setdefault(t.menu_id, []).append(MainMenuTranslationIn.model_validate(t))
    return [
        MainMenuAdminPublic.model_validate(m, update={"translations": by_menu.get(m.id, [])})
        for m in menus
    ]


def get_menu(session: Session, menu_id: int) -> MainMenu:
    menu = session.get(MainMenu, menu_id)
    if not menu:
        raise EntityNotFoundError("Menu", menu_id)
    return menu


def create_menu(session: Session, menu_in: MainMenuCreate) -> MainMenuAdminPublic:
    _check_parent(session, menu_in.parent_id)
    menu = MainMenu.model_validate(menu_in.model_dump(exclude={"translations"}))
    session.add(menu)
    session.flush()
    _replace_translations(session, menu.id, menu_in.translations)
    session.commit()
    session.refresh(menu)
    return admin_view(session, menu)


def update_menu(
    session: Session, menu_id: int, menu_in: MainMenuUpdate
) -> MainMenuAdminPublic:
    menu = get_menu(session, menu_id)
    data = menu_in.model_dump(exclude_unset=True, exclude={"translations"})
    if "parent_id" in data:
        _check_parent(session, data["parent_id"], menu.id)
    menu.sqlmodel_update(data)
    session.add(menu)
    if menu_in.translations is not None:
        _replace_translations(session, menu.id, menu_in.translations)
    session.commit()
    session.refresh(menu)
    return admin_view(session, menu)


def delete_menu(session: Session, menu_id: int) -> None:
    menu = get_menu(session, menu_id)
    children = session.exec(select(MainMenu).where(MainMenu.parent_id == menu_id)).all()
    for child in children:
        child.parent_id = None
        session.add(child)
    session.flush()
    session.delete(menu)
    session.commit()


def list_localized(
    session: Session,
    *,
    lang: str = "en",
    status: TaxonomyStatus | None = TaxonomyStatus.ACTIVE,
    is_top: bool | None = None,
    path: str | None = None,
) -> list[MainMenuLocalized]:
    statement = select(MainMenu)
    if status:
        statement = statement.where(MainMenu.status == status)
    if is_top is not None:
        statement = statement.where(MainMenu.is_top == is_top)
    if path:
        statement = statement.where(MainMenu.path == path)
    menus = session.exec(statement.order_by(col(MainMenu.order), col(MainMenu.id))).all()
    translations = {
        t.menu_id: t
        for t in _translations(session, [m.id for m in menus])
        if t.lang == lang
    }
    result = []
    for menu in menus:
        translation = translations.get(menu.id)
        localized = {}
        if translation:
            localized = {
                "name": translation.name,
                "meta_title": translation.meta_title or "",
                "meta_description": translation.meta_description or "",
                "meta_keywords": translation.meta_keywords or "",
            }
        result.append(MainMenuLocalized.model_validate(menu, update=localized))
    return result
