"""Site navigation menus with per-language translations."""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Column, UniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

from .common import UTCDateTime, utcnow
from .taxonomy import TaxonomyStatus


class MainMenuBase(SQLModel):
    path: str = Field(max_length=255, index=True)
    icon: str | None = Field(default=None, max_length=100)
    order: int = 0
    status: TaxonomyStatus = TaxonomyStatus.ACTIVE
    is_top: bool = True
    parent_id: int | None = Field(
        default=None, foreign_key="main_menus.id", ondelete="SET NULL"
    )


class MainMenu(MainMenuBase, table=True):
    __tablename__ = "main_menus"

    id: int | None = Field(default=None, primary_key=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_type=UTCDateTime,
        sa_column_kwargs={"onupdate": utcnow},
    )

    translations: list["MainMenuTranslation"] = Relationship(cascade_delete=True)


class MainMenuTranslationBase(SQLModel):
    lang: str = Field(max_length=10)
    name: str = Field(max_length=100)
    meta_title: str | None = Field(default=None, max_length=255)
    meta_description: str | None = None
    meta_keywords: str | None = Field(default=None, max_length=255)


class MainMenuTranslation(MainMenuTranslationBase, table=True):
    __tablename__ = "main_menu_translations"
    __table_args__ = (UniqueConstraint("menu_id", "lang"),)

    id: int | None = Field(default=None, primary_key=True)
    menu_id: int = Field(foreign_key="main_menus.id", ondelete="CASCADE", index=True)


class MainMenuTranslationIn(MainMenuTranslationBase):
    pass


class MainMenuCreate(MainMenuBase):
    translations: list[MainMenuTranslationIn] = []


class MainMenuUpdate(SQLModel):
    path: str | None = Field(default=None, max_length=255)
    icon: str | None = Field(default=None, max_length=100)
    order: int | None = None
    status: TaxonomyStatus | None = None
    is_top: bool | None = None
    parent_id: int | None = None
    # Replaces every translation when supplied
    translations: list[MainMenuTranslationIn] | None = None


class MainMenuAdminPublic(MainMenuBase):
    id: int
    created_at: datetime
    updated_at: datetime
    translations: list[MainMenuTranslationIn] = []


class MainMenuLocalized(MainMenuBase):
    id: int
    name: str = ""
    meta_title: str = ""
    meta_description: str = ""
    meta_keywords: str = ""


class AdminMenuBase(SQLModel):
    key: str = Field(min_length=1, max_length=100)
    label: str = Field(min_length=1, max_length=100)
    path: str = Field(min_length=1, max_length=255)
    icon: str | None = Field(default=None, max_length=100)
    parent_id: int | None = Field(
        default=None, foreign_key="admin_menus.id", ondelete="SET NULL"
    )
    # Permission name the caller needs to see the entry
    permission: str | None = Field(default=None, max_length=100)
    order: int = 0
    is_visible: bool = True
    meta: dict[str, Any] | None = Field(default=None, sa_column=Column(JSON))


class AdminMenu(AdminMenuBase, table=True):
    """Back-office navigation entry."""

    __tablename__ = "admin_menus"

    id: int | None = Field(default=None, primary_key=True)
    key: str = Field(unique=True, index=True, max_length=100)
    is_system: bool = False
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_type=UTCDateTime,
        sa_column_kwargs={"onupdate": utcnow},
    )


class AdminMenuCreate(AdminMenuBase):
    pass


class AdminMenuUpdate(SQLModel):
    key: str | None = Field(default=None, min_length=1, max_length=100)
    label: str | None = Field(default=None, min_length=1, max_length=100)
    path: str | None = Field(default=None, min_length=1, max_length=255)
    icon: str | None = None
    parent_id: int | None = None
    permission: str | None = None
    order: int | None = None
    is_visible: bool | None = None
    meta: dict[str, Any] | None = None


class AdminMenuPublic(AdminMenuBase):
    id: int
    is_system: bool
    created_at: datetime
    updated_at: datetime


class AdminMenuNode(AdminMenuPublic):
    children: list["AdminMenuNode"] = []
