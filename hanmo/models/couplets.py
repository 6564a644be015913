"""Couplet catalogue models: couplet -> version -> contents."""

import uuid
from datetime import datetime

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

from .common import UTCDateTime, utcnow
from .taxonomy import CategoryBase, CategoryPublic, ContentStatus, TagBase, TagPublic


class CoupletCategory(CategoryBase, table=True):
    __tablename__ = "couplet_categories"

    id: int | None = Field(default=None, primary_key=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_type=UTCDateTime,
        sa_column_kwargs={"onupdate": utcnow},
    )


class CoupletTag(TagBase, table=True):
    __tablename__ = "couplet_tags"

    id: int | None = Field(default=None, primary_key=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)


class CoupletBase(SQLModel):
    title: str = Field(max_length=255)
    description: str | None = None
    category_id: int | None = Field(
        default=None, foreign_key="couplet_categories.id", ondelete="SET NULL"
    )
    status: ContentStatus = ContentStatus.PUBLISHED
    is_public: bool = True
    is_featured: bool = False
    hot: int = 0
    model: str | None = Field(default=None, max_length=100)
    prompt: str | None = None
    language: str = Field(default="en", max_length=10)


class Couplet(CoupletBase, table=True):
    __tablename__ = "couplets"

    id: int | None = Field(default=None, primary_key=True)
    slug: str = Field(unique=True, index=True, max_length=255)
    author_id: uuid.UUID | None = Field(
        default=None, foreign_key="user.id", ondelete="SET NULL"
    )
    view_count: int = 0
    like_count: int = 0
    favorite_count: int = 0
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_type=UTCDateTime,
        sa_column_kwargs={"onupdate": utcnow},
    )

    versions: list["CoupletVersion"] = Relationship(cascade_delete=True)
    tag_links: list["CoupletTagRelation"] = Relationship(cascade_delete=True)
    likes: list["CoupletLike"] = Relationship(cascade_delete=True)
    favorites: list["CoupletFavorite"] = Relationship(cascade_delete=True)
    views: list["CoupletView"] = Relationship(cascade_delete=True)


class CoupletContentBase(SQLModel):
    upper_line: str | None = Field(default=None, max_length=255)
    lower_line: str | None = Field(default=None, max_length=255)
    horizontal_scroll: str | None = Field(default=None, max_length=255)
    appreciation: str | None = None
    order_index: int = 0


class CoupletContentIn(CoupletContentBase):
    pass


class CoupletCreate(CoupletBase):
    slug: str | None = Field(default=None, max_length=255)
    tag_ids: list[int] = []
    contents: list[CoupletContentIn] = []
    version_description: str | None = None


class CoupletUpdate(SQLModel):
    title: str | None = Field(default=None, max_length=255)
    slug: str | None = Field(default=None, max_length=255)
    description: str | None = None
    category_id: int | None = None
    status: ContentStatus | None = None
    is_public: bool | None = None
    is_featured: bool | None = None
    hot: int | None = None
    language: str | None = Field(default=None, max_length=10)
    tag_ids: list[int] | None = None


class CoupletPublic(CoupletBase):
    id: int
    slug: str
    author_id: uuid.UUID | None
    view_count: int
    like_count: int
    favorite_count: int
    created_at: datetime
    updated_at: datetime


class CoupletVersion(SQLModel, table=True):
    __tablename__ = "couplet_versions"
    __table_args__ = (UniqueConstraint("couplet_id", "version"),)

    id: int | None = Field(default=None, primary_key=True)
    couplet_id: int = Field(foreign_key="couplets.id", ondelete="CASCADE", index=True)
    version: int
    parent_version_id: int | None = None
    version_description: str | None = None
    is_latest_version: bool = True
    original_couplet_id: int | None = None
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_type=UTCDateTime,
        sa_column_kwargs={"onupdate": utcnow},
    )

    contents: list["CoupletContent"] = Relationship(cascade_delete=True)


class CoupletContent(CoupletContentBase, table=True):
    __tablename__ = "couplet_contents"

    id: int | None = Field(default=None, primary_key=True)
    couplet_id: int = Field(foreign_key="couplets.id", ondelete="CASCADE", index=True)
    version_id: int = Field(
        foreign_key="couplet_versions.id", ondelete="CASCADE", index=True
    )
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)


class CoupletContentPublic(CoupletContentBase):
    id: int
    version_id: int


class CoupletVersionCreate(SQLModel):
    contents: list[CoupletContentIn] = Field(min_length=1)
    version_description: str | None = None
    parent_version_id: int | None = None
    is_latest: bool = True


class CoupletVersionPublic(SQLModel):
    id: int
    couplet_id: int
    version: int
    parent_version_id: int | None
    version_description: str | None
    is_latest_version: bool
    original_couplet_id: int | None
    created_at: datetime
    contents: list[CoupletContentPublic] = []


class CoupletTagRelation(SQLModel, table=True):
    __tablename__ = "couplet_tag_relations"
    __table_args__ = (UniqueConstraint("couplet_id", "tag_id"),)

    id: int | None = Field(default=None, primary_key=True)
    couplet_id: int = Field(foreign_key="couplets.id", ondelete="CASCADE", index=True)
    tag_id: int = Field(foreign_key="couplet_tags.id", ondelete="CASCADE", index=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)


class CoupletLike(SQLModel, table=True):
    __tablename__ = "couplet_likes"
    __table_args__ = (UniqueConstraint("user_id", "couplet_id"),)

    id: int | None = Field(default=None, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="user.id", ondelete="CASCADE", index=True)
    couplet_id: int = Field(foreign_key="couplets.id", ondelete="CASCADE", index=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)


class CoupletFavorite(SQLModel, table=True):
    __tablename__ = "couplet_favorites"
    __table_args__ = (UniqueConstraint("user_id", "couplet_id"),)

    id: int | None = Field(default=None, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="user.id", ondelete="CASCADE", index=True)
    couplet_id: int = Field(foreign_key="couplets.id", ondelete="CASCADE", index=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)


class CoupletView(SQLModel, table=True):
    __tablename__ = "couplet_views"

    id: int | None = Field(default=None, primary_key=True)
    couplet_id: int = Field(foreign_key="couplets.id", ondelete="CASCADE", index=True)
    user_id: uuid.UUID | None = Field(
        default=None, foreign_key="user.id", ondelete="SET NULL"
    )
    ip: str | None = Field(default=None, max_length=64)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)


class CoupletDetail(CoupletPublic):
    category: CategoryPublic | None = None
    tags: list[TagPublic] = []
    latest_version: CoupletVersionPublic | None = None
    liked: bool = False
    favorited: bool = False
