"""Comic catalogue models: comic -> version -> volume -> episode -> page -> panel."""

import uuid
from datetime import datetime

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

from .common import UTCDateTime, utcnow
from .taxonomy import CategoryBase, CategoryPublic, ContentStatus, TagBase, TagPublic


class ComicCategory(CategoryBase, table=True):
    __tablename__ = "comic_categories"

    id: int | None = Field(default=None, primary_key=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_type=UTCDateTime,
        sa_column_kwargs={"onupdate": utcnow},
    )


class ComicTag(TagBase, table=True):
    __tablename__ = "comic_tags"

    id: int | None = Field(default=None, primary_key=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)


class ComicBase(SQLModel):
    title: str = Field(max_length=255)
    description: str | None = None
    category_id: int | None = Field(
        default=None, foreign_key="comic_categories.id", ondelete="SET NULL"
    )
    status: ContentStatus = ContentStatus.PUBLISHED
    is_public: bool = True
    is_featured: bool = False
    hot: int = 0
    model: str | None = Field(default=None, max_length=100)
    prompt: str | None = None
    language: str = Field(default="en", max_length=10)
    cover_image: str | None = Field(default=None, max_length=500)
    style: str | None = Field(default=None, max_length=100)


class Comic(ComicBase, table=True):
    __tablename__ = "comics"

    id: int | None = Field(default=None, primary_key=True)
    slug: str = Field(unique=True, index=True, max_length=255)
    author_id: uuid.UUID | None = Field(
        default=None, foreign_key="user.id", ondelete="SET NULL"
    )
    view_count: int = 0
    like_count: int = 0
    favorite_count: int = 0
    volume_count: int = 0
    episode_count: int = 0
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_type=UTCDateTime,
        sa_column_kwargs={"onupdate": utcnow},
    )

    versions: list["ComicVersion"] = Relationship(cascade_delete=True)
    tag_links: list["ComicTagRelation"] = Relationship(cascade_delete=True)
    likes: list["ComicLike"] = Relationship(cascade_delete=True)
    favorites: list["ComicFavorite"] = Relationship(cascade_delete=True)
    views: list["ComicView"] = Relationship(cascade_delete=True)


class ComicCreate(ComicBase):
    slug: str | None = Field(default=None, max_length=255)
    tag_ids: list[int] = []
    version_description: str | None = None


class ComicUpdate(SQLModel):
    title: str | None = Field(default=None, max_length=255)
    slug: str | None = Field(default=None, max_length=255)
    description: str | None = None
    category_id: int | None = None
    status: ContentStatus | None = None
    is_public: bool | None = None
    is_featured: bool | None = None
    hot: int | None = None
    language: str | None = Field(default=None, max_length=10)
    cover_image: str | None = Field(default=None, max_length=500)
    style: str | None = Field(default=None, max_length=100)
    tag_ids: list[int] | None = None


class ComicPublic(ComicBase):
    id: int
    slug: str
    author_id: uuid.UUID | None
    view_count: int
    like_count: int
    favorite_count: int
    volume_count: int
    episode_count: int
    created_at: datetime
    updated_at: datetime


class ComicVersion(SQLModel, table=True):
    __tablename__ = "comic_versions"
    __table_args__ = (UniqueConstraint("comic_id", "version"),)

    id: int | None = Field(default=None, primary_key=True)
    comic_id: int = Field(foreign_key="comics.id", ondelete="CASCADE", index=True)
    version: int
    parent_version_id: int | None = None
    version_description: str | None = None
    is_latest_version: bool = False
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_type=UTCDateTime,
        sa_column_kwargs={"onupdate": utcnow},
    )

    volumes: list["ComicVolume"] = Relationship(cascade_delete=True)
    episodes: list["ComicEpisode"] = Relationship(cascade_delete=True)


class ComicVersionCreate(SQLModel):
    version_description: str | None = None
    parent_version_id: int | None = None
    copy_from_parent: bool = True
    is_latest: bool = True


class ComicVersionPublic(SQLModel):
    id: int
    comic_id: int
    version: int
    parent_version_id: int | None
    version_description: str | None
    is_latest_version: bool
    created_at: datetime


class ComicVolumeBase(SQLModel):
    volume_number: int = Field(ge=1)
    title: str = Field(max_length=255)
    description: str | None = None
    cover_image: str | None = Field(default=None, max_length=500)
    start_episode: int | None = None
    end_episode: int | None = None
    status: ContentStatus = ContentStatus.PUBLISHED


class ComicVolume(ComicVolumeBase, table=True):
    __tablename__ = "comic_volumes"

    id: int | None = Field(default=None, primary_key=True)
    comic_id: int = Field(foreign_key="comics.id", ondelete="CASCADE", index=True)
    version_id: int = Field(
        foreign_key="comic_versions.id", ondelete="CASCADE", index=True
    )
    episode_count: int = 0
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_type=UTCDateTime,
        sa_column_kwargs={"onupdate": utcnow},
    )

    # Episodes are owned by the version; this link only orders flushes
    episodes: list["ComicEpisode"] = Relationship()


class ComicVolumeCreate(ComicVolumeBase):
    pass


class ComicVolumePublic(ComicVolumeBase):
    id: int
    comic_id: int
    version_id: int
    episode_count: int


class ComicEpisodeBase(SQLModel):
    episode_number: int = Field(ge=1)
    title: str = Field(max_length=255)
    description: str | None = None
    status: ContentStatus = ContentStatus.PUBLISHED


class ComicEpisode(ComicEpisodeBase, table=True):
    __tablename__ = "comic_episodes"

    id: int | None = Field(default=None, primary_key=True)
    comic_id: int = Field(foreign_key="comics.id", ondelete="CASCADE", index=True)
    version_id: int = Field(
        foreign_key="comic_versions.id", ondelete="CASCADE", index=True
    )
    volume_id: int | None = Field(
        default=None, foreign_key="comic_volumes.id", ondelete="SET NULL"
    )
    page_count: int = 0
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_type=UTCDateTime,
        sa_column_kwargs={"onupdate": utcnow},
    )

    pages: list["ComicPage"] = Relationship(cascade_delete=True)


class ComicEpisodeCreate(ComicEpisodeBase):
    volume_id: int | None = None


class ComicEpisodePublic(ComicEpisodeBase):
    id: int
    comic_id: int
    version_id: int
    volume_id: int | None
    page_count: int


class ComicPageBase(SQLModel):
    page_number: int = Field(ge=1)
    page_layout: str | None = Field(default=None, max_length=50)
    image_url: str | None = Field(default=None, max_length=500)
    status: ContentStatus = ContentStatus.PUBLISHED


class ComicPage(ComicPageBase, table=True):
    __tablename__ = "comic_pages"

    id: int | None = Field(default=None, primary_key=True)
    episode_id: int = Field(
        foreign_key="comic_episodes.id", ondelete="CASCADE", index=True
    )
    panel_count: int = 0
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_type=UTCDateTime,
        sa_column_kwargs={"onupdate": utcnow},
    )

    panels: list["ComicPanel"] = Relationship(cascade_delete=True)


class ComicPageCreate(ComicPageBase):
    pass


class ComicPagePublic(ComicPageBase):
    id: int
    episode_id: int
    panel_count: int


class ComicPanelBase(SQLModel):
    panel_number: int = Field(ge=1)
    scene_description: str | None = None
    dialogue: str | None = None
    narration: str | None = None
    emotion: str | None = Field(default=None, max_length=50)
    camera_angle: str | None = Field(default=None, max_length=50)
    characters: str | None = None


class ComicPanel(ComicPanelBase, table=True):
    __tablename__ = "comic_panels"

    id: int | None = Field(default=None, primary_key=True)
    page_id: int = Field(foreign_key="comic_pages.id", ondelete="CASCADE", index=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_type=UTCDateTime,
        sa_column_kwargs={"onupdate": utcnow},
    )


class ComicPanelCreate(ComicPanelBase):
    pass


class ComicPanelPublic(ComicPanelBase):
    id: int
    page_id: int


class ComicTagRelation(SQLModel, table=True):
    __tablename__ = "comic_tag_relations"
    __table_args__ = (UniqueConstraint("comic_id", "tag_id"),)

    id: int | None = Field(default=None, primary_key=True)
    comic_id: int = Field(foreign_key="comics.id", ondelete="CASCADE", index=True)
    tag_id: int = Field(foreign_key="comic_tags.id", ondelete="CASCADE", index=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)


class ComicLike(SQLModel, table=True):
    __tablename__ = "comic_likes"
    __table_args__ = (UniqueConstraint("user_id", "comic_id"),)

    id: int | None = Field(default=None, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="user.id", ondelete="CASCADE", index=True)
    comic_id: int = Field(foreign_key="comics.id", ondelete="CASCADE", index=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)


class ComicFavorite(SQLModel, table=True):
    __tablename__ = "comic_favorites"
    __table_args__ = (UniqueConstraint("user_id", "comic_id"),)

    id: int | None = Field(default=None, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="user.id", ondelete="CASCADE", index=True)
    comic_id: int = Field(foreign_key="comics.id", ondelete="CASCADE", index=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)


class ComicView(SQLModel, table=True):
    __tablename__ = "comic_views"

    id: int | None = Field(default=None, primary_key=True)
    comic_id: int = Field(foreign_key="comics.id", ondelete="CASCADE", index=True)
    user_id: uuid.UUID | None = Field(
        default=None, foreign_key="user.id", ondelete="SET NULL"
    )
    ip: str | None = Field(default=None, max_length=64)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)


class ComicPageTree(ComicPagePublic):
    panels: list[ComicPanelPublic] = []


class ComicEpisodeTree(ComicEpisodePublic):
    pages: list[ComicPageTree] = []


class ComicVolumeTree(ComicVolumePublic):
    episodes: list[ComicEpisodeTree] = []


class ComicVersionTree(ComicVersionPublic):
    volumes: list[ComicVolumeTree] = []
    # Episodes not filed under any volume
    loose_episodes: list[ComicEpisodeTree] = []


class ComicDetail(ComicPublic):
    category: CategoryPublic | None = None
    tags: list[TagPublic] = []
    latest_version: ComicVersionTree | None = None
    liked: bool = False
    favorited: bool = False
