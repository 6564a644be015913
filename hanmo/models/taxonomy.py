"""Category and tag fields shared by the comic and couplet catalogues."""

from datetime import datetime
from enum import Enum

from sqlmodel import Field, SQLModel


class ContentStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class TaxonomyStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class CategoryBase(SQLModel):
    name: str = Field(max_length=100)
    slug: str = Field(unique=True, index=True, max_length=100)
    description: str | None = None
    icon: str | None = Field(default=None, max_length=50)
    color: str | None = Field(default=None, max_length=20)
    status: TaxonomyStatus = TaxonomyStatus.ACTIVE
    sort_order: int = 0


class CategoryCreate(SQLModel):
    name: str = Field(min_length=1, max_length=100)
    slug: str | None = Field(default=None, max_length=100)
    description: str | None = None
    icon: str | None = Field(default=None, max_length=50)
    color: str | None = Field(default=None, max_length=20)
    status: TaxonomyStatus = TaxonomyStatus.ACTIVE
    sort_order: int = 0


class CategoryUpdate(SQLModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    slug: str | None = Field(default=None, max_length=100)
    description: str | None = None
    icon: str | None = Field(default=None, max_length=50)
    color: str | None = Field(default=None, max_length=20)
    status: TaxonomyStatus | None = None
    sort_order: int | None = None


class CategoryPublic(CategoryBase):
    id: int
    created_at: datetime


class TagBase(SQLModel):
    name: str = Field(max_length=100)
    slug: str = Field(unique=True, index=True, max_length=100)
    color: str | None = Field(default=None, max_length=20)
    status: TaxonomyStatus = TaxonomyStatus.ACTIVE


class TagCreate(SQLModel):
    name: str = Field(min_length=1, max_length=100)
    slug: str | None = Field(default=None, max_length=100)
    color: str | None = Field(default=None, max_length=20)
    status: TaxonomyStatus = TaxonomyStatus.ACTIVE


class TagUpdate(SQLModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    slug: str | None = Field(default=None, max_length=100)
    color: str | None = Field(default=None, max_length=20)
    status: TaxonomyStatus | None = None


class TagPublic(TagBase):
    id: int
