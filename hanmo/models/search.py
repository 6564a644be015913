"""Site-wide search response shapes."""

from enum import Enum

from sqlmodel import SQLModel


class SearchType(str, Enum):
    ALL = "all"
    COMIC = "comic"
    COUPLET = "couplet"


class SearchResult(SQLModel):
    id: int
    type: SearchType
    title: str
    description: str | None
    slug: str
    url: str
    # 2 for a title match, 1 for a description-only match
    relevance: int


class SearchResponse(SQLModel):
    query: str
    type: SearchType
    total: int
    results: list[SearchResult]
