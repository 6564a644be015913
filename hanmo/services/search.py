"""Title and description search across the published catalogue."""

from typing import Any

from sqlalchemy import case, func
from sqlmodel import Session, col, or_, select

from hanmo.models import (
    Comic,
    ContentStatus,
    Couplet,
    SearchResponse,
    SearchResult,
    SearchType,
)

SEARCHABLE: dict[SearchType, tuple[Any, str]] = {
    SearchType.COMIC: (Comic, "/comics"),
    SearchType.COUPLET: (Couplet, "/couplets"),
}


def _matches(session: Session, model: Any, pattern: str, limit: int):
    title_match = col(model.title).ilike(pattern)
    relevance = case((title_match, 2), else_=1)
    where = (
        model.status == ContentStatus.PUBLISHED,
        col(model.is_public).is_(True),
        or_(title_match, col(model.description).ilike(pattern)),
    )
    total = session.exec(select(func.count()).select_from(model).where(*where)).one()
    rows = session.exec(
        select(model, relevance)
        .where(*where)
        .order_by(
            relevance.desc(), col(model.like_count).desc(), col(model.id).desc()
        )
        .limit(limit)
    ).all()
    return total, rows


def search(
    session: Session, query: str, *, type: SearchType = SearchType.ALL, limit: int = 10
) -> SearchResponse:
    query = query.strip()
    if not query:
        return SearchResponse(query=query, type=type, total=0, results=[])

    pattern = f"%{query}%"
    total = 0
    ranked = []
    for kind, (model, prefix) in SEARCHABLE.items():
        if type not in (SearchType.ALL, kind):
            continue
        count, rows = _matches(session, model, pattern, limit)
        total += count
        for item, relevance in rows:
            result = SearchResult(
                id=item.id,
                type=kind,
                title=item.title,
                description=item.description,
                slug=item.slug,
                url=f"{prefix}/{item.slug}",
                relevance=relevance,
            )
            ranked.append((relevance, item.like_count, result))

    ranked.sort(key=lambda entry: (entry[0], entry[1]), reverse=True)
    return SearchResponse(
        query=query,
        type=type,
        total=total,
        results=[result for _, _, result in ranked[:limit]],
    )
