from typing import Any

from fastapi import APIRouter, Depends, Query

from hanmo.api.deps import SessionDep
from hanmo.core.rate_limiter import public_api_limiter
from hanmo.models import SearchResponse, SearchType
from hanmo.services import search as search_service

router = APIRouter(prefix="/search", tags=["search"])


@router.get(
    "/", dependencies=[Depends(public_api_limiter)], response_model=SearchResponse
)
def search(
    session: SessionDep,
    q: str = Query("", max_length=100),
    type: SearchType = SearchType.ALL,
    limit: int = Query(10, ge=1, le=50),
) -> Any:
    """
    Search published comics and couplets by title and description.
    """
    return search_service.search(session, q, type=type, limit=limit)
