"""Category and tag routes, built once per catalogue."""

from typing import Any

from fastapi import APIRouter, Depends, Query

from hanmo.api.deps import SessionDep
from hanmo.core.rbac import require_permission
from hanmo.models import (
    CategoryCreate,
    CategoryPublic,
    CategoryUpdate,
    Comic,
    ComicCategory,
    ComicTag,
    ComicTagRelation,
    Couplet,
    CoupletCategory,
    CoupletTag,
    CoupletTagRelation,
    Message,
    Page,
    TagCreate,
    TagPublic,
    TagUpdate,
    TaxonomyStatus,
)
from hanmo.services import taxonomy
from hanmo.utils.pagination import PageDep


def build_router(
    *,
    prefix: str,
    module: str,
    model: type[Any],
    label: str,
    create_schema: type[Any],
    update_schema: type[Any],
    public_schema: type[Any],
    relation_model: type[Any],
    relation_field: str,
) -> APIRouter:
    router = APIRouter(prefix=prefix, tags=[module])

    @router.get("/public", response_model=list[public_schema])  # type: ignore[valid-type]
    def read_active(session: SessionDep) -> Any:
        return taxonomy.list_active(session, model)

    @router.get(
        "/",
        dependencies=[Depends(require_permission(f"{module}.read"))],
        response_model=Page[public_schema],  # type: ignore[valid-type]
    )
    def read_items(
        session: SessionDep,
        params: PageDep,
        search: str | None = Query(None, max_length=100),
        status: TaxonomyStatus | None = None,
    ) -> Any:
        items, pagination = taxonomy.list_items(
            session, model, params, search=search, status=status
        )
        return Page(data=items, pagination=pagination)

    @router.post(
        "/",
        dependencies=[Depends(require_permission(f"{module}.create"))],
        response_model=public_schema,
    )
    def create_item(session: SessionDep, item_in: create_schema) -> Any:  # type: ignore[valid-type]
        return taxonomy.create_item(session, model, item_in)

    @router.get(
        "/{item_id}",
        dependencies=[Depends(require_permission(f"{module}.read"))],
        response_model=public_schema,
    )
    def read_item(session: SessionDep, item_id: int) -> Any:
        return taxonomy.get_item(session, model, item_id, label)

    @router.patch(
        "/{item_id}",
        dependencies=[Depends(require_permission(f"{module}.update"))],
        response_model=public_schema,
    )
    def update_item(session: SessionDep, item_id: int, item_in: update_schema) -> Any:  # type: ignore[valid-type]
        return taxonomy.update_item(session, model, item_id, item_in, label)

    @router.delete(
        "/{item_id}", dependencies=[Depends(require_permission(f"{module}.delete"))]
    )
    def delete_item(session: SessionDep, item_id: int) -> Message:
        taxonomy.delete_item(
            session,
            model,
            item_id,
            label,
            relation_model=relation_model,
            relation_field=relation_field,
        )
        return Message(message=f"{label} deleted successfully")

    return router


comic_categories = build_router(
    prefix="/comic-categories",
    module="comic-category",
    model=ComicCategory,
    label="Comic category",
    create_schema=CategoryCreate,
    update_schema=CategoryUpdate,
    public_schema=CategoryPublic,
    relation_model=Comic,
    relation_field="category_id",
)
comic_tags = build_router(
    prefix="/comic-tags",
    module="comic-tag",
    model=ComicTag,
    label="Comic tag",
    create_schema=TagCreate,
    update_schema=TagUpdate,
    public_schema=TagPublic,
    relation_model=ComicTagRelation,
    relation_field="tag_id",
)
couplet_categories = build_router(
    prefix="/couplet-categories",
    module="couplet-category",
    model=CoupletCategory,
    label="Couplet category",
    create_schema=CategoryCreate,
    update_schema=CategoryUpdate,
    public_schema=CategoryPublic,
    relation_model=Couplet,
    relation_field="category_id",
)
couplet_tags = build_router(
    prefix="/couplet-tags",
    module="couplet-tag",
    model=CoupletTag,
    label="Couplet tag",
    create_schema=TagCreate,
    update_schema=TagUpdate,
    public_schema=TagPublic,
    relation_model=CoupletTagRelation,
    relation_field="tag_id",
)
