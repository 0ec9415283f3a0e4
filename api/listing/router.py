"""
Content delivery API endpoints.
"""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query

from . import service
from .schemas import ListingOptions, WhereRelated

router = APIRouter()


def listing_options(
    status: Literal["published", "draft", "all"] = "published",
    parent_id: str | None = None,
    sibling_of: str | None = None,
    exclude_current: bool = True,
    related_field: str | None = Query(None, min_length=1, max_length=200),
    related_value: list[str] | None = Query(None),
    related_recursive: bool = False,
    include_arrays_and_relations: bool = True,
    include_breadcrumbs: bool = False,
    include_authors: bool = False,
    include_tags: bool = False,
    include_blocks: bool = False,
    expand_files: bool = True,
    order_by: str | None = None,
    order: Literal["asc", "desc"] | None = None,
    group_by: str | None = None,
    limit: int | None = Query(None, ge=1),
    offset: int = Query(0, ge=0),
    page: int | None = Query(None, ge=1),
    base_url: str | None = None,
) -> ListingOptions:
    where_related = None
    if related_field:
        where_related = WhereRelated(field=related_field, value=related_value or [], recursive=related_recursive)

    return ListingOptions(
        status=status,
        parent_id=parent_id,
        sibling_of=sibling_of,
        exclude_current=exclude_current,
        where_related=where_related,
        include_arrays_and_relations=include_arrays_and_relations,
        include_breadcrumbs=include_breadcrumbs,
        include_authors=include_authors,
        include_tags=include_tags,
        include_blocks=include_blocks,
        expand_files=expand_files,
        order_by=order_by,
        order=order,
        group_by=group_by,
        limit=limit,
        offset=offset,
        current_page=page,
        base_url=base_url,
    )


def _single_options(options: ListingOptions, item: str, by: str) -> ListingOptions:
    if by == "id":
        return options.model_copy(update={"item_id": item})
    return options.model_copy(update={"item_slug": item})


@router.get("/collections/{slug}")
async def list_collection(slug: str, options: ListingOptions = Depends(listing_options)) -> dict:
    return await service.get_collections(slug, options) or service.empty_result()


@router.get("/collections/{slug}/items/{item}")
async def get_collection_item(
    slug: str,
    item: str,
    by: Literal["slug", "id"] = "slug",
    options: ListingOptions = Depends(listing_options),
) -> dict:
    result = await service.get_collections(slug, _single_options(options, item, by))
    if result is None:
        raise HTTPException(status_code=404, detail="Item not found")
    return result


@router.get("/globals/{slug}")
async def get_global(slug: str, options: ListingOptions = Depends(listing_options)) -> dict:
    # Flat globals answer with their single record, repeatable ones with a listing.
    result = await service.get_globals(slug, options)
    if result is None:
        raise HTTPException(status_code=404, detail="Global not found")
    return result


@router.get("/globals/{slug}/items/{item}")
async def get_global_item(
    slug: str,
    item: str,
    by: Literal["slug", "id"] = "slug",
    options: ListingOptions = Depends(listing_options),
) -> dict:
    result = await service.get_globals(slug, _single_options(options, item, by))
    if result is None:
        raise HTTPException(status_code=404, detail="Item not found")
    return result
