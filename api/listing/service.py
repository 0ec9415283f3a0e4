"""
Listing layer (orchestration).

One entry point per content kind, both backed by `get_content`:

- single-item mode (`item_slug` / `item_id`): at most one resolved item, or None
- multi-item mode: status, parent, sibling-of and relationship filters combined
  with AND, then ordering, limit/offset, resolution of every row, and optional
  grouping. The count query runs concurrently with the page query.

Failures never reach the caller: a broken item is returned unenriched, a
broken query returns None / an empty result.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any

from blocks import service as blocks_service
from content_types import service as content_types_service
from content_types.fields import RelationField
from content_types.service import ContentTypeDefinition
from core.fanout import gather_bounded
from hierarchy import service as hierarchy_service
from resolution import repository as resolution_repository
from resolution.context import ResolveContext
from resolution.resolver import resolve_item
from resolution.tables import TableHandle, TableLocator
from tagging import service as tagging_service
from users import service as users_service

from . import grouping, repository
from .repository import ItemFilter
from .schemas import ListingOptions, WhereRelated

logger = logging.getLogger(__name__)

TIMESTAMP_FIELDS = ("created_at", "updated_at")

# Default ordering per kind: (column, direction).
_DEFAULT_ORDER = {
    "collection": ("created_at", "desc"),
    "global": ("sort", "asc"),
    "block": ("sort", "asc"),
}


def empty_result() -> dict[str, Any]:
    return {"items": [], "total": 0, "has_more": False}


def _parse_timestamp(value: Any) -> Any:
    """
    Epoch integers (seconds, or milliseconds above 10^10) become aware datetimes.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return value
    seconds = value / 1000 if value > 10_000_000_000 else value
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


def _normalize_timestamps(item: dict[str, Any]) -> None:
    for name in TIMESTAMP_FIELDS:
        if name in item:
            item[name] = _parse_timestamp(item[name])


def _status_filter(table: TableHandle, options: ListingOptions) -> str | None:
    if options.status == "all" or not table.has("status"):
        return None
    return options.status


def _ordering(kind: str, table: TableHandle, options: ListingOptions) -> tuple[str | None, str]:
    default_column, default_direction = _DEFAULT_ORDER.get(kind, ("sort", "asc"))
    direction = options.order or default_direction

    if options.order_by:
        if table.has(options.order_by):
            return options.order_by, direction
        logger.warning("order_by_ignored table=%s column=%s", table.name, options.order_by)

    if table.has(default_column):
        return default_column, direction
    return None, direction


def _raw_item(row: dict[str, Any]) -> dict[str, Any]:
    item = dict(row)
    _normalize_timestamps(item)
    return item


async def _enrich(
    item: dict[str, Any],
    definition: ContentTypeDefinition,
    options: ListingOptions,
    ctx: ResolveContext,
) -> dict[str, Any]:
    kind, slug = definition.kind, definition.slug
    if options.include_arrays_and_relations and definition.fields:
        await resolve_item(kind, slug, item, ctx=ctx, fields=definition.fields)

    if options.include_tags:
        await tagging_service.attach_tags(item, kind, slug, definition.fields)

    if options.include_blocks and kind == "collection" and item.get("id") is not None:
        item["blocks"] = await blocks_service.load_blocks_for_item(item["id"], ctx)

    if options.include_authors:
        await users_service.populate_authors(item)

    if kind == "collection" or options.include_breadcrumbs:
        path = await hierarchy_service.resolve_path(
            kind,
            slug,
            item,
            with_breadcrumbs=options.include_breadcrumbs,
            base_path=definition.base_path,
            locator=ctx.locator,
        )
        item["url"] = path.url
        if options.include_breadcrumbs:
            item["breadcrumbs"] = path.breadcrumbs or []

    return item


async def _enrich_item(
    row: dict[str, Any],
    definition: ContentTypeDefinition,
    options: ListingOptions,
    ctx: ResolveContext,
) -> dict[str, Any]:
    """
    Resolved and enriched copy of `row`. If enrichment fails the row comes
    back unenriched instead of dropping out of the result.
    """
    try:
        return await _enrich(_raw_item(row), definition, options, ctx)
    except Exception as exc:
        logger.warning(
            "item_enrichment_failed kind=%s slug=%s id=%s error=%s",
            definition.kind,
            definition.slug,
            row.get("id"),
            exc,
        )
        return _raw_item(row)


async def _related_owner_ids(
    definition: ContentTypeDefinition,
    where: WhereRelated,
    locator: TableLocator,
) -> list[str]:
    """
    Ids of `definition`'s items linked to any of the related slugs.
    """
    relation = definition.fields.get(where.field)
    if not isinstance(relation, RelationField) or not relation.many:
        logger.warning("where_related_field_invalid slug=%s field=%s", definition.slug, where.field)
        return []

    values = [v for v in where.value if v]
    if not values:
        return []
    if where.recursive:
        values = await hierarchy_service.descendant_slugs(
            relation.target_kind,
            relation.target_slug,
            values,
            locator=locator,
        )

    owner_column = f"{definition.kind}_id"
    junction = await locator.junction(definition.slug, where.field)
    target = await locator.primary(relation.target_kind, relation.target_slug)
    if junction is None or target is None or not junction.has(owner_column):
        logger.warning("where_related_tables_missing slug=%s field=%s", definition.slug, where.field)
        return []

    return await repository.fetch_owner_ids_by_target_slugs(junction.name, owner_column, target.name, values)


async def _build_filter(
    definition: ContentTypeDefinition,
    table: TableHandle,
    options: ListingOptions,
    locator: TableLocator,
) -> ItemFilter:
    flt = ItemFilter(status=_status_filter(table, options), parent_id=options.parent_id)

    if options.sibling_of:
        sibling = await resolution_repository.fetch_row_by_id(table.name, options.sibling_of)
        sibling_parent = sibling.get("parent_id") if sibling else None
        if not sibling_parent:
            # Root items and unknown ids have no siblings.
            flt.match_none = True
        elif flt.parent_id is not None and str(flt.parent_id) != str(sibling_parent):
            flt.match_none = True
        else:
            flt.parent_id = str(sibling_parent)
            if options.exclude_current:
                flt.exclude_id = options.sibling_of

    if options.where_related is not None and not flt.match_none:
        owner_ids = await _related_owner_ids(definition, options.where_related, locator)
        if owner_ids:
            flt.id_in = owner_ids
        else:
            flt.match_none = True

    return flt


async def _get_single(
    definition: ContentTypeDefinition,
    table: TableHandle,
    options: ListingOptions,
    ctx: ResolveContext,
) -> dict[str, Any] | None:
    flt = ItemFilter(
        item_id=options.item_id,
        slug=options.item_slug,
        status=_status_filter(table, options),
    )
    rows = await repository.select_items(table.name, flt, limit=1)
    if not rows:
        return None
    return await _enrich_item(rows[0], definition, options, ctx)


async def _get_flat_global(
    definition: ContentTypeDefinition,
    table: TableHandle,
    options: ListingOptions,
    ctx: ResolveContext,
) -> dict[str, Any] | None:
    # A flat global stores its one record under id = slug.
    rows = await repository.select_items(table.name, ItemFilter(item_id=definition.slug), limit=1)
    if not rows:
        logger.warning("global_record_missing slug=%s", definition.slug)
        return None
    return await _enrich_item(rows[0], definition, options, ctx)


async def _get_many(
    definition: ContentTypeDefinition,
    table: TableHandle,
    options: ListingOptions,
    ctx: ResolveContext,
) -> dict[str, Any]:
    flt = await _build_filter(definition, table, options, ctx.locator)
    order_by, order = _ordering(definition.kind, table, options)

    total, rows = await asyncio.gather(
        repository.count_items(table.name, flt),
        repository.select_items(
            table.name,
            flt,
            order_by=order_by,
            order=order,
            limit=options.limit,
            offset=options.offset,
        ),
    )

    async def enrich(row: dict[str, Any]) -> dict[str, Any]:
        return await _enrich_item(row, definition, options, ctx)

    items = await gather_bounded(rows, enrich, limit=ctx.fanout_limit)

    result: dict[str, Any] = {
        "items": items,
        "total": total,
        "has_more": (options.offset + len(rows) < total) if options.limit else False,
    }
    if options.limit:
        result["pagination"] = grouping.build_pagination(
            total=total,
            limit=options.limit,
            offset=options.offset,
            current_page=options.current_page,
            base_url=options.base_url,
        )
    if options.group_by:
        result["grouped"] = grouping.group_items(items, options.group_by)
    return result


async def get_content(
    kind: str,
    slug: str,
    options: ListingOptions | None = None,
) -> dict[str, Any] | None:
    """
    Single item (or None) in single-item mode and for flat globals; otherwise
    `{items, total, has_more, pagination?, grouped?}`.
    """
    options = options or ListingOptions()
    miss: dict[str, Any] | None = None if options.single else empty_result()

    try:
        definition = await content_types_service.get_type_definition(kind, slug)
        if definition is None:
            return miss

        locator = TableLocator()
        table = await locator.primary(kind, slug)
        if table is None:
            logger.warning("content_table_missing kind=%s slug=%s", kind, slug)
            return miss

        ctx = ResolveContext.from_env(locator=locator, expand_files=options.expand_files)
        if definition.is_flat:
            return await _get_flat_global(definition, table, options, ctx)
        if options.single:
            return await _get_single(definition, table, options, ctx)
        return await _get_many(definition, table, options, ctx)
    except Exception:
        logger.exception("content_query_failed kind=%s slug=%s", kind, slug)
        return miss


async def get_collections(slug: str, options: ListingOptions | None = None) -> dict[str, Any] | None:
    return await get_content("collection", slug, options)


async def get_globals(slug: str, options: ListingOptions | None = None) -> dict[str, Any] | None:
    return await get_content("global", slug, options)
