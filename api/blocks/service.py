"""
Page-builder blocks.

Every registered block type has a table `block_<slug>` whose rows point at a
collection item through `collection_id`. Loading the blocks of an item means
reading each block table, resolving the rows as kind `block`, and merging
them in `sort` order.
"""

from __future__ import annotations

import logging
from typing import Any

from content_types import service as content_types_service
from core.fanout import gather_bounded
from resolution import repository as resolution_repository
from resolution.context import OwnerContext, ResolveContext
from resolution.resolver import resolve_fields

logger = logging.getLogger(__name__)


def _sort_key(block: dict[str, Any]) -> tuple[int, str]:
    try:
        sort = int(block.get("sort") or 0)
    except (TypeError, ValueError):
        sort = 0
    return sort, str(block.get("id") or "")


async def _load_block_type(block_slug: str, collection_id: Any, ctx: ResolveContext) -> list[dict[str, Any]]:
    table = await ctx.locator.primary("block", block_slug)
    if table is None or not table.has("collection_id"):
        return []

    try:
        rows = await resolution_repository.fetch_rows_by_owner(
            table.name,
            "collection_id",
            collection_id,
            order_column="sort" if table.has("sort") else None,
        )
    except Exception as exc:
        logger.warning("blocks_load_failed block=%s collection_id=%s error=%s", block_slug, collection_id, exc)
        return []
    if not rows:
        return []

    definition = await ctx.get_type("block", block_slug)
    owner = OwnerContext.root("block", block_slug, table.name)

    async def resolve_block(row: dict[str, Any]) -> dict[str, Any]:
        block = dict(row)
        block["block_type"] = block_slug
        if definition is not None and definition.fields:
            await resolve_fields(block, definition.fields, owner, ctx)
        return block

    return await gather_bounded(rows, resolve_block, limit=ctx.fanout_limit)


async def load_blocks_for_item(collection_id: Any, ctx: ResolveContext) -> list[dict[str, Any]]:
    try:
        block_slugs = await content_types_service.list_types("block")
    except Exception as exc:
        logger.warning("block_types_load_failed error=%s", exc)
        return []

    async def load(block_slug: str) -> list[dict[str, Any]]:
        return await _load_block_type(block_slug, collection_id, ctx)

    per_type = await gather_bounded(block_slugs, load, limit=ctx.fanout_limit)
    blocks = [block for group in per_type for block in group]
    blocks.sort(key=_sort_key)
    return blocks
