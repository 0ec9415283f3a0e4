"""
Array field resolution.

Array rows live in `<owner table>_<field>`. Top-level rows point back at the
content item with `<kind>_id`; rows of an array nested inside another array
point at their immediate enclosing row with `parent_id`. Each row is then
resolved with its own item field map, so arrays, files and relations inside
array rows work at any depth.
"""

from __future__ import annotations

import logging
from typing import Any

from content_types.fields import ArrayField
from core.fanout import gather_bounded

from . import repository
from .context import OwnerContext, ResolveContext

logger = logging.getLogger(__name__)


async def resolve_array(
    item: dict[str, Any],
    definition: ArrayField,
    field_name: str,
    owner: OwnerContext,
    ctx: ResolveContext,
) -> list[dict[str, Any]]:
    from .resolver import resolve_fields

    table = await ctx.locator.side(owner.table, field_name)
    if table is None or item.get("id") is None:
        return []

    if not table.has(owner.foreign_key):
        logger.debug("array_table_unusable table=%s foreign_key=%s", table.name, owner.foreign_key)
        return []

    rows = await repository.fetch_rows_by_owner(
        table.name,
        owner.foreign_key,
        item["id"],
        order_column="sort" if table.has("sort") else None,
    )
    if not rows or not definition.item_fields:
        return [dict(row) for row in rows]

    row_owner = owner.child(table.name)

    async def resolve_row(row: dict[str, Any]) -> dict[str, Any]:
        return await resolve_fields(dict(row), definition.item_fields, row_owner, ctx)

    return await gather_bounded(rows, resolve_row, limit=ctx.fanout_limit)
