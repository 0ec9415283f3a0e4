"""
Relation field resolution.

- one-to-one / one-to-many: the row holds the target id; the target row is
  fetched from its primary table and embedded.
- many-to-many: target rows are joined through the junction table
  `junction_<slug>_<field>`, filtered by the owner's `<kind>_id`.

Every embedded target is resolved again with its own type's field map. A
target whose `(kind, slug, id)` is already being expanded higher up, or one
found past the depth limit, is embedded as its raw row.
"""

from __future__ import annotations

import logging
from typing import Any

from content_types.fields import RelationField
from core.fanout import gather_bounded

from . import repository
from .context import OwnerContext, ResolveContext, item_key

logger = logging.getLogger(__name__)


async def _expand_target(
    row: dict[str, Any],
    definition: RelationField,
    table_name: str,
    ctx: ResolveContext,
) -> dict[str, Any]:
    from .resolver import resolve_fields

    target = dict(row)
    key = item_key(definition.target_kind, definition.target_slug, target.get("id"))
    if ctx.seen(key) or ctx.depth_exhausted:
        logger.debug(
            "relation_expansion_stopped kind=%s slug=%s id=%s depth=%s",
            definition.target_kind,
            definition.target_slug,
            target.get("id"),
            ctx.depth,
        )
        return target

    target_type = await ctx.get_type(definition.target_kind, definition.target_slug)
    if target_type is None or not target_type.fields:
        return target

    target_owner = OwnerContext.root(definition.target_kind, definition.target_slug, table_name)
    return await resolve_fields(target, target_type.fields, target_owner, ctx.descend(key))


async def _resolve_single(
    item: dict[str, Any],
    definition: RelationField,
    field_name: str,
    ctx: ResolveContext,
) -> dict[str, Any] | None:
    value = item.get(field_name)
    if isinstance(value, dict):
        return value
    if value is None or value == "":
        return None

    table = await ctx.locator.primary(definition.target_kind, definition.target_slug)
    if table is None:
        return None

    row = await repository.fetch_row_by_id(table.name, value)
    if row is None:
        logger.debug("relation_dangling field=%s target=%s id=%s", field_name, table.name, value)
        return None
    return await _expand_target(row, definition, table.name, ctx)


async def _resolve_many(
    item: dict[str, Any],
    definition: RelationField,
    field_name: str,
    owner: OwnerContext,
    ctx: ResolveContext,
) -> list[dict[str, Any]]:
    if item.get("id") is None:
        return []

    junction = await ctx.locator.junction(owner.slug, field_name)
    if junction is None:
        return []
    if not junction.has(owner.junction_key) or not junction.has("target_id"):
        logger.debug("junction_table_unusable table=%s owner_column=%s", junction.name, owner.junction_key)
        return []

    target = await ctx.locator.primary(definition.target_kind, definition.target_slug)
    if target is None:
        return []

    rows = await repository.fetch_junction_targets(
        junction.name,
        target.name,
        owner.junction_key,
        item["id"],
        order_column="sort" if junction.has("sort") else None,
    )

    async def expand(row: dict[str, Any]) -> dict[str, Any]:
        return await _expand_target(row, definition, target.name, ctx)

    return await gather_bounded(rows, expand, limit=ctx.fanout_limit)


async def resolve_relation(
    item: dict[str, Any],
    definition: RelationField,
    field_name: str,
    owner: OwnerContext,
    ctx: ResolveContext,
) -> dict[str, Any] | list[dict[str, Any]] | None:
    if definition.many:
        return await _resolve_many(item, definition, field_name, owner, ctx)
    return await _resolve_single(item, definition, field_name, ctx)
