"""
Content resolver.

Applies the file, array and relation resolvers to one item's field map, in
that order, one phase per resolver family. Fields within a phase run
concurrently (bounded). Each field is isolated: if resolving it raises, the
field gets its empty value and the rest of the item carries on.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from content_types.fields import ArrayField, FieldDefinition, FieldMap, FileField, RelationField, empty_value, fields_of
from core.fanout import gather_bounded

from .arrays import resolve_array
from .context import OwnerContext, ResolveContext, item_key
from .files import resolve_file
from .relations import resolve_relation

logger = logging.getLogger(__name__)

FieldResolver = Callable[[dict[str, Any], Any, str, OwnerContext, ResolveContext], Awaitable[Any]]

# Phase order: files, then arrays, then relations.
_PHASES: tuple[tuple[type, FieldResolver], ...] = (
    (FileField, resolve_file),
    (ArrayField, resolve_array),
    (RelationField, resolve_relation),
)


async def _resolve_field(
    item: dict[str, Any],
    definition: FieldDefinition,
    field_name: str,
    owner: OwnerContext,
    ctx: ResolveContext,
    resolver: FieldResolver,
) -> Any:
    try:
        return await resolver(item, definition, field_name, owner, ctx)
    except Exception as exc:
        logger.warning(
            "field_resolution_failed field=%s table=%s parent_id=%s error=%s",
            field_name,
            owner.table,
            item.get("id"),
            exc,
        )
        return empty_value(definition)


async def resolve_fields(
    item: dict[str, Any],
    fields: FieldMap,
    owner: OwnerContext,
    ctx: ResolveContext,
) -> dict[str, Any]:
    """
    Resolve `item` in place against `fields` and return it.
    """
    for field_kind, resolver in _PHASES:
        phase_fields = fields_of(fields, field_kind)
        if not phase_fields:
            continue

        async def run(entry: tuple[str, FieldDefinition], resolver: FieldResolver = resolver) -> Any:
            name, definition = entry
            return await _resolve_field(item, definition, name, owner, ctx, resolver)

        values = await gather_bounded(phase_fields, run, limit=ctx.fanout_limit)
        for (name, _), value in zip(phase_fields, values):
            item[name] = value
    return item


async def resolve_item(
    kind: str,
    slug: str,
    item: dict[str, Any],
    *,
    ctx: ResolveContext | None = None,
    fields: FieldMap | None = None,
) -> dict[str, Any]:
    """
    Resolve a primary-table row of `kind`/`slug` in place.

    Looks the type up in the registry unless `fields` is given. Unknown types
    leave the item untouched.
    """
    ctx = ctx or ResolveContext.from_env()
    if fields is None:
        definition = await ctx.get_type(kind, slug)
        if definition is None:
            return item
        fields = definition.fields

    owner = OwnerContext.root(kind, slug)
    if item.get("id") is not None:
        ctx = ctx.with_visited(item_key(kind, slug, item["id"]))
    return await resolve_fields(item, fields, owner, ctx)
