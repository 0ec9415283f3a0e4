"""
File field resolution.

A file field either carries its file id(s) inline on the row, or has them in
a link table `<owner table>_<field>` keyed by the owner row id. Whether the
field holds one file or a list comes from the field definition, never from
the data.
"""

from __future__ import annotations

import logging
from typing import Any

from content_types.fields import FileField
from media import service as media_service

from . import repository
from .context import OwnerContext, ResolveContext

logger = logging.getLogger(__name__)


def _inline_ids(value: Any) -> list[Any] | None:
    """
    File ids already present on the row, or None when the row has nothing inline.
    """
    if value is None or value == "" or value == []:
        return None
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _is_file_ref(value: Any) -> bool:
    return isinstance(value, dict) and "id" in value


async def _linked_ids(
    item: dict[str, Any],
    field_name: str,
    owner: OwnerContext,
    ctx: ResolveContext,
) -> tuple[list[Any], dict[str, str]]:
    """
    File ids (in sort order) from the link table, plus any per-link alt overrides.
    """
    table = await ctx.locator.side(owner.table, field_name)
    if table is None or item.get("id") is None:
        return [], {}

    # Older block file tables point back with block_id instead of parent_id.
    owner_column = "parent_id" if table.has("parent_id") else owner.foreign_key
    if not table.has(owner_column) or not table.has("file_id"):
        logger.debug("file_table_unusable table=%s owner_column=%s", table.name, owner_column)
        return [], {}

    rows = await repository.fetch_file_links(
        table.name,
        owner_column,
        item["id"],
        owner_kind=owner.kind if table.has("parent_type") else None,
        order_column="sort" if table.has("sort") else None,
    )

    ids: list[Any] = []
    overrides: dict[str, str] = {}
    for row in rows:
        file_id = row.get("file_id")
        if not file_id:
            continue
        ids.append(file_id)
        if row.get("alt_override"):
            overrides.setdefault(str(file_id), str(row["alt_override"]))
    return ids, overrides


async def resolve_file(
    item: dict[str, Any],
    definition: FileField,
    field_name: str,
    owner: OwnerContext,
    ctx: ResolveContext,
) -> Any:
    """
    Return the resolved value for one file field: a file ref / id, a list of
    them, or None / [] when nothing is attached.
    """
    overrides: dict[str, str] = {}
    ids = _inline_ids(item.get(field_name))
    if ids is None:
        ids, overrides = await _linked_ids(item, field_name, owner, ctx)

    if not definition.multiple:
        ids = ids[:1]

    if not ctx.expand_files or not ids:
        if definition.multiple:
            return ids
        return ids[0] if ids else None

    # Already-embedded refs stay as they are; only bare ids are looked up.
    lookup = [str(i) for i in ids if not _is_file_ref(i)]
    found = await media_service.get_files(lookup) if lookup else {}

    resolved: list[dict[str, Any]] = []
    for value in ids:
        if _is_file_ref(value):
            resolved.append(value)
            continue
        ref = found.get(str(value))
        if ref is None:
            logger.debug("file_dangling field=%s file_id=%s", field_name, value)
            continue
        if str(value) in overrides:
            ref = {**ref, "alt": overrides[str(value)]}
        resolved.append(ref)

    if definition.multiple:
        return resolved
    return resolved[0] if resolved else None
