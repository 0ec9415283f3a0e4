"""
Listing SQL (raw).

Filters are collected in an `ItemFilter` and rendered into one WHERE clause,
so the page query and its count query always agree.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from core import db
from core.sql import quote_ident


@dataclass
class ItemFilter:
    item_id: str | None = None
    slug: str | None = None
    status: str | None = None
    parent_id: str | None = None
    exclude_id: str | None = None
    id_in: list[str] | None = None
    match_none: bool = False


def _where(flt: ItemFilter) -> tuple[str, list[Any]]:
    clauses: list[str] = []
    args: list[Any] = []

    def add(sql: str, value: Any) -> None:
        args.append(value)
        clauses.append(sql.format(n=f"${len(args)}"))

    if flt.match_none:
        clauses.append("1 = 0")
    if flt.item_id is not None:
        add("id = {n}", str(flt.item_id))
    if flt.slug is not None:
        add("slug = {n}", flt.slug)
    if flt.status is not None:
        add("status = {n}", flt.status)
    if flt.parent_id is not None:
        add("parent_id = {n}", str(flt.parent_id))
    if flt.exclude_id is not None:
        add("id <> {n}", str(flt.exclude_id))
    if flt.id_in is not None:
        add("id = ANY({n}::text[])", [str(i) for i in flt.id_in])

    if not clauses:
        return "", args
    return "WHERE " + "\n  AND ".join(clauses), args


async def select_items(
    table: str,
    flt: ItemFilter,
    *,
    order_by: str | None = None,
    order: str = "asc",
    limit: int | None = None,
    offset: int = 0,
) -> list[dict[str, Any]]:
    where, args = _where(flt)
    order_sql = ""
    if order_by:
        direction = "DESC" if order == "desc" else "ASC"
        order_sql = f"ORDER BY {quote_ident(order_by)} {direction}, id {direction}"

    page_sql = ""
    if limit is not None:
        args.extend([int(limit), int(offset)])
        page_sql = f"LIMIT ${len(args) - 1} OFFSET ${len(args)}"

    return await db.fetch_all(
        f"""
        SELECT *
        FROM {quote_ident(table)}
        {where}
        {order_sql}
        {page_sql}
        """,
        *args,
    )


async def count_items(table: str, flt: ItemFilter) -> int:
    where, args = _where(flt)
    value = await db.fetch_val(
        f"""
        SELECT count(*)
        FROM {quote_ident(table)}
        {where}
        """,
        *args,
    )
    return int(value or 0)


async def fetch_owner_ids_by_target_slugs(
    junction: str,
    owner_column: str,
    target_table: str,
    slugs: list[str],
) -> list[str]:
    """
    Owner ids linked (through `junction`) to any target whose slug is in `slugs`.
    """
    if not slugs:
        return []
    rows = await db.fetch_all(
        f"""
        SELECT DISTINCT j.{quote_ident(owner_column)} AS owner_id
        FROM {quote_ident(junction)} j
        JOIN {quote_ident(target_table)} t ON t.id = j.target_id
        WHERE t.slug = ANY($1::text[])
        """,
        [str(s) for s in slugs],
    )
    return [str(r["owner_id"]) for r in rows if r.get("owner_id") is not None]
