"""
Resolution SQL (raw).

Content tables are generated per content type, so every query here takes the
table and column names as arguments. They come from the naming convention in
`resolution/tables.py` (never from request input) and still pass through
`quote_ident` before being spliced in.
"""

from __future__ import annotations

from typing import Any

from core import db
from core.sql import quote_ident


async def table_columns(table: str) -> set[str]:
    """
    Column names of `table` in the current schema. Empty set when it does not exist.
    """
    rows = await db.fetch_all(
        """
        SELECT column_name
        FROM information_schema.columns
        WHERE table_schema = current_schema()
          AND table_name = $1
        """,
        table,
    )
    return {str(r["column_name"]) for r in rows}


async def fetch_row_by_id(table: str, row_id: Any) -> dict[str, Any] | None:
    return await db.fetch_one(
        f"SELECT * FROM {quote_ident(table)} WHERE id = $1 LIMIT 1",
        str(row_id),
    )


async def fetch_rows_by_owner(
    table: str,
    owner_column: str,
    owner_id: Any,
    *,
    order_column: str | None = None,
) -> list[dict[str, Any]]:
    """
    Side-table rows (array items, blocks) belonging to one owner row.
    """
    order = f"ORDER BY {quote_ident(order_column)}, id" if order_column else ""
    return await db.fetch_all(
        f"""
        SELECT *
        FROM {quote_ident(table)}
        WHERE {quote_ident(owner_column)} = $1
        {order}
        """,
        str(owner_id),
    )


async def fetch_file_links(
    table: str,
    owner_column: str,
    owner_id: Any,
    *,
    owner_kind: str | None = None,
    order_column: str | None = None,
) -> list[dict[str, Any]]:
    """
    File link rows for one owner.

    When `owner_kind` is given the `parent_type` discriminant must match it,
    be NULL, or be empty (rows written before the column was populated).
    """
    order = f"ORDER BY {quote_ident(order_column)}" if order_column else ""
    if owner_kind is None:
        return await db.fetch_all(
            f"""
            SELECT *
            FROM {quote_ident(table)}
            WHERE {quote_ident(owner_column)} = $1
            {order}
            """,
            str(owner_id),
        )
    return await db.fetch_all(
        f"""
        SELECT *
        FROM {quote_ident(table)}
        WHERE {quote_ident(owner_column)} = $1
          AND (parent_type = $2 OR parent_type IS NULL OR parent_type = '')
        {order}
        """,
        str(owner_id),
        owner_kind,
    )


async def fetch_junction_targets(
    junction: str,
    target_table: str,
    owner_column: str,
    owner_id: Any,
    *,
    order_column: str | None = None,
) -> list[dict[str, Any]]:
    """
    Target rows joined through a many-to-many junction table.

    The inner join drops junction rows whose target no longer exists.
    """
    order = f"ORDER BY j.{quote_ident(order_column)}" if order_column else ""
    return await db.fetch_all(
        f"""
        SELECT t.*
        FROM {quote_ident(target_table)} t
        JOIN {quote_ident(junction)} j ON j.target_id = t.id
        WHERE j.{quote_ident(owner_column)} = $1
        {order}
        """,
        str(owner_id),
    )
