"""
Hierarchy SQL (raw). Walks `parent_id` self-references inside one primary table.
"""

from __future__ import annotations

from typing import Any

from core import db
from core.sql import quote_ident


async def fetch_children(table: str, parent_ids: list[str]) -> list[dict[str, Any]]:
    if not parent_ids:
        return []
    return await db.fetch_all(
        f"""
        SELECT id, slug, parent_id
        FROM {quote_ident(table)}
        WHERE parent_id = ANY($1::text[])
        """,
        [str(p) for p in parent_ids],
    )


async def fetch_by_slugs(table: str, slugs: list[str]) -> list[dict[str, Any]]:
    if not slugs:
        return []
    return await db.fetch_all(
        f"""
        SELECT id, slug, parent_id
        FROM {quote_ident(table)}
        WHERE slug = ANY($1::text[])
        """,
        [str(s) for s in slugs],
    )
