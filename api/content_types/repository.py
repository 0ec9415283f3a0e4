"""
Content type registry persistence (raw SQL).

Type definitions live in one registry table per kind:
- collection_types(slug, schema, options, ...)
- global_types(slug, data_type, schema, options, ...)
- block_types(slug, schema, ...)
"""

from __future__ import annotations

from typing import Any

from core import db

_REGISTRY_TABLES = {
    "collection": "collection_types",
    "global": "global_types",
    "block": "block_types",
}


def registry_table(kind: str) -> str:
    try:
        return _REGISTRY_TABLES[kind]
    except KeyError:
        raise ValueError(f"Unknown content kind: {kind!r}") from None


async def fetch_type_row(kind: str, slug: str) -> dict[str, Any] | None:
    """
    Return the raw registry row for a type, or None when it is not registered.
    """
    table = registry_table(kind)
    extra = "data_type" if kind == "global" else "NULL AS data_type"
    options = "NULL AS options" if kind == "block" else "options"
    return await db.fetch_one(
        f"""
        SELECT slug, schema, {options}, {extra}
        FROM {table}
        WHERE slug = $1
        LIMIT 1
        """,
        slug,
    )


async def list_type_slugs(kind: str) -> list[str]:
    rows = await db.fetch_all(f"SELECT slug FROM {registry_table(kind)} ORDER BY slug")
    return [str(r["slug"]) for r in rows]
