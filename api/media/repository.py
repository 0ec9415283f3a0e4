"""
File registry queries (raw SQL).

Binary storage and URL generation live elsewhere; `files.url` is already the
public URL when the row is written.
"""

from __future__ import annotations

from typing import Any

from core import db


async def fetch_files(file_ids: list[str]) -> list[dict[str, Any]]:
    """
    Batch-load file rows by id. Order of the result is unspecified.
    """
    if not file_ids:
        return []
    return await db.fetch_all(
        """
        SELECT id, name, mime_type, size, url, alt, title
        FROM files
        WHERE id = ANY($1::text[])
        """,
        list(file_ids),
    )
