"""
Tag registry queries (raw SQL).
"""

from __future__ import annotations

from typing import Any

from core import db


async def fetch_tags_for_entity(entity_type: str, entity_id: str) -> list[dict[str, Any]]:
    return await db.fetch_all(
        """
        SELECT t.id, t.name, t.slug
        FROM tags t
        JOIN taggables tg ON tg.tag_id = t.id
        WHERE tg.taggable_type = $1
          AND tg.taggable_id = $2
        ORDER BY t.name
        """,
        entity_type,
        str(entity_id),
    )
