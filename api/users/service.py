"""
Author population for content items.
"""

from __future__ import annotations

import logging
from typing import Any

from . import repository

logger = logging.getLogger(__name__)

AUTHOR_FIELDS = ("author", "last_modified_by")


async def get_author(user_id: str) -> dict[str, Any] | None:
    try:
        row = await repository.fetch_user(user_id)
    except Exception as exc:
        logger.warning("author_load_failed user_id=%s error=%s", user_id, exc)
        return None
    if row is None:
        return None
    return {"id": str(row["id"]), "name": row.get("name"), "email": row.get("email")}


async def populate_authors(item: dict[str, Any]) -> dict[str, Any]:
    """
    Swap user ids in `author` / `last_modified_by` for `{id, name, email}`.

    Unknown users keep the raw id.
    """
    for name in AUTHOR_FIELDS:
        value = item.get(name)
        if not isinstance(value, str) or not value:
            continue
        author = await get_author(value)
        if author is not None:
            item[name] = author
    return item
