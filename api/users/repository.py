"""
User lookups (raw SQL). Only the public profile columns are read.
"""

from __future__ import annotations

from typing import Any

from core import db


async def fetch_user(user_id: str) -> dict[str, Any] | None:
    return await db.fetch_one(
        """
        SELECT id, name, email
        FROM users
        WHERE id = $1
        LIMIT 1
        """,
        str(user_id),
    )
