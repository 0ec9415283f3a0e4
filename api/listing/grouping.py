"""
Post-query shaping: grouping and pagination metadata.
"""

from __future__ import annotations

import math
from typing import Any


def _group_key(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, dict):
        return str(value.get("name") or value.get("title") or value.get("slug") or value.get("id") or value)
    return value if isinstance(value, str) else str(value)


def group_items(items: list[dict[str, Any]], field_name: str) -> dict[str, list[dict[str, Any]]]:
    """
    Bucket items by `field_name`.

    Scalar values give disjoint buckets. List values (tags, many-to-many
    relations) put the item into one bucket per element. Items with no value
    are left out.
    """
    groups: dict[str, list[dict[str, Any]]] = {}
    for item in items:
        value = item.get(field_name)
        if value is None:
            continue
        values = value if isinstance(value, (list, tuple)) else [value]
        seen: set[str] = set()
        for element in values:
            if element is None:
                continue
            key = _group_key(element)
            if key in seen:
                continue
            seen.add(key)
            groups.setdefault(key, []).append(item)
    return groups


def build_pagination(
    *,
    total: int,
    limit: int,
    offset: int,
    current_page: int | None = None,
    base_url: str | None = None,
) -> dict[str, Any]:
    page = current_page or (offset // limit) + 1
    total_pages = math.ceil(total / limit) if limit else 0
    pagination: dict[str, Any] = {
        "page": page,
        "page_size": limit,
        "total_items": total,
        "total_pages": total_pages,
        "has_next_page": page < total_pages,
        "has_previous_page": page > 1,
    }
    if base_url:
        pagination["base_url"] = base_url
    return pagination
