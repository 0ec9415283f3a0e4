"""
Tag enrichment.

Tags are owned by a separate registry; content rows only reference them
through `taggables`. The entity type of a content item is `<kind>_<slug>`.
"""

from __future__ import annotations

import logging
from typing import Any

from content_types.fields import FieldMap, ScalarField

from . import repository

logger = logging.getLogger(__name__)


def entity_type(kind: str, slug: str) -> str:
    return f"{kind}_{slug}"


async def get_tags_for_entity(kind: str, slug: str, entity_id: Any) -> list[dict[str, Any]]:
    return await repository.fetch_tags_for_entity(entity_type(kind, slug), str(entity_id))


async def attach_tags(item: dict[str, Any], kind: str, slug: str, fields: FieldMap) -> dict[str, Any]:
    """
    Replace every `tags` field on `item` with the entity's tags.
    """
    tag_fields = [
        name for name, definition in fields.items() if isinstance(definition, ScalarField) and definition.type == "tags"
    ]
    if not tag_fields or item.get("id") is None:
        return item

    try:
        tags = await get_tags_for_entity(kind, slug, item["id"])
    except Exception as exc:
        logger.warning("tags_load_failed kind=%s slug=%s id=%s error=%s", kind, slug, item.get("id"), exc)
        return item

    for name in tag_fields:
        item[name] = list(tags)
    return item
