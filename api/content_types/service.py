"""
Schema registry.

Turns registry rows into `ContentTypeDefinition`s. Definitions are fetched
fresh on every call; any caching belongs to the caller and must be dropped
whenever a schema changes.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any

from . import repository
from .fields import CONTENT_KINDS, FieldMap, parse_field_map

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContentTypeDefinition:
    slug: str
    kind: str
    cardinality: str
    fields: FieldMap
    options: dict[str, Any] = field(default_factory=dict)

    @property
    def is_flat(self) -> bool:
        return self.cardinality == "flat"

    @property
    def base_path(self) -> str:
        # URLs are root-relative, so a type without `basePath` gets "/".
        return str(self.options.get("basePath") or "/")


def _parse_options(raw: Any, *, kind: str, slug: str) -> dict[str, Any]:
    if raw is None or raw == "":
        return {}
    if isinstance(raw, dict):
        return raw
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning("type_options_invalid kind=%s slug=%s", kind, slug)
        return {}
    return parsed if isinstance(parsed, dict) else {}


async def get_type_definition(kind: str, slug: str) -> ContentTypeDefinition | None:
    """
    Look up a content type. Missing or unreadable definitions return None.
    """
    if kind not in CONTENT_KINDS:
        logger.warning("type_kind_unknown kind=%s slug=%s", kind, slug)
        return None

    row = await repository.fetch_type_row(kind, slug)
    if row is None:
        logger.warning("type_missing kind=%s slug=%s", kind, slug)
        return None

    try:
        fields = parse_field_map(row.get("schema"))
    except ValueError:
        logger.warning("type_schema_invalid kind=%s slug=%s", kind, slug)
        return None

    cardinality = "repeatable"
    if kind == "global" and str(row.get("data_type") or "").strip().lower() == "flat":
        cardinality = "flat"

    return ContentTypeDefinition(
        slug=slug,
        kind=kind,
        cardinality=cardinality,
        fields=fields,
        options=_parse_options(row.get("options"), kind=kind, slug=slug),
    )


async def list_types(kind: str) -> list[str]:
    return await repository.list_type_slugs(kind)
