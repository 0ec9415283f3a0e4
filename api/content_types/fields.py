"""
Field definitions for runtime-defined content types.

A content type's `schema` column stores a JSON field map. This module parses
it into a closed set of field kinds so the resolvers can dispatch on type
instead of poking at raw dicts:

- ScalarField   stored inline on the row (string, number, select, tags, ...)
- FileField     file references in a side table (or inline ids)
- ArrayField    repeatable rows in a side table, with their own field map
- RelationField one-to-one / one-to-many (id column) or many-to-many (junction)
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Literal, Union

logger = logging.getLogger(__name__)

ContentKind = Literal["collection", "global", "block"]
RelationCardinality = Literal["one-to-one", "one-to-many", "many-to-many"]

CONTENT_KINDS: tuple[str, ...] = ("collection", "global", "block")
RELATION_CARDINALITIES: tuple[str, ...] = ("one-to-one", "one-to-many", "many-to-many")


@dataclass(frozen=True)
class ScalarField:
    type: str = "string"


@dataclass(frozen=True)
class FileField:
    multiple: bool = False


@dataclass(frozen=True)
class ArrayField:
    item_fields: dict[str, "FieldDefinition"] = field(default_factory=dict)


@dataclass(frozen=True)
class RelationField:
    cardinality: RelationCardinality
    target_kind: ContentKind
    target_slug: str

    @property
    def many(self) -> bool:
        return self.cardinality == "many-to-many"


FieldDefinition = Union[ScalarField, FileField, ArrayField, RelationField]
FieldMap = dict[str, FieldDefinition]


def empty_value(definition: FieldDefinition) -> Any:
    """
    The value a field degrades to when its storage is missing or fails.

    Scalars have no resolved shape, so they report None and callers leave the
    raw value alone.
    """
    if isinstance(definition, FileField):
        return [] if definition.multiple else None
    if isinstance(definition, ArrayField):
        return []
    if isinstance(definition, RelationField):
        return [] if definition.many else None
    return None


def _parse_file(raw: dict[str, Any]) -> FileField:
    # `items` is the current config key, `file` the older one.
    nested: dict[str, Any] = {}
    for key in ("items", "file"):
        if isinstance(raw.get(key), dict) and raw[key]:
            nested = raw[key]
            break
    return FileField(multiple=bool(raw.get("multiple") or nested.get("multiple")))


def _parse_array(raw: dict[str, Any]) -> FieldDefinition:
    items = raw.get("items") if isinstance(raw.get("items"), dict) else {}
    properties = items.get("properties")
    if items.get("type", "object") != "object" or not isinstance(properties, dict):
        # Arrays of primitives live inline on the row.
        return ScalarField(type="array")
    return ArrayField(item_fields=parse_field_map(properties))


def _parse_relation(name: str, raw: dict[str, Any]) -> FieldDefinition:
    relation = raw.get("relation") if isinstance(raw.get("relation"), dict) else {}
    cardinality = str(relation.get("type") or "one-to-one").strip().lower()
    if cardinality not in RELATION_CARDINALITIES:
        logger.warning("unknown_relation_type field=%s type=%s", name, cardinality)
        return ScalarField(type="relation")

    if relation.get("targetGlobal"):
        return RelationField(cardinality, "global", str(relation["targetGlobal"]))  # type: ignore[arg-type]
    if relation.get("targetCollection"):
        return RelationField(cardinality, "collection", str(relation["targetCollection"]))  # type: ignore[arg-type]

    logger.warning("relation_without_target field=%s", name)
    return ScalarField(type="relation")


def parse_field(name: str, raw: Any) -> FieldDefinition:
    if not isinstance(raw, dict):
        return ScalarField()

    field_type = str(raw.get("type") or "string").strip()
    if field_type == "file":
        return _parse_file(raw)
    if field_type == "array":
        return _parse_array(raw)
    if field_type == "relation":
        return _parse_relation(name, raw)
    return ScalarField(type=field_type)


def parse_field_map(raw: Any) -> FieldMap:
    """
    Parse a field map from its stored form (JSON text or an already-decoded dict).
    """
    if raw is None or raw == "":
        return {}
    if isinstance(raw, (str, bytes)):
        raw = json.loads(raw)
    if not isinstance(raw, dict):
        raise ValueError("Field map must be a JSON object.")
    return {str(name): parse_field(str(name), value) for name, value in raw.items()}


def fields_of(fields: FieldMap, kind: type) -> list[tuple[str, Any]]:
    return [(name, definition) for name, definition in fields.items() if isinstance(definition, kind)]
