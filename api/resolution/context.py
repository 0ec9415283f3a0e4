"""
Request-scoped resolution state.

`ResolveContext` travels down every recursive call. It carries the injected
collaborators (table locator, schema registry) and the recursion guards: the
current relation depth and the `(kind, slug, id)` keys already expanded on
the current path.

`OwnerContext` describes the row currently being resolved: which content type
it belongs to, which table it came from, and whether it is a nested array row
(whose children point back with `parent_id` instead of `<kind>_id`).
"""

from __future__ import annotations

import os
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field, replace
from typing import Any

from content_types import service as content_types_service
from content_types.service import ContentTypeDefinition
from core.fanout import DEFAULT_LIMIT

from .tables import TableLocator, primary_table_name

TypeRegistry = Callable[[str, str], Awaitable[ContentTypeDefinition | None]]
ItemKey = tuple[str, str, str]

DEFAULT_MAX_DEPTH = 8


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def fanout_limit() -> int:
    return max(1, _env_int("CONTENT_FANOUT_LIMIT", DEFAULT_LIMIT))


def max_depth() -> int:
    return max(0, _env_int("CONTENT_MAX_DEPTH", DEFAULT_MAX_DEPTH))


def item_key(kind: str, slug: str, item_id: Any) -> ItemKey:
    return (kind, slug, str(item_id))


@dataclass(frozen=True)
class OwnerContext:
    kind: str
    slug: str
    table: str
    nested: bool = False

    @classmethod
    def root(cls, kind: str, slug: str, table: str | None = None) -> "OwnerContext":
        return cls(kind=kind, slug=slug, table=table or primary_table_name(kind, slug))

    @property
    def foreign_key(self) -> str:
        """
        Column in a child side table that points back at this row.
        """
        return "parent_id" if self.nested else f"{self.kind}_id"

    @property
    def junction_key(self) -> str:
        return f"{self.kind}_id"

    def child(self, table: str) -> "OwnerContext":
        return replace(self, table=table, nested=True)


@dataclass(frozen=True)
class ResolveContext:
    locator: TableLocator = field(default_factory=TableLocator)
    registry: TypeRegistry | None = None
    expand_files: bool = True
    fanout_limit: int = DEFAULT_LIMIT
    max_depth: int = DEFAULT_MAX_DEPTH
    depth: int = 0
    visited: frozenset[ItemKey] = frozenset()

    @classmethod
    def from_env(cls, **overrides: Any) -> "ResolveContext":
        values: dict[str, Any] = {"fanout_limit": fanout_limit(), "max_depth": max_depth()}
        values.update(overrides)
        return cls(**values)

    async def get_type(self, kind: str, slug: str) -> ContentTypeDefinition | None:
        registry = self.registry or content_types_service.get_type_definition
        return await registry(kind, slug)

    def seen(self, key: ItemKey) -> bool:
        return key in self.visited

    def with_visited(self, key: ItemKey) -> "ResolveContext":
        return replace(self, visited=self.visited | {key})

    def descend(self, key: ItemKey) -> "ResolveContext":
        return replace(self, depth=self.depth + 1, visited=self.visited | {key})

    @property
    def depth_exhausted(self) -> bool:
        return self.depth >= self.max_depth
