"""
Table locator.

Maps `(kind, slug, field path)` to a physical table using the naming
convention the schema generator writes:

- primary table          <kind>_<slug>
- array / file side table <owner table>_<field>       (field in snake_case)
- junction table          junction_<slug>_<field>     (+ fallbacks)

Absence is a normal outcome: lookups return None and callers treat the field
as empty. Existence probes are memoized per locator, and a locator lives for
one request.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from core.sql import is_safe_identifier, to_snake_case

from . import repository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TableHandle:
    name: str
    columns: frozenset[str]

    def has(self, column: str) -> bool:
        return column in self.columns


def primary_table_name(kind: str, slug: str) -> str:
    return f"{kind}_{to_snake_case(slug)}"


def side_table_name(owner_table: str, field_name: str) -> str:
    return f"{owner_table}_{to_snake_case(field_name)}"


def junction_table_names(slug: str, field_name: str) -> list[str]:
    """
    Candidate junction names, canonical first.
    """
    slug = to_snake_case(slug)
    candidates = [
        f"junction_{slug}_{to_snake_case(field_name)}",
        f"junction_{slug}_{field_name}",
    ]
    if field_name.endswith("s") and len(field_name) > 1:
        candidates.append(f"junction_{slug}_{to_snake_case(field_name[:-1])}")
    return list(dict.fromkeys(candidates))


class TableLocator:
    def __init__(self) -> None:
        self._probes: dict[str, TableHandle | None] = {}

    async def probe(self, name: str) -> TableHandle | None:
        if name in self._probes:
            return self._probes[name]

        handle: TableHandle | None = None
        if is_safe_identifier(name):
            columns = await repository.table_columns(name)
            if columns:
                handle = TableHandle(name=name, columns=frozenset(columns))
        else:
            logger.warning("table_name_rejected table=%s", name)

        if handle is None:
            logger.debug("table_missing table=%s", name)
        self._probes[name] = handle
        return handle

    async def first_existing(self, names: Sequence[str]) -> TableHandle | None:
        for name in names:
            handle = await self.probe(name)
            if handle is not None:
                return handle
        return None

    async def primary(self, kind: str, slug: str) -> TableHandle | None:
        return await self.probe(primary_table_name(kind, slug))

    async def side(self, owner_table: str, field_name: str) -> TableHandle | None:
        return await self.probe(side_table_name(owner_table, field_name))

    async def junction(self, slug: str, field_name: str) -> TableHandle | None:
        return await self.first_existing(junction_table_names(slug, field_name))

    async def locate(self, kind: str, slug: str, field_path: Sequence[str] = ()) -> TableHandle | None:
        """
        Primary table for an empty path, else the side table at the end of the path.
        """
        table = primary_table_name(kind, slug)
        for field_name in field_path:
            table = side_table_name(table, field_name)
        return await self.probe(table)
