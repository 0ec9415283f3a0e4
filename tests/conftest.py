from __future__ import annotations

import json
from typing import Any

import pytest

from content_types import repository as content_types_repository
from hierarchy import repository as hierarchy_repository
from listing import repository as listing_repository
from listing.repository import ItemFilter
from media import repository as media_repository
from resolution import repository as resolution_repository
from tagging import repository as tagging_repository
from users import repository as users_repository


def _sort_value(value: Any) -> tuple[bool, Any]:
    # NULLs sort last, like Postgres ASC.
    return (value is None, value if value is not None else 0)


class FakeDatabase:
    """
    In-memory stand-in for the repository layer.

    Tables are lists of dict rows. Every repository function the services call
    is replaced by a method here that applies the same filter semantics in
    Python.
    """

    def __init__(self) -> None:
        self.tables: dict[str, list[dict[str, Any]]] = {}
        self.columns: dict[str, set[str]] = {}
        self.types: dict[tuple[str, str], dict[str, Any]] = {}
        self.files: dict[str, dict[str, Any]] = {}
        self.tags: dict[tuple[str, str], list[dict[str, Any]]] = {}
        self.users: dict[str, dict[str, Any]] = {}
        self.failing_tables: set[str] = set()
        self.probes: list[str] = []

    # -- setup helpers -----------------------------------------------------

    def add_table(self, name: str, rows: list[dict[str, Any]] = (), columns: tuple[str, ...] = ()) -> None:
        self.tables[name] = [dict(r) for r in rows]
        cols = {"id", *columns}
        for row in rows:
            cols.update(row)
        self.columns[name] = cols

    def add_type(
        self,
        kind: str,
        slug: str,
        schema: dict[str, Any],
        *,
        options: dict[str, Any] | None = None,
        data_type: str | None = None,
    ) -> None:
        self.types[(kind, slug)] = {
            "slug": slug,
            "schema": json.dumps(schema),
            "options": json.dumps(options) if options is not None else None,
            "data_type": data_type,
        }

    def add_file(self, file_id: str, **attrs: Any) -> None:
        row = {
            "id": file_id,
            "name": f"{file_id}.png",
            "mime_type": "image/png",
            "size": 100,
            "url": f"/uploads/{file_id}.png",
            "alt": None,
            "title": None,
        }
        row.update(attrs)
        self.files[file_id] = row

    def _rows(self, table: str) -> list[dict[str, Any]]:
        if table in self.failing_tables:
            raise RuntimeError(f"query failed on {table}")
        return self.tables.get(table, [])

    # -- resolution.repository ---------------------------------------------

    async def table_columns(self, table: str) -> set[str]:
        self.probes.append(table)
        return set(self.columns.get(table, set()))

    async def fetch_row_by_id(self, table: str, row_id: Any) -> dict[str, Any] | None:
        for row in self._rows(table):
            if str(row.get("id")) == str(row_id):
                return dict(row)
        return None

    async def fetch_rows_by_owner(
        self,
        table: str,
        owner_column: str,
        owner_id: Any,
        *,
        order_column: str | None = None,
    ) -> list[dict[str, Any]]:
        rows = [dict(r) for r in self._rows(table) if str(r.get(owner_column)) == str(owner_id)]
        if order_column:
            rows.sort(key=lambda r: (_sort_value(r.get(order_column)), str(r.get("id"))))
        return rows

    async def fetch_file_links(
        self,
        table: str,
        owner_column: str,
        owner_id: Any,
        *,
        owner_kind: str | None = None,
        order_column: str | None = None,
    ) -> list[dict[str, Any]]:
        rows = [dict(r) for r in self._rows(table) if str(r.get(owner_column)) == str(owner_id)]
        if owner_kind is not None:
            rows = [r for r in rows if r.get("parent_type") in (owner_kind, None, "")]
        if order_column:
            rows.sort(key=lambda r: _sort_value(r.get(order_column)))
        return rows

    async def fetch_junction_targets(
        self,
        junction: str,
        target_table: str,
        owner_column: str,
        owner_id: Any,
        *,
        order_column: str | None = None,
    ) -> list[dict[str, Any]]:
        links = [r for r in self._rows(junction) if str(r.get(owner_column)) == str(owner_id)]
        if order_column:
            links.sort(key=lambda r: _sort_value(r.get(order_column)))
        targets = {str(r["id"]): r for r in self._rows(target_table)}
        return [dict(targets[str(link["target_id"])]) for link in links if str(link["target_id"]) in targets]

    # -- media.repository --------------------------------------------------

    async def fetch_files(self, file_ids: list[str]) -> list[dict[str, Any]]:
        return [dict(self.files[i]) for i in file_ids if i in self.files]

    # -- content_types.repository ------------------------------------------

    async def fetch_type_row(self, kind: str, slug: str) -> dict[str, Any] | None:
        row = self.types.get((kind, slug))
        return dict(row) if row is not None else None

    async def list_type_slugs(self, kind: str) -> list[str]:
        return sorted(slug for (k, slug) in self.types if k == kind)

    # -- listing.repository ------------------------------------------------

    @staticmethod
    def _matches(row: dict[str, Any], flt: ItemFilter) -> bool:
        if flt.match_none:
            return False
        if flt.item_id is not None and str(row.get("id")) != str(flt.item_id):
            return False
        if flt.slug is not None and row.get("slug") != flt.slug:
            return False
        if flt.status is not None and row.get("status") != flt.status:
            return False
        if flt.parent_id is not None and str(row.get("parent_id")) != str(flt.parent_id):
            return False
        if flt.exclude_id is not None and str(row.get("id")) == str(flt.exclude_id):
            return False
        if flt.id_in is not None and str(row.get("id")) not in {str(i) for i in flt.id_in}:
            return False
        return True

    async def select_items(
        self,
        table: str,
        flt: ItemFilter,
        *,
        order_by: str | None = None,
        order: str = "asc",
        limit: int | None = None,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        rows = [dict(r) for r in self._rows(table) if self._matches(r, flt)]
        if order_by:
            rows.sort(key=lambda r: (_sort_value(r.get(order_by)), str(r.get("id"))), reverse=order == "desc")
        if limit is not None:
            rows = rows[offset : offset + limit]
        return rows

    async def count_items(self, table: str, flt: ItemFilter) -> int:
        return sum(1 for r in self._rows(table) if self._matches(r, flt))

    async def fetch_owner_ids_by_target_slugs(
        self,
        junction: str,
        owner_column: str,
        target_table: str,
        slugs: list[str],
    ) -> list[str]:
        target_ids = {str(r["id"]) for r in self._rows(target_table) if r.get("slug") in slugs}
        owner_ids = [str(r[owner_column]) for r in self._rows(junction) if str(r["target_id"]) in target_ids]
        return list(dict.fromkeys(owner_ids))

    # -- hierarchy.repository ----------------------------------------------

    async def fetch_children(self, table: str, parent_ids: list[str]) -> list[dict[str, Any]]:
        wanted = {str(p) for p in parent_ids}
        return [dict(r) for r in self._rows(table) if r.get("parent_id") is not None and str(r["parent_id"]) in wanted]

    async def fetch_by_slugs(self, table: str, slugs: list[str]) -> list[dict[str, Any]]:
        return [dict(r) for r in self._rows(table) if r.get("slug") in slugs]

    # -- tagging / users ---------------------------------------------------

    async def fetch_tags_for_entity(self, entity_type: str, entity_id: str) -> list[dict[str, Any]]:
        return [dict(t) for t in self.tags.get((entity_type, str(entity_id)), [])]

    async def fetch_user(self, user_id: str) -> dict[str, Any] | None:
        row = self.users.get(str(user_id))
        return dict(row) if row is not None else None


@pytest.fixture()
def fake_db(monkeypatch) -> FakeDatabase:
    db = FakeDatabase()
    patches = {
        resolution_repository: (
            "table_columns",
            "fetch_row_by_id",
            "fetch_rows_by_owner",
            "fetch_file_links",
            "fetch_junction_targets",
        ),
        media_repository: ("fetch_files",),
        content_types_repository: ("fetch_type_row", "list_type_slugs"),
        listing_repository: ("select_items", "count_items", "fetch_owner_ids_by_target_slugs"),
        hierarchy_repository: ("fetch_children", "fetch_by_slugs"),
        tagging_repository: ("fetch_tags_for_entity",),
        users_repository: ("fetch_user",),
    }
    for module, names in patches.items():
        for name in names:
            monkeypatch.setattr(module, name, getattr(db, name))
    return db
