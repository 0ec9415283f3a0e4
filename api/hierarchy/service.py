"""
Hierarchical URLs and breadcrumbs.

Items of one type can form a tree through `parent_id`. An item's URL is its
root ancestor's `basePath + slug` followed by `/<slug>` for every level
below. The walk keeps a visited set and a depth bound: a self-reference or a
cycle makes the item fall back to `basePath + slug` with no breadcrumbs.

`base_path` is prepended verbatim. Types without a configured `basePath`
get "/" from `ContentTypeDefinition.base_path`, so their URLs are
root-relative (`/slug`) rather than bare slugs.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any

from resolution import repository as resolution_repository
from resolution.tables import TableLocator

from . import repository

logger = logging.getLogger(__name__)

DEFAULT_MAX_HIERARCHY_DEPTH = 32


class HierarchyCycleError(RuntimeError):
    pass


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def max_hierarchy_depth() -> int:
    return max(1, _env_int("CONTENT_MAX_HIERARCHY_DEPTH", DEFAULT_MAX_HIERARCHY_DEPTH))


@dataclass(frozen=True)
class PathResult:
    url: str
    breadcrumbs: list[dict[str, Any]] | None = field(default=None)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"url": self.url}
        if self.breadcrumbs is not None:
            data["breadcrumbs"] = self.breadcrumbs
        return data


def _slug(row: dict[str, Any]) -> str:
    return str(row.get("slug") or row.get("id") or "")


async def _ancestors(table: str, item: dict[str, Any], *, max_depth: int) -> list[dict[str, Any]]:
    """
    Ancestors of `item`, nearest first. Stops quietly at a missing parent.
    """
    chain: list[dict[str, Any]] = []
    visited = {str(item.get("id"))}
    parent_id = item.get("parent_id")

    while parent_id:
        if str(parent_id) in visited:
            raise HierarchyCycleError(f"parent cycle at id={parent_id}")
        if len(chain) >= max_depth:
            raise HierarchyCycleError(f"hierarchy deeper than {max_depth}")

        parent = await resolution_repository.fetch_row_by_id(table, parent_id)
        if parent is None:
            logger.debug("hierarchy_parent_missing table=%s parent_id=%s", table, parent_id)
            break

        visited.add(str(parent_id))
        chain.append(parent)
        parent_id = parent.get("parent_id")
    return chain


async def resolve_path(
    kind: str,
    slug: str,
    item: dict[str, Any],
    *,
    with_breadcrumbs: bool = False,
    base_path: str = "/",
    locator: TableLocator | None = None,
    max_depth: int | None = None,
) -> PathResult:
    own_url = f"{base_path}{_slug(item)}"
    fallback = PathResult(url=own_url, breadcrumbs=[] if with_breadcrumbs else None)
    if not item.get("parent_id"):
        return fallback

    locator = locator or TableLocator()
    table = await locator.primary(kind, slug)
    if table is None:
        return fallback

    try:
        ancestors = await _ancestors(table.name, item, max_depth=max_depth or max_hierarchy_depth())
    except HierarchyCycleError as exc:
        logger.warning("hierarchy_cycle kind=%s slug=%s id=%s detail=%s", kind, slug, item.get("id"), exc)
        return fallback
    except Exception as exc:
        logger.warning("hierarchy_walk_failed kind=%s slug=%s id=%s error=%s", kind, slug, item.get("id"), exc)
        return fallback

    url = ""
    breadcrumbs: list[dict[str, Any]] = []
    for ancestor in reversed(ancestors):
        url = f"{url}/{_slug(ancestor)}" if url else f"{base_path}{_slug(ancestor)}"
        breadcrumbs.append(
            {
                "label": ancestor.get("title") or _slug(ancestor),
                "url": url,
                "is_active": False,
                "is_current": False,
            }
        )

    url = f"{url}/{_slug(item)}" if url else own_url
    return PathResult(url=url, breadcrumbs=breadcrumbs if with_breadcrumbs else None)


async def descendant_slugs(
    kind: str,
    slug: str,
    root_slugs: list[str],
    *,
    locator: TableLocator | None = None,
    max_depth: int | None = None,
) -> list[str]:
    """
    `root_slugs` plus the slugs of every item below them, walking `parent_id`
    in the child direction. Each id is visited once, so cycles terminate.
    """
    locator = locator or TableLocator()
    table = await locator.primary(kind, slug)
    if table is None or not table.has("parent_id"):
        return list(root_slugs)

    roots = await repository.fetch_by_slugs(table.name, list(root_slugs))
    slugs: list[str] = list(dict.fromkeys(root_slugs))
    visited: set[str] = {str(r["id"]) for r in roots}
    frontier = list(visited)
    depth = 0
    limit = max_depth or max_hierarchy_depth()

    while frontier and depth < limit:
        children = await repository.fetch_children(table.name, frontier)
        frontier = []
        for child in children:
            child_id = str(child["id"])
            if child_id in visited:
                continue
            visited.add(child_id)
            frontier.append(child_id)
            if child.get("slug"):
                slugs.append(str(child["slug"]))
        depth += 1

    if frontier:
        logger.warning("hierarchy_descendants_truncated kind=%s slug=%s depth=%s", kind, slug, depth)
    return list(dict.fromkeys(slugs))
