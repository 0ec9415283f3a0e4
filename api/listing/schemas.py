"""
Pydantic schemas for listing queries.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator


class WhereRelated(BaseModel):
    field: str = Field(..., min_length=1, max_length=200)
    value: list[str] = Field(default_factory=list)
    recursive: bool = False

    @field_validator("value", mode="before")
    @classmethod
    def _coerce_value(cls, value: Any) -> Any:
        # Accept a single slug as well as a list of slugs.
        if isinstance(value, str):
            return [value]
        return value


class ListingOptions(BaseModel):
    # Single-item mode
    item_slug: str | None = None
    item_id: str | None = None

    # Multi-item filters
    parent_id: str | None = None
    sibling_of: str | None = None
    exclude_current: bool = True
    status: Literal["published", "draft", "all"] = "published"
    where_related: WhereRelated | None = None

    # Enrichment
    include_arrays_and_relations: bool = True
    include_breadcrumbs: bool = False
    include_authors: bool = False
    include_tags: bool = False
    include_blocks: bool = False
    expand_files: bool = True

    # Ordering, paging, grouping
    order_by: str | None = None
    order: Literal["asc", "desc"] | None = None
    group_by: str | None = None
    limit: int | None = Field(default=None, ge=1)
    offset: int = Field(default=0, ge=0)
    current_page: int | None = Field(default=None, ge=1)
    base_url: str | None = None

    # Caller-side access hint. Access checks happen outside this layer.
    user: dict[str, Any] | None = None

    @property
    def single(self) -> bool:
        return bool(self.item_slug or self.item_id)
