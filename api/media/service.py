"""
File reference lookup.

A file reference is `{id, url, mime_type, size, name, alt, title}`.
"""

from __future__ import annotations

from typing import Any

from . import repository

FILE_REF_KEYS = ("id", "url", "mime_type", "size", "name", "alt", "title")


def to_file_ref(row: dict[str, Any]) -> dict[str, Any]:
    return {key: row.get(key) for key in FILE_REF_KEYS}


async def get_files(file_ids: list[str]) -> dict[str, dict[str, Any]]:
    """
    Return {file_id: file_ref} for the ids that exist. Duplicates are fetched once.
    """
    unique_ids = list(dict.fromkeys(str(i) for i in file_ids if i))
    rows = await repository.fetch_files(unique_ids)
    return {str(row["id"]): to_file_ref(row) for row in rows}


async def get_file(file_id: str) -> dict[str, Any] | None:
    found = await get_files([file_id])
    return found.get(str(file_id))
