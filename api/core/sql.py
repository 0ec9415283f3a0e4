"""
SQL identifier helpers.

Content tables are discovered by naming convention at call time, so table and
column names have to be spliced into SQL text. Every identifier goes through
`quote_ident`, which only accepts plain snake-ish names. Values are always
passed as $n parameters.
"""

from __future__ import annotations

import re

# Postgres truncates identifiers at 63 bytes.
_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]{0,62}$")
_CAMEL_BOUNDARY_RE = re.compile(r"([A-Z])")


class UnsafeIdentifierError(ValueError):
    pass


def is_safe_identifier(name: str) -> bool:
    return bool(_IDENTIFIER_RE.match(name or ""))


def quote_ident(name: str) -> str:
    """
    Return `name` double-quoted for use as a table/column identifier.
    """
    if not is_safe_identifier(name):
        raise UnsafeIdentifierError(f"Refusing unsafe SQL identifier: {name!r}")
    return f'"{name}"'


def to_snake_case(name: str) -> str:
    """
    `backgroundImage` -> `background_image`. Already snake_case names pass through.
    """
    return _CAMEL_BOUNDARY_RE.sub(r"_\1", name or "").lower().lstrip("_")
