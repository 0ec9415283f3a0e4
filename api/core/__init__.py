"""
Shared, cross-cutting code for the content API.

`core/` holds small building blocks that every feature uses (DB wiring,
identifier quoting, bounded fan-out). Keep feature-specific SQL and resolution
logic in the corresponding feature package (e.g. `resolution/`).
"""
