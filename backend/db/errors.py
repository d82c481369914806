"""Database error helpers."""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

UNIQUE_VIOLATION_SQLSTATE = "23505"
_UNIQUE_MESSAGES = ("duplicate key", "unique constraint")


def is_unique_violation(error: IntegrityError) -> bool:
    """Return True when the IntegrityError comes from a unique index (Postgres or SQLite)."""
    original = getattr(error, "orig", None)
    sqlstate = getattr(original, "sqlstate", None) or getattr(original, "pgcode", None)
    if sqlstate == UNIQUE_VIOLATION_SQLSTATE:
        return True
    message = str(original or error).lower()
    return any(marker in message for marker in _UNIQUE_MESSAGES)


__all__ = ["UNIQUE_VIOLATION_SQLSTATE", "is_unique_violation"]
