"""Database helpers."""

from .errors import is_unique_violation
from .session import create_engine, create_session_maker, get_session

__all__ = ["create_engine", "create_session_maker", "get_session", "is_unique_violation"]
