"""SQLModel models package."""

from .subscription import Subscription
from .user import User

__all__ = [
    "User",
    "Subscription",
]
