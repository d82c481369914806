"""Version 1 API routers."""

from fastapi import APIRouter

from . import channels, users

api_router = APIRouter()
# Channel routes first so "/users/channel/{username}" is never shadowed.
api_router.include_router(channels.router)
api_router.include_router(users.router)

__all__ = ["api_router"]
