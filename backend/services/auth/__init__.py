"""Authentication domain services."""

from .authenticator import RequestAuthenticator, extract_bearer_token
from .cookies import (
    ACCESS_COOKIE,
    REFRESH_COOKIE,
    CookiePolicy,
    clear_token_cookies,
    cookie_policy,
    set_token_cookies,
)
from .identity_resolution import (
    find_login_user,
    find_user_by_id,
    find_user_by_username,
    normalize_identifier,
    registration_conflict_exists,
)
from .session_manager import LoginResult, SessionManager, TokenPair
from .token_store import (
    clear_refresh_token,
    hash_refresh_token,
    matches_stored_refresh_token,
    rotate_refresh_token,
    store_refresh_token,
)

__all__ = [
    "ACCESS_COOKIE",
    "REFRESH_COOKIE",
    "CookiePolicy",
    "clear_token_cookies",
    "cookie_policy",
    "set_token_cookies",
    "RequestAuthenticator",
    "extract_bearer_token",
    "find_login_user",
    "find_user_by_id",
    "find_user_by_username",
    "normalize_identifier",
    "registration_conflict_exists",
    "LoginResult",
    "SessionManager",
    "TokenPair",
    "clear_refresh_token",
    "hash_refresh_token",
    "matches_stored_refresh_token",
    "rotate_refresh_token",
    "store_refresh_token",
]
