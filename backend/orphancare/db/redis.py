"""Redis client for bearer session lookup"""
import redis
import logging
import secrets
from typing import Optional
from orphancare.core.config import settings

logger = logging.getLogger(__name__)

# Lazy initialization - no connection at import time
_client = None


def get_redis_client():
    """Get or create Redis client (lazy initialization)

    This prevents connection attempts during import, allowing mocks to be applied first.
    """
    global _client
    if _client is None:
        _client = redis.from_url(settings.REDIS_URL, decode_responses=True)
    return _client


# Session TTL (30 days)
SESSION_TTL = 30 * 24 * 60 * 60


def set_session(token: str, user_id: int) -> None:
    """Store bearer token -> user id mapping"""
    key = f"session:{token}"
    get_redis_client().setex(key, SESSION_TTL, user_id)


def get_session(token: str) -> Optional[int]:
    """Resolve a bearer token to a user id"""
    key = f"session:{token}"
    user_id = get_redis_client().get(key)
    return int(user_id) if user_id else None


def delete_session(token: str) -> None:
    """Revoke a bearer token"""
    key = f"session:{token}"
    get_redis_client().delete(key)


def issue_session(user_id: int) -> str:
    """Create a new bearer token for a user and return it"""
    token = secrets.token_urlsafe(32)
    set_session(token, user_id)
    return token
