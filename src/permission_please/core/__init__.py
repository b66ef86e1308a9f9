"""
Core module - Configuration, database, Redis, email, scheduling, and rate limiting.
"""

from permission_please.core.config import get_settings, settings
from permission_please.core.database import Base, close_db, get_db, init_db
from permission_please.core.redis import close_redis, get_redis, init_redis

__all__ = [
    # Config
    "settings",
    "get_settings",
    # Database
    "Base",
    "get_db",
    "init_db",
    "close_db",
    # Redis
    "get_redis",
    "init_redis",
    "close_redis",
]
