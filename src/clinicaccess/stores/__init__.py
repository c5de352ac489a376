"""Backend collaborators: abstract contracts plus in-memory and Redis implementations."""

from .interfaces import GrantStore, ProfileStore, RoleStore, SessionListener, SessionSource
from .memory import InMemoryGrantStore, InMemoryProfileStore, InMemoryRoleStore, InMemorySessionSource
from .redis_store import RedisGrantStore, RedisRoleStore, create_redis_stores

__all__ = [
    "GrantStore",
    "InMemoryGrantStore",
    "InMemoryProfileStore",
    "InMemoryRoleStore",
    "InMemorySessionSource",
    "ProfileStore",
    "RedisGrantStore",
    "RedisRoleStore",
    "RoleStore",
    "SessionListener",
    "SessionSource",
    "create_redis_stores",
]
