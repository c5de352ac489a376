"""Redis-backed grant and role stores.

Layout (``prefix`` defaults to ``clinicaccess``)::

    {prefix}:grants:{tenant_id}   HASH  field "{role}:{module}" → JSON flags
    {prefix}:roles:{tenant_id}    HASH  field "{slug}"          → JSON role

One hash per tenant keeps every query tenant-scoped. A single ``HSET`` of a
field is the composite-key upsert, so readers observe either the whole old
row or the whole new row. Role creation uses ``HSETNX`` so a slug collision
is detected by Redis itself instead of a read-then-write race.

All sessions of a tenant share the same hashes; other sessions see a grant
change on their next refresh.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import redis.asyncio as aioredis

from ..config import AccessConfig
from ..exceptions import ConfigurationError, SlugCollisionError
from ..permissions.models import GrantFlags, PermissionGrant, RoleDefinition
from .interfaces import GrantStore, RoleStore

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "clinicaccess"


def _grants_key(prefix: str, tenant_id: str) -> str:
    return f"{prefix}:grants:{tenant_id}"


def _roles_key(prefix: str, tenant_id: str) -> str:
    return f"{prefix}:roles:{tenant_id}"


def _grant_field(role: str, module: str) -> str:
    return f"{role}:{module}"


def _client_from_config(config: AccessConfig) -> Any:
    if not config.redis_url:
        raise ConfigurationError("REDIS_URL not set, cannot create Redis store")
    return aioredis.from_url(config.redis_url, decode_responses=True)


class RedisGrantStore(GrantStore):
    """Grant rows stored as one Redis hash per tenant."""

    def __init__(self, client: Any, *, prefix: str = DEFAULT_PREFIX) -> None:
        self._redis = client
        self._prefix = prefix

    @classmethod
    def from_config(cls, config: AccessConfig) -> RedisGrantStore:
        return cls(_client_from_config(config), prefix=config.redis_prefix)

    async def select(self, tenant_id: str) -> list[PermissionGrant]:
        raw: dict[str, str] = await self._redis.hgetall(_grants_key(self._prefix, tenant_id))
        grants: list[PermissionGrant] = []
        for field, value in (raw or {}).items():
            role, sep, module = field.rpartition(":")
            if not sep:
                logger.warning("Skipping malformed grant field %r for tenant '%s'", field, tenant_id)
                continue
            grants.append(PermissionGrant(tenant_id=tenant_id, role=role, module=module, **json.loads(value)))
        return grants

    async def upsert(self, tenant_id: str, role: str, module: str, flags: GrantFlags) -> PermissionGrant:
        await self._redis.hset(
            _grants_key(self._prefix, tenant_id),
            _grant_field(role, module),
            json.dumps(flags.model_dump()),
        )
        return PermissionGrant(tenant_id=tenant_id, role=role, module=module, **flags.model_dump())

    async def delete_for_role(self, tenant_id: str, role: str) -> int:
        key = _grants_key(self._prefix, tenant_id)
        fields = [f for f in await self._redis.hkeys(key) if f.rpartition(":")[0] == role]
        if not fields:
            return 0
        return int(await self._redis.hdel(key, *fields))

    async def aclose(self) -> None:
        await self._redis.aclose()


class RedisRoleStore(RoleStore):
    """Custom roles stored as one Redis hash per tenant, keyed by slug."""

    def __init__(self, client: Any, *, prefix: str = DEFAULT_PREFIX) -> None:
        self._redis = client
        self._prefix = prefix

    @classmethod
    def from_config(cls, config: AccessConfig) -> RedisRoleStore:
        return cls(_client_from_config(config), prefix=config.redis_prefix)

    async def select(self, tenant_id: str) -> list[RoleDefinition]:
        raw: dict[str, str] = await self._redis.hgetall(_roles_key(self._prefix, tenant_id))
        roles = [RoleDefinition(**json.loads(value)) for value in (raw or {}).values()]
        return sorted(roles, key=lambda r: r.name)

    async def insert(self, tenant_id: str, name: str, slug: str, description: str = "") -> RoleDefinition:
        role = RoleDefinition(tenant_id=tenant_id, name=name, slug=slug, description=description)
        created = await self._redis.hsetnx(_roles_key(self._prefix, tenant_id), slug, role.model_dump_json())
        if not created:
            raise SlugCollisionError(
                f"Role slug '{slug}' already exists in tenant '{tenant_id}'",
                tenant_id=tenant_id,
                slug=slug,
            )
        return role

    async def delete(self, tenant_id: str, slug: str) -> bool:
        removed = await self._redis.hdel(_roles_key(self._prefix, tenant_id), slug)
        return bool(removed)

    async def aclose(self) -> None:
        await self._redis.aclose()


def create_redis_stores(config: AccessConfig) -> tuple[RedisGrantStore, RedisRoleStore]:
    """Build grant and role stores sharing one Redis connection pool.

    Raises:
        ConfigurationError: If ``config.redis_url`` is not set.
    """
    client = _client_from_config(config)
    return (
        RedisGrantStore(client, prefix=config.redis_prefix),
        RedisRoleStore(client, prefix=config.redis_prefix),
    )


__all__ = [
    "DEFAULT_PREFIX",
    "RedisGrantStore",
    "RedisRoleStore",
    "create_redis_stores",
]
