"""Tests for clinicaccess.stores.redis_store against a hash-only fake client."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from clinicaccess import (
    AccessConfig,
    ConfigurationError,
    GrantFetchError,
    GrantFlags,
    PermissionStoreAccessor,
    RoleRegistry,
    SlugCollisionError,
)
from clinicaccess.stores import RedisGrantStore, RedisRoleStore, create_redis_stores


class FakeRedis:
    """The subset of redis.asyncio.Redis hash commands the stores use."""

    def __init__(self) -> None:
        self.hashes: dict[str, dict[str, str]] = {}
        self.closed = False

    async def hgetall(self, key: str) -> dict[str, str]:
        return dict(self.hashes.get(key, {}))

    async def hset(self, key: str, field: str, value: str) -> int:
        bucket = self.hashes.setdefault(key, {})
        created = field not in bucket
        bucket[field] = value
        return int(created)

    async def hsetnx(self, key: str, field: str, value: str) -> bool:
        bucket = self.hashes.setdefault(key, {})
        if field in bucket:
            return False
        bucket[field] = value
        return True

    async def hkeys(self, key: str) -> list[str]:
        return list(self.hashes.get(key, {}))

    async def hdel(self, key: str, *fields: str) -> int:
        bucket = self.hashes.get(key, {})
        return sum(1 for f in fields if bucket.pop(f, None) is not None)

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def client() -> FakeRedis:
    return FakeRedis()


class TestRedisGrantStore:
    @pytest.mark.asyncio
    async def test_upsert_layout(self, client: FakeRedis) -> None:
        store = RedisGrantStore(client, prefix="test")

        await store.upsert("clinic-a", "assistant", "patients", GrantFlags(can_view=True))

        raw = client.hashes["test:grants:clinic-a"]["assistant:patients"]
        assert json.loads(raw) == {"can_view": True, "can_create": False, "can_edit": False, "can_delete": False}

    @pytest.mark.asyncio
    async def test_upsert_replaces_single_field(self, client: FakeRedis) -> None:
        store = RedisGrantStore(client)

        await store.upsert("clinic-a", "assistant", "patients", GrantFlags(can_view=True))
        await store.upsert("clinic-a", "assistant", "patients", GrantFlags(can_edit=True))

        grants = await store.select("clinic-a")
        assert len(grants) == 1
        assert grants[0].can_edit and not grants[0].can_view

    @pytest.mark.asyncio
    async def test_select_is_tenant_scoped(self, client: FakeRedis) -> None:
        store = RedisGrantStore(client)
        await store.upsert("clinic-a", "doctor", "documents", GrantFlags.all_granted())
        await store.upsert("clinic-b", "doctor", "patients", GrantFlags(can_view=True))

        grants = await store.select("clinic-a")

        assert [(g.tenant_id, g.role, g.module) for g in grants] == [("clinic-a", "doctor", "documents")]
        assert grants[0].flags == GrantFlags.all_granted()

    @pytest.mark.asyncio
    async def test_select_skips_malformed_fields(self, client: FakeRedis) -> None:
        client.hashes["clinicaccess:grants:clinic-a"] = {"garbage": "{}", "doctor:logs": '{"can_view": true}'}

        grants = await RedisGrantStore(client).select("clinic-a")

        assert [(g.role, g.module, g.can_view) for g in grants] == [("doctor", "logs", True)]

    @pytest.mark.asyncio
    async def test_role_with_colon(self, client: FakeRedis) -> None:
        """The module is the part after the last colon."""
        store = RedisGrantStore(client)
        await store.upsert("clinic-a", "night:shift", "patients", GrantFlags(can_view=True))
        grants = await store.select("clinic-a")
        assert (grants[0].role, grants[0].module) == ("night:shift", "patients")

    @pytest.mark.asyncio
    async def test_delete_for_role(self, client: FakeRedis) -> None:
        store = RedisGrantStore(client)
        await store.upsert("clinic-a", "enfermeiro", "patients", GrantFlags(can_view=True))
        await store.upsert("clinic-a", "enfermeiro", "documents", GrantFlags(can_view=True))
        await store.upsert("clinic-a", "doctor", "patients", GrantFlags(can_view=True))

        assert await store.delete_for_role("clinic-a", "enfermeiro") == 2
        assert await store.delete_for_role("clinic-a", "enfermeiro") == 0
        assert [g.role for g in await store.select("clinic-a")] == ["doctor"]

    @pytest.mark.asyncio
    async def test_connection_error_surfaces_as_fetch_error(self) -> None:
        client = MagicMock()
        client.hgetall = AsyncMock(side_effect=ConnectionError("Connection refused"))
        accessor = PermissionStoreAccessor(RedisGrantStore(client))

        with pytest.raises(GrantFetchError):
            await accessor.get_grants("clinic-a")

    @pytest.mark.asyncio
    async def test_aclose(self, client: FakeRedis) -> None:
        await RedisGrantStore(client).aclose()
        assert client.closed


class TestRedisRoleStore:
    @pytest.mark.asyncio
    async def test_insert_and_select(self, client: FakeRedis) -> None:
        store = RedisRoleStore(client)
        await store.insert("clinic-a", "Recepção", "recepcao")
        await store.insert("clinic-a", "Enfermeiro", "enfermeiro", "Nursing staff")

        roles = await store.select("clinic-a")

        assert [r.slug for r in roles] == ["enfermeiro", "recepcao"]
        assert roles[0].description == "Nursing staff"
        assert roles[0].tenant_id == "clinic-a"

    @pytest.mark.asyncio
    async def test_insert_collision(self, client: FakeRedis) -> None:
        store = RedisRoleStore(client)
        await store.insert("clinic-a", "Enfermeiro", "enfermeiro")

        with pytest.raises(SlugCollisionError):
            await store.insert("clinic-a", "enfermeiro", "enfermeiro")

        assert json.loads(client.hashes["clinicaccess:roles:clinic-a"]["enfermeiro"])["name"] == "Enfermeiro"

    @pytest.mark.asyncio
    async def test_delete(self, client: FakeRedis) -> None:
        store = RedisRoleStore(client)
        await store.insert("clinic-a", "Enfermeiro", "enfermeiro")
        assert await store.delete("clinic-a", "enfermeiro") is True
        assert await store.delete("clinic-a", "enfermeiro") is False

    @pytest.mark.asyncio
    async def test_registry_over_redis(self, client: FakeRedis) -> None:
        grants = RedisGrantStore(client)
        registry = RoleRegistry(RedisRoleStore(client), PermissionStoreAccessor(grants))

        await registry.create_role("clinic-a", "Enfermeiro")
        with pytest.raises(SlugCollisionError):
            await registry.create_role("clinic-a", "ENFERMEIRO")


class TestFactories:
    def test_requires_redis_url(self) -> None:
        with pytest.raises(ConfigurationError):
            create_redis_stores(AccessConfig())
        with pytest.raises(ConfigurationError):
            RedisGrantStore.from_config(AccessConfig())

    def test_shared_client(self) -> None:
        config = AccessConfig(redis_url="redis://localhost:6379/1", redis_prefix="clinic-test")
        with patch("clinicaccess.stores.redis_store.aioredis.from_url") as from_url:
            grants, roles = create_redis_stores(config)

        from_url.assert_called_once_with("redis://localhost:6379/1", decode_responses=True)
        assert grants._redis is roles._redis
        assert grants._prefix == roles._prefix == "clinic-test"
