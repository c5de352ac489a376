"""Shared fixtures: seeded in-memory stores and a grant store whose reads can be held open."""

from __future__ import annotations

import asyncio

import pytest

from clinicaccess import GrantFlags, PermissionGrant, PermissionStoreAccessor, Profile
from clinicaccess.stores import InMemoryGrantStore, InMemoryProfileStore, InMemoryRoleStore


class GatedGrantStore(InMemoryGrantStore):
    """In-memory grant store whose ``select`` can be paused and made to fail.

    ``hold()`` makes the next reads wait until ``release()``; passing a
    tenant id gates only that tenant's reads. ``fail_with`` makes reads
    raise after the gate opens.
    """

    def __init__(self) -> None:
        super().__init__()
        self._gates: dict[str | None, asyncio.Event] = {}
        self.fail_with: Exception | None = None
        self.selects: list[str] = []

    def hold(self, tenant_id: str | None = None) -> None:
        self._gates[tenant_id] = asyncio.Event()

    def release(self, tenant_id: str | None = None) -> None:
        gate = self._gates.pop(tenant_id, None)
        if gate is not None:
            gate.set()

    async def select(self, tenant_id: str) -> list[PermissionGrant]:
        self.selects.append(tenant_id)
        for key in (None, tenant_id):
            gate = self._gates.get(key)
            if gate is not None:
                await gate.wait()
        if self.fail_with is not None:
            raise self.fail_with
        return await super().select(tenant_id)



async def wait_until(predicate, timeout: float = 1.0) -> None:
    """Yield to the loop until ``predicate()`` holds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached")
        await asyncio.sleep(0)


@pytest.fixture
def grant_store() -> GatedGrantStore:
    return GatedGrantStore()


@pytest.fixture
def accessor(grant_store: GatedGrantStore) -> PermissionStoreAccessor:
    return PermissionStoreAccessor(grant_store)


@pytest.fixture
def role_store() -> InMemoryRoleStore:
    return InMemoryRoleStore()


@pytest.fixture
def profiles() -> InMemoryProfileStore:
    return InMemoryProfileStore(
        [
            Profile(user_id="u-admin", tenant_id="clinic-a", role="admin", display_name="Ana"),
            Profile(user_id="u-nurse", tenant_id="clinic-a", role="assistant", display_name="Bruno"),
            Profile(user_id="u-doc", tenant_id="clinic-a", role="doctor", display_name="Carla"),
            Profile(user_id="u-b", tenant_id="clinic-b", role="assistant", display_name="Dora"),
        ]
    )


@pytest.fixture
def seed(grant_store: GatedGrantStore):
    """Write grant rows straight into the store, bypassing the accessor."""

    async def _seed(tenant_id: str, role: str, module: str, **flags: bool) -> None:
        await InMemoryGrantStore.upsert(grant_store, tenant_id, role, module, GrantFlags(**flags))

    return _seed
