"""In-process store implementations.

Used for local mode (no REDIS_URL configured) and as substitutable fakes in
tests. All state lives in dicts owned by the instance; each mutation happens
without an intermediate await, so concurrent readers on the event loop see
either the old or the new row, never a mix.
"""

from __future__ import annotations

from typing import Callable, Optional
from uuid import uuid4

from ..exceptions import RoleWriteError, SlugCollisionError
from ..permissions.models import GrantFlags, PermissionGrant, Profile, RoleDefinition, Session
from .interfaces import GrantStore, ProfileStore, RoleStore, SessionListener, SessionSource


class InMemorySessionSource(SessionSource):
    """Session source driven explicitly by ``sign_in()`` / ``sign_out()``."""

    def __init__(self, session: Session | None = None) -> None:
        self._session = session
        self._listeners: list[SessionListener] = []

    async def get_current_session(self) -> Optional[Session]:
        return self._session

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def sign_in(self, session: Session) -> None:
        self._session = session
        await self._notify()

    async def sign_out(self) -> None:
        self._session = None
        await self._notify()

    async def _notify(self) -> None:
        for listener in list(self._listeners):
            await listener(self._session)


class InMemoryProfileStore(ProfileStore):
    def __init__(self, profiles: list[Profile] | None = None) -> None:
        self._profiles: dict[str, Profile] = {p.user_id: p for p in profiles or []}

    def put(self, profile: Profile) -> None:
        self._profiles[profile.user_id] = profile

    async def get_profile(self, user_id: str) -> Optional[Profile]:
        return self._profiles.get(user_id)

    async def list_profiles(self, tenant_id: str) -> list[Profile]:
        members = [p for p in self._profiles.values() if p.tenant_id == tenant_id]
        return sorted(members, key=lambda p: p.display_name)

    async def update_role(self, user_id: str, role: str) -> Profile:
        current = self._profiles.get(user_id)
        if current is None:
            raise RoleWriteError(f"No profile for user '{user_id}'", user_id=user_id)
        updated = current.model_copy(update={"role": role})
        self._profiles[user_id] = updated
        return updated

    async def create_profile(self, tenant_id: str, email: str, display_name: str, role: str) -> Profile:
        profile = Profile(user_id=str(uuid4()), tenant_id=tenant_id, role=role, display_name=display_name, email=email)
        self._profiles[profile.user_id] = profile
        return profile


class InMemoryGrantStore(GrantStore):
    def __init__(self) -> None:
        self._rows: dict[tuple[str, str, str], PermissionGrant] = {}

    async def select(self, tenant_id: str) -> list[PermissionGrant]:
        return [g for (t, _, _), g in self._rows.items() if t == tenant_id]

    async def upsert(self, tenant_id: str, role: str, module: str, flags: GrantFlags) -> PermissionGrant:
        grant = PermissionGrant(tenant_id=tenant_id, role=role, module=module, **flags.model_dump())
        self._rows[grant.key] = grant
        return grant

    async def delete_for_role(self, tenant_id: str, role: str) -> int:
        keys = [k for k in self._rows if k[0] == tenant_id and k[1] == role]
        for key in keys:
            del self._rows[key]
        return len(keys)

    def __len__(self) -> int:
        return len(self._rows)


class InMemoryRoleStore(RoleStore):
    def __init__(self) -> None:
        self._roles: dict[tuple[str, str], RoleDefinition] = {}

    async def select(self, tenant_id: str) -> list[RoleDefinition]:
        roles = [r for (t, _), r in self._roles.items() if t == tenant_id]
        return sorted(roles, key=lambda r: r.name)

    async def insert(self, tenant_id: str, name: str, slug: str, description: str = "") -> RoleDefinition:
        key = (tenant_id, slug)
        if key in self._roles:
            raise SlugCollisionError(
                f"Role slug '{slug}' already exists in tenant '{tenant_id}'",
                tenant_id=tenant_id,
                slug=slug,
            )
        role = RoleDefinition(tenant_id=tenant_id, name=name, slug=slug, description=description)
        self._roles[key] = role
        return role

    async def delete(self, tenant_id: str, slug: str) -> bool:
        return self._roles.pop((tenant_id, slug), None) is not None


__all__ = [
    "InMemoryGrantStore",
    "InMemoryProfileStore",
    "InMemoryRoleStore",
    "InMemorySessionSource",
]
