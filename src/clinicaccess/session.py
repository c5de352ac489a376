"""Access session: identity resolution wired to the access context provider.

One AccessSession lives as long as the application shell. It follows
sign-in/sign-out events, feeds each resolved principal to the provider and
exposes the consumer contract (``can``, ``loading``, ``refresh_permissions``).
"""

from __future__ import annotations

from typing import Callable

from .config import AccessConfig
from .context import AccessContextProvider
from .identity import IdentityResolver
from .permissions.constants import Action
from .permissions.models import ModulePermission, Principal
from .store import PermissionStoreAccessor
from .stores.interfaces import GrantStore, ProfileStore, SessionSource
from .stores.memory import InMemoryGrantStore
from .stores.redis_store import RedisGrantStore


class AccessSession:
    """Consumer-facing access facade for one application session.

    Usage::

        async with AccessSession(sessions, profiles, grants) as access:
            if access.loading:
                ...  # show spinner, not "Access Denied"
            elif not access.can("patients", "view"):
                ...  # render Access Denied
    """

    def __init__(
        self,
        sessions: SessionSource,
        profiles: ProfileStore,
        grants: GrantStore,
        *,
        config: AccessConfig | None = None,
    ) -> None:
        self.config = config or AccessConfig()
        self.identity = IdentityResolver(sessions, profiles)
        self.accessor = PermissionStoreAccessor(grants)
        self.access = AccessContextProvider(self.accessor)
        self._unsubscribe: Callable[[], None] | None = None

    @classmethod
    def from_config(
        cls,
        config: AccessConfig,
        sessions: SessionSource,
        profiles: ProfileStore,
    ) -> AccessSession:
        """Build a session on Redis grants when REDIS_URL is configured, in-memory otherwise."""
        grants: GrantStore
        if config.redis_url:
            grants = RedisGrantStore.from_config(config)
        else:
            grants = InMemoryGrantStore()
        return cls(sessions, profiles, grants, config=config)

    async def start(self) -> Principal | None:
        if self._unsubscribe is None:
            self._unsubscribe = self.identity.subscribe(self.access.set_principal)
        return await self.identity.start()

    async def close(self) -> None:
        self.identity.stop()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.access.teardown()

    async def __aenter__(self) -> AccessSession:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # ── Consumer contract ───────────────────────────────

    @property
    def principal(self) -> Principal | None:
        return self.identity.principal

    @property
    def loading(self) -> bool:
        """True until both identity and grants are known."""
        return self.identity.loading or self.access.loading

    def can(self, module: str, action: Action | str) -> bool:
        if self.identity.loading:
            return False
        return self.access.can(module, action)

    def module_permissions(self, module: str) -> ModulePermission:
        if self.identity.loading:
            return ModulePermission.denied(module)
        return self.access.module_permissions(module)

    async def refresh_permissions(self) -> None:
        await self.access.refresh_permissions()

    async def refresh_profile(self) -> Principal | None:
        """Re-resolve the principal, e.g. after an administrator reassigned its role."""
        return await self.identity.refresh_profile()


__all__ = ["AccessSession"]
