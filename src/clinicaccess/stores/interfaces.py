"""Backend collaborator contracts.

The access-control layer never talks to a database or auth service
directly; it is handed implementations of these interfaces. Every method
is a coroutine because every call is a network round-trip in production.
"""

from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional

from ..permissions.models import GrantFlags, PermissionGrant, Profile, RoleDefinition, Session

SessionListener = Callable[[Optional[Session]], Awaitable[None]]


class SessionSource(ABC):
    """Auth backend: the current session and sign-in/sign-out events."""

    @abstractmethod
    async def get_current_session(self) -> Optional[Session]:
        raise NotImplementedError

    @abstractmethod
    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register ``listener`` for session changes; returns an unsubscribe callable."""
        raise NotImplementedError


class ProfileStore(ABC):
    """User profiles: tenant affiliation and role."""

    @abstractmethod
    async def get_profile(self, user_id: str) -> Optional[Profile]:
        raise NotImplementedError

    @abstractmethod
    async def list_profiles(self, tenant_id: str) -> list[Profile]:
        raise NotImplementedError

    @abstractmethod
    async def update_role(self, user_id: str, role: str) -> Profile:
        raise NotImplementedError

    @abstractmethod
    async def create_profile(self, tenant_id: str, email: str, display_name: str, role: str) -> Profile:
        """Invite a user into the tenant with an initial role."""
        raise NotImplementedError


class GrantStore(ABC):
    """Permission grant rows keyed by (tenant_id, role, module)."""

    @abstractmethod
    async def select(self, tenant_id: str) -> list[PermissionGrant]:
        raise NotImplementedError

    @abstractmethod
    async def upsert(self, tenant_id: str, role: str, module: str, flags: GrantFlags) -> PermissionGrant:
        """Write or replace the single row for the composite key, atomically."""
        raise NotImplementedError

    @abstractmethod
    async def delete_for_role(self, tenant_id: str, role: str) -> int:
        """Delete every grant of ``role`` in the tenant; returns the number removed."""
        raise NotImplementedError


class RoleStore(ABC):
    """Tenant-defined custom roles."""

    @abstractmethod
    async def select(self, tenant_id: str) -> list[RoleDefinition]:
        raise NotImplementedError

    @abstractmethod
    async def insert(self, tenant_id: str, name: str, slug: str, description: str = "") -> RoleDefinition:
        """Insert a role. Must raise SlugCollisionError if the slug exists in the tenant."""
        raise NotImplementedError

    @abstractmethod
    async def delete(self, tenant_id: str, slug: str) -> bool:
        raise NotImplementedError


__all__ = ["GrantStore", "ProfileStore", "RoleStore", "SessionListener", "SessionSource"]
