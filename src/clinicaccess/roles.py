"""Role registry: system roles plus tenant-defined custom roles.

Custom roles are identified by a slug derived from their display name.
A slug is unique within its tenant and may never shadow a system role,
otherwise a custom role named "Admin" would inherit the admin bypass.
"""

from __future__ import annotations

import logging
import re
import unicodedata

from .config import RoleDeletionPolicy
from .exceptions import (
    ClinicAccessError,
    RoleFetchError,
    RoleInUseError,
    RoleValidationError,
    RoleWriteError,
    SlugCollisionError,
)
from .guard import ensure_can_administer
from .permissions.constants import SystemRole
from .permissions.models import Principal, RoleDefinition
from .store import PermissionStoreAccessor
from .stores.interfaces import RoleStore

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


def slugify_role_name(name: str) -> str:
    """Derive the machine-readable slug of a role name.

    Lowercases, folds diacritics (NFD + drop combining marks) and replaces
    whitespace runs with ``_``.

    Example::

        slugify_role_name("Enfermeiro")         # "enfermeiro"
        slugify_role_name("Técnico de Enfermagem")  # "tecnico_de_enfermagem"

    Raises:
        RoleValidationError: If the name is blank.
    """
    cleaned = (name or "").strip()
    if not cleaned:
        raise RoleValidationError("Role name must not be empty")
    decomposed = unicodedata.normalize("NFD", cleaned.lower())
    folded = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return _WHITESPACE.sub("_", folded)


def system_roles() -> list[RoleDefinition]:
    """Assignable system roles (``superadmin`` is platform-only)."""
    return [
        RoleDefinition(name=SystemRole.NAMES[slug], slug=slug, is_system=True)
        for slug in SystemRole.ASSIGNABLE
    ]


class RoleRegistry:
    """Enumerates, creates and deletes roles within a tenant.

    Args:
        store: Backend holding custom roles.
        grants: Accessor used to inspect or cascade grants on deletion.
        deletion_policy: Handling of grants referencing a deleted role.
    """

    def __init__(
        self,
        store: RoleStore,
        grants: PermissionStoreAccessor,
        *,
        deletion_policy: RoleDeletionPolicy = RoleDeletionPolicy.REJECT,
    ) -> None:
        self._store = store
        self._grants = grants
        self._deletion_policy = deletion_policy

    async def list_custom_roles(self, tenant_id: str) -> list[RoleDefinition]:
        """Custom roles of the tenant.

        Raises:
            RoleFetchError: If the backend read fails.
        """
        try:
            roles = await self._store.select(tenant_id)
        except ClinicAccessError:
            raise
        except Exception as e:
            raise RoleFetchError(f"Failed to load roles: {e}", tenant_id=tenant_id) from e
        return [r for r in roles if r.tenant_id == tenant_id]

    async def list_roles(self, tenant_id: str) -> list[RoleDefinition]:
        """System roles followed by the tenant's custom roles.

        A failed custom-role read is logged and degrades to system roles only.
        """
        try:
            custom = await self.list_custom_roles(tenant_id)
        except RoleFetchError as e:
            logger.error("Error loading roles: %s", e.message, extra={"tenant_id": tenant_id})
            custom = []
        return system_roles() + custom

    async def get_role(self, tenant_id: str, slug: str) -> RoleDefinition | None:
        for role in await self.list_roles(tenant_id):
            if role.slug == slug:
                return role
        return None

    async def create_role(
        self,
        tenant_id: str,
        display_name: str,
        *,
        description: str = "",
        actor: Principal | None = None,
    ) -> RoleDefinition:
        """Create a custom role.

        Raises:
            PermissionDeniedError: If ``actor`` is given and may not administer the tenant.
            RoleValidationError: If the name is blank.
            SlugCollisionError: If the slug is a system role or already exists.
            RoleWriteError: If the backend write fails.
        """
        if actor is not None:
            ensure_can_administer(actor, tenant_id)

        name = (display_name or "").strip()
        slug = slugify_role_name(name)
        if slug in SystemRole.ALL:
            raise SlugCollisionError(
                f"Role slug '{slug}' is reserved for a system role",
                tenant_id=tenant_id,
                slug=slug,
            )

        try:
            role = await self._store.insert(tenant_id, name, slug, description)
        except ClinicAccessError:
            raise
        except Exception as e:
            raise RoleWriteError(f"Failed to create role: {e}", tenant_id=tenant_id, slug=slug) from e

        logger.info("Role created: %s (%s)", role.name, role.slug, extra={"tenant_id": tenant_id})
        return role

    async def delete_role(
        self,
        tenant_id: str,
        slug: str,
        *,
        actor: Principal | None = None,
        policy: RoleDeletionPolicy | None = None,
    ) -> bool:
        """Delete a custom role.

        With ``RoleDeletionPolicy.REJECT`` the deletion fails while grants
        reference the slug; with ``CASCADE`` those grants are deleted first.

        Returns:
            True if a role was removed, False if it did not exist.

        Raises:
            RoleValidationError: If ``slug`` is a system role.
            RoleInUseError: If grants reference the role under REJECT.
            RoleWriteError / GrantWriteError: If a backend write fails.
        """
        if actor is not None:
            ensure_can_administer(actor, tenant_id)
        if slug in SystemRole.ALL:
            raise RoleValidationError(f"System role '{slug}' cannot be deleted", slug=slug)

        effective = policy or self._deletion_policy
        grants = [g for g in await self._grants.get_grants(tenant_id) if g.role == slug]
        if grants:
            if effective is RoleDeletionPolicy.REJECT:
                raise RoleInUseError(
                    f"Role '{slug}' still has {len(grants)} permission grant(s)",
                    tenant_id=tenant_id,
                    slug=slug,
                )
            await self._grants.delete_grants_for_role(tenant_id, slug)

        try:
            removed = await self._store.delete(tenant_id, slug)
        except ClinicAccessError:
            raise
        except Exception as e:
            raise RoleWriteError(f"Failed to delete role: {e}", tenant_id=tenant_id, slug=slug) from e

        if removed:
            logger.info("Role deleted: %s", slug, extra={"tenant_id": tenant_id})
        return removed


__all__ = [
    "RoleRegistry",
    "slugify_role_name",
    "system_roles",
]
