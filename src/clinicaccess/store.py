"""Tenant-scoped access to permission grants.

PermissionStoreAccessor sits between the access-control components and a
GrantStore backend. It validates arguments, normalizes failures into the
package's error hierarchy and logs every write.
"""

from __future__ import annotations

import logging

from .exceptions import ClinicAccessError, GrantFetchError, GrantWriteError, UnknownModuleError, ValidationError
from .permissions.constants import Module
from .permissions.models import GrantFlags, GrantSet, PermissionGrant
from .stores.interfaces import GrantStore

logger = logging.getLogger(__name__)


class PermissionStoreAccessor:
    """CRUD over Permission Grant rows, scoped to a tenant.

    Args:
        store: Backend holding grant rows.

    Example::

        accessor = PermissionStoreAccessor(InMemoryGrantStore())
        await accessor.upsert_grant(
            "clinic-a", "assistant", Module.PATIENTS,
            GrantFlags(can_view=True, can_create=True),
        )
        grants = await accessor.get_grants("clinic-a")
    """

    def __init__(self, store: GrantStore) -> None:
        self._store = store

    async def get_grants(self, tenant_id: str) -> list[PermissionGrant]:
        """Return all grants of the tenant (empty when nothing is configured).

        Raises:
            GrantFetchError: If the backend read fails.
        """
        _require_tenant(tenant_id)
        try:
            rows = await self._store.select(tenant_id)
        except ClinicAccessError:
            raise
        except Exception as e:
            logger.error("Failed to load grants for tenant '%s': %s", tenant_id, e, extra={"tenant_id": tenant_id})
            raise GrantFetchError(f"Failed to load grants: {e}", tenant_id=tenant_id) from e
        return [row for row in rows if row.tenant_id == tenant_id]

    async def get_grant_set(self, tenant_id: str) -> GrantSet:
        return GrantSet(tenant_id, await self.get_grants(tenant_id))

    async def upsert_grant(
        self,
        tenant_id: str,
        role: str,
        module: str,
        flags: GrantFlags,
    ) -> PermissionGrant:
        """Write or replace the single grant row for (tenant_id, role, module).

        Raises:
            UnknownModuleError: If ``module`` is not in the catalog.
            GrantWriteError: If the backend write fails. Never swallowed.
        """
        _require_tenant(tenant_id)
        if not role:
            raise ValidationError("role is required")
        if not Module.is_known(module):
            raise UnknownModuleError(f"Unknown module: {module}", module=module)

        try:
            grant = await self._store.upsert(tenant_id, role, module, flags)
        except ClinicAccessError:
            raise
        except Exception as e:
            logger.error(
                "Failed to write grant %s/%s for tenant '%s': %s",
                role,
                module,
                tenant_id,
                e,
                extra={"tenant_id": tenant_id},
            )
            raise GrantWriteError(
                f"Failed to save permission: {e}", tenant_id=tenant_id, role=role, module=module
            ) from e

        logger.info(
            "Grant saved: %s/%s view=%s create=%s edit=%s delete=%s",
            role,
            module,
            grant.can_view,
            grant.can_create,
            grant.can_edit,
            grant.can_delete,
            extra={"tenant_id": tenant_id},
        )
        return grant

    async def delete_grants_for_role(self, tenant_id: str, role: str) -> int:
        """Delete every grant of ``role`` in the tenant.

        Raises:
            GrantWriteError: If the backend write fails.
        """
        _require_tenant(tenant_id)
        try:
            removed = await self._store.delete_for_role(tenant_id, role)
        except ClinicAccessError:
            raise
        except Exception as e:
            raise GrantWriteError(f"Failed to delete grants: {e}", tenant_id=tenant_id, role=role) from e
        logger.info("Deleted %d grant(s) of role '%s'", removed, role, extra={"tenant_id": tenant_id})
        return removed


def _require_tenant(tenant_id: str) -> None:
    if not tenant_id:
        raise ValidationError("tenant_id is required")


__all__ = ["PermissionStoreAccessor"]
