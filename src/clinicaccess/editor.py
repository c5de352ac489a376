"""Grant matrix editing for administrators.

Each toggle is a command/result pair: the matrix row is changed
tentatively, the upsert is awaited, and the row is then either confirmed or
rolled back. Toggles of the same module are serialized so two rapid clicks
end in a consistent row instead of racing writes.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace

from .context import AccessContextProvider
from .exceptions import ClinicAccessError, UnknownModuleError, ValidationError
from .guard import ensure_can_administer
from .logging import get_access_logger
from .permissions.constants import Action, Module, SystemRole
from .permissions.models import ModulePermission, Principal
from .store import PermissionStoreAccessor


@dataclass(frozen=True)
class ToggleResult:
    """Outcome of one toggle command."""

    module: str
    action: Action
    confirmed: bool
    permission: ModulePermission  # row state after confirmation or rollback
    error: ClinicAccessError | None = None


class PermissionEditor:
    """Edits the grant matrix of one role in one tenant.

    Args:
        actor: The administrator performing the edits.
        accessor: Grant store accessor.
        tenant_id: Tenant being edited (defaults to the actor's tenant).
        provider: Access context to refresh after each confirmed write.

    Raises:
        PermissionDeniedError: If ``actor`` may not administer the tenant.

    Example::

        editor = PermissionEditor(admin, accessor, provider=session.access)
        await editor.load("assistant")
        result = await editor.toggle("patients", Action.VIEW)
        if not result.confirmed:
            notify(f"Could not save permission: {result.error.message}")
    """

    def __init__(
        self,
        actor: Principal,
        accessor: PermissionStoreAccessor,
        *,
        tenant_id: str | None = None,
        provider: AccessContextProvider | None = None,
    ) -> None:
        self._tenant_id = tenant_id or actor.tenant_id or ""
        ensure_can_administer(actor, self._tenant_id)
        self._log = get_access_logger(__name__, principal=actor)
        self._accessor = accessor
        self._provider = provider
        self._role: str | None = None
        self._rows: dict[str, ModulePermission] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    @property
    def role(self) -> str | None:
        return self._role

    @property
    def rows(self) -> list[ModulePermission]:
        """Matrix rows in catalog order."""
        return [self._rows[info.id] for info in Module.CATALOG if info.id in self._rows]

    def row(self, module: str) -> ModulePermission:
        try:
            return self._rows[module]
        except KeyError:
            raise UnknownModuleError(f"Unknown module: {module}", module=module) from None

    async def load(self, role: str) -> list[ModulePermission]:
        """Build one row per catalog module for ``role``.

        Modules without a grant row show all capabilities for ``admin`` and
        none for every other role.

        Raises:
            GrantFetchError: If grants cannot be loaded.
        """
        grants = await self._accessor.get_grant_set(self._tenant_id)
        default = role == SystemRole.ADMIN
        rows: dict[str, ModulePermission] = {}
        for info in Module.CATALOG:
            found = grants.find(role, info.id)
            if found is not None:
                rows[info.id] = ModulePermission.from_flags(info.id, found.flags)
            else:
                rows[info.id] = ModulePermission(info.id, view=default, create=default, edit=default, delete=default)
        self._role = role
        self._rows = rows
        return self.rows

    async def toggle(self, module: str, action: Action | str) -> ToggleResult:
        """Flip one capability of the loaded role and persist the whole row.

        Raises:
            ValidationError: If no role is loaded or ``action`` is unknown.
            UnknownModuleError: If ``module`` is not in the catalog.
        """
        parsed = Action.parse(action)
        if parsed is None:
            raise ValidationError(f"Unknown action: {action}", action=str(action))
        role = self._role
        if role is None:
            raise ValidationError("Load a role before editing permissions")

        async with self._lock_for(module):
            current = self.row(module)
            tentative = replace(current, **{parsed.value: not current.allows(parsed)})
            self._rows[module] = tentative
            try:
                await self._accessor.upsert_grant(self._tenant_id, role, module, tentative.to_flags())
            except ClinicAccessError as e:
                # A reload during the write already replaced the row
                if self._rows.get(module) is tentative:
                    self._rows[module] = current
                self._log.warning(
                    "Rolled back %s/%s %s: %s",
                    role,
                    module,
                    parsed.value,
                    e.message,
                    tenant_id=self._tenant_id,
                )
                return ToggleResult(module, parsed, confirmed=False, permission=current, error=e)

        if self._provider is not None:
            await self._provider.refresh_permissions()
        return ToggleResult(module, parsed, confirmed=True, permission=tentative)

    def _lock_for(self, module: str) -> asyncio.Lock:
        lock = self._locks.get(module)
        if lock is None:
            lock = self._locks[module] = asyncio.Lock()
        return lock


__all__ = ["PermissionEditor", "ToggleResult"]
