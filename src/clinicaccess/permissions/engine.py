"""Access decisions for (principal, module, action).

Provides the pure decision functions used by the access context provider
and by the data-layer guard. Decisions are never persisted; they are
recomputed from the currently loaded grant set.
"""

from __future__ import annotations

import logging

from .constants import Action, is_privileged
from .models import GrantSet, ModulePermission, Principal

logger = logging.getLogger(__name__)


def decide(
    principal: Principal | None,
    module: str,
    action: Action | str,
    grants: GrantSet,
) -> bool:
    """Decide whether ``principal`` may perform ``action`` on ``module``.

    Checks in order:
    1. Admin-tier role (``admin``, ``superadmin``) → allow everything
    2. Incomplete principal (no tenant or no role) → deny
    3. Unrecognized action → deny
    4. No grant row for (role, module) → deny
    5. The grant's boolean for ``action``

    Args:
        principal: The acting principal (None = anonymous).
        module: Module id (e.g. ``"patients"``).
        action: One of :class:`Action` or its string value.
        grants: Grants of the principal's tenant.

    Returns:
        True if allowed. Never raises.

    Example::

        grants = GrantSet("clinic-a", [
            PermissionGrant(tenant_id="clinic-a", role="assistant",
                            module="patients", can_view=True),
        ])
        nurse = Principal(user_id="u1", tenant_id="clinic-a", role="assistant")
        decide(nurse, "patients", "view", grants)    # True
        decide(nurse, "patients", "delete", grants)  # False
        decide(nurse, "documents", "view", grants)   # False (no grant)
    """
    if principal is None:
        return False

    if is_privileged(principal.role):
        return True

    if not principal.is_complete:
        return False

    parsed = Action.parse(action)
    if parsed is None:
        logger.debug("Unknown action %r for module '%s', denied", action, module)
        return False

    if grants.tenant_id is not None and grants.tenant_id != principal.tenant_id:
        return False

    grant = grants.find(principal.role, module)
    if grant is None:
        return False  # Default deny

    return grant.allows(parsed)


def module_permissions(
    principal: Principal | None,
    module: str,
    grants: GrantSet,
) -> ModulePermission:
    """Resolve all four capabilities of ``principal`` on ``module`` at once.

    Example::

        perms = module_permissions(nurse, "patients", grants)
        perms.view    # True
        perms.delete  # False
    """
    return ModulePermission(
        module=module,
        view=decide(principal, module, Action.VIEW, grants),
        create=decide(principal, module, Action.CREATE, grants),
        edit=decide(principal, module, Action.EDIT, grants),
        delete=decide(principal, module, Action.DELETE, grants),
    )


__all__ = [
    "decide",
    "module_permissions",
]
