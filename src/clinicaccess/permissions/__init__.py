"""Permission vocabulary and decision engine for clinic access control.

Defines:
- Action: closed set of capabilities (view/create/edit/delete)
- Module: fixed catalog of access-controlled areas
- SystemRole / ADMIN_TIER / is_privileged(): built-in roles and admin bypass
- Principal, PermissionGrant, GrantSet, RoleDefinition: data model
- decide() / module_permissions(): pure access decisions
"""

from .constants import (
    ADMIN_TIER,
    Action,
    Module,
    ModuleCategory,
    ModuleInfo,
    SystemRole,
    is_privileged,
)
from .engine import decide, module_permissions
from .models import (
    GrantFlags,
    GrantSet,
    ModulePermission,
    PermissionGrant,
    Principal,
    Profile,
    RoleDefinition,
    Session,
)

__all__ = [
    "ADMIN_TIER",
    "Action",
    "GrantFlags",
    "GrantSet",
    "Module",
    "ModuleCategory",
    "ModuleInfo",
    "ModulePermission",
    "PermissionGrant",
    "Principal",
    "Profile",
    "RoleDefinition",
    "Session",
    "SystemRole",
    "decide",
    "is_privileged",
    "module_permissions",
]
