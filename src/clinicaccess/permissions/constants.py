"""Action, module and role constants for clinic access control.

Provides:
- ``Action``: the closed set of capabilities a grant can carry.
- ``Module``: the fixed catalog of access-controlled application areas.
- ``SystemRole``: roles built into the application.
- ``is_privileged()``: the single admin-bypass predicate.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Action(str, Enum):
    """Capability checked against a grant.

    Every grant carries exactly one boolean per member.
    """

    VIEW = "view"
    CREATE = "create"
    EDIT = "edit"
    DELETE = "delete"

    @classmethod
    def parse(cls, value: Action | str) -> Action | None:
        """Return the matching member, or None for anything unrecognized.

        Example::

            Action.parse("edit")     # Action.EDIT
            Action.parse("approve")  # None
        """
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


class ModuleCategory(str, Enum):
    CLINICAL = "clinical"
    ADMINISTRATIVE = "administrative"


@dataclass(frozen=True)
class ModuleInfo:
    """Catalog entry for one module."""

    id: str
    name: str
    category: ModuleCategory


class Module:
    """Catalog of access-controlled modules.

    Fixed by the application; tenants cannot add or remove modules.
    """

    # ── Clinical ────────────────────────────────────────
    PATIENTS = "patients"
    DASHBOARD = "dashboard"
    APPOINTMENTS = "appointments"
    DOCUMENTS = "documents"

    # ── Administrative ──────────────────────────────────
    TEAM = "team"
    PERMISSIONS = "permissions"
    LOGS = "logs"

    CATALOG: tuple[ModuleInfo, ...] = (
        ModuleInfo(PATIENTS, "Patient management", ModuleCategory.CLINICAL),
        ModuleInfo(DASHBOARD, "Overview / Dashboard", ModuleCategory.CLINICAL),
        ModuleInfo(APPOINTMENTS, "Appointments & procedures", ModuleCategory.CLINICAL),
        ModuleInfo(DOCUMENTS, "Document management", ModuleCategory.CLINICAL),
        ModuleInfo(TEAM, "Team management", ModuleCategory.ADMINISTRATIVE),
        ModuleInfo(PERMISSIONS, "Permission control", ModuleCategory.ADMINISTRATIVE),
        ModuleInfo(LOGS, "Logs & audit", ModuleCategory.ADMINISTRATIVE),
    )

    ALL = frozenset(info.id for info in CATALOG)

    @classmethod
    def is_known(cls, module: str) -> bool:
        return module in cls.ALL

    @classmethod
    def info(cls, module: str) -> ModuleInfo | None:
        for entry in cls.CATALOG:
            if entry.id == module:
                return entry
        return None


class SystemRole:
    """Roles built into the application.

    System roles cannot be deleted. ``SUPERADMIN`` is the platform operator
    role and is never assignable inside a tenant.
    """

    ADMIN = "admin"
    DOCTOR = "doctor"
    ASSISTANT = "assistant"
    SUPERADMIN = "superadmin"

    # Display names shown by role pickers
    NAMES: dict[str, str] = {
        ADMIN: "Administrator (system)",
        DOCTOR: "Doctor / Practitioner",
        ASSISTANT: "Assistant / Front desk",
    }

    ASSIGNABLE = (ADMIN, DOCTOR, ASSISTANT)
    ALL = frozenset({ADMIN, DOCTOR, ASSISTANT, SUPERADMIN})


# Roles that bypass every grant lookup
ADMIN_TIER = frozenset({SystemRole.ADMIN, SystemRole.SUPERADMIN})


def is_privileged(role: str | None) -> bool:
    """Return True if ``role`` bypasses all permission checks.

    This is the only place the admin bypass is defined; UI checks and
    data-layer checks must both go through it.
    """
    return role in ADMIN_TIER


__all__ = [
    "ADMIN_TIER",
    "Action",
    "Module",
    "ModuleCategory",
    "ModuleInfo",
    "SystemRole",
    "is_privileged",
]
