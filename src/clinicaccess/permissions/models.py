"""Core data models for clinic access control.

Store rows (profiles, grants, roles) are Pydantic models; identity and
decision values handed to consumers are frozen dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, Optional

from pydantic import BaseModel, Field

from .constants import Action


# ── Identity ────────────────────────────────────────────


@dataclass(frozen=True)
class Session:
    """Authenticated session as reported by the auth backend."""

    user_id: str
    email: str = ""


@dataclass(frozen=True)
class Principal:
    """The authenticated actor.

    ``tenant_id`` and ``role`` are None when the profile could not be loaded
    or the user has not been attached to a clinic yet. Such a principal is
    denied everything.
    """

    user_id: str
    tenant_id: str | None = None
    role: str | None = None
    display_name: str = ""
    email: str = ""

    @property
    def is_complete(self) -> bool:
        """True when both tenant and role are known."""
        return bool(self.tenant_id) and bool(self.role)

    @property
    def identity_key(self) -> tuple[str | None, str | None]:
        """The (tenant, role) pair that determines which grants apply."""
        return (self.tenant_id, self.role)


class Profile(BaseModel):
    """Profile row of a user, including tenant affiliation and role."""

    user_id: str
    tenant_id: Optional[str] = None
    role: Optional[str] = None
    display_name: str = ""
    email: str = ""
    tenant_name: str = ""
    tenant_status: str = ""

    def to_principal(self) -> Principal:
        return Principal(
            user_id=self.user_id,
            tenant_id=self.tenant_id,
            role=self.role.strip().lower() if self.role else None,
            display_name=self.display_name,
            email=self.email,
        )


# ── Grants ──────────────────────────────────────────────


class GrantFlags(BaseModel):
    """The four independent capability booleans of a grant."""

    can_view: bool = False
    can_create: bool = False
    can_edit: bool = False
    can_delete: bool = False

    model_config = {"frozen": True}

    def allows(self, action: Action) -> bool:
        if action is Action.VIEW:
            return self.can_view
        if action is Action.CREATE:
            return self.can_create
        if action is Action.EDIT:
            return self.can_edit
        if action is Action.DELETE:
            return self.can_delete
        return False

    def with_action(self, action: Action, value: bool) -> GrantFlags:
        """Return a copy with one capability replaced."""
        return self.model_copy(update={f"can_{action.value}": value})

    @classmethod
    def all_granted(cls) -> GrantFlags:
        return cls(can_view=True, can_create=True, can_edit=True, can_delete=True)


class PermissionGrant(GrantFlags):
    """Grant row keyed by (tenant_id, role, module)."""

    tenant_id: str
    role: str
    module: str

    @property
    def key(self) -> tuple[str, str, str]:
        return (self.tenant_id, self.role, self.module)

    @property
    def flags(self) -> GrantFlags:
        return GrantFlags(
            can_view=self.can_view,
            can_create=self.can_create,
            can_edit=self.can_edit,
            can_delete=self.can_delete,
        )


class GrantSet:
    """Immutable index of one tenant's grants keyed by (role, module).

    Rows from other tenants are ignored, so a misbehaving store can never
    leak grants across tenants.
    """

    __slots__ = ("tenant_id", "_index")

    def __init__(self, tenant_id: str | None = None, grants: Iterable[PermissionGrant] = ()) -> None:
        self.tenant_id = tenant_id
        index: dict[tuple[str, str], PermissionGrant] = {}
        for grant in grants:
            if tenant_id is not None and grant.tenant_id != tenant_id:
                continue
            index[(grant.role, grant.module)] = grant
        self._index = index

    def find(self, role: str, module: str) -> PermissionGrant | None:
        return self._index.get((role, module))

    def for_role(self, role: str) -> list[PermissionGrant]:
        return [g for (r, _), g in self._index.items() if r == role]

    def __iter__(self) -> Iterator[PermissionGrant]:
        return iter(self._index.values())

    def __len__(self) -> int:
        return len(self._index)

    def __repr__(self) -> str:
        return f"GrantSet(tenant_id={self.tenant_id!r}, grants={len(self._index)})"


# ── Roles ───────────────────────────────────────────────


class RoleDefinition(BaseModel):
    """A role selectable within a tenant."""

    tenant_id: Optional[str] = None  # None for system roles
    name: str
    slug: str
    description: str = ""
    is_system: bool = False


# ── Decisions ───────────────────────────────────────────


@dataclass(frozen=True)
class ModulePermission:
    """Resolved capabilities of one principal on one module."""

    module: str
    view: bool = False
    create: bool = False
    edit: bool = False
    delete: bool = False

    def allows(self, action: Action) -> bool:
        return bool(getattr(self, action.value))

    @classmethod
    def denied(cls, module: str) -> ModulePermission:
        return cls(module=module)

    @classmethod
    def from_flags(cls, module: str, flags: GrantFlags) -> ModulePermission:
        return cls(
            module=module,
            view=flags.can_view,
            create=flags.can_create,
            edit=flags.can_edit,
            delete=flags.can_delete,
        )

    def to_flags(self) -> GrantFlags:
        return GrantFlags(can_view=self.view, can_create=self.create, can_edit=self.edit, can_delete=self.delete)


__all__ = [
    "GrantFlags",
    "GrantSet",
    "ModulePermission",
    "PermissionGrant",
    "Principal",
    "Profile",
    "RoleDefinition",
    "Session",
]
