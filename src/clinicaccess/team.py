"""Team directory: members of a clinic, invitations and role assignment."""

from __future__ import annotations

import logging

from .exceptions import (
    ClinicAccessError,
    ProfileFetchError,
    ProfileWriteError,
    RoleValidationError,
    RoleWriteError,
    ValidationError,
)
from .guard import ensure_can_administer
from .permissions.constants import SystemRole
from .permissions.models import Principal, Profile
from .roles import RoleRegistry
from .stores.interfaces import ProfileStore

logger = logging.getLogger(__name__)


class TeamDirectory:
    def __init__(self, profiles: ProfileStore, roles: RoleRegistry) -> None:
        self._profiles = profiles
        self._roles = roles

    async def list_members(self, tenant_id: str) -> list[Profile]:
        try:
            members = await self._profiles.list_profiles(tenant_id)
        except ClinicAccessError:
            raise
        except Exception as e:
            raise ProfileFetchError(f"Failed to load team: {e}", tenant_id=tenant_id) from e
        return [m for m in members if m.tenant_id == tenant_id]

    async def assign_role(self, actor: Principal, user_id: str, role_slug: str) -> Profile:
        """Reassign a member's role.

        The member's active sessions pick up the change on their next
        profile refresh, which also hard-resets their access context.

        Raises:
            ValidationError: If the user has no profile or no tenant.
            PermissionDeniedError: If ``actor`` may not administer the member's tenant.
            RoleValidationError: If ``role_slug`` is not assignable in the tenant.
            RoleFetchError: If custom roles cannot be loaded to validate the slug.
            RoleWriteError: If the backend write fails.
        """
        try:
            member = await self._profiles.get_profile(user_id)
        except ClinicAccessError:
            raise
        except Exception as e:
            raise ProfileFetchError(f"Failed to load member: {e}", user_id=user_id) from e
        if member is None or not member.tenant_id:
            raise ValidationError(f"User '{user_id}' is not a member of any clinic", user_id=user_id)

        tenant_id = member.tenant_id
        ensure_can_administer(actor, tenant_id)
        await self._ensure_assignable(tenant_id, role_slug)

        try:
            updated = await self._profiles.update_role(user_id, role_slug)
        except ClinicAccessError:
            raise
        except Exception as e:
            raise RoleWriteError(f"Failed to update role: {e}", user_id=user_id, slug=role_slug) from e

        logger.info(
            "Role of %s changed from %s to %s",
            user_id,
            member.role,
            role_slug,
            extra={"tenant_id": tenant_id, "user_id": actor.user_id},
        )
        return updated

    async def invite_member(
        self,
        actor: Principal,
        email: str,
        role_slug: str,
        *,
        display_name: str = "",
        tenant_id: str | None = None,
    ) -> Profile:
        """Invite a new member into a clinic with an initial role.

        ``tenant_id`` defaults to the actor's clinic; only a superadmin may
        name another one.

        Raises:
            ValidationError: If the email is malformed or already on the team.
            PermissionDeniedError: If ``actor`` may not administer the tenant.
            RoleValidationError: If ``role_slug`` is not assignable in the tenant.
            ProfileWriteError: If the backend write fails.
        """
        tenant_id = tenant_id or actor.tenant_id
        if not tenant_id:
            raise ValidationError("A clinic is required to invite members")
        ensure_can_administer(actor, tenant_id)

        email = (email or "").strip().lower()
        if "@" not in email or email.startswith("@") or email.endswith("@"):
            raise ValidationError(f"Invalid email: '{email}'", tenant_id=tenant_id)
        await self._ensure_assignable(tenant_id, role_slug)

        members = await self.list_members(tenant_id)
        if any(m.email.lower() == email for m in members):
            raise ValidationError(f"'{email}' is already a member of this clinic", tenant_id=tenant_id)

        try:
            profile = await self._profiles.create_profile(tenant_id, email, display_name.strip(), role_slug)
        except ClinicAccessError:
            raise
        except Exception as e:
            raise ProfileWriteError(f"Failed to invite member: {e}", tenant_id=tenant_id, slug=role_slug) from e

        logger.info(
            "Invited %s as %s",
            profile.user_id,
            role_slug,
            extra={"tenant_id": tenant_id, "user_id": actor.user_id},
        )
        return profile

    async def _ensure_assignable(self, tenant_id: str, role_slug: str) -> None:
        if role_slug in SystemRole.ASSIGNABLE:
            return
        custom = {r.slug for r in await self._roles.list_custom_roles(tenant_id)}
        if role_slug not in custom:
            raise RoleValidationError(
                f"Role '{role_slug}' is not assignable in this clinic",
                tenant_id=tenant_id,
                slug=role_slug,
            )


__all__ = ["TeamDirectory"]
