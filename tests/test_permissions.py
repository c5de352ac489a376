"""Tests for the permission vocabulary and decision engine."""

from __future__ import annotations

import pytest

from clinicaccess import (
    ADMIN_TIER,
    Action,
    GrantFlags,
    GrantSet,
    Module,
    ModuleCategory,
    ModulePermission,
    PermissionGrant,
    Principal,
    Profile,
    SystemRole,
    decide,
    is_privileged,
    module_permissions,
)


def _grant(role: str, module: str, tenant_id: str = "clinic-a", **flags: bool) -> PermissionGrant:
    return PermissionGrant(tenant_id=tenant_id, role=role, module=module, **flags)


NURSE = Principal(user_id="u-nurse", tenant_id="clinic-a", role="assistant")


class TestAction:
    def test_parse_members_and_strings(self) -> None:
        assert Action.parse(Action.EDIT) is Action.EDIT
        assert Action.parse("view") is Action.VIEW
        assert Action.parse(" DELETE ") is Action.DELETE

    def test_parse_unknown(self) -> None:
        assert Action.parse("approve") is None
        assert Action.parse("") is None
        assert Action.parse(None) is None  # type: ignore[arg-type]


class TestModuleCatalog:
    def test_catalog_ids_unique(self) -> None:
        ids = [info.id for info in Module.CATALOG]
        assert len(ids) == len(set(ids))
        assert set(ids) == Module.ALL

    def test_categories(self) -> None:
        assert Module.info(Module.PATIENTS).category is ModuleCategory.CLINICAL
        assert Module.info(Module.PERMISSIONS).category is ModuleCategory.ADMINISTRATIVE
        assert Module.info("billing") is None

    def test_is_known(self) -> None:
        assert Module.is_known("patients")
        assert not Module.is_known("billing")


class TestSystemRoles:
    def test_admin_tier(self) -> None:
        assert ADMIN_TIER == {SystemRole.ADMIN, SystemRole.SUPERADMIN}
        assert is_privileged("admin")
        assert is_privileged("superadmin")
        assert not is_privileged("doctor")
        assert not is_privileged(None)

    def test_superadmin_not_assignable(self) -> None:
        assert SystemRole.SUPERADMIN not in SystemRole.ASSIGNABLE
        assert SystemRole.SUPERADMIN in SystemRole.ALL


class TestModels:
    def test_principal_completeness(self) -> None:
        assert NURSE.is_complete
        assert NURSE.identity_key == ("clinic-a", "assistant")
        assert not Principal(user_id="u").is_complete
        assert not Principal(user_id="u", tenant_id="clinic-a").is_complete

    def test_profile_role_normalized(self) -> None:
        profile = Profile(user_id="u", tenant_id="clinic-a", role=" Doctor ")
        assert profile.to_principal().role == "doctor"
        assert Profile(user_id="u").to_principal().role is None

    def test_grant_flags(self) -> None:
        flags = GrantFlags(can_view=True)
        assert flags.allows(Action.VIEW)
        assert not flags.allows(Action.EDIT)
        assert flags.with_action(Action.EDIT, True).allows(Action.EDIT)
        assert not flags.allows(Action.EDIT)  # copy, original untouched
        assert all(GrantFlags.all_granted().allows(a) for a in Action)

    def test_grant_flags_frozen(self) -> None:
        with pytest.raises(Exception):
            GrantFlags().can_view = True  # type: ignore[misc]

    def test_grant_set_ignores_other_tenants(self) -> None:
        grants = GrantSet(
            "clinic-a",
            [
                _grant("assistant", "patients", can_view=True),
                _grant("assistant", "documents", tenant_id="clinic-b", can_view=True),
            ],
        )
        assert len(grants) == 1
        assert grants.find("assistant", "documents") is None

    def test_grant_set_last_row_wins(self) -> None:
        grants = GrantSet(
            "clinic-a",
            [
                _grant("assistant", "patients", can_view=True),
                _grant("assistant", "patients", can_view=False),
            ],
        )
        assert len(grants) == 1
        assert grants.find("assistant", "patients").can_view is False

    def test_module_permission_roundtrip_flags(self) -> None:
        perm = ModulePermission(module="patients", view=True, edit=True)
        assert perm.to_flags() == GrantFlags(can_view=True, can_edit=True)
        assert ModulePermission.denied("patients") == ModulePermission("patients")


class TestDecide:
    """Decision order: admin bypass, completeness, action, grant lookup."""

    @pytest.fixture
    def grants(self) -> GrantSet:
        return GrantSet(
            "clinic-a",
            [
                _grant("assistant", "patients", can_view=True, can_create=True),
                _grant("doctor", "documents", can_view=True, can_edit=True, can_delete=True),
            ],
        )

    def test_grant_booleans(self, grants: GrantSet) -> None:
        assert decide(NURSE, "patients", "view", grants)
        assert decide(NURSE, "patients", Action.CREATE, grants)
        assert not decide(NURSE, "patients", "edit", grants)
        assert not decide(NURSE, "patients", "delete", grants)

    def test_default_deny_without_grant(self, grants: GrantSet) -> None:
        for action in Action:
            assert not decide(NURSE, "documents", action, grants)
            assert not decide(NURSE, "logs", action, grants)

    def test_role_isolation(self, grants: GrantSet) -> None:
        doctor = Principal(user_id="u-doc", tenant_id="clinic-a", role="doctor")
        assert decide(doctor, "documents", "delete", grants)
        assert not decide(doctor, "patients", "view", grants)

    @pytest.mark.parametrize("role", ["admin", "superadmin"])
    def test_admin_tier_bypass(self, role: str) -> None:
        admin = Principal(user_id="u-admin", tenant_id="clinic-a", role=role)
        empty = GrantSet("clinic-a")
        for info in Module.CATALOG:
            for action in Action:
                assert decide(admin, info.id, action, empty)

    def test_anonymous_denied(self, grants: GrantSet) -> None:
        assert not decide(None, "patients", "view", grants)

    def test_incomplete_principal_denied(self, grants: GrantSet) -> None:
        assert not decide(Principal(user_id="u"), "patients", "view", grants)
        assert not decide(Principal(user_id="u", role="assistant"), "patients", "view", grants)

    def test_unknown_action_denied(self, grants: GrantSet) -> None:
        assert not decide(NURSE, "patients", "approve", grants)

    def test_grants_of_other_tenant_ignored(self, grants: GrantSet) -> None:
        other = Principal(user_id="u-b", tenant_id="clinic-b", role="assistant")
        assert not decide(other, "patients", "view", grants)

    def test_role_comparison_is_exact(self, grants: GrantSet) -> None:
        """Roles are normalized when the profile is loaded, not at decision time."""
        shouting = Principal(user_id="u", tenant_id="clinic-a", role="Assistant")
        assert not decide(shouting, "patients", "view", grants)

    def test_module_permissions(self, grants: GrantSet) -> None:
        perms = module_permissions(NURSE, "patients", grants)
        assert perms == ModulePermission("patients", view=True, create=True)
