"""
Tests for the access-control contract: built-in roles, categories,
permission catalog and role code rules.
"""
import pytest

from bnrm_access.auth import rbac_contract
from bnrm_access.auth.rbac_contract import AppRole, PermissionCategory, RoleGroup


class TestBuiltInRoles:
    def test_enum_roles_match_user_role_type(self):
        assert rbac_contract.ENUM_ROLE_CODES == {
            "admin", "librarian", "researcher", "visitor", "public_user",
            "subscriber", "partner", "producer", "editor", "printer",
            "distributor", "author", "dac", "comptable", "direction", "read_only",
        }

    def test_every_role_has_metadata(self):
        assert set(rbac_contract.ROLE_METADATA) == set(AppRole)

    def test_display_names_are_french(self):
        assert rbac_contract.ROLE_METADATA[AppRole.LIBRARIAN].display_name == "Bibliothécaire"
        assert rbac_contract.ROLE_METADATA[AppRole.SUBSCRIBER].display_name == "Abonné"

    def test_administrative_group(self):
        administrative = {
            role for role, metadata in rbac_contract.ROLE_METADATA.items()
            if metadata.group is RoleGroup.ADMINISTRATIVE
        }
        assert administrative == {AppRole.ADMIN, AppRole.DIRECTION}

    def test_is_enum_role(self):
        assert rbac_contract.is_enum_role("librarian")
        assert not rbac_contract.is_enum_role("content_manager")


class TestCategories:
    def test_fifteen_categories(self):
        assert len(PermissionCategory) == 15

    def test_each_category_in_exactly_one_group(self):
        grouped = [c for _, categories in rbac_contract.CATEGORY_GROUPS for c in categories]
        assert len(grouped) == len(set(grouped)) == len(PermissionCategory)

    def test_group_titles(self):
        assert [title for title, _ in rbac_contract.CATEGORY_GROUPS] == [
            "Bibliothèque & Collections",
            "Services & Demandes",
            "Activités Culturelles",
            "Gestion & Administration",
        ]

    def test_parse_category_rejects_unknown(self):
        with pytest.raises(ValueError, match="Invalid permission category 'weather'"):
            rbac_contract.parse_category("weather")

    def test_parse_role_group(self):
        assert rbac_contract.parse_role_group("library") is RoleGroup.LIBRARY
        with pytest.raises(ValueError, match="Invalid role category"):
            rbac_contract.parse_role_group("Bibliothèque")


class TestPermissionCatalog:
    def test_names_are_unique(self):
        names = [name for name, _, _ in rbac_contract.PERMISSION_CATALOG]
        assert len(names) == len(set(names))

    def test_names_are_prefixed_by_category(self):
        for name, category, _ in rbac_contract.PERMISSION_CATALOG:
            assert name.startswith(f"{category.value}.")

    def test_admin_api_permissions_are_cataloged(self):
        assert rbac_contract.MANAGE_PERMISSIONS in rbac_contract.CATALOG_PERMISSION_NAMES
        assert rbac_contract.MANAGE_ROLES in rbac_contract.CATALOG_PERMISSION_NAMES

    def test_default_grants_reference_catalog_only(self):
        for permissions in rbac_contract.DEFAULT_ROLE_GRANTS.values():
            assert permissions <= rbac_contract.CATALOG_PERMISSION_NAMES

    def test_only_admin_manages_access_by_default(self):
        holders = {
            role for role, permissions in rbac_contract.DEFAULT_ROLE_GRANTS.items()
            if rbac_contract.MANAGE_PERMISSIONS in permissions
        }
        assert holders == {AppRole.ADMIN}

    def test_librarian_can_edit_collections_by_default(self):
        assert "collections.edit" in rbac_contract.DEFAULT_ROLE_GRANTS[AppRole.LIBRARIAN]


class TestRoleCodes:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("content_manager", "content_manager"),
            ("  Content Manager ", "content_manager"),
            ("Gestionnaire   Fonds\tAnciens", "gestionnaire_fonds_anciens"),
        ],
    )
    def test_normalize_role_code(self, raw, expected):
        assert rbac_contract.normalize_role_code(raw) == expected

    @pytest.mark.parametrize("code", ["", "1role", "role-name", "rôle", "_role"])
    def test_validate_role_code_rejects(self, code):
        with pytest.raises(ValueError):
            rbac_contract.validate_role_code(code)

    def test_validate_role_code_rejects_too_long(self):
        with pytest.raises(ValueError, match="at most 100 characters"):
            rbac_contract.validate_role_code("a" * 101)

    def test_migration_sql(self):
        assert rbac_contract.enum_role_migration_sql("content_manager") == (
            "ALTER TYPE public.user_role ADD VALUE 'content_manager';"
        )
