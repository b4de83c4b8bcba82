"""
Access-control contract for the BNRM administration platform.

This module is the single source of truth for the parts of the access model
that live in code rather than in tables:

- the closed set of built-in roles (mirrors the ``user_role`` database enum)
  and their display metadata
- the permission categories shown by the administrative UI
- the permission catalog and default role grants used for seeding
- role code normalization and validation

Built-in roles cannot be renamed or deleted. Adding one requires a schema
migration that extends the ``user_role`` enum; row-level security policies
only apply to roles registered there.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Final


# ============================================================================
# BUILT-IN ROLES
# ============================================================================

class AppRole(str, Enum):
    """Roles baked into the ``user_role`` enum of the data store."""
    ADMIN = "admin"
    LIBRARIAN = "librarian"
    RESEARCHER = "researcher"
    VISITOR = "visitor"
    PUBLIC_USER = "public_user"
    SUBSCRIBER = "subscriber"
    PARTNER = "partner"
    PRODUCER = "producer"
    EDITOR = "editor"
    PRINTER = "printer"
    DISTRIBUTOR = "distributor"
    AUTHOR = "author"
    DAC = "dac"
    COMPTABLE = "comptable"
    DIRECTION = "direction"
    READ_ONLY = "read_only"


class RoleGroup(str, Enum):
    """Functional grouping of roles; also the category of custom roles."""
    ADMINISTRATIVE = "administrative"
    LIBRARY = "library"
    CULTURAL = "cultural"
    USERS = "users"
    PROFESSIONAL = "professional"


# Display order of role groups in the registry listing
ROLE_GROUP_ORDER: Final[tuple[RoleGroup, ...]] = (
    RoleGroup.ADMINISTRATIVE,
    RoleGroup.LIBRARY,
    RoleGroup.CULTURAL,
    RoleGroup.USERS,
    RoleGroup.PROFESSIONAL,
)

ROLE_GROUP_LABELS: Final[dict[RoleGroup, str]] = {
    RoleGroup.ADMINISTRATIVE: "Rôles Administratifs",
    RoleGroup.LIBRARY: "Rôles Bibliothèque & Collections",
    RoleGroup.CULTURAL: "Rôles Activités Culturelles",
    RoleGroup.USERS: "Rôles Utilisateurs",
    RoleGroup.PROFESSIONAL: "Rôles Professionnels",
}


class RoleClassification(str, Enum):
    INTERNAL = "internal"
    EXTERNAL = "external"
    PROFESSIONAL = "professional"


@dataclass(frozen=True)
class RoleMetadata:
    display_name: str
    description: str
    color: str
    group: RoleGroup
    classification: RoleClassification


ROLE_METADATA: Final[dict[AppRole, RoleMetadata]] = {
    AppRole.ADMIN: RoleMetadata(
        "Administrateur", "Accès complet au système", "text-red-600",
        RoleGroup.ADMINISTRATIVE, RoleClassification.INTERNAL,
    ),
    AppRole.DIRECTION: RoleMetadata(
        "Direction", "Vue d'ensemble et validation", "text-purple-600",
        RoleGroup.ADMINISTRATIVE, RoleClassification.INTERNAL,
    ),
    AppRole.LIBRARIAN: RoleMetadata(
        "Bibliothécaire", "Gestion des collections", "text-blue-600",
        RoleGroup.LIBRARY, RoleClassification.INTERNAL,
    ),
    AppRole.DAC: RoleMetadata(
        "DAC", "Direction Activités Culturelles", "text-green-600",
        RoleGroup.CULTURAL, RoleClassification.INTERNAL,
    ),
    AppRole.COMPTABLE: RoleMetadata(
        "Comptable", "Gestion financière", "text-yellow-600",
        RoleGroup.CULTURAL, RoleClassification.INTERNAL,
    ),
    AppRole.RESEARCHER: RoleMetadata(
        "Chercheur", "Accès recherche académique", "text-indigo-600",
        RoleGroup.USERS, RoleClassification.EXTERNAL,
    ),
    AppRole.PARTNER: RoleMetadata(
        "Partenaire", "Partenariats institutionnels", "text-teal-600",
        RoleGroup.USERS, RoleClassification.EXTERNAL,
    ),
    AppRole.SUBSCRIBER: RoleMetadata(
        "Abonné", "Services premium", "text-cyan-600",
        RoleGroup.USERS, RoleClassification.EXTERNAL,
    ),
    AppRole.PUBLIC_USER: RoleMetadata(
        "Utilisateur public", "Accès de base", "text-gray-600",
        RoleGroup.USERS, RoleClassification.EXTERNAL,
    ),
    AppRole.VISITOR: RoleMetadata(
        "Visiteur", "Consultation publique", "text-gray-400",
        RoleGroup.USERS, RoleClassification.EXTERNAL,
    ),
    AppRole.READ_ONLY: RoleMetadata(
        "Lecture seule", "Consultation uniquement", "text-slate-600",
        RoleGroup.USERS, RoleClassification.INTERNAL,
    ),
    AppRole.PRODUCER: RoleMetadata(
        "Producteur", "Producteur soumis au dépôt légal", "text-orange-600",
        RoleGroup.PROFESSIONAL, RoleClassification.PROFESSIONAL,
    ),
    AppRole.EDITOR: RoleMetadata(
        "Éditeur", "Maison d'édition déclarante", "text-amber-600",
        RoleGroup.PROFESSIONAL, RoleClassification.PROFESSIONAL,
    ),
    AppRole.PRINTER: RoleMetadata(
        "Imprimeur", "Imprimeur déclarant", "text-lime-600",
        RoleGroup.PROFESSIONAL, RoleClassification.PROFESSIONAL,
    ),
    AppRole.DISTRIBUTOR: RoleMetadata(
        "Distributeur", "Distributeur déclarant", "text-emerald-600",
        RoleGroup.PROFESSIONAL, RoleClassification.PROFESSIONAL,
    ),
    AppRole.AUTHOR: RoleMetadata(
        "Auteur", "Auteur déposant", "text-rose-600",
        RoleGroup.PROFESSIONAL, RoleClassification.PROFESSIONAL,
    ),
}

ENUM_ROLE_CODES: Final[frozenset[str]] = frozenset(role.value for role in AppRole)


# ============================================================================
# PERMISSION CATEGORIES
# ============================================================================

class PermissionCategory(str, Enum):
    COLLECTIONS = "collections"
    MANUSCRIPTS = "manuscripts"
    CONTENT = "content"
    LEGAL_DEPOSIT = "legal_deposit"
    REQUESTS = "requests"
    REPRODUCTIONS = "reproductions"
    DIGITIZATION = "digitization"
    SUBSCRIPTIONS = "subscriptions"
    CULTURAL_ACTIVITIES = "cultural_activities"
    EXHIBITIONS = "exhibitions"
    USERS = "users"
    PAYMENTS = "payments"
    WORKFLOWS = "workflows"
    TEMPLATES = "templates"
    SYSTEM = "system"


CATEGORY_LABELS: Final[dict[PermissionCategory, str]] = {
    PermissionCategory.COLLECTIONS: "Collections",
    PermissionCategory.MANUSCRIPTS: "Manuscrits",
    PermissionCategory.CONTENT: "Contenu",
    PermissionCategory.LEGAL_DEPOSIT: "Dépôt Légal",
    PermissionCategory.REQUESTS: "Demandes",
    PermissionCategory.REPRODUCTIONS: "Reproductions",
    PermissionCategory.DIGITIZATION: "Numérisation",
    PermissionCategory.SUBSCRIPTIONS: "Abonnements",
    PermissionCategory.CULTURAL_ACTIVITIES: "Activités Culturelles",
    PermissionCategory.EXHIBITIONS: "Expositions",
    PermissionCategory.USERS: "Utilisateurs",
    PermissionCategory.PAYMENTS: "Paiements",
    PermissionCategory.WORKFLOWS: "Workflows",
    PermissionCategory.TEMPLATES: "Modèles",
    PermissionCategory.SYSTEM: "Système",
}

# Module groups as laid out on the role permissions screen
CATEGORY_GROUPS: Final[tuple[tuple[str, tuple[PermissionCategory, ...]], ...]] = (
    ("Bibliothèque & Collections", (
        PermissionCategory.COLLECTIONS,
        PermissionCategory.MANUSCRIPTS,
        PermissionCategory.CONTENT,
        PermissionCategory.LEGAL_DEPOSIT,
    )),
    ("Services & Demandes", (
        PermissionCategory.REQUESTS,
        PermissionCategory.REPRODUCTIONS,
        PermissionCategory.DIGITIZATION,
        PermissionCategory.SUBSCRIPTIONS,
    )),
    ("Activités Culturelles", (
        PermissionCategory.CULTURAL_ACTIVITIES,
        PermissionCategory.EXHIBITIONS,
    )),
    ("Gestion & Administration", (
        PermissionCategory.USERS,
        PermissionCategory.PAYMENTS,
        PermissionCategory.WORKFLOWS,
        PermissionCategory.TEMPLATES,
        PermissionCategory.SYSTEM,
    )),
)

CATEGORY_CODES: Final[frozenset[str]] = frozenset(c.value for c in PermissionCategory)


# ============================================================================
# PERMISSION CATALOG
# ============================================================================

# Permissions guarding the administrative API itself
MANAGE_PERMISSIONS: Final[str] = "users.manage_permissions"
MANAGE_ROLES: Final[str] = "users.manage_roles"

PERMISSION_CATALOG: Final[tuple[tuple[str, PermissionCategory, str], ...]] = (
    ("collections.view", PermissionCategory.COLLECTIONS, "Consulter les collections"),
    ("collections.create", PermissionCategory.COLLECTIONS, "Ajouter des documents aux collections"),
    ("collections.edit", PermissionCategory.COLLECTIONS, "Modifier les notices des collections"),
    ("collections.delete", PermissionCategory.COLLECTIONS, "Retirer des documents des collections"),
    ("manuscripts.view", PermissionCategory.MANUSCRIPTS, "Consulter les manuscrits numérisés"),
    ("manuscripts.view_restricted", PermissionCategory.MANUSCRIPTS, "Consulter les manuscrits à accès restreint"),
    ("manuscripts.manage", PermissionCategory.MANUSCRIPTS, "Gérer le fonds de manuscrits"),
    ("manuscripts.access_approve", PermissionCategory.MANUSCRIPTS, "Approuver les demandes d'accès aux manuscrits"),
    ("manuscripts.conservation", PermissionCategory.MANUSCRIPTS, "Suivre la conservation et la restauration"),
    ("content.view", PermissionCategory.CONTENT, "Consulter le contenu éditorial"),
    ("content.create", PermissionCategory.CONTENT, "Rédiger du contenu éditorial"),
    ("content.edit", PermissionCategory.CONTENT, "Modifier le contenu éditorial"),
    ("content.publish", PermissionCategory.CONTENT, "Publier le contenu éditorial"),
    ("legal_deposit.view_own", PermissionCategory.LEGAL_DEPOSIT, "Consulter ses propres déclarations"),
    ("legal_deposit.view_all", PermissionCategory.LEGAL_DEPOSIT, "Consulter toutes les déclarations"),
    ("legal_deposit.submit", PermissionCategory.LEGAL_DEPOSIT, "Soumettre une déclaration de dépôt légal"),
    ("legal_deposit.validate", PermissionCategory.LEGAL_DEPOSIT, "Valider une déclaration de dépôt légal"),
    ("legal_deposit.reject", PermissionCategory.LEGAL_DEPOSIT, "Rejeter une déclaration de dépôt légal"),
    ("legal_deposit.archive", PermissionCategory.LEGAL_DEPOSIT, "Archiver les dépôts traités"),
    ("requests.view", PermissionCategory.REQUESTS, "Consulter les demandes"),
    ("requests.create", PermissionCategory.REQUESTS, "Créer une demande"),
    ("requests.process", PermissionCategory.REQUESTS, "Traiter les demandes"),
    ("reproductions.request", PermissionCategory.REPRODUCTIONS, "Demander une reproduction"),
    ("reproductions.process", PermissionCategory.REPRODUCTIONS, "Traiter les demandes de reproduction"),
    ("reproductions.validate", PermissionCategory.REPRODUCTIONS, "Valider les demandes de reproduction"),
    ("digitization.request", PermissionCategory.DIGITIZATION, "Demander une numérisation"),
    ("digitization.manage", PermissionCategory.DIGITIZATION, "Piloter les campagnes de numérisation"),
    ("subscriptions.view", PermissionCategory.SUBSCRIPTIONS, "Consulter les abonnements"),
    ("subscriptions.manage", PermissionCategory.SUBSCRIPTIONS, "Gérer les formules d'abonnement"),
    ("cultural_activities.view", PermissionCategory.CULTURAL_ACTIVITIES, "Consulter le programme culturel"),
    ("cultural_activities.manage", PermissionCategory.CULTURAL_ACTIVITIES, "Gérer les activités culturelles"),
    ("exhibitions.view", PermissionCategory.EXHIBITIONS, "Consulter les expositions"),
    ("exhibitions.manage", PermissionCategory.EXHIBITIONS, "Gérer les expositions"),
    ("users.view", PermissionCategory.USERS, "Consulter les comptes utilisateurs"),
    ("users.manage", PermissionCategory.USERS, "Gérer les comptes utilisateurs"),
    (MANAGE_ROLES, PermissionCategory.USERS, "Créer, publier et désactiver des rôles"),
    (MANAGE_PERMISSIONS, PermissionCategory.USERS, "Configurer les permissions des rôles et des utilisateurs"),
    ("payments.view", PermissionCategory.PAYMENTS, "Consulter les paiements"),
    ("payments.process", PermissionCategory.PAYMENTS, "Encaisser les paiements"),
    ("payments.refund", PermissionCategory.PAYMENTS, "Rembourser un paiement"),
    ("workflows.view", PermissionCategory.WORKFLOWS, "Consulter les workflows"),
    ("workflows.manage", PermissionCategory.WORKFLOWS, "Configurer les workflows"),
    ("templates.view", PermissionCategory.TEMPLATES, "Consulter les modèles de documents"),
    ("templates.manage", PermissionCategory.TEMPLATES, "Gérer les modèles de documents"),
    ("system.configure", PermissionCategory.SYSTEM, "Configurer le système"),
    ("system.view_logs", PermissionCategory.SYSTEM, "Consulter les journaux d'activité"),
)

CATALOG_PERMISSION_NAMES: Final[frozenset[str]] = frozenset(
    name for name, _, _ in PERMISSION_CATALOG
)

_VIEW_PERMISSIONS: Final[frozenset[str]] = frozenset(
    name for name in CATALOG_PERMISSION_NAMES if name.endswith(".view")
)

_PUBLIC_CONSULTATION: Final[frozenset[str]] = frozenset({
    "collections.view",
    "content.view",
    "cultural_activities.view",
    "exhibitions.view",
})

_PROFESSIONAL_DEPOSIT: Final[frozenset[str]] = frozenset({
    *_PUBLIC_CONSULTATION,
    "legal_deposit.view_own",
    "legal_deposit.submit",
    "requests.create",
})


# ============================================================================
# DEFAULT ROLE GRANTS (seeding only)
# ============================================================================

# Runtime checks go through the resolver, never through this mapping.
DEFAULT_ROLE_GRANTS: Final[dict[AppRole, frozenset[str]]] = {
    AppRole.ADMIN: CATALOG_PERMISSION_NAMES,
    AppRole.DIRECTION: frozenset({
        *_VIEW_PERMISSIONS,
        "legal_deposit.view_all",
        "legal_deposit.validate",
        "manuscripts.access_approve",
        "reproductions.validate",
        "content.publish",
        "system.view_logs",
    }),
    AppRole.LIBRARIAN: frozenset({
        "collections.view",
        "collections.create",
        "collections.edit",
        "collections.delete",
        "manuscripts.view",
        "manuscripts.view_restricted",
        "manuscripts.manage",
        "manuscripts.conservation",
        "content.view",
        "content.create",
        "content.edit",
        "legal_deposit.view_all",
        "legal_deposit.validate",
        "legal_deposit.reject",
        "legal_deposit.archive",
        "requests.view",
        "requests.process",
        "reproductions.process",
        "digitization.manage",
    }),
    AppRole.DAC: frozenset({
        *_PUBLIC_CONSULTATION,
        "cultural_activities.manage",
        "exhibitions.manage",
        "requests.view",
        "requests.process",
    }),
    AppRole.COMPTABLE: frozenset({
        "payments.view",
        "payments.process",
        "payments.refund",
        "subscriptions.view",
        "reproductions.validate",
    }),
    AppRole.RESEARCHER: frozenset({
        *_PUBLIC_CONSULTATION,
        "manuscripts.view",
        "manuscripts.view_restricted",
        "requests.create",
        "reproductions.request",
        "digitization.request",
    }),
    AppRole.PARTNER: frozenset({
        *_PUBLIC_CONSULTATION,
        "requests.create",
        "cultural_activities.manage",
    }),
    AppRole.SUBSCRIBER: frozenset({
        *_PUBLIC_CONSULTATION,
        "manuscripts.view",
        "subscriptions.view",
        "reproductions.request",
    }),
    AppRole.PUBLIC_USER: frozenset({*_PUBLIC_CONSULTATION, "requests.create"}),
    AppRole.VISITOR: _PUBLIC_CONSULTATION,
    AppRole.READ_ONLY: _VIEW_PERMISSIONS,
    AppRole.PRODUCER: _PROFESSIONAL_DEPOSIT,
    AppRole.EDITOR: _PROFESSIONAL_DEPOSIT,
    AppRole.PRINTER: _PROFESSIONAL_DEPOSIT,
    AppRole.DISTRIBUTOR: _PROFESSIONAL_DEPOSIT,
    AppRole.AUTHOR: _PROFESSIONAL_DEPOSIT,
}


# ============================================================================
# ROLE CODES
# ============================================================================

ROLE_CODE_MAX_LENGTH: Final[int] = 100
ROLE_CODE_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[a-z][a-z0-9_]*$")
_WHITESPACE_RUN = re.compile(r"\s+")


def normalize_role_code(raw_code: str) -> str:
    """Normalize a role code the way the role creation form does.

    ``"  Content Manager "`` becomes ``"content_manager"``.
    """
    return _WHITESPACE_RUN.sub("_", raw_code.strip().lower())


def validate_role_code(code: str) -> None:
    """
    Raises:
        ValueError: If the code is empty, too long or not snake_case
    """
    if not code:
        raise ValueError("Role code is required")
    if len(code) > ROLE_CODE_MAX_LENGTH:
        raise ValueError(f"Role code must be at most {ROLE_CODE_MAX_LENGTH} characters")
    if not ROLE_CODE_PATTERN.match(code):
        raise ValueError(
            f"Invalid role code '{code}'. "
            "Use lowercase letters, digits and underscores, starting with a letter."
        )


def is_enum_role(code: str) -> bool:
    return code in ENUM_ROLE_CODES


def enum_role_migration_sql(code: str) -> str:
    """SQL an operator must apply so a custom role becomes enforceable by RLS."""
    validate_role_code(code)
    return f"ALTER TYPE public.user_role ADD VALUE '{code}';"


def parse_category(value: str) -> PermissionCategory:
    """
    Raises:
        ValueError: If the value is not a known permission category
    """
    try:
        return PermissionCategory(value)
    except ValueError:
        raise ValueError(
            f"Invalid permission category '{value}'. "
            f"Must be one of: {', '.join(sorted(CATEGORY_CODES))}"
        ) from None


def parse_role_group(value: str) -> RoleGroup:
    """
    Raises:
        ValueError: If the value is not a known role group
    """
    try:
        return RoleGroup(value)
    except ValueError:
        raise ValueError(
            f"Invalid role category '{value}'. "
            f"Must be one of: {', '.join(group.value for group in ROLE_GROUP_ORDER)}"
        ) from None


# Validate the contract at import time (fail-fast)
def _validate_contract() -> None:
    errors = []

    missing_metadata = set(AppRole) - set(ROLE_METADATA)
    if missing_metadata:
        errors.append(
            f"Roles without metadata: {sorted(role.value for role in missing_metadata)}"
        )

    missing_labels = set(PermissionCategory) - set(CATEGORY_LABELS)
    if missing_labels:
        errors.append(
            f"Categories without label: {sorted(c.value for c in missing_labels)}"
        )

    grouped = [category for _, categories in CATEGORY_GROUPS for category in categories]
    if sorted(grouped) != sorted(PermissionCategory):
        errors.append("Every category must appear in exactly one category group")

    if len(CATALOG_PERMISSION_NAMES) != len(PERMISSION_CATALOG):
        errors.append("Permission catalog contains duplicate names")

    for name, category, _ in PERMISSION_CATALOG:
        if name.split(".", 1)[0] != category.value:
            errors.append(f"Permission '{name}' is not prefixed by its category '{category.value}'")

    for role, permissions in DEFAULT_ROLE_GRANTS.items():
        unknown = permissions - CATALOG_PERMISSION_NAMES
        if unknown:
            errors.append(f"Role '{role.value}' grants unknown permissions: {sorted(unknown)}")

    if errors:
        raise RuntimeError(
            "Access-control contract validation failed:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )


_validate_contract()
