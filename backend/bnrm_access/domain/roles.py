"""
Role identity: a role is either a built-in enum role or a dynamic role.

Both variants are keyed by their code string. ``role_identity`` decides which
variant a code designates and ``role_view`` dispatches on that variant;
callers branch on the identity type instead of re-checking the enum.
``merge_roles`` reconciles the two sources into one list.
"""
from __future__ import annotations

import unicodedata
import uuid
from dataclasses import dataclass, field
from typing import Iterable, Union

from ..auth.rbac_contract import (
    ROLE_GROUP_ORDER,
    ROLE_METADATA,
    AppRole,
    RoleClassification,
    RoleGroup,
    is_enum_role,
)
from ..models.custom_role import CustomRole


@dataclass(frozen=True)
class EnumRole:
    code: str

    @property
    def app_role(self) -> AppRole:
        return AppRole(self.code)


@dataclass(frozen=True)
class DynamicRole:
    id: uuid.UUID
    code: str


Role = Union[EnumRole, DynamicRole]


def role_identity(code: str, record: CustomRole | None) -> Role | None:
    """The role ``code`` designates, or None when it designates nothing.

    An enum code stays an enum role even when a dynamic record reuses it.
    """
    if is_enum_role(code):
        return EnumRole(code)
    if record is None:
        return None
    return DynamicRole(record.id, record.role_code)


@dataclass(frozen=True)
class RoleView:
    identity: Role
    name: str
    description: str | None
    category: RoleGroup
    classification: RoleClassification | None = None
    color: str | None = None
    is_active: bool = True
    custom_record_ids: tuple[uuid.UUID, ...] = field(default_factory=tuple)

    @property
    def code(self) -> str:
        return self.identity.code

    @property
    def id(self) -> uuid.UUID | None:
        return self.identity.id if isinstance(self.identity, DynamicRole) else None

    @property
    def is_system(self) -> bool:
        return isinstance(self.identity, EnumRole)

    @property
    def source(self) -> str:
        return "enum" if self.is_system else "dynamic"

    @property
    def has_custom_record(self) -> bool:
        return bool(self.custom_record_ids)


def sort_key(value: str) -> str:
    """Accent- and case-insensitive collation key for French labels."""
    decomposed = unicodedata.normalize("NFKD", value)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch)).casefold()


def enum_role_view(role: EnumRole, custom_record_ids: tuple[uuid.UUID, ...] = ()) -> RoleView:
    metadata = ROLE_METADATA[role.app_role]
    return RoleView(
        identity=role,
        name=metadata.display_name,
        description=metadata.description,
        category=metadata.group,
        classification=metadata.classification,
        color=metadata.color,
        custom_record_ids=custom_record_ids,
    )


def dynamic_role_view(role: DynamicRole, record: CustomRole) -> RoleView:
    try:
        category = RoleGroup(record.category)
    except ValueError:
        category = RoleGroup.USERS
    return RoleView(
        identity=role,
        name=record.name,
        description=record.description,
        category=category,
        is_active=record.is_active,
    )


def role_view(role: Role, record: CustomRole | None = None) -> RoleView:
    if isinstance(role, EnumRole):
        return enum_role_view(role, (record.id,) if record is not None else ())
    assert record is not None
    return dynamic_role_view(role, record)


def merge_roles(custom_records: Iterable[CustomRole]) -> list[RoleView]:
    """Union of every enum role and the given dynamic records, one entry per code.

    A dynamic record that reuses an enum code is folded into the enum entry.
    """
    custom_by_code: dict[str, list[CustomRole]] = {}
    for record in custom_records:
        custom_by_code.setdefault(record.role_code, []).append(record)

    views: dict[str, RoleView] = {}
    for role in AppRole:
        merged = custom_by_code.pop(role.value, [])
        views[role.value] = enum_role_view(
            EnumRole(role.value), tuple(record.id for record in merged)
        )

    for code, records in custom_by_code.items():
        # role_code is unique in storage; keep the newest record if that ever breaks
        record = max(records, key=lambda item: item.created_at)
        views[code] = dynamic_role_view(DynamicRole(record.id, code), record)

    group_rank = {group: index for index, group in enumerate(ROLE_GROUP_ORDER)}
    return sorted(
        views.values(),
        key=lambda view: (group_rank[view.category], sort_key(view.name), view.code),
    )
