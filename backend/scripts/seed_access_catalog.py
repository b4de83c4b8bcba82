"""
Seed the permission catalog and the default grants of the built-in roles.

Safe to re-run: existing permissions are kept and grants an administrator
already changed are left alone. Optionally assigns the ``admin`` role to a
first user so the administrative API becomes reachable.

Usage:
    python -m scripts.seed_access_catalog [--admin-user-id UUID]
"""
import argparse
import asyncio
import logging
import uuid
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from bnrm_access.auth import rbac_contract
from bnrm_access.crud.permission import PermissionRepository
from bnrm_access.crud.role_permission import RolePermissionRepository
from bnrm_access.crud.user_role import UserRoleRepository
from bnrm_access.database import AsyncSessionLocal, dispose_engine

logger = logging.getLogger("bnrm_access.seed")


@dataclass
class SeedReport:
    permissions_created: int = 0
    permissions_existing: int = 0
    grants_created: int = 0
    admin_assigned: bool = False


async def seed_access_catalog(
    session: AsyncSession, admin_user_id: uuid.UUID | None = None
) -> SeedReport:
    report = SeedReport()
    permission_repo = PermissionRepository(session)
    role_permission_repo = RolePermissionRepository(session)

    permission_ids: dict[str, uuid.UUID] = {}
    for name, category, description in rbac_contract.PERMISSION_CATALOG:
        existing = await permission_repo.get_by_name(name)
        if existing is not None:
            permission_ids[name] = existing.id
            report.permissions_existing += 1
            continue
        permission = await permission_repo.create(
            name=name, category=category.value, description=description
        )
        permission_ids[name] = permission.id
        report.permissions_created += 1

    for role, permission_names in rbac_contract.DEFAULT_ROLE_GRANTS.items():
        for name in sorted(permission_names):
            if await role_permission_repo.get(role.value, permission_ids[name]) is not None:
                continue
            await role_permission_repo.upsert(role.value, permission_ids[name], True)
            report.grants_created += 1

    if admin_user_id is not None:
        await UserRoleRepository(session).assign(admin_user_id, rbac_contract.AppRole.ADMIN.value)
        report.admin_assigned = True

    await session.commit()
    logger.info(
        "access catalog seeded permissions_created=%s permissions_existing=%s "
        "grants_created=%s admin_assigned=%s",
        report.permissions_created,
        report.permissions_existing,
        report.grants_created,
        report.admin_assigned,
    )
    return report


async def main(admin_user_id: uuid.UUID | None) -> None:
    try:
        async with AsyncSessionLocal() as session:
            await seed_access_catalog(session, admin_user_id)
    finally:
        await dispose_engine()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--admin-user-id", type=uuid.UUID, default=None)
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    asyncio.run(main(args.admin_user_id))
