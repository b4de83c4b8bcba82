from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from ..auth import rbac_contract
from ..crud.permission import PermissionRepository
from ..models.permission import Permission
from .transport import translate_transport_errors


@dataclass(frozen=True)
class CategoryInfo:
    code: str
    label: str
    group: str
    permission_count: int


class PermissionCatalogService:
    """Read-only access to the permission catalog.

    Catalog rows are created by migrations and the seed script only.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.permission_repo = PermissionRepository(session)

    @translate_transport_errors
    async def list_all(self) -> list[Permission]:
        return await self.permission_repo.list_all()

    @translate_transport_errors
    async def list_by_category(self, category: str) -> list[Permission]:
        if category not in rbac_contract.CATEGORY_CODES:
            return []
        return await self.permission_repo.list_by_category(category)

    @translate_transport_errors
    async def list_categories(self) -> list[CategoryInfo]:
        counts = await self.permission_repo.count_by_category()
        return [
            CategoryInfo(
                code=category.value,
                label=rbac_contract.CATEGORY_LABELS[category],
                group=group_label,
                permission_count=counts.get(category.value, 0),
            )
            for group_label, categories in rbac_contract.CATEGORY_GROUPS
            for category in categories
        ]
