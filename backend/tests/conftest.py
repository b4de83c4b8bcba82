"""Shared test fixtures and configuration."""
import os

# Settings are read lazily; give the application a complete environment
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("ALLOWED_ORIGINS", "http://localhost:3000")


import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from bnrm_access.auth import rbac_contract
from bnrm_access.crud.permission import PermissionRepository
from bnrm_access.models import Base, Permission


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def catalog(session) -> dict[str, Permission]:
    """The full permission catalog, without any role grants."""
    repo = PermissionRepository(session)
    permissions = {}
    for name, category, description in rbac_contract.PERMISSION_CATALOG:
        permissions[name] = await repo.create(
            name=name, category=category.value, description=description
        )
    await session.commit()
    return permissions
