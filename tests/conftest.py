"""Shared pytest fixtures for admin IAM tests."""

import os

os.environ["RATE_LIMIT"] = ""
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from collections.abc import AsyncIterator, Awaitable, Callable, Iterable

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from admin_iam.core.database import store
from admin_iam.core.database.base import Base
from admin_iam.core.database.engine import get_db, load_models
from admin_iam.features.admin_users.models import AdminUser, AdminUserStatus, admin_user_roles
from admin_iam.features.auth.principal import Principal
from admin_iam.features.auth.system_groups import SystemGroup
from admin_iam.features.permissions.models import Permission
from admin_iam.features.roles.models import Role, role_permissions
from admin_iam.main import app


ADMIN_TOKEN = "admin-token"
DRIVER_TOKEN = "driver-token"
UNPROVISIONED_TOKEN = "unprovisioned-token"

ADMIN_PRINCIPAL = Principal(
    subject_id="sub-admin",
    groups=frozenset({SystemGroup.ADMIN}),
    email="root@example.com",
    claims={"sub": "sub-admin", "given_name": "Ada", "family_name": "Lovelace"},
)
DRIVER_PRINCIPAL = Principal(subject_id="sub-driver", groups=frozenset({SystemGroup.DRIVER}))
UNPROVISIONED_PRINCIPAL = Principal(subject_id="sub-ghost", groups=frozenset({SystemGroup.ADMIN}))


class StaticVerifier:
    """Identity verifier backed by a fixed token table."""

    def __init__(self, principals: dict[str, Principal]) -> None:
        self.principals = principals

    async def verify(self, token: str) -> Principal | None:
        return self.principals.get(token)


@pytest_asyncio.fixture()
async def session_factory(tmp_path) -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    """File-backed SQLite database with every table created, one per test."""

    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'iam.sqlite'}", poolclass=NullPool)
    load_models()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)

    await engine.dispose()


@pytest_asyncio.fixture()
async def session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncSession]:
    async with session_factory() as session:
        yield session


GrantAdmin = Callable[..., Awaitable[AdminUser]]


@pytest.fixture()
def grant_admin(session_factory: async_sessionmaker[AsyncSession]) -> GrantAdmin:
    """
    Provision an admin user holding one role with ``permission_keys``.

    Missing catalog keys are created on the fly.
    """

    async def _grant(
        subject_id: str,
        permission_keys: Iterable[str] = (),
        *,
        email: str | None = None,
        role_name: str | None = None,
        status: AdminUserStatus = AdminUserStatus.ACTIVE,
    ) -> AdminUser:
        async with session_factory() as session:
            admin = AdminUser(subject_id=subject_id, email=email or f"{subject_id}@example.com", status=status)
            role = Role(name=role_name or f"ROLE_{subject_id}")
            session.add_all([admin, role])
            await session.flush()

            for key in permission_keys:
                permission = Permission(key=key)
                session.add(permission)
                await session.flush()
                await session.execute(
                    store.insert_ignoring_duplicates(session, role_permissions),
                    [{"role_id": role.id, "permission_id": permission.id}],
                )

            await session.execute(
                store.insert_ignoring_duplicates(session, admin_user_roles),
                [{"admin_user_id": admin.id, "role_id": role.id}],
            )
            await session.commit()
            return admin

    return _grant


@pytest_asyncio.fixture()
async def client(session_factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncClient]:
    """HTTPX client bound to the app, with a static identity verifier and the test database."""

    async def override_get_db() -> AsyncIterator[AsyncSession]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.state.identity_verifier = StaticVerifier({
        ADMIN_TOKEN: ADMIN_PRINCIPAL,
        DRIVER_TOKEN: DRIVER_PRINCIPAL,
        UNPROVISIONED_TOKEN: UNPROVISIONED_PRINCIPAL,
    })

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as http:
        yield http

    app.dependency_overrides.clear()
    app.state.identity_verifier = None