"""
System smoke test: full API flow in-process with SQLite.
Verifies health, auth, role management and permission enforcement.
Uses a temp file DB so all connections share the same database.
"""

import os
import tempfile
import uuid
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool

# Use file-based SQLite so all connections share the same DB (in-memory is per-connection)
_tmp = tempfile.NamedTemporaryFile(suffix=".db", delete=False)
_tmp.close()
TEST_DB_PATH = _tmp.name
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{TEST_DB_PATH}"
# Force config reload so app uses test DB
from grc_backend.config import get_settings
get_settings.cache_clear()

from grc_backend.api.deps import get_permission_checker
from grc_backend.database import get_db
from grc_backend.kernel.cache import TTLCache
from grc_backend.kernel.identity.password import PasswordHasher
from grc_backend.kernel.models import Base, Role, Tenant, User, UserRoleAssignment
from grc_backend.kernel.permissions.checker import PermissionChecker
from grc_backend.kernel.roles.catalog import seed_permission_catalog
from grc_backend.kernel.roles.repository import RoleRepository
from grc_backend.main import app


TEST_ENGINE = create_async_engine(
    f"sqlite+aiosqlite:///{TEST_DB_PATH}",
    echo=False,
    connect_args={"check_same_thread": False},
    poolclass=NullPool,
)
TEST_SESSION_MAKER = async_sessionmaker(
    TEST_ENGINE,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)

PASSWORD = "SecurePass123"
_hasher = PasswordHasher(rounds=4)


async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
    async with TEST_SESSION_MAKER() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


@pytest.fixture(scope="module", autouse=True)
def _remove_test_db():
    """Delete the temp DB file once the module is done."""
    yield
    if os.path.exists(TEST_DB_PATH):
        os.unlink(TEST_DB_PATH)


@pytest_asyncio.fixture
async def client():
    """Async client on the test DB with a fresh role cache."""
    async with TEST_ENGINE.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async with TEST_SESSION_MAKER() as session:
        await seed_permission_catalog(session)

    # The lifespan does not run under ASGITransport
    app.state.role_cache = TTLCache()
    app.dependency_overrides[get_db] = override_get_db
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
        ) as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()


async def _create_org() -> dict:
    """
    A tenant with three users:
      admin   holds "Admin" (no explicit grants)
      editor  holds "Editor" (roles.view, roles.manage, audit.view, tenants.view)
      viewer  holds "Viewer" (roles.view)
    """
    suffix = uuid.uuid4().hex[:8]
    async with TEST_SESSION_MAKER() as session:
        tenant = Tenant(name=f"Org {suffix}", domain=f"{suffix}.example")
        session.add(tenant)
        await session.flush()

        repo = RoleRepository(session)
        catalog = {p.code: p.id for p in await repo.list_permissions()}
        grants = {
            "Admin": [],
            "Editor": ["roles.view", "roles.manage", "audit.view", "tenants.view"],
            "Viewer": ["roles.view"],
        }
        users = {}
        roles = {}
        for name, codes in grants.items():
            role = Role(tenant_id=tenant.id, name=name)
            user = User(
                tenant_id=tenant.id,
                email=f"{name.lower()}-{suffix}@example.com",
                password_hash=_hasher.hash(PASSWORD),
            )
            session.add_all([role, user])
            await session.flush()
            session.add(UserRoleAssignment(user_id=user.id, role_id=role.id))
            await session.commit()
            await repo.set_role_permissions(role.id, [catalog[c] for c in codes])
            users[name.lower()] = user
            roles[name.lower()] = role.id

    return {"tenant": tenant, "users": users, "roles": roles}


@pytest_asyncio.fixture
async def org(client):
    return await _create_org()


async def _login(client: AsyncClient, user: User) -> dict:
    r = await client.post(
        "/api/v1/auth/login",
        json={"email": user.email, "password": PASSWORD},
    )
    assert r.status_code == 200, r.text
    return {"Authorization": f"Bearer {r.json()['access_token']}"}


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    """Health endpoint responds with cache counters."""
    r = await client.get("/health")
    assert r.status_code == 200
    data = r.json()
    assert data["status"] == "ok"
    assert "version" in data
    assert data["role_cache"]["size"] == 0


@pytest.mark.asyncio
async def test_login_and_me(client: AsyncClient, org):
    headers = await _login(client, org["users"]["viewer"])
    
    r = await client.get("/api/v1/auth/me", headers=headers)
    
    assert r.status_code == 200, r.text
    data = r.json()
    assert data["roles"] == ["Viewer"]
    assert data["permissions"] == ["roles.view"]
    assert data["is_superuser"] is False
    
    r = await client.get("/api/v1/roles/me/permissions", headers=headers)
    assert r.status_code == 200
    assert r.json() == ["roles.view"]


@pytest.mark.asyncio
async def test_login_wrong_password(client: AsyncClient, org):
    r = await client.post(
        "/api/v1/auth/login",
        json={"email": org["users"]["viewer"].email, "password": "WrongPass123"},
    )
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_unauthenticated_request(client: AsyncClient):
    r = await client.get("/api/v1/roles")
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_viewer_can_list_but_not_create(client: AsyncClient, org):
    headers = await _login(client, org["users"]["viewer"])
    
    r = await client.get("/api/v1/roles", headers=headers)
    assert r.status_code == 200
    assert {role["name"] for role in r.json()} == {"Admin", "Editor", "Viewer"}
    
    r = await client.post("/api/v1/roles", json={"name": "Auditor"}, headers=headers)
    assert r.status_code == 403
    assert r.json()["detail"] == "Insufficient permissions"


@pytest.mark.asyncio
async def test_admin_bypasses_checks(client: AsyncClient, org):
    headers = await _login(client, org["users"]["admin"])
    
    r = await client.post("/api/v1/roles", json={"name": "Auditor"}, headers=headers)
    assert r.status_code == 201, r.text
    
    r = await client.get("/api/v1/auth/me", headers=headers)
    assert r.json()["is_superuser"] is True
    assert "asset.view" in r.json()["permissions"]


@pytest.mark.asyncio
async def test_revoke_takes_effect_on_next_request(client: AsyncClient, org):
    """A cached permission set is dropped as soon as the role changes."""
    admin = await _login(client, org["users"]["admin"])
    viewer = await _login(client, org["users"]["viewer"])
    viewer_role = org["roles"]["viewer"]
    
    r = await client.get("/api/v1/roles", headers=viewer)
    assert r.status_code == 200
    
    r = await client.delete(f"/api/v1/roles/{viewer_role}/permissions/roles.view", headers=admin)
    assert r.status_code == 200, r.text
    assert r.json()["changed"] is True
    
    r = await client.get("/api/v1/roles", headers=viewer)
    assert r.status_code == 403
    
    r = await client.post(f"/api/v1/roles/{viewer_role}/permissions/roles.view", headers=admin)
    assert r.status_code == 200
    
    r = await client.get("/api/v1/roles", headers=viewer)
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_revoke_unknown_or_missing_permission(client: AsyncClient, org):
    admin = await _login(client, org["users"]["admin"])
    viewer_role = org["roles"]["viewer"]
    
    r = await client.delete(f"/api/v1/roles/{viewer_role}/permissions/no.such.code", headers=admin)
    assert r.status_code == 404
    
    r = await client.delete(f"/api/v1/roles/{viewer_role}/permissions/risk.edit", headers=admin)
    assert r.status_code == 200
    assert r.json()["changed"] is False


@pytest.mark.asyncio
async def test_role_lifecycle(client: AsyncClient, org):
    headers = await _login(client, org["users"]["editor"])
    
    r = await client.get("/api/v1/permissions", headers=headers)
    assert r.status_code == 200
    catalog = {p["code"]: p["id"] for p in r.json()}
    
    r = await client.post(
        "/api/v1/roles",
        json={"name": "Risk Owner", "permission_ids": [catalog["risk.view"]]},
        headers=headers,
    )
    assert r.status_code == 201, r.text
    role_id = r.json()["id"]
    assert r.json()["permissions"] == ["risk.view"]
    
    r = await client.post("/api/v1/roles", json={"name": "Risk Owner"}, headers=headers)
    assert r.status_code == 409
    
    r = await client.post("/api/v1/roles", json={"name": "   "}, headers=headers)
    assert r.status_code == 400
    
    r = await client.put(
        f"/api/v1/roles/{role_id}/permissions",
        json={"permission_ids": [catalog["risk.view"], catalog["risk.assess"]]},
        headers=headers,
    )
    assert r.status_code == 200
    assert r.json()["permissions"] == ["risk.assess", "risk.view"]
    
    r = await client.patch(f"/api/v1/roles/{role_id}", json={"description": "Owns risks"}, headers=headers)
    assert r.status_code == 200
    assert r.json()["description"] == "Owns risks"
    
    r = await client.get(f"/api/v1/roles/{role_id}", headers=headers)
    assert r.status_code == 200
    assert r.json()["name"] == "Risk Owner"
    
    r = await client.delete(f"/api/v1/roles/{role_id}", headers=headers)
    assert r.status_code == 204
    
    r = await client.get(f"/api/v1/roles/{role_id}", headers=headers)
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_role_assignment(client: AsyncClient, org):
    admin = await _login(client, org["users"]["admin"])
    viewer = org["users"]["viewer"]
    editor_role = org["roles"]["editor"]
    
    r = await client.post(f"/api/v1/users/{viewer.id}/roles/{editor_role}", headers=admin)
    assert r.status_code == 204, r.text
    
    r = await client.post(f"/api/v1/users/{viewer.id}/roles/{editor_role}", headers=admin)
    assert r.status_code == 409
    
    r = await client.get(f"/api/v1/roles/{editor_role}/users", headers=admin)
    assert viewer.email in {m["email"] for m in r.json()}
    
    r = await client.delete(f"/api/v1/roles/{editor_role}", headers=admin)
    assert r.status_code == 409
    
    r = await client.delete(f"/api/v1/users/{viewer.id}/roles/{editor_role}", headers=admin)
    assert r.status_code == 204
    
    r = await client.delete(f"/api/v1/users/{viewer.id}/roles/{editor_role}", headers=admin)
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_other_tenant_roles_are_invisible(client: AsyncClient, org):
    other = await _create_org()
    headers = await _login(client, org["users"]["editor"])
    
    r = await client.get(f"/api/v1/roles/{other['roles']['viewer']}", headers=headers)
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_audit_and_tenant(client: AsyncClient, org):
    headers = await _login(client, org["users"]["editor"])
    await client.post("/api/v1/roles", json={"name": "Audited"}, headers=headers)
    
    r = await client.get("/api/v1/audit", params={"action": "role.created"}, headers=headers)
    assert r.status_code == 200, r.text
    data = r.json()
    assert data["total"] == 1
    assert data["items"][0]["payload"]["name"] == "Audited"
    
    r = await client.get("/api/v1/tenants/current", headers=headers)
    assert r.status_code == 200
    assert r.json()["id"] == str(org["tenant"].id)


@pytest.mark.asyncio
async def test_failing_permission_lookup_denies(client: AsyncClient, org):
    class BrokenLookup:
        async def get_role_permissions(self, role_id):
            raise RuntimeError("storage down")
    
    headers = await _login(client, org["users"]["viewer"])
    app.dependency_overrides[get_permission_checker] = lambda: PermissionChecker(BrokenLookup())
    
    r = await client.get("/api/v1/roles", headers=headers)
    
    assert r.status_code == 403
    assert r.json()["detail"] == "Permission check failed"
