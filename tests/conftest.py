"""Shared test fixtures for Finguard."""

import os
from types import SimpleNamespace

import pytest
from httpx import ASGITransport, AsyncClient

from finguard.audit.service import AuditLedger
from finguard.bootstrap.service import BootstrapService
from finguard.common.config import FinguardSettings
from finguard.common.database import DatabaseManager
from finguard.common.security import Principal
from finguard.policy.service import PolicyService
from finguard.subscriptions.gate import SubscriptionGate
from finguard.subscriptions.service import SubscriptionService
from finguard.tenants.directory import TenantDirectory
from finguard.tenants.schemas import CompanyInput
from finguard.tenants.service import TenantService
from finguard.vault.cipher import CredentialVault
from finguard.vault.service import CredentialService


SECRET_KEY = "test-secret-key-for-unit-tests"
HMAC_KEY = "test-hmac-key-for-unit-tests"
VAULT_KEY = "test-vault-key-for-unit-tests"
BILLING_API_KEY = "test-billing-api-key"
ACME_TAX_ID = "12.345.678/0001-90"


def make_settings(**overrides) -> FinguardSettings:
    defaults = {
        "secret_key": SECRET_KEY,
        "hmac_key": HMAC_KEY,
        "vault_key": VAULT_KEY,
        "billing_api_key": BILLING_API_KEY,
        "db_url": "sqlite+aiosqlite://",
    }
    defaults.update(overrides)
    return FinguardSettings(**defaults)


# ── Service-level fixtures ──

@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
async def db(settings):
    manager = DatabaseManager(settings)
    await manager.init()
    await manager.create_all()
    yield manager
    await manager.close()


@pytest.fixture
def stack(settings, db):
    """Every service wired the way finguard.deps wires them."""
    directory = TenantDirectory()
    gate = SubscriptionGate()
    policy = PolicyService(directory, gate)
    ledger = AuditLedger(settings, policy)
    vault = CredentialVault(settings)
    return SimpleNamespace(
        settings=settings,
        db=db,
        directory=directory,
        gate=gate,
        policy=policy,
        ledger=ledger,
        vault=vault,
        bootstrap=BootstrapService(settings, db, directory, ledger),
        tenants=TenantService(settings, directory, gate, policy, ledger),
        subscriptions=SubscriptionService(settings, gate, policy, ledger),
        credentials=CredentialService(vault, policy, ledger),
    )


@pytest.fixture
def bootstrap_company(stack):
    """Provision a company for ``principal_id`` and return its id."""
    async def _bootstrap(principal_id: str = "owner", name: str = "Acme", tax_id: str = ACME_TAX_ID):
        return await stack.bootstrap.bootstrap(
            Principal(id=principal_id), CompanyInput(name=name, tax_id=tax_id),
        )
    return _bootstrap


@pytest.fixture
def add_member(stack):
    """Have ``admin_id`` add ``member_id`` to ``company_id`` with ``role``."""
    async def _add(company_id: str, member_id: str, role, admin_id: str = "owner"):
        async with stack.db.get_session() as session:
            return await stack.tenants.add_member(
                session, Principal(id=admin_id), company_id, member_id, role,
            )
    return _add


# ── HTTP fixtures ──

@pytest.fixture
def app():
    """Create a test app with in-memory DB."""
    os.environ["FINGUARD_DB_URL"] = "sqlite+aiosqlite://"
    os.environ["FINGUARD_SECRET_KEY"] = SECRET_KEY
    os.environ["FINGUARD_HMAC_KEY"] = HMAC_KEY
    os.environ["FINGUARD_VAULT_KEY"] = VAULT_KEY
    os.environ["FINGUARD_BILLING_API_KEY"] = BILLING_API_KEY

    # Clear caches and singletons so new env vars take effect
    from finguard.common.config import get_settings
    get_settings.cache_clear()

    from finguard.deps import reset_singletons
    reset_singletons()

    from finguard.app import create_app
    return create_app()


@pytest.fixture
async def client(app):
    # Manually init DB since ASGITransport doesn't run lifespan
    from finguard.deps import get_db
    db = get_db()
    await db.init()
    await db.create_all()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    await db.close()


@pytest.fixture
def auth_headers(app):
    """Build the principal header the auth gateway would send."""
    from finguard.common.security import issue_principal_token

    def _headers(principal_id: str) -> dict[str, str]:
        return {"X-Finguard-Principal": issue_principal_token(principal_id)}
    return _headers


@pytest.fixture
def billing_headers():
    return {"X-Finguard-Api-Key": BILLING_API_KEY}


@pytest.fixture
def create_company(client, auth_headers):
    """Bootstrap a company over HTTP and return its id."""
    async def _create(principal_id: str = "owner", name: str = "Acme", tax_id: str = ACME_TAX_ID):
        resp = await client.post(
            "/bootstrap", json={"name": name, "tax_id": tax_id},
            headers=auth_headers(principal_id),
        )
        assert resp.status_code == 200, resp.text
        return resp.json()["company_id"]
    return _create


@pytest.fixture
def join_company(client, auth_headers):
    """Have ``admin_id`` add ``member_id`` over HTTP."""
    async def _join(company_id: str, member_id: str, role: str, admin_id: str = "owner"):
        resp = await client.post(
            f"/companies/{company_id}/members",
            json={"principal_id": member_id, "role": role},
            headers=auth_headers(admin_id),
        )
        assert resp.status_code == 201, resp.text
        return resp.json()
    return _join
