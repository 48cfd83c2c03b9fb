"""Dependency injection singletons for Finguard."""

from finguard.audit.service import AuditLedger
from finguard.bootstrap.service import BootstrapService
from finguard.common.config import get_settings
from finguard.common.database import DatabaseManager
from finguard.policy.service import PolicyService
from finguard.subscriptions.gate import SubscriptionGate
from finguard.subscriptions.service import SubscriptionService
from finguard.tenants.directory import TenantDirectory
from finguard.tenants.service import TenantService
from finguard.vault.cipher import CredentialVault
from finguard.vault.service import CredentialService

_db: DatabaseManager | None = None
_directory: TenantDirectory | None = None
_gate: SubscriptionGate | None = None
_policy: PolicyService | None = None
_ledger: AuditLedger | None = None
_vault: CredentialVault | None = None
_bootstrap: BootstrapService | None = None
_tenants: TenantService | None = None
_subscriptions: SubscriptionService | None = None
_credentials: CredentialService | None = None


def get_db() -> DatabaseManager:
    global _db
    if _db is None:
        _db = DatabaseManager(get_settings())
    return _db


def get_directory() -> TenantDirectory:
    global _directory
    if _directory is None:
        _directory = TenantDirectory()
    return _directory


def get_gate() -> SubscriptionGate:
    global _gate
    if _gate is None:
        _gate = SubscriptionGate()
    return _gate


def get_policy_service() -> PolicyService:
    global _policy
    if _policy is None:
        _policy = PolicyService(get_directory(), get_gate())
    return _policy


def get_audit_ledger() -> AuditLedger:
    global _ledger
    if _ledger is None:
        _ledger = AuditLedger(get_settings(), get_policy_service())
    return _ledger


def get_vault() -> CredentialVault:
    global _vault
    if _vault is None:
        _vault = CredentialVault(get_settings())
    return _vault


def get_bootstrap_service() -> BootstrapService:
    global _bootstrap
    if _bootstrap is None:
        _bootstrap = BootstrapService(
            get_settings(), get_db(), get_directory(), get_audit_ledger(),
        )
    return _bootstrap


def get_tenant_service() -> TenantService:
    global _tenants
    if _tenants is None:
        _tenants = TenantService(
            get_settings(), get_directory(), get_gate(),
            get_policy_service(), get_audit_ledger(),
        )
    return _tenants


def get_subscription_service() -> SubscriptionService:
    global _subscriptions
    if _subscriptions is None:
        _subscriptions = SubscriptionService(
            get_settings(), get_gate(), get_policy_service(), get_audit_ledger(),
        )
    return _subscriptions


def get_credential_service() -> CredentialService:
    global _credentials
    if _credentials is None:
        _credentials = CredentialService(
            get_vault(), get_policy_service(), get_audit_ledger(),
        )
    return _credentials


def reset_singletons() -> None:
    """Reset all singletons (for testing)."""
    global _db, _directory, _gate, _policy, _ledger, _vault
    global _bootstrap, _tenants, _subscriptions, _credentials
    _db = None
    _directory = None
    _gate = None
    _policy = None
    _ledger = None
    _vault = None
    _bootstrap = None
    _tenants = None
    _subscriptions = None
    _credentials = None
