"""Integration settings — platform credentials stored through the vault."""

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from finguard.audit.service import AuditLedger, to_snapshot
from finguard.common.exceptions import CredentialNotFoundError
from finguard.common.models import utc_now
from finguard.common.security import Principal
from finguard.policy.engine import Capability
from finguard.policy.service import PolicyService
from finguard.vault.cipher import CredentialVault, mask_secret
from finguard.vault.models import CredentialModel

logger = logging.getLogger(__name__)

SECRET_FIELDS = ("api_key", "api_secret", "access_token")
# Audit snapshots never include ciphertext.
_AUDIT_FIELDS = ("principal_id", "platform", "is_active", "last_sync_at")


class CredentialService:
    """Every credential is owned by one principal; other members never see it."""

    def __init__(self, vault: CredentialVault, policy: PolicyService, ledger: AuditLedger):
        self.vault = vault
        self.policy = policy
        self.ledger = ledger

    async def _get_owned(
        self, session: AsyncSession, principal: Principal, company_id: str, credential_id: str,
    ) -> CredentialModel:
        result = await session.execute(
            select(CredentialModel).where(
                CredentialModel.id == credential_id,
                CredentialModel.company_id == company_id,
                CredentialModel.principal_id == principal.id,
            )
        )
        credential = result.scalar_one_or_none()
        if credential is None:
            raise CredentialNotFoundError()
        return credential

    def _audit_snapshot(self, credential: CredentialModel) -> dict[str, Any]:
        snap = to_snapshot(credential, _AUDIT_FIELDS)
        for field in SECRET_FIELDS:
            snap[f"has_{field}"] = getattr(credential, field) is not None
        return snap

    async def save_credential(
        self,
        session: AsyncSession,
        principal: Principal,
        company_id: str,
        platform: str,
        api_key: str | None = None,
        api_secret: str | None = None,
        access_token: str | None = None,
        is_active: bool = True,
        credential_id: str | None = None,
    ) -> CredentialModel:
        """Create, or with ``credential_id`` replace, a credential.

        Every secret is re-encrypted on every write; an omitted secret is
        cleared rather than kept.
        """
        await self.policy.require(session, principal, company_id, Capability.MANAGE_INTEGRATIONS)

        if credential_id is None:
            credential = CredentialModel(principal_id=principal.id, company_id=company_id)
            old_data = None
            action = "INSERT"
        else:
            credential = await self._get_owned(session, principal, company_id, credential_id)
            old_data = self._audit_snapshot(credential)
            action = "UPDATE"

        credential.platform = platform
        credential.is_active = is_active
        credential.api_key = self.vault.encrypt(api_key, principal.id)
        credential.api_secret = self.vault.encrypt(api_secret, principal.id)
        credential.access_token = self.vault.encrypt(access_token, principal.id)
        if credential_id is None:
            session.add(credential)
        await session.flush()

        await self.ledger.record(
            session, company_id, principal.id, "credentials", action,
            record_id=credential.id,
            old_data=old_data,
            new_data=self._audit_snapshot(credential),
        )
        return credential

    async def list_credentials(
        self,
        session: AsyncSession,
        principal: Principal,
        company_id: str,
        reveal: bool = False,
    ) -> list[dict[str, Any]]:
        """The caller's own credentials with secrets masked, or decrypted on ``reveal``."""
        capability = Capability.MANAGE_INTEGRATIONS if reveal else Capability.READ_RECORDS
        await self.policy.require(session, principal, company_id, capability)

        result = await session.execute(
            select(CredentialModel)
            .where(
                CredentialModel.company_id == company_id,
                CredentialModel.principal_id == principal.id,
            )
            .order_by(CredentialModel.platform.asc())
        )
        views = []
        for credential in result.scalars().all():
            view = {
                "id": credential.id,
                "platform": credential.platform,
                "is_active": credential.is_active,
                "last_sync_at": credential.last_sync_at,
                "created_at": credential.created_at,
                "updated_at": credential.updated_at,
            }
            for field in SECRET_FIELDS:
                plaintext = self.vault.decrypt(getattr(credential, field), principal.id)
                view[field] = plaintext if reveal else mask_secret(plaintext)
            views.append(view)
        return views

    async def set_active(
        self,
        session: AsyncSession,
        principal: Principal,
        company_id: str,
        credential_id: str,
        is_active: bool,
    ) -> CredentialModel:
        await self.policy.require(session, principal, company_id, Capability.MANAGE_INTEGRATIONS)
        credential = await self._get_owned(session, principal, company_id, credential_id)
        old_data = self._audit_snapshot(credential)
        credential.is_active = is_active
        await session.flush()
        await self.ledger.record(
            session, company_id, principal.id, "credentials", "UPDATE",
            record_id=credential.id,
            old_data=old_data,
            new_data=self._audit_snapshot(credential),
        )
        return credential

    async def mark_synced(
        self,
        session: AsyncSession,
        principal: Principal,
        company_id: str,
        credential_id: str,
    ) -> CredentialModel:
        """Stamp ``last_sync_at``. Sync bookkeeping is not audited."""
        await self.policy.require(session, principal, company_id, Capability.MANAGE_INTEGRATIONS)
        credential = await self._get_owned(session, principal, company_id, credential_id)
        credential.last_sync_at = utc_now()
        await session.flush()
        logger.info(
            "Credential %s synced", credential.id,
            extra={"principal_id": principal.id, "company_id": company_id},
        )
        return credential

    async def delete_credential(
        self,
        session: AsyncSession,
        principal: Principal,
        company_id: str,
        credential_id: str,
    ) -> None:
        await self.policy.require(session, principal, company_id, Capability.MANAGE_INTEGRATIONS)
        credential = await self._get_owned(session, principal, company_id, credential_id)
        old_data = self._audit_snapshot(credential)
        await session.delete(credential)
        await session.flush()
        await self.ledger.record(
            session, company_id, principal.id, "credentials", "DELETE",
            record_id=credential_id,
            old_data=old_data,
        )
