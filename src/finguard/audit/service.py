"""Audit ledger — record, query, and verify privileged mutations."""

import hashlib
import hmac as hmac_mod
import json
import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Iterable

from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from finguard.audit.models import AuditChainHeadModel, AuditRecordModel
from finguard.common.config import FinguardSettings
from finguard.common.security import Principal
from finguard.policy.engine import Capability
from finguard.policy.service import PolicyService

logger = logging.getLogger(__name__)


def to_snapshot(obj: Any, fields: Iterable[str]) -> dict[str, Any]:
    """JSON-safe copy of selected model attributes for old/new snapshots."""
    snap: dict[str, Any] = {}
    for field in fields:
        value = getattr(obj, field)
        if isinstance(value, datetime):
            value = value.isoformat()
        elif isinstance(value, Decimal):
            value = str(value)
        snap[field] = value
    return snap


class AuditLedger:
    """Append-only, hash-chained log per company.

    ``record`` is the only write. It must be called inside the same session
    transaction as the mutation it documents, after that mutation passed the
    policy check, so the two commit or roll back together.
    """

    def __init__(self, settings: FinguardSettings, policy: PolicyService):
        self.settings = settings
        self.policy = policy

    # ── Write ──

    async def record(
        self,
        session: AsyncSession,
        company_id: str,
        principal_id: str | None,
        table_name: str,
        action: str,
        record_id: str | None = None,
        old_data: dict[str, Any] | None = None,
        new_data: dict[str, Any] | None = None,
    ) -> AuditRecordModel:
        """Append an entry to the company's chain. Returns the stored record."""
        sequence, prev_hash = await self._claim_sequence(session, company_id)

        record_hash = self._compute_record_hash(
            company_id, principal_id, table_name, action, record_id,
            old_data, new_data, sequence, prev_hash,
        )
        entry = AuditRecordModel(
            company_id=company_id,
            principal_id=principal_id,
            table_name=table_name,
            action=action,
            record_id=record_id,
            old_data=old_data,
            new_data=new_data,
            sequence=sequence,
            prev_hash=prev_hash,
            record_hash=record_hash,
            signature=self._sign(record_hash),
        )
        session.add(entry)
        await session.flush()
        heads = AuditChainHeadModel.__table__
        await session.execute(
            update(heads)
            .where(heads.c.company_id == company_id)
            .values(record_hash=record_hash)
        )
        logger.info(
            "Audit record appended",
            extra={
                "company_id": company_id,
                "principal_id": principal_id,
                "table_name": table_name,
                "action": action,
            },
        )
        return entry

    # ── Read ──

    async def get_chain_head(
        self, session: AsyncSession, company_id: str,
    ) -> AuditRecordModel | None:
        result = await session.execute(
            select(AuditRecordModel)
            .where(AuditRecordModel.company_id == company_id)
            .order_by(AuditRecordModel.sequence.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def query(
        self,
        session: AsyncSession,
        principal: Principal,
        company_id: str,
        table_name: str | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[AuditRecordModel]:
        """Admin-only, newest first. Denied callers get an exception, never rows.

        ``limit`` defaults to ``default_page_size`` and is capped at
        ``max_page_size``.
        """
        await self.policy.require(session, principal, company_id, Capability.READ_AUDIT)
        limit = min(limit or self.settings.default_page_size, self.settings.max_page_size)
        query = select(AuditRecordModel).where(AuditRecordModel.company_id == company_id)
        if table_name:
            query = query.where(AuditRecordModel.table_name == table_name)
        query = (
            query.order_by(AuditRecordModel.sequence.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await session.execute(query)
        return list(result.scalars().all())

    # ── Verify ──

    async def verify(
        self, session: AsyncSession, principal: Principal, company_id: str,
    ) -> dict[str, Any]:
        await self.policy.require(session, principal, company_id, Capability.READ_AUDIT)
        return await self.verify_chain(session, company_id)

    async def verify_chain(
        self, session: AsyncSession, company_id: str,
    ) -> dict[str, Any]:
        """Walk the chain oldest→newest, verify linkage, hashes and signatures.

        Operator entry point with no policy check; HTTP callers go through
        ``verify``.
        """
        result = await session.execute(
            select(AuditRecordModel)
            .where(AuditRecordModel.company_id == company_id)
            .order_by(AuditRecordModel.sequence.asc())
        )
        entries = list(result.scalars().all())

        prev_hash = None
        for checked, entry in enumerate(entries):
            expected_hash = self._compute_record_hash(
                entry.company_id, entry.principal_id, entry.table_name,
                entry.action, entry.record_id, entry.old_data, entry.new_data,
                entry.sequence, entry.prev_hash,
            )
            if (
                entry.prev_hash != prev_hash
                or entry.sequence != checked + 1
                or entry.record_hash != expected_hash
                or not self._verify_signature(entry.record_hash, entry.signature)
            ):
                logger.warning(
                    "Audit chain broken at %s", entry.id,
                    extra={"company_id": company_id},
                )
                return {"valid": False, "records_checked": checked, "break_at": entry.id}
            prev_hash = entry.record_hash

        return {"valid": True, "records_checked": len(entries), "break_at": None}

    # ── Internal helpers ──

    async def _claim_sequence(
        self, session: AsyncSession, company_id: str,
    ) -> tuple[int, str | None]:
        """Reserve the next sequence and return it with the previous record hash.

        The UPDATE locks the company's head row until the transaction ends, so
        a concurrent append waits and then reads the bumped sequence.
        """
        heads = AuditChainHeadModel.__table__
        result = await session.execute(
            update(heads)
            .where(heads.c.company_id == company_id)
            .values(sequence=heads.c.sequence + 1)
            .returning(heads.c.sequence, heads.c.record_hash)
        )
        row = result.first()
        if row is not None:
            return row.sequence, row.record_hash
        await session.execute(
            insert(heads).values(company_id=company_id, sequence=1, record_hash=None)
        )
        return 1, None

    @staticmethod
    def _compute_record_hash(
        company_id: str,
        principal_id: str | None,
        table_name: str,
        action: str,
        record_id: str | None,
        old_data: dict[str, Any] | None,
        new_data: dict[str, Any] | None,
        sequence: int,
        prev_hash: str | None,
    ) -> str:
        """SHA-256 of canonical JSON of the record fields."""
        canonical = json.dumps(
            {
                "company_id": company_id,
                "principal_id": principal_id,
                "table_name": table_name,
                "action": action,
                "record_id": record_id,
                "old_data": old_data,
                "new_data": new_data,
                "sequence": sequence,
                "prev_hash": prev_hash,
            },
            sort_keys=True,
            separators=(",", ":"),
            default=str,
        )
        return hashlib.sha256(canonical.encode()).hexdigest()

    def _sign(self, record_hash: str) -> str:
        """HMAC-SHA256 of record_hash with the current HMAC key."""
        return hmac_mod.new(
            self.settings.current_hmac_key.encode(),
            record_hash.encode(),
            hashlib.sha256,
        ).hexdigest()

    def _verify_signature(self, record_hash: str, signature: str) -> bool:
        """Verify signature against all keys in the keyring."""
        for _version, key in self.settings.hmac_keyring.items():
            expected = hmac_mod.new(
                key.encode(), record_hash.encode(), hashlib.sha256,
            ).hexdigest()
            if hmac_mod.compare_digest(expected, signature):
                return True
        return False
