"""Subscription service — admin changes and external billing events."""

import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from finguard.audit.service import AuditLedger, to_snapshot
from finguard.common.config import FinguardSettings
from finguard.common.exceptions import SubscriptionNotFoundError
from finguard.common.models import as_utc, utc_now
from finguard.common.security import Principal
from finguard.policy.engine import Capability, SubscriptionStatus
from finguard.policy.service import PolicyService
from finguard.subscriptions.gate import SubscriptionGate
from finguard.subscriptions.models import SubscriptionModel

logger = logging.getLogger(__name__)

SUBSCRIPTION_FIELDS = ("status", "plan", "amount", "activated_at", "renews_at")


class SubscriptionService:
    """Two write paths share one update routine.

    Admins change the subscription while it is still active; once it is
    suspended or cancelled only the billing system can bring it back.
    """

    def __init__(
        self,
        settings: FinguardSettings,
        gate: SubscriptionGate,
        policy: PolicyService,
        ledger: AuditLedger,
    ):
        self.settings = settings
        self.gate = gate
        self.policy = policy
        self.ledger = ledger

    async def _load(self, session: AsyncSession, company_id: str) -> SubscriptionModel:
        subscription = await self.gate.get(session, company_id)
        if subscription is None:
            raise SubscriptionNotFoundError()
        return subscription

    async def get_subscription(
        self, session: AsyncSession, principal: Principal, company_id: str,
    ) -> SubscriptionModel:
        await self.policy.require(session, principal, company_id, Capability.READ_SUBSCRIPTION)
        return await self._load(session, company_id)

    async def update_subscription(
        self,
        session: AsyncSession,
        principal: Principal,
        company_id: str,
        status: SubscriptionStatus | None = None,
        plan: str | None = None,
        amount: Decimal | None = None,
        renews_at: datetime | None = None,
    ) -> SubscriptionModel:
        await self.policy.require(session, principal, company_id, Capability.MANAGE_SUBSCRIPTION)
        subscription = await self._load(session, company_id)
        return await self._apply(
            session, subscription, principal.id,
            status=status, plan=plan, amount=amount, renews_at=renews_at,
        )

    async def apply_billing_event(
        self,
        session: AsyncSession,
        company_id: str,
        status: SubscriptionStatus,
        plan: str | None = None,
        amount: Decimal | None = None,
        renews_at: datetime | None = None,
    ) -> SubscriptionModel:
        """Record a status change reported by the billing system.

        The caller is authenticated by API key, not by a role, so the audit
        record carries no principal.
        """
        subscription = await self._load(session, company_id)
        subscription = await self._apply(
            session, subscription, None,
            status=status, plan=plan, amount=amount, renews_at=renews_at,
        )
        logger.info(
            "Billing event applied: %s", status.value,
            extra={"company_id": company_id},
        )
        return subscription

    async def _apply(
        self,
        session: AsyncSession,
        subscription: SubscriptionModel,
        actor_id: str | None,
        status: SubscriptionStatus | None,
        plan: str | None,
        amount: Decimal | None,
        renews_at: datetime | None,
    ) -> SubscriptionModel:
        old_data = to_snapshot(subscription, SUBSCRIPTION_FIELDS)
        changes: dict[str, Any] = {}
        if status is not None and status.value != subscription.status:
            changes["status"] = status.value
            if status == SubscriptionStatus.ACTIVE:
                now = utc_now()
                changes["activated_at"] = now
                changes["renews_at"] = now + timedelta(days=self.settings.renewal_days)
        if plan is not None:
            changes["plan"] = plan
        if amount is not None:
            changes["amount"] = amount
        if renews_at is not None:
            changes["renews_at"] = as_utc(renews_at)

        changes = {
            k: v for k, v in changes.items() if getattr(subscription, k) != v
        }
        if not changes:
            return subscription

        for key, value in changes.items():
            setattr(subscription, key, value)
        await session.flush()
        await self.ledger.record(
            session, subscription.company_id, actor_id, "subscriptions", "UPDATE",
            record_id=subscription.id,
            old_data=old_data,
            new_data=to_snapshot(subscription, SUBSCRIPTION_FIELDS),
        )
        return subscription
