"""Subscription gate — tri-state billing flag per company."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from finguard.policy.engine import SubscriptionStatus
from finguard.subscriptions.models import SubscriptionModel


class SubscriptionGate:
    """Reads the billing state the policy engine gates on.

    Transitions are not modelled here; renewal and suspension arrive as
    external billing events that simply write a new status.
    """

    async def get(
        self, session: AsyncSession, company_id: str
    ) -> SubscriptionModel | None:
        result = await session.execute(
            select(SubscriptionModel).where(SubscriptionModel.company_id == company_id)
        )
        return result.scalar_one_or_none()

    async def status(
        self, session: AsyncSession, company_id: str
    ) -> SubscriptionStatus | None:
        """Current status, or None when the company has no subscription row."""
        result = await session.execute(
            select(SubscriptionModel.status).where(SubscriptionModel.company_id == company_id)
        )
        raw = result.scalar_one_or_none()
        if raw is None:
            return None
        try:
            return SubscriptionStatus(raw)
        except ValueError:
            # Unknown values fail closed.
            return None

    async def is_active(self, session: AsyncSession, company_id: str) -> bool:
        return await self.status(session, company_id) == SubscriptionStatus.ACTIVE
