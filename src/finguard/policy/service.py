"""Policy service — load access state, then ask the pure engine."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from finguard.common.exceptions import (
    AuthorizationDenied,
    LastAdminProtectionError,
    SubscriptionInactiveError,
)
from finguard.common.security import Principal
from finguard.policy.engine import (
    AccessSnapshot,
    Capability,
    Decision,
    Role,
    RoleTarget,
    authorize,
)
from finguard.subscriptions.gate import SubscriptionGate
from finguard.tenants.directory import TenantDirectory

logger = logging.getLogger(__name__)


class PolicyService:
    """Consulted by every read/write path before it touches tenant data."""

    def __init__(self, directory: TenantDirectory, gate: SubscriptionGate):
        self.directory = directory
        self.gate = gate

    async def snapshot(
        self, session: AsyncSession, principal_id: str, company_id: str
    ) -> AccessSnapshot:
        assignment = await self.directory.get_assignment(session, principal_id, company_id)
        role = Role(assignment.role) if assignment else None
        status = await self.gate.status(session, company_id) if role else None
        admin_count = 0
        if role == Role.ADMIN:
            admin_count = await self.directory.count_admins(session, company_id)
        return AccessSnapshot(
            principal_id=principal_id,
            company_id=company_id,
            role=role,
            subscription_status=status,
            admin_count=admin_count,
        )

    async def check(
        self,
        session: AsyncSession,
        principal: Principal,
        company_id: str,
        capability: Capability,
        target: RoleTarget | None = None,
    ) -> tuple[Decision, AccessSnapshot]:
        """Evaluate without raising. Returns the decision and the state it used."""
        snap = await self.snapshot(session, principal.id, company_id)
        decision = authorize(snap, capability, target)
        if not decision.allowed:
            logger.info(
                "Access denied: %s",
                decision.reason,
                extra={
                    "principal_id": principal.id,
                    "company_id": company_id,
                    "capability": capability.value,
                    "code": decision.code,
                },
            )
        return decision, snap

    async def require(
        self,
        session: AsyncSession,
        principal: Principal,
        company_id: str,
        capability: Capability,
        target: RoleTarget | None = None,
    ) -> AccessSnapshot:
        """Raise unless ``principal`` may use ``capability`` in ``company_id``."""
        decision, snap = await self.check(session, principal, company_id, capability, target)
        if decision.allowed:
            return snap
        if decision.code == "SUBSCRIPTION_INACTIVE":
            raise SubscriptionInactiveError()
        if decision.code == "LAST_ADMIN":
            raise LastAdminProtectionError()
        raise AuthorizationDenied(decision.reason)
