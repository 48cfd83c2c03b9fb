"""Bootstrap transaction — provision a tenant for a first-time principal."""

import asyncio
import logging
import weakref
from datetime import timedelta
from decimal import Decimal

from sqlalchemy.exc import IntegrityError

from finguard.audit.service import AuditLedger, to_snapshot
from finguard.common.config import FinguardSettings
from finguard.common.database import DatabaseManager
from finguard.common.models import utc_now
from finguard.common.security import Principal
from finguard.policy.engine import Role, SubscriptionStatus
from finguard.subscriptions.models import SubscriptionModel
from finguard.subscriptions.service import SUBSCRIPTION_FIELDS
from finguard.tenants.directory import TenantDirectory
from finguard.tenants.models import CompanyModel, RoleAssignmentModel
from finguard.tenants.schemas import CompanyInput
from finguard.tenants.service import ASSIGNMENT_FIELDS, COMPANY_FIELDS, check_tax_id, upsert_profile

logger = logging.getLogger(__name__)


class BootstrapService:
    """The only write path that runs without a role check.

    Its guard is its own precondition: the principal holds no role anywhere.
    The unique constraint on ``role_assignments.principal_id`` settles races
    the precondition cannot see; the loser's transaction rolls back and it
    returns the winner's company id.
    """

    def __init__(
        self,
        settings: FinguardSettings,
        db: DatabaseManager,
        directory: TenantDirectory,
        ledger: AuditLedger,
    ):
        self.settings = settings
        self.db = db
        self.directory = directory
        self.ledger = ledger
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    def _lock_for(self, principal_id: str) -> asyncio.Lock:
        lock = self._locks.get(principal_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[principal_id] = lock
        return lock

    async def bootstrap(self, principal: Principal, data: CompanyInput) -> str:
        """Return the principal's company id, creating the tenant on first call.

        Later calls return the same id whatever input they carry; the input is
        only validated when a company is actually created.
        """
        async with self._lock_for(principal.id):
            try:
                return await self._provision(principal, data)
            except IntegrityError:
                winner = await self._resolve(principal.id)
                if winner is None:
                    raise
                logger.info(
                    "Bootstrap lost a race, using existing company",
                    extra={"principal_id": principal.id, "company_id": winner},
                )
                return winner

    async def _resolve(self, principal_id: str) -> str | None:
        async with self.db.get_session() as session:
            return await self.directory.resolve_home_company(session, principal_id)

    async def _provision(self, principal: Principal, data: CompanyInput) -> str:
        async with self.db.get_session() as session:
            if await self.directory.has_any_role(session, principal.id):
                existing = await self.directory.resolve_home_company(session, principal.id)
                logger.info(
                    "Principal already bootstrapped",
                    extra={"principal_id": principal.id, "company_id": existing},
                )
                return existing

            check_tax_id(self.settings, data.tax_id)

            company = CompanyModel(
                name=data.name,
                document=data.tax_id,
                email=str(data.email) if data.email else None,
                phone=data.phone,
                address=data.address,
            )
            session.add(company)
            await session.flush()

            assignment = RoleAssignmentModel(
                principal_id=principal.id, company_id=company.id, role=Role.ADMIN.value,
            )
            session.add(assignment)
            await session.flush()

            now = utc_now()
            subscription = SubscriptionModel(
                company_id=company.id,
                status=SubscriptionStatus.ACTIVE.value,
                plan=self.settings.default_plan,
                amount=Decimal(self.settings.default_plan_amount),
                activated_at=now,
                renews_at=now + timedelta(days=self.settings.renewal_days),
            )
            session.add(subscription)
            await session.flush()

            await upsert_profile(session, principal.id, company.id, data.profile_full_name)

            await self.ledger.record(
                session, company.id, principal.id, "companies", "INSERT",
                record_id=company.id, new_data=to_snapshot(company, COMPANY_FIELDS),
            )
            await self.ledger.record(
                session, company.id, principal.id, "role_assignments", "INSERT",
                record_id=assignment.id, new_data=to_snapshot(assignment, ASSIGNMENT_FIELDS),
            )
            await self.ledger.record(
                session, company.id, principal.id, "subscriptions", "INSERT",
                record_id=subscription.id, new_data=to_snapshot(subscription, SUBSCRIPTION_FIELDS),
            )

            logger.info(
                "Tenant bootstrapped",
                extra={"principal_id": principal.id, "company_id": company.id},
            )
            return company.id
