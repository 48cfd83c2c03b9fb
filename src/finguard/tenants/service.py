"""Tenant service — company settings and member management."""

import logging
from typing import Any

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from finguard.audit.service import AuditLedger, to_snapshot
from finguard.common.config import FinguardSettings
from finguard.common.exceptions import (
    CompanyNotFoundError,
    InvalidInputError,
    MemberNotFoundError,
    MembershipConflictError,
    TenantNotFoundError,
)
from finguard.common.security import Principal
from finguard.policy.engine import Capability, Role, RoleTarget
from finguard.policy.service import PolicyService
from finguard.subscriptions.gate import SubscriptionGate
from finguard.subscriptions.models import SubscriptionModel
from finguard.tenants.directory import TenantDirectory
from finguard.tenants.documents import is_valid_document
from finguard.tenants.models import CompanyModel, ProfileModel, RoleAssignmentModel
from finguard.vault.models import CredentialModel

logger = logging.getLogger(__name__)

COMPANY_FIELDS = ("name", "document", "email", "phone", "address")
# Fields an explicit None clears; name and document are required.
CLEARABLE_COMPANY_FIELDS = ("email", "phone", "address")
ASSIGNMENT_FIELDS = ("principal_id", "company_id", "role")


async def upsert_profile(
    session: AsyncSession,
    principal_id: str,
    company_id: str | None,
    full_name: str | None = None,
) -> ProfileModel:
    """Point a principal's profile at ``company_id``, creating it if needed.

    A name already on the profile is kept.
    """
    result = await session.execute(
        select(ProfileModel).where(ProfileModel.principal_id == principal_id)
    )
    profile = result.scalar_one_or_none()
    if profile is None:
        profile = ProfileModel(principal_id=principal_id, company_id=company_id, full_name=full_name)
        session.add(profile)
    else:
        profile.company_id = company_id
        if full_name and not profile.full_name:
            profile.full_name = full_name
    await session.flush()
    return profile


def check_tax_id(settings: FinguardSettings, tax_id: str) -> None:
    if settings.strict_tax_id and not is_valid_document(tax_id):
        raise InvalidInputError("Invalid CPF or CNPJ")


class TenantService:
    def __init__(
        self,
        settings: FinguardSettings,
        directory: TenantDirectory,
        gate: SubscriptionGate,
        policy: PolicyService,
        ledger: AuditLedger,
    ):
        self.settings = settings
        self.directory = directory
        self.gate = gate
        self.policy = policy
        self.ledger = ledger

    # ── Identity ──

    async def whoami(self, session: AsyncSession, principal: Principal) -> dict[str, Any]:
        company_id = await self.directory.resolve_home_company(session, principal.id)
        profile = await self.directory.get_profile(session, principal.id)
        view: dict[str, Any] = {
            "principal_id": principal.id,
            "company_id": company_id,
            "role": None,
            "full_name": profile.full_name if profile else None,
            "subscription_status": None,
            "needs_bootstrap": company_id is None,
        }
        if company_id is not None:
            assignment = await self.directory.get_assignment(session, principal.id, company_id)
            view["role"] = Role(assignment.role) if assignment else None
            view["subscription_status"] = await self.gate.status(session, company_id)
        return view

    async def get_home_company(
        self, session: AsyncSession, principal: Principal,
    ) -> CompanyModel:
        """The caller's own company; raises ``TenantNotFoundError`` before bootstrap."""
        company_id = await self.directory.resolve_home_company(session, principal.id)
        if company_id is None:
            raise TenantNotFoundError()
        return await self.get_company(session, principal, company_id)

    # ── Company ──

    async def _load_company(self, session: AsyncSession, company_id: str) -> CompanyModel:
        company = await session.get(CompanyModel, company_id)
        if company is None:
            raise CompanyNotFoundError()
        return company

    async def get_company(
        self, session: AsyncSession, principal: Principal, company_id: str,
    ) -> CompanyModel:
        await self.policy.require(session, principal, company_id, Capability.READ_COMPANY)
        return await self._load_company(session, company_id)

    async def update_company(
        self, session: AsyncSession, principal: Principal, company_id: str, **updates: Any,
    ) -> CompanyModel:
        """Apply the given fields. ``tax_id`` is stored as the company document.

        None clears an optional field and is ignored for required ones.
        """
        await self.policy.require(session, principal, company_id, Capability.UPDATE_COMPANY)
        company = await self._load_company(session, company_id)

        if "tax_id" in updates:
            tax_id = updates.pop("tax_id")
            if tax_id is not None:
                check_tax_id(self.settings, tax_id)
                updates["document"] = tax_id
        changes = {
            k: v for k, v in updates.items()
            if k in COMPANY_FIELDS
            and (v is not None or k in CLEARABLE_COMPANY_FIELDS)
            and getattr(company, k) != v
        }
        if not changes:
            return company

        old_data = to_snapshot(company, COMPANY_FIELDS)
        for key, value in changes.items():
            setattr(company, key, value)
        await session.flush()
        await self.ledger.record(
            session, company_id, principal.id, "companies", "UPDATE",
            record_id=company_id,
            old_data=old_data,
            new_data=to_snapshot(company, COMPANY_FIELDS),
        )
        return company

    async def delete_company(
        self, session: AsyncSession, principal: Principal, company_id: str,
    ) -> None:
        """Remove the tenant and everything hanging off it except its audit history."""
        await self.policy.require(session, principal, company_id, Capability.DELETE_COMPANY)
        company = await self._load_company(session, company_id)
        old_data = to_snapshot(company, COMPANY_FIELDS)

        await session.execute(delete(CredentialModel).where(CredentialModel.company_id == company_id))
        await session.execute(delete(SubscriptionModel).where(SubscriptionModel.company_id == company_id))
        await session.execute(
            delete(RoleAssignmentModel).where(RoleAssignmentModel.company_id == company_id)
        )
        await session.execute(
            update(ProfileModel)
            .where(ProfileModel.company_id == company_id)
            .values(company_id=None)
        )
        await session.delete(company)
        await session.flush()

        await self.ledger.record(
            session, company_id, principal.id, "companies", "DELETE",
            record_id=company_id, old_data=old_data,
        )
        logger.info(
            "Company deleted",
            extra={"principal_id": principal.id, "company_id": company_id},
        )

    # ── Members ──

    async def list_members(
        self, session: AsyncSession, principal: Principal, company_id: str,
    ) -> list[dict[str, Any]]:
        await self.policy.require(session, principal, company_id, Capability.READ_ROLES)
        assignments = await self.directory.list_assignments(session, company_id)
        members = []
        for assignment in assignments:
            profile = await self.directory.get_profile(session, assignment.principal_id)
            members.append({
                "principal_id": assignment.principal_id,
                "company_id": assignment.company_id,
                "role": Role(assignment.role),
                "full_name": profile.full_name if profile else None,
                "created_at": assignment.created_at,
            })
        return members

    async def add_member(
        self,
        session: AsyncSession,
        principal: Principal,
        company_id: str,
        member_id: str,
        role: Role,
        full_name: str | None = None,
    ) -> RoleAssignmentModel:
        """Grant ``role`` to a principal that does not belong to any company yet."""
        await self.policy.require(
            session, principal, company_id, Capability.MANAGE_ROLES,
            target=RoleTarget(principal_id=member_id, new_role=role),
        )
        if await self.directory.has_any_role(session, member_id):
            raise MembershipConflictError()

        assignment = RoleAssignmentModel(
            principal_id=member_id, company_id=company_id, role=role.value,
        )
        session.add(assignment)
        await session.flush()
        await upsert_profile(session, member_id, company_id, full_name)

        await self.ledger.record(
            session, company_id, principal.id, "role_assignments", "INSERT",
            record_id=assignment.id,
            new_data=to_snapshot(assignment, ASSIGNMENT_FIELDS),
        )
        return assignment

    async def _load_assignment(
        self, session: AsyncSession, company_id: str, member_id: str,
    ) -> RoleAssignmentModel:
        assignment = await self.directory.get_assignment(session, member_id, company_id)
        if assignment is None:
            raise MemberNotFoundError()
        return assignment

    async def change_member_role(
        self,
        session: AsyncSession,
        principal: Principal,
        company_id: str,
        member_id: str,
        role: Role,
    ) -> RoleAssignmentModel:
        await self.policy.require(
            session, principal, company_id, Capability.MANAGE_ROLES,
            target=RoleTarget(principal_id=member_id, new_role=role),
        )
        assignment = await self._load_assignment(session, company_id, member_id)
        if assignment.role == role.value:
            return assignment

        old_data = to_snapshot(assignment, ASSIGNMENT_FIELDS)
        assignment.role = role.value
        await session.flush()
        await self.ledger.record(
            session, company_id, principal.id, "role_assignments", "UPDATE",
            record_id=assignment.id,
            old_data=old_data,
            new_data=to_snapshot(assignment, ASSIGNMENT_FIELDS),
        )
        return assignment

    async def remove_member(
        self,
        session: AsyncSession,
        principal: Principal,
        company_id: str,
        member_id: str,
    ) -> None:
        await self.policy.require(
            session, principal, company_id, Capability.MANAGE_ROLES,
            target=RoleTarget(principal_id=member_id, new_role=None),
        )
        assignment = await self._load_assignment(session, company_id, member_id)
        old_data = to_snapshot(assignment, ASSIGNMENT_FIELDS)
        assignment_id = assignment.id

        await session.delete(assignment)
        await session.execute(
            update(ProfileModel)
            .where(ProfileModel.principal_id == member_id)
            .values(company_id=None)
        )
        await session.flush()
        await self.ledger.record(
            session, company_id, principal.id, "role_assignments", "DELETE",
            record_id=assignment_id, old_data=old_data,
        )
