"""Tenant directory — which company does a principal belong to."""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from finguard.policy.engine import Role
from finguard.tenants.models import ProfileModel, RoleAssignmentModel


class TenantDirectory:
    """Read-only lookups over role assignments.

    A principal without a company is a normal state (new user, not yet
    bootstrapped), so lookups return None rather than raising.
    """

    async def resolve_home_company(
        self, session: AsyncSession, principal_id: str
    ) -> str | None:
        result = await session.execute(
            select(RoleAssignmentModel.company_id)
            .where(RoleAssignmentModel.principal_id == principal_id)
            .order_by(RoleAssignmentModel.created_at.asc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def has_any_role(self, session: AsyncSession, principal_id: str) -> bool:
        result = await session.execute(
            select(RoleAssignmentModel.id)
            .where(RoleAssignmentModel.principal_id == principal_id)
            .limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def get_assignment(
        self, session: AsyncSession, principal_id: str, company_id: str
    ) -> RoleAssignmentModel | None:
        result = await session.execute(
            select(RoleAssignmentModel).where(
                RoleAssignmentModel.principal_id == principal_id,
                RoleAssignmentModel.company_id == company_id,
            )
        )
        return result.scalar_one_or_none()

    async def list_assignments(
        self, session: AsyncSession, company_id: str
    ) -> list[RoleAssignmentModel]:
        result = await session.execute(
            select(RoleAssignmentModel)
            .where(RoleAssignmentModel.company_id == company_id)
            .order_by(RoleAssignmentModel.created_at.asc())
        )
        return list(result.scalars().all())

    async def count_admins(self, session: AsyncSession, company_id: str) -> int:
        result = await session.execute(
            select(func.count(RoleAssignmentModel.id)).where(
                RoleAssignmentModel.company_id == company_id,
                RoleAssignmentModel.role == Role.ADMIN.value,
            )
        )
        return result.scalar() or 0

    async def get_profile(
        self, session: AsyncSession, principal_id: str
    ) -> ProfileModel | None:
        result = await session.execute(
            select(ProfileModel).where(ProfileModel.principal_id == principal_id)
        )
        return result.scalar_one_or_none()
