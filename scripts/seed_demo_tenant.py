#!/usr/bin/env python3
"""Seed a demo tenant: one admin, one finance and one readonly member.

Usage:
    python scripts/seed_demo_tenant.py [ADMIN_PRINCIPAL_ID]

Prints a development principal token for each member.
"""

import asyncio
import sys

from finguard.common.security import Principal, issue_principal_token
from finguard.deps import get_bootstrap_service, get_db, get_tenant_service
from finguard.policy.engine import Role
from finguard.tenants.schemas import CompanyInput

DEMO_MEMBERS = (
    ("demo-finance", Role.FINANCE, "Demo Finance"),
    ("demo-reader", Role.READONLY, "Demo Reader"),
)


async def seed_demo_tenant(admin_id: str) -> None:
    db = get_db()
    await db.init()
    await db.create_all()

    admin = Principal(id=admin_id)
    company_id = await get_bootstrap_service().bootstrap(
        admin,
        CompanyInput(
            name="Demo Comercio Ltda",
            tax_id="11.222.333/0001-81",
            email="financeiro@democomercio.com.br",
            profile_full_name="Demo Admin",
        ),
    )
    print(f"  [company] {company_id}")

    tenants = get_tenant_service()
    async with db.get_session() as session:
        existing = {m["principal_id"] for m in await tenants.list_members(session, admin, company_id)}
        for member_id, role, full_name in DEMO_MEMBERS:
            if member_id in existing:
                print(f"  [skip] {member_id} already a member")
                continue
            await tenants.add_member(session, admin, company_id, member_id, role, full_name)
            print(f"  [created] {member_id} ({role.value})")

    await db.close()

    print("\nTokens:")
    for member_id in (admin_id, *(m[0] for m in DEMO_MEMBERS)):
        print(f"  {member_id}: {issue_principal_token(member_id)}")


if __name__ == "__main__":
    asyncio.run(seed_demo_tenant(sys.argv[1] if len(sys.argv) > 1 else "demo-admin"))
