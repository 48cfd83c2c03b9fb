"""Tests for the tenant directory and tenant management service."""

import pytest
from sqlalchemy import func, select

from finguard.audit.models import AuditRecordModel
from finguard.common.exceptions import (
    AuthorizationDenied,
    CompanyNotFoundError,
    InvalidInputError,
    LastAdminProtectionError,
    MemberNotFoundError,
    MembershipConflictError,
    SubscriptionInactiveError,
    TenantNotFoundError,
)
from finguard.common.security import Principal
from finguard.policy.engine import Role, SubscriptionStatus
from finguard.subscriptions.models import SubscriptionModel
from finguard.tenants.models import CompanyModel, RoleAssignmentModel
from finguard.vault.models import CredentialModel

OWNER = Principal(id="owner")


class TestDirectory:
    async def test_unknown_principal_has_no_company(self, stack):
        async with stack.db.get_session() as session:
            assert await stack.directory.resolve_home_company(session, "nobody") is None
            assert await stack.directory.has_any_role(session, "nobody") is False

    async def test_member_resolves_home_company(self, stack, bootstrap_company, add_member):
        company_id = await bootstrap_company()
        await add_member(company_id, "fin", Role.FINANCE)
        async with stack.db.get_session() as session:
            assert await stack.directory.resolve_home_company(session, "fin") == company_id
            assert await stack.directory.count_admins(session, company_id) == 1
            assignments = await stack.directory.list_assignments(session, company_id)
        assert [a.principal_id for a in assignments] == ["owner", "fin"]


class TestWhoami:
    async def test_needs_bootstrap(self, stack):
        async with stack.db.get_session() as session:
            me = await stack.tenants.whoami(session, Principal(id="new-user"))
        assert me["needs_bootstrap"] is True
        assert me["company_id"] is None
        assert me["role"] is None

    async def test_bootstrapped(self, stack, bootstrap_company):
        company_id = await bootstrap_company()
        async with stack.db.get_session() as session:
            me = await stack.tenants.whoami(session, OWNER)
        assert me["needs_bootstrap"] is False
        assert me["company_id"] == company_id
        assert me["role"] == Role.ADMIN
        assert me["subscription_status"] == SubscriptionStatus.ACTIVE


class TestCompany:
    async def test_members_read_company(self, stack, bootstrap_company, add_member):
        company_id = await bootstrap_company()
        await add_member(company_id, "reader", Role.READONLY)
        async with stack.db.get_session() as session:
            company = await stack.tenants.get_company(session, Principal(id="reader"), company_id)
        assert company.name == "Acme"

    async def test_outsider_cannot_read_company(self, stack, bootstrap_company):
        company_id = await bootstrap_company()
        await bootstrap_company("other", name="Other", tax_id="11.222.333/0001-81")
        with pytest.raises(AuthorizationDenied):
            async with stack.db.get_session() as session:
                await stack.tenants.get_company(session, Principal(id="other"), company_id)

    async def test_admin_updates_company_with_audit(self, stack, bootstrap_company):
        company_id = await bootstrap_company()
        async with stack.db.get_session() as session:
            company = await stack.tenants.update_company(
                session, OWNER, company_id, name="Acme Ltda", phone="11987654321",
            )
        assert company.name == "Acme Ltda"

        async with stack.db.get_session() as session:
            records = await stack.ledger.query(session, OWNER, company_id, table_name="companies")
        update = records[0]
        assert update.action == "UPDATE"
        assert update.old_data["name"] == "Acme"
        assert update.new_data["name"] == "Acme Ltda"

    async def test_none_clears_optional_fields_only(self, stack, bootstrap_company):
        company_id = await bootstrap_company()
        async with stack.db.get_session() as session:
            await stack.tenants.update_company(
                session, OWNER, company_id, email="contato@acme.com.br", phone="11987654321",
            )
        async with stack.db.get_session() as session:
            company = await stack.tenants.update_company(
                session, OWNER, company_id, email=None, name=None, tax_id=None,
            )
        assert company.email is None
        assert company.phone == "11987654321"
        assert company.name == "Acme"
        assert company.document == "12.345.678/0001-90"

    async def test_unchanged_values_write_no_audit(self, stack, bootstrap_company):
        company_id = await bootstrap_company()
        async with stack.db.get_session() as session:
            before = await stack.ledger.get_chain_head(session, company_id)
            await stack.tenants.update_company(session, OWNER, company_id, name="Acme", email=None)
            after = await stack.ledger.get_chain_head(session, company_id)
        assert before.id == after.id

    async def test_home_company(self, stack, bootstrap_company):
        company_id = await bootstrap_company()
        async with stack.db.get_session() as session:
            company = await stack.tenants.get_home_company(session, OWNER)
        assert company.id == company_id

    async def test_home_company_before_bootstrap(self, stack):
        with pytest.raises(TenantNotFoundError):
            async with stack.db.get_session() as session:
                await stack.tenants.get_home_company(session, Principal(id="new-user"))

    async def test_tax_id_maps_to_document(self, stack, bootstrap_company):
        company_id = await bootstrap_company()
        async with stack.db.get_session() as session:
            company = await stack.tenants.update_company(
                session, OWNER, company_id, tax_id="529.982.247-25",
            )
        assert company.document == "529.982.247-25"

    async def test_strict_tax_id_on_update(self, stack, bootstrap_company):
        company_id = await bootstrap_company()
        stack.tenants.settings = stack.settings.model_copy(update={"strict_tax_id": True})
        with pytest.raises(InvalidInputError):
            async with stack.db.get_session() as session:
                await stack.tenants.update_company(session, OWNER, company_id, tax_id="111.111.111-12")

    async def test_empty_update_writes_nothing(self, stack, bootstrap_company):
        company_id = await bootstrap_company()
        async with stack.db.get_session() as session:
            before = (await session.execute(select(func.count()).select_from(AuditRecordModel))).scalar()
            await stack.tenants.update_company(session, OWNER, company_id)
            after = (await session.execute(select(func.count()).select_from(AuditRecordModel))).scalar()
        assert before == after

    @pytest.mark.parametrize("role", [Role.FINANCE, Role.READONLY])
    async def test_non_admin_cannot_update(self, stack, bootstrap_company, add_member, role):
        company_id = await bootstrap_company()
        await add_member(company_id, "member", role)
        with pytest.raises(AuthorizationDenied):
            async with stack.db.get_session() as session:
                await stack.tenants.update_company(
                    session, Principal(id="member"), company_id, name="Hijacked",
                )

    async def test_suspended_company_is_read_blocked(self, stack, bootstrap_company):
        company_id = await bootstrap_company()
        async with stack.db.get_session() as session:
            await stack.subscriptions.apply_billing_event(session, company_id, SubscriptionStatus.SUSPENDED)
        with pytest.raises(SubscriptionInactiveError):
            async with stack.db.get_session() as session:
                await stack.tenants.get_company(session, OWNER, company_id)

    async def test_delete_company_keeps_audit_history(self, stack, bootstrap_company, add_member):
        company_id = await bootstrap_company()
        await add_member(company_id, "fin", Role.FINANCE)
        async with stack.db.get_session() as session:
            await stack.credentials.save_credential(
                session, Principal(id="fin"), company_id, "shopee", api_key="k-123456789",
            )

        async with stack.db.get_session() as session:
            await stack.tenants.delete_company(session, OWNER, company_id)

        async with stack.db.get_session() as session:
            assert await session.get(CompanyModel, company_id) is None
            for model in (RoleAssignmentModel, SubscriptionModel, CredentialModel):
                count = (await session.execute(
                    select(func.count()).select_from(model).where(model.company_id == company_id)
                )).scalar()
                assert count == 0
            profile = await stack.directory.get_profile(session, "owner")
            assert profile.company_id is None

            result = await stack.ledger.verify_chain(session, company_id)
            assert result["valid"] is True
            head = await stack.ledger.get_chain_head(session, company_id)
            assert head.table_name == "companies"
            assert head.action == "DELETE"

    async def test_deleted_company_owner_can_bootstrap_again(self, stack, bootstrap_company):
        company_id = await bootstrap_company()
        async with stack.db.get_session() as session:
            await stack.tenants.delete_company(session, OWNER, company_id)
        new_id = await bootstrap_company()
        assert new_id != company_id

    async def test_missing_company(self, stack):
        with pytest.raises(AuthorizationDenied):
            async with stack.db.get_session() as session:
                await stack.tenants.get_company(session, OWNER, "no-such-company")

    async def test_load_missing_company_raises_not_found(self, stack):
        with pytest.raises(CompanyNotFoundError):
            async with stack.db.get_session() as session:
                await stack.tenants._load_company(session, "no-such-company")


class TestMembers:
    async def test_list_members(self, stack, bootstrap_company, add_member):
        company_id = await bootstrap_company()
        await add_member(company_id, "reader", Role.READONLY)
        async with stack.db.get_session() as session:
            members = await stack.tenants.list_members(session, Principal(id="reader"), company_id)
        assert {(m["principal_id"], m["role"]) for m in members} == {
            ("owner", Role.ADMIN), ("reader", Role.READONLY),
        }

    async def test_add_member_links_profile_and_audits(self, stack, bootstrap_company):
        company_id = await bootstrap_company()
        async with stack.db.get_session() as session:
            await stack.tenants.add_member(
                session, OWNER, company_id, "fin", Role.FINANCE, full_name="Fin User",
            )
        async with stack.db.get_session() as session:
            profile = await stack.directory.get_profile(session, "fin")
            records = await stack.ledger.query(session, OWNER, company_id, table_name="role_assignments")
        assert profile.company_id == company_id
        assert profile.full_name == "Fin User"
        assert records[0].new_data == {"principal_id": "fin", "company_id": company_id, "role": "finance"}

    async def test_add_member_already_in_a_company(self, stack, bootstrap_company):
        company_id = await bootstrap_company()
        await bootstrap_company("other", name="Other", tax_id="11.222.333/0001-81")
        with pytest.raises(MembershipConflictError):
            async with stack.db.get_session() as session:
                await stack.tenants.add_member(session, OWNER, company_id, "other", Role.READONLY)

    async def test_finance_cannot_add_members(self, stack, bootstrap_company, add_member):
        company_id = await bootstrap_company()
        await add_member(company_id, "fin", Role.FINANCE)
        with pytest.raises(AuthorizationDenied):
            async with stack.db.get_session() as session:
                await stack.tenants.add_member(
                    session, Principal(id="fin"), company_id, "friend", Role.ADMIN,
                )

    async def test_change_role(self, stack, bootstrap_company, add_member):
        company_id = await bootstrap_company()
        await add_member(company_id, "reader", Role.READONLY)
        async with stack.db.get_session() as session:
            assignment = await stack.tenants.change_member_role(
                session, OWNER, company_id, "reader", Role.FINANCE,
            )
        assert assignment.role == "finance"

    async def test_change_role_unknown_member(self, stack, bootstrap_company):
        company_id = await bootstrap_company()
        with pytest.raises(MemberNotFoundError):
            async with stack.db.get_session() as session:
                await stack.tenants.change_member_role(
                    session, OWNER, company_id, "ghost", Role.FINANCE,
                )

    async def test_sole_admin_cannot_demote_self(self, stack, bootstrap_company):
        company_id = await bootstrap_company()
        with pytest.raises(LastAdminProtectionError):
            async with stack.db.get_session() as session:
                await stack.tenants.change_member_role(
                    session, OWNER, company_id, "owner", Role.READONLY,
                )
        async with stack.db.get_session() as session:
            assignment = await stack.directory.get_assignment(session, "owner", company_id)
        assert assignment.role == "admin"

    async def test_sole_admin_cannot_remove_self(self, stack, bootstrap_company):
        company_id = await bootstrap_company()
        with pytest.raises(LastAdminProtectionError):
            async with stack.db.get_session() as session:
                await stack.tenants.remove_member(session, OWNER, company_id, "owner")

    async def test_admin_steps_down_after_promoting_another(self, stack, bootstrap_company, add_member):
        company_id = await bootstrap_company()
        await add_member(company_id, "second", Role.ADMIN)
        async with stack.db.get_session() as session:
            await stack.tenants.change_member_role(session, OWNER, company_id, "owner", Role.FINANCE)
        async with stack.db.get_session() as session:
            assert await stack.directory.count_admins(session, company_id) == 1

    async def test_remove_member(self, stack, bootstrap_company, add_member):
        company_id = await bootstrap_company()
        await add_member(company_id, "reader", Role.READONLY)
        async with stack.db.get_session() as session:
            await stack.tenants.remove_member(session, OWNER, company_id, "reader")
        async with stack.db.get_session() as session:
            assert await stack.directory.resolve_home_company(session, "reader") is None
            profile = await stack.directory.get_profile(session, "reader")
            assert profile.company_id is None
            records = await stack.ledger.query(session, OWNER, company_id, table_name="role_assignments")
        assert records[0].action == "DELETE"
