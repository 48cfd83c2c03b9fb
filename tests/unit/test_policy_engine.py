"""Tests for the pure authorization decision function and field masking."""

import pytest

from finguard.policy.engine import (
    AccessSnapshot,
    Capability,
    Role,
    RoleTarget,
    SubscriptionStatus,
    WRITE_CAPABILITIES,
    authorize,
    role_allows,
)
from finguard.policy.masking import FINANCIAL_FIELDS, mask_financial_fields, masked_fields_for


def snap(role=Role.ADMIN, status=SubscriptionStatus.ACTIVE, admin_count=1, principal_id="u1"):
    return AccessSnapshot(
        principal_id=principal_id,
        company_id="c1",
        role=role,
        subscription_status=status,
        admin_count=admin_count,
    )


TRANSACTION = {
    "id": "t1",
    "description": "Venda",
    "amount": 100.0,
    "profit": 30.0,
    "product_cost": 60.0,
    "tax_amount": 10.0,
}


class TestMembership:
    @pytest.mark.parametrize("capability", list(Capability))
    def test_non_member_denied_everything(self, capability):
        decision = authorize(snap(role=None), capability)
        assert not decision.allowed
        assert decision.code == "NOT_MEMBER"
        assert decision.reason == "not a member"

    def test_membership_checked_before_subscription(self):
        decision = authorize(snap(role=None, status=None), Capability.READ_RECORDS)
        assert decision.code == "NOT_MEMBER"


class TestSubscriptionGate:
    @pytest.mark.parametrize("status", [SubscriptionStatus.SUSPENDED, SubscriptionStatus.CANCELLED, None])
    def test_inactive_denies_reads_and_writes(self, status):
        for capability in (Capability.READ_RECORDS, Capability.WRITE_RECORDS, Capability.READ_AUDIT):
            decision = authorize(snap(status=status), capability)
            assert not decision.allowed
            assert decision.code == "SUBSCRIPTION_INACTIVE"

    @pytest.mark.parametrize("status", [SubscriptionStatus.SUSPENDED, SubscriptionStatus.CANCELLED])
    def test_inactive_still_allows_reading_subscription(self, status):
        for role in Role:
            assert authorize(snap(role=role, status=status), Capability.READ_SUBSCRIPTION).allowed

    def test_admin_cannot_manage_inactive_subscription(self):
        decision = authorize(snap(status=SubscriptionStatus.SUSPENDED), Capability.MANAGE_SUBSCRIPTION)
        assert decision.code == "SUBSCRIPTION_INACTIVE"


class TestRoleTable:
    def test_admin_has_everything(self):
        for capability in Capability:
            assert authorize(snap(role=Role.ADMIN), capability).allowed

    def test_finance_reads_and_writes_records(self):
        for capability in (
            Capability.READ_RECORDS,
            Capability.READ_FINANCIALS,
            Capability.WRITE_RECORDS,
            Capability.MANAGE_INTEGRATIONS,
        ):
            assert authorize(snap(role=Role.FINANCE), capability).allowed

    @pytest.mark.parametrize("capability", [
        Capability.DELETE_RECORDS,
        Capability.UPDATE_COMPANY,
        Capability.DELETE_COMPANY,
        Capability.MANAGE_ROLES,
        Capability.MANAGE_SUBSCRIPTION,
        Capability.READ_AUDIT,
    ])
    def test_finance_denied_admin_capabilities(self, capability):
        decision = authorize(snap(role=Role.FINANCE), capability)
        assert not decision.allowed
        assert decision.code == "ROLE_FORBIDDEN"

    def test_readonly_never_writes(self):
        for capability in WRITE_CAPABILITIES:
            decision = authorize(snap(role=Role.READONLY), capability)
            assert not decision.allowed
            assert decision.code == "ROLE_FORBIDDEN"

    def test_readonly_reads(self):
        for capability in (
            Capability.READ_COMPANY,
            Capability.READ_ROLES,
            Capability.READ_SUBSCRIPTION,
            Capability.READ_RECORDS,
        ):
            assert authorize(snap(role=Role.READONLY), capability).allowed

    def test_readonly_cannot_read_financials(self):
        assert not authorize(snap(role=Role.READONLY), Capability.READ_FINANCIALS).allowed

    def test_role_allows_none(self):
        assert not role_allows(None, Capability.READ_COMPANY)


class TestLastAdmin:
    def test_sole_admin_cannot_demote_self(self):
        decision = authorize(
            snap(admin_count=1), Capability.MANAGE_ROLES,
            RoleTarget(principal_id="u1", new_role=Role.FINANCE),
        )
        assert not decision.allowed
        assert decision.code == "LAST_ADMIN"
        assert decision.reason == "cannot remove last admin"

    def test_sole_admin_cannot_remove_self(self):
        decision = authorize(
            snap(admin_count=1), Capability.MANAGE_ROLES, RoleTarget(principal_id="u1"),
        )
        assert decision.code == "LAST_ADMIN"

    def test_sole_admin_may_keep_admin_role(self):
        decision = authorize(
            snap(admin_count=1), Capability.MANAGE_ROLES,
            RoleTarget(principal_id="u1", new_role=Role.ADMIN),
        )
        assert decision.allowed

    def test_one_of_two_admins_may_step_down(self):
        decision = authorize(
            snap(admin_count=2), Capability.MANAGE_ROLES,
            RoleTarget(principal_id="u1", new_role=Role.READONLY),
        )
        assert decision.allowed

    def test_admin_may_demote_someone_else(self):
        decision = authorize(
            snap(admin_count=1), Capability.MANAGE_ROLES,
            RoleTarget(principal_id="u2", new_role=Role.READONLY),
        )
        assert decision.allowed


class TestMasking:
    def test_readonly_sees_financials_nulled(self):
        masked = mask_financial_fields(TRANSACTION, Role.READONLY)
        for field in FINANCIAL_FIELDS:
            assert masked[field] is None
        assert masked["amount"] == 100.0
        assert masked["description"] == "Venda"

    @pytest.mark.parametrize("role", [Role.ADMIN, Role.FINANCE])
    def test_privileged_roles_see_everything(self, role):
        assert mask_financial_fields(TRANSACTION, role) == TRANSACTION

    def test_original_row_untouched(self):
        mask_financial_fields(TRANSACTION, Role.READONLY)
        assert TRANSACTION["profit"] == 30.0

    def test_masked_fields_for(self):
        assert masked_fields_for(Role.ADMIN) == []
        assert masked_fields_for(Role.READONLY) == list(FINANCIAL_FIELDS)
        assert masked_fields_for(None) == list(FINANCIAL_FIELDS)
