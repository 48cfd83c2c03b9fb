"""Pure authorization decisions.

Everything in this module operates on state that has already been loaded
(see ``PolicyService.snapshot``), so a decision can be computed and tested
without a database.

Evaluation order:
1. Membership — no role in the company denies everything.
2. Subscription — an inactive subscription denies everything except reading
   the subscription status itself.
3. Role table — the role must grant the capability.
4. Last-admin protection — the sole admin may not demote or remove
   themselves.
"""

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    ADMIN = "admin"
    FINANCE = "finance"
    READONLY = "readonly"


class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"
    CANCELLED = "cancelled"


class Capability(str, Enum):
    READ_COMPANY = "company.read"
    UPDATE_COMPANY = "company.update"
    DELETE_COMPANY = "company.delete"
    READ_ROLES = "roles.read"
    MANAGE_ROLES = "roles.manage"
    READ_SUBSCRIPTION = "subscription.read"
    MANAGE_SUBSCRIPTION = "subscription.manage"
    READ_RECORDS = "records.read"
    READ_FINANCIALS = "records.read_financials"
    WRITE_RECORDS = "records.write"
    DELETE_RECORDS = "records.delete"
    MANAGE_INTEGRATIONS = "integrations.manage"
    READ_AUDIT = "audit.read"


_READ_ONLY = frozenset({
    Capability.READ_COMPANY,
    Capability.READ_ROLES,
    Capability.READ_SUBSCRIPTION,
    Capability.READ_RECORDS,
})

_FINANCE = _READ_ONLY | frozenset({
    Capability.READ_FINANCIALS,
    Capability.WRITE_RECORDS,
    Capability.MANAGE_INTEGRATIONS,
})

ROLE_CAPABILITIES: dict[Role, frozenset[Capability]] = {
    Role.ADMIN: frozenset(Capability),
    Role.FINANCE: _FINANCE,
    Role.READONLY: _READ_ONLY,
}

# Capabilities still granted while the subscription is suspended or cancelled.
UNGATED_CAPABILITIES = frozenset({Capability.READ_SUBSCRIPTION})

WRITE_CAPABILITIES = frozenset({
    Capability.UPDATE_COMPANY,
    Capability.DELETE_COMPANY,
    Capability.MANAGE_ROLES,
    Capability.MANAGE_SUBSCRIPTION,
    Capability.WRITE_RECORDS,
    Capability.DELETE_RECORDS,
    Capability.MANAGE_INTEGRATIONS,
})


@dataclass(frozen=True)
class AccessSnapshot:
    """What the engine needs to know about a principal within one company."""
    principal_id: str
    company_id: str
    role: Role | None
    subscription_status: SubscriptionStatus | None
    admin_count: int = 0

    @property
    def subscription_active(self) -> bool:
        return self.subscription_status == SubscriptionStatus.ACTIVE


@dataclass(frozen=True)
class RoleTarget:
    """The role assignment a ``roles.manage`` request would change.

    ``new_role`` of None means the assignment is being removed.
    """
    principal_id: str
    new_role: Role | None = None


@dataclass(frozen=True)
class Decision:
    allowed: bool
    code: str = "ALLOW"
    reason: str = ""

    @classmethod
    def allow(cls) -> "Decision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, code: str, reason: str) -> "Decision":
        return cls(allowed=False, code=code, reason=reason)


def role_allows(role: Role | None, capability: Capability) -> bool:
    if role is None:
        return False
    return capability in ROLE_CAPABILITIES[role]


def authorize(
    snapshot: AccessSnapshot,
    capability: Capability,
    target: RoleTarget | None = None,
) -> Decision:
    """Decide whether the snapshot's principal may use ``capability``."""
    if snapshot.role is None:
        return Decision.deny("NOT_MEMBER", "not a member")

    if not snapshot.subscription_active and capability not in UNGATED_CAPABILITIES:
        return Decision.deny("SUBSCRIPTION_INACTIVE", "subscription inactive")

    if not role_allows(snapshot.role, capability):
        return Decision.deny(
            "ROLE_FORBIDDEN",
            f"role '{snapshot.role.value}' cannot {capability.value}",
        )

    if (
        capability == Capability.MANAGE_ROLES
        and target is not None
        and target.principal_id == snapshot.principal_id
        and snapshot.role == Role.ADMIN
        and snapshot.admin_count <= 1
        and target.new_role != Role.ADMIN
    ):
        return Decision.deny("LAST_ADMIN", "cannot remove last admin")

    return Decision.allow()
