"""Finguard: tenant authorization and provisioning core."""

from finguard.policy.engine import (
    AccessSnapshot,
    Capability,
    Decision,
    Role,
    RoleTarget,
    SubscriptionStatus,
    authorize,
)
from finguard.policy.masking import mask_financial_fields

__all__ = [
    "AccessSnapshot",
    "Capability",
    "Decision",
    "Role",
    "RoleTarget",
    "SubscriptionStatus",
    "authorize",
    "mask_financial_fields",
]
__version__ = "0.1.0"
