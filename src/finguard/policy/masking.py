"""Field-level restriction layered on top of the row-level decision."""

from typing import Any, Mapping

from finguard.policy.engine import Capability, Role, role_allows

FINANCIAL_FIELDS = ("profit", "product_cost", "tax_amount")


def masked_fields_for(role: Role | None) -> list[str]:
    """Fields a reader with ``role`` must not see."""
    if role_allows(role, Capability.READ_FINANCIALS):
        return []
    return list(FINANCIAL_FIELDS)


def mask_financial_fields(record: Mapping[str, Any], role: Role | None) -> dict[str, Any]:
    """Return a copy of a transaction row with restricted fields nulled out."""
    masked = dict(record)
    for field in masked_fields_for(role):
        if field in masked:
            masked[field] = None
    return masked
