"""Authorization API router — decisions for the domain data layer."""

from fastapi import APIRouter, Depends

from finguard.common.security import Principal, require_principal
from finguard.policy.engine import RoleTarget
from finguard.policy.masking import masked_fields_for
from finguard.policy.schemas import AuthorizeRequest, AuthorizeResponse

router = APIRouter()


def _get_service():
    from finguard.deps import get_policy_service
    return get_policy_service()


def _get_db():
    from finguard.deps import get_db
    return get_db()


@router.post("/authorize", response_model=AuthorizeResponse)
async def authorize(body: AuthorizeRequest, principal: Principal = Depends(require_principal)):
    """Answer allow/deny without raising; a denial is a 200 with ``allowed=false``."""
    svc = _get_service()
    db = _get_db()
    target = None
    if body.target_principal_id:
        target = RoleTarget(principal_id=body.target_principal_id, new_role=body.target_role)
    async with db.get_session() as session:
        decision, snap = await svc.check(
            session, principal, body.company_id, body.capability, target,
        )
    return AuthorizeResponse(
        allowed=decision.allowed,
        code=decision.code,
        reason=decision.reason,
        masked_fields=masked_fields_for(snap.role) if decision.allowed else [],
    )
