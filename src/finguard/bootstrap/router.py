"""Bootstrap API router — called once by sign-up, safe to call again."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from finguard.common.exceptions import FinguardError
from finguard.common.security import Principal, require_principal, to_http_error
from finguard.tenants.schemas import CompanyInput

router = APIRouter()


class BootstrapResponse(BaseModel):
    company_id: str


def _get_service():
    from finguard.deps import get_bootstrap_service
    return get_bootstrap_service()


@router.post("/bootstrap", response_model=BootstrapResponse)
async def bootstrap(body: CompanyInput, principal: Principal = Depends(require_principal)):
    svc = _get_service()
    try:
        company_id = await svc.bootstrap(principal, body)
    except FinguardError as e:
        raise to_http_error(e)
    return BootstrapResponse(company_id=company_id)
