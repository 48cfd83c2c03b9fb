"""Tenant API router — identity, company settings and members."""

from fastapi import APIRouter, Depends

from finguard.common.exceptions import FinguardError
from finguard.common.security import Principal, require_principal, to_http_error
from finguard.tenants.schemas import (
    CompanyResponse,
    CompanyUpdate,
    MeResponse,
    MemberCreate,
    MemberResponse,
    MemberRoleUpdate,
)

router = APIRouter()


def _get_service():
    from finguard.deps import get_tenant_service
    return get_tenant_service()


def _get_db():
    from finguard.deps import get_db
    return get_db()


@router.get("/me", response_model=MeResponse)
async def whoami(principal: Principal = Depends(require_principal)):
    svc = _get_service()
    db = _get_db()
    async with db.get_session() as session:
        return MeResponse(**await svc.whoami(session, principal))


@router.get("/me/company", response_model=CompanyResponse)
async def get_home_company(principal: Principal = Depends(require_principal)):
    svc = _get_service()
    db = _get_db()
    try:
        async with db.get_session() as session:
            company = await svc.get_home_company(session, principal)
            return CompanyResponse.model_validate(company)
    except FinguardError as e:
        raise to_http_error(e)


# ── Company ──

@router.get("/companies/{company_id}", response_model=CompanyResponse)
async def get_company(company_id: str, principal: Principal = Depends(require_principal)):
    svc = _get_service()
    db = _get_db()
    try:
        async with db.get_session() as session:
            company = await svc.get_company(session, principal, company_id)
            return CompanyResponse.model_validate(company)
    except FinguardError as e:
        raise to_http_error(e)


@router.patch("/companies/{company_id}", response_model=CompanyResponse)
async def update_company(
    company_id: str,
    body: CompanyUpdate,
    principal: Principal = Depends(require_principal),
):
    svc = _get_service()
    db = _get_db()
    try:
        async with db.get_session() as session:
            company = await svc.update_company(
                session, principal, company_id, **body.model_dump(exclude_unset=True)
            )
            return CompanyResponse.model_validate(company)
    except FinguardError as e:
        raise to_http_error(e)


@router.delete("/companies/{company_id}", status_code=204)
async def delete_company(company_id: str, principal: Principal = Depends(require_principal)):
    svc = _get_service()
    db = _get_db()
    try:
        async with db.get_session() as session:
            await svc.delete_company(session, principal, company_id)
    except FinguardError as e:
        raise to_http_error(e)


# ── Members ──

@router.get("/companies/{company_id}/members", response_model=list[MemberResponse])
async def list_members(company_id: str, principal: Principal = Depends(require_principal)):
    svc = _get_service()
    db = _get_db()
    try:
        async with db.get_session() as session:
            members = await svc.list_members(session, principal, company_id)
            return [MemberResponse(**m) for m in members]
    except FinguardError as e:
        raise to_http_error(e)


@router.post("/companies/{company_id}/members", response_model=MemberResponse, status_code=201)
async def add_member(
    company_id: str,
    body: MemberCreate,
    principal: Principal = Depends(require_principal),
):
    svc = _get_service()
    db = _get_db()
    try:
        async with db.get_session() as session:
            assignment = await svc.add_member(
                session, principal, company_id, body.principal_id, body.role,
                full_name=body.full_name,
            )
            return MemberResponse(
                principal_id=assignment.principal_id,
                company_id=assignment.company_id,
                role=assignment.role,
                full_name=body.full_name,
                created_at=assignment.created_at,
            )
    except FinguardError as e:
        raise to_http_error(e)


@router.patch(
    "/companies/{company_id}/members/{member_id}", response_model=MemberResponse,
)
async def change_member_role(
    company_id: str,
    member_id: str,
    body: MemberRoleUpdate,
    principal: Principal = Depends(require_principal),
):
    svc = _get_service()
    db = _get_db()
    try:
        async with db.get_session() as session:
            assignment = await svc.change_member_role(
                session, principal, company_id, member_id, body.role,
            )
            return MemberResponse(
                principal_id=assignment.principal_id,
                company_id=assignment.company_id,
                role=assignment.role,
                created_at=assignment.created_at,
            )
    except FinguardError as e:
        raise to_http_error(e)


@router.delete("/companies/{company_id}/members/{member_id}", status_code=204)
async def remove_member(
    company_id: str,
    member_id: str,
    principal: Principal = Depends(require_principal),
):
    svc = _get_service()
    db = _get_db()
    try:
        async with db.get_session() as session:
            await svc.remove_member(session, principal, company_id, member_id)
    except FinguardError as e:
        raise to_http_error(e)
