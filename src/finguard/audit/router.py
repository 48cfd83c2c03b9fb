"""Audit log API router — admin-only reads of a company's history."""

from fastapi import APIRouter, Depends, Query

from finguard.audit.schemas import AuditChainVerification, AuditRecordResponse
from finguard.common.exceptions import FinguardError
from finguard.common.security import Principal, require_principal, to_http_error

router = APIRouter()


def _get_service():
    from finguard.deps import get_audit_ledger
    return get_audit_ledger()


def _get_db():
    from finguard.deps import get_db
    return get_db()


@router.get("/companies/{company_id}/audit", response_model=list[AuditRecordResponse])
async def list_audit_records(
    company_id: str,
    table_name: str | None = Query(None),
    limit: int | None = Query(None, ge=1),
    offset: int = Query(0, ge=0),
    principal: Principal = Depends(require_principal),
):
    svc = _get_service()
    db = _get_db()
    try:
        async with db.get_session() as session:
            records = await svc.query(
                session, principal, company_id,
                table_name=table_name, limit=limit, offset=offset,
            )
            return [AuditRecordResponse.model_validate(r) for r in records]
    except FinguardError as e:
        raise to_http_error(e)


@router.get("/companies/{company_id}/audit/verify", response_model=AuditChainVerification)
async def verify_audit_chain(
    company_id: str, principal: Principal = Depends(require_principal),
):
    svc = _get_service()
    db = _get_db()
    try:
        async with db.get_session() as session:
            result = await svc.verify(session, principal, company_id)
            return AuditChainVerification(**result)
    except FinguardError as e:
        raise to_http_error(e)
