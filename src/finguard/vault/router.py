"""Integration credential API router."""

from fastapi import APIRouter, Depends, Query

from finguard.common.exceptions import FinguardError
from finguard.common.security import Principal, require_principal, to_http_error
from finguard.vault.schemas import (
    CredentialActiveUpdate,
    CredentialInput,
    CredentialResponse,
    CredentialSavedResponse,
)

router = APIRouter(prefix="/companies/{company_id}/credentials")


def _get_service():
    from finguard.deps import get_credential_service
    return get_credential_service()


def _get_db():
    from finguard.deps import get_db
    return get_db()


@router.get("", response_model=list[CredentialResponse])
async def list_credentials(
    company_id: str,
    reveal: bool = Query(False),
    principal: Principal = Depends(require_principal),
):
    svc = _get_service()
    db = _get_db()
    try:
        async with db.get_session() as session:
            views = await svc.list_credentials(session, principal, company_id, reveal=reveal)
            return [CredentialResponse(**v) for v in views]
    except FinguardError as e:
        raise to_http_error(e)


@router.post("", response_model=CredentialSavedResponse, status_code=201)
async def create_credential(
    company_id: str,
    body: CredentialInput,
    principal: Principal = Depends(require_principal),
):
    svc = _get_service()
    db = _get_db()
    try:
        async with db.get_session() as session:
            credential = await svc.save_credential(
                session, principal, company_id, **body.model_dump(),
            )
            return CredentialSavedResponse.model_validate(credential)
    except FinguardError as e:
        raise to_http_error(e)


@router.put("/{credential_id}", response_model=CredentialSavedResponse)
async def replace_credential(
    company_id: str,
    credential_id: str,
    body: CredentialInput,
    principal: Principal = Depends(require_principal),
):
    svc = _get_service()
    db = _get_db()
    try:
        async with db.get_session() as session:
            credential = await svc.save_credential(
                session, principal, company_id,
                credential_id=credential_id, **body.model_dump(),
            )
            return CredentialSavedResponse.model_validate(credential)
    except FinguardError as e:
        raise to_http_error(e)


@router.patch("/{credential_id}/active", response_model=CredentialSavedResponse)
async def set_credential_active(
    company_id: str,
    credential_id: str,
    body: CredentialActiveUpdate,
    principal: Principal = Depends(require_principal),
):
    svc = _get_service()
    db = _get_db()
    try:
        async with db.get_session() as session:
            credential = await svc.set_active(
                session, principal, company_id, credential_id, body.is_active,
            )
            return CredentialSavedResponse.model_validate(credential)
    except FinguardError as e:
        raise to_http_error(e)


@router.post("/{credential_id}/sync", response_model=CredentialSavedResponse)
async def mark_credential_synced(
    company_id: str,
    credential_id: str,
    principal: Principal = Depends(require_principal),
):
    svc = _get_service()
    db = _get_db()
    try:
        async with db.get_session() as session:
            credential = await svc.mark_synced(session, principal, company_id, credential_id)
            return CredentialSavedResponse.model_validate(credential)
    except FinguardError as e:
        raise to_http_error(e)


@router.delete("/{credential_id}", status_code=204)
async def delete_credential(
    company_id: str,
    credential_id: str,
    principal: Principal = Depends(require_principal),
):
    svc = _get_service()
    db = _get_db()
    try:
        async with db.get_session() as session:
            await svc.delete_credential(session, principal, company_id, credential_id)
    except FinguardError as e:
        raise to_http_error(e)
