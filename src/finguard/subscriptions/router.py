"""Subscription API router — member reads, admin changes, billing callbacks."""

from fastapi import APIRouter, Depends

from finguard.common.exceptions import FinguardError
from finguard.common.security import (
    Principal,
    require_billing_key,
    require_principal,
    to_http_error,
)
from finguard.subscriptions.schemas import (
    BillingEvent,
    SubscriptionResponse,
    SubscriptionUpdate,
)

router = APIRouter()


def _get_service():
    from finguard.deps import get_subscription_service
    return get_subscription_service()


def _get_db():
    from finguard.deps import get_db
    return get_db()


@router.get("/companies/{company_id}/subscription", response_model=SubscriptionResponse)
async def get_subscription(company_id: str, principal: Principal = Depends(require_principal)):
    svc = _get_service()
    db = _get_db()
    try:
        async with db.get_session() as session:
            subscription = await svc.get_subscription(session, principal, company_id)
            return SubscriptionResponse.model_validate(subscription)
    except FinguardError as e:
        raise to_http_error(e)


@router.patch("/companies/{company_id}/subscription", response_model=SubscriptionResponse)
async def update_subscription(
    company_id: str,
    body: SubscriptionUpdate,
    principal: Principal = Depends(require_principal),
):
    svc = _get_service()
    db = _get_db()
    try:
        async with db.get_session() as session:
            subscription = await svc.update_subscription(
                session, principal, company_id, **body.model_dump(exclude_none=True)
            )
            return SubscriptionResponse.model_validate(subscription)
    except FinguardError as e:
        raise to_http_error(e)


@router.post(
    "/billing/companies/{company_id}/subscription", response_model=SubscriptionResponse,
)
async def apply_billing_event(
    company_id: str,
    body: BillingEvent,
    _=Depends(require_billing_key),
):
    svc = _get_service()
    db = _get_db()
    try:
        async with db.get_session() as session:
            subscription = await svc.apply_billing_event(
                session, company_id, **body.model_dump(exclude_none=True)
            )
            return SubscriptionResponse.model_validate(subscription)
    except FinguardError as e:
        raise to_http_error(e)
