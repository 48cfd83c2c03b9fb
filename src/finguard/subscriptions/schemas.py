"""Pydantic schemas for subscription endpoints."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from finguard.policy.engine import SubscriptionStatus


class SubscriptionResponse(BaseModel):
    id: str
    company_id: str
    status: SubscriptionStatus
    plan: str
    amount: Decimal
    activated_at: datetime
    renews_at: Optional[datetime] = None
    updated_at: datetime

    model_config = {"from_attributes": True}


class SubscriptionUpdate(BaseModel):
    status: Optional[SubscriptionStatus] = None
    plan: Optional[str] = Field(None, min_length=1, max_length=100)
    amount: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    renews_at: Optional[datetime] = None


class BillingEvent(BaseModel):
    """Sent by the billing system when a payment succeeds, fails or is cancelled."""
    status: SubscriptionStatus
    plan: Optional[str] = Field(None, min_length=1, max_length=100)
    amount: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    renews_at: Optional[datetime] = None
