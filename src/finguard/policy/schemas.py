"""Pydantic schemas for the authorization endpoint."""

from typing import Optional

from pydantic import BaseModel, Field

from finguard.policy.engine import Capability, Role


class AuthorizeRequest(BaseModel):
    company_id: str = Field(..., min_length=1, max_length=36)
    capability: Capability
    target_principal_id: Optional[str] = None
    target_role: Optional[Role] = None


class AuthorizeResponse(BaseModel):
    """``masked_fields`` lists transaction columns the data layer must null out."""
    allowed: bool
    code: str
    reason: str = ""
    masked_fields: list[str] = []
