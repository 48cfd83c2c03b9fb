"""Pydantic schemas for company, member and identity endpoints."""

import re
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from finguard.policy.engine import Role, SubscriptionStatus
from finguard.tenants.documents import digits_only, has_document_shape

_ANGLE_BRACKETS = re.compile(r"[<>]")


def clean_text(value: str) -> str:
    """Strip markup characters and surrounding whitespace."""
    return _ANGLE_BRACKETS.sub("", value).strip()


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _check_phone(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    if len(digits_only(value)) not in (10, 11):
        raise ValueError("phone must have 10 or 11 digits")
    return value.strip()


class CompanyInput(BaseModel):
    """Bootstrap payload: the company to create for a first-time principal."""
    name: str = Field(..., min_length=2, max_length=200)
    tax_id: str = Field(..., min_length=11, max_length=18)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=32)
    address: Optional[str] = Field(None, max_length=300)
    profile_full_name: Optional[str] = Field(None, max_length=100)

    @field_validator("name")
    @classmethod
    def _clean_name(cls, v: str) -> str:
        v = clean_text(v)
        if len(v) < 2:
            raise ValueError("name must have at least 2 characters")
        return v

    @field_validator("tax_id")
    @classmethod
    def _check_tax_id(cls, v: str) -> str:
        if not has_document_shape(v):
            raise ValueError("tax_id must be a CPF (11 digits) or CNPJ (14 digits)")
        return v.strip()

    @field_validator("email", "phone", "address", "profile_full_name", mode="before")
    @classmethod
    def _optional_blank(cls, v):
        return _blank_to_none(v)

    @field_validator("phone")
    @classmethod
    def _valid_phone(cls, v: Optional[str]) -> Optional[str]:
        return _check_phone(v)

    @field_validator("address", "profile_full_name")
    @classmethod
    def _clean_optional(cls, v: Optional[str]) -> Optional[str]:
        return clean_text(v) if v is not None else None


class CompanyUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=200)
    tax_id: Optional[str] = Field(None, min_length=11, max_length=18)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=32)
    address: Optional[str] = Field(None, max_length=300)

    @field_validator("name")
    @classmethod
    def _clean_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = clean_text(v)
        if len(v) < 2:
            raise ValueError("name must have at least 2 characters")
        return v

    @field_validator("tax_id")
    @classmethod
    def _check_tax_id(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not has_document_shape(v):
            raise ValueError("tax_id must be a CPF (11 digits) or CNPJ (14 digits)")
        return v.strip() if v is not None else None

    @field_validator("phone")
    @classmethod
    def _valid_phone(cls, v: Optional[str]) -> Optional[str]:
        return _check_phone(v)

    @field_validator("address")
    @classmethod
    def _clean_address(cls, v: Optional[str]) -> Optional[str]:
        return clean_text(v) if v is not None else None


class CompanyResponse(BaseModel):
    id: str
    name: str
    document: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class MemberCreate(BaseModel):
    principal_id: str = Field(..., min_length=1, max_length=255)
    role: Role = Role.READONLY
    full_name: Optional[str] = Field(None, max_length=100)


class MemberRoleUpdate(BaseModel):
    role: Role


class MemberResponse(BaseModel):
    principal_id: str
    company_id: str
    role: Role
    full_name: Optional[str] = None
    created_at: datetime


class MeResponse(BaseModel):
    """What the UI needs to route a signed-in user."""
    principal_id: str
    company_id: Optional[str] = None
    role: Optional[Role] = None
    full_name: Optional[str] = None
    subscription_status: Optional[SubscriptionStatus] = None
    needs_bootstrap: bool
