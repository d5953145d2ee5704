"""Pydantic schemas for users and reference entities."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, EmailStr

from voucherflow.core.roles import Role


class UserRead(BaseModel):
    """Public user representation."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    email: EmailStr
    name: str
    role: Role | None
    company_id: int | None
    company_name: str | None
    bank_id: int | None
    bank_name: str | None
    pending_approval: bool
    is_active: bool


class RoleAssignment(BaseModel):
    """Payload for assigning a designation to a user."""

    role: str
    company_id: int | None = None
    bank_id: int | None = None


class SignupRequest(BaseModel):
    """Profile details a new user supplies; the designation is assigned later."""

    email: EmailStr
    name: str
    contact: str | None = None
    company_id: int | None = None
    bank_id: int | None = None


class SignupResponse(BaseModel):
    user: UserRead
    token: str


class CompanyCreate(BaseModel):
    name: str
    address: str | None = None
    contact_person: str | None = None
    contact_email: EmailStr | None = None
    contact_phone: str | None = None


class CompanyRead(CompanyCreate):
    model_config = ConfigDict(from_attributes=True)

    id: int


class BankCreate(BaseModel):
    name: str
    swift_code: str | None = None
    address: str | None = None
    contact_person: str | None = None
    contact_email: EmailStr | None = None
    contact_phone: str | None = None


class BankRead(BankCreate):
    model_config = ConfigDict(from_attributes=True)

    id: int
