"""Administrative endpoints for companies, banks and user designations."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from voucherflow.core.roles import Role
from voucherflow.core.security import require_roles
from voucherflow.db import get_session_dependency
from voucherflow.models import Bank, Company, UserProfile
from voucherflow.schemas.actor import Actor
from voucherflow.schemas.user import (
    BankCreate,
    BankRead,
    CompanyCreate,
    CompanyRead,
    RoleAssignment,
    UserRead,
)
from voucherflow.services import directory

router = APIRouter(prefix="/admin", tags=["Admin"])

SessionDep = Annotated[Session, Depends(get_session_dependency)]
SuperUser = Annotated[Actor, Depends(require_roles(Role.SUPER_USER))]


@router.get("/users", response_model=list[UserRead])
def list_users(session: SessionDep, actor: SuperUser) -> list[UserProfile]:
    """Return all users in the system."""

    return directory.list_users(session, actor)


@router.get("/users/pending", response_model=list[UserRead])
def list_pending_users(session: SessionDep, actor: SuperUser) -> list[UserProfile]:
    """Return all users awaiting a designation."""

    return directory.list_pending_users(session, actor)


@router.patch("/users/{user_id}/role", response_model=UserRead)
def assign_role(
    user_id: int,
    payload: RoleAssignment,
    session: SessionDep,
    actor: SuperUser,
) -> UserProfile:
    return directory.assign_role(
        session,
        actor,
        user_id,
        payload.role,
        company_id=payload.company_id,
        bank_id=payload.bank_id,
    )


@router.patch("/users/{user_id}/deactivate", response_model=UserRead)
def deactivate_user(user_id: int, session: SessionDep, actor: SuperUser) -> UserProfile:
    return directory.deactivate_user(session, actor, user_id)


@router.post("/companies", response_model=CompanyRead, status_code=status.HTTP_201_CREATED)
def create_company(payload: CompanyCreate, session: SessionDep, actor: SuperUser) -> Company:
    return directory.create_company(session, actor, payload)


@router.delete("/companies/{company_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_company(company_id: int, session: SessionDep, actor: SuperUser) -> None:
    directory.delete_company(session, actor, company_id)


@router.post("/banks", response_model=BankRead, status_code=status.HTTP_201_CREATED)
def create_bank(payload: BankCreate, session: SessionDep, actor: SuperUser) -> Bank:
    return directory.create_bank(session, actor, payload)


@router.delete("/banks/{bank_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_bank(bank_id: int, session: SessionDep, actor: SuperUser) -> None:
    directory.delete_bank(session, actor, bank_id)


__all__ = ["router"]
