"""Administrative capability: companies, banks and user designations.

Only a super-user may call these, apart from :func:`register_user`, which
backs public signup. Users are never deleted; deactivation is
the only way to remove access.
"""

from __future__ import annotations

import structlog
from sqlalchemy import exists, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from voucherflow.core.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from voucherflow.core.roles import Role, RoleCategory
from voucherflow.models import Bank, Company, UserProfile, Voucher
from voucherflow.schemas.actor import Actor
from voucherflow.schemas.user import BankCreate, CompanyCreate, SignupRequest

LOGGER = structlog.get_logger(__name__)


def _require_super_user(actor: Actor) -> None:
    if actor.role is not Role.SUPER_USER:
        raise ForbiddenError("Only a super-user may administer the directory")


def _get_user_or_404(session: Session, user_id: int) -> UserProfile:
    user = session.get(UserProfile, user_id)
    if not user:
        raise NotFoundError(f"User {user_id} not found")
    return user


def _commit(session: Session, label: str) -> None:
    try:
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        raise ConflictError(f"{label} already exists") from exc


def register_user(session: Session, payload: SignupRequest) -> UserProfile:
    """Create an active profile awaiting a designation from a super-user."""

    name = payload.name.strip()
    if not name:
        raise ValidationError("Name is required")
    if payload.company_id is not None and session.get(Company, payload.company_id) is None:
        raise NotFoundError(f"Company {payload.company_id} not found")
    if payload.bank_id is not None and session.get(Bank, payload.bank_id) is None:
        raise NotFoundError(f"Bank {payload.bank_id} not found")

    user = UserProfile(
        email=str(payload.email).lower(),
        name=name,
        contact=(payload.contact or "").strip() or None,
        role=None,
        company_id=payload.company_id,
        bank_id=payload.bank_id,
        pending_approval=True,
        is_active=True,
    )
    session.add(user)
    _commit(session, f"User {user.email!r}")
    session.refresh(user)
    LOGGER.info("user_registered", user_id=user.id)
    return user


def list_users(session: Session, actor: Actor) -> list[UserProfile]:
    """Return all users ordered by creation time descending."""

    _require_super_user(actor)
    return (
        session.query(UserProfile)
        .options(selectinload(UserProfile.company), selectinload(UserProfile.bank))
        .order_by(UserProfile.created_at.desc(), UserProfile.id.desc())
        .all()
    )


def list_pending_users(session: Session, actor: Actor) -> list[UserProfile]:
    """Return active users still waiting for a designation."""

    _require_super_user(actor)
    return (
        session.query(UserProfile)
        .options(selectinload(UserProfile.company), selectinload(UserProfile.bank))
        .filter(UserProfile.pending_approval.is_(True), UserProfile.is_active.is_(True))
        .order_by(UserProfile.created_at.asc(), UserProfile.id.asc())
        .all()
    )


def assign_role(
    session: Session,
    actor: Actor,
    user_id: int,
    role: str | Role,
    *,
    company_id: int | None = None,
    bank_id: int | None = None,
) -> UserProfile:
    """Give a user a designation and affiliation; clears the pending flag.

    Company-side roles require a company; every other role drops any company
    link.
    """

    _require_super_user(actor)
    parsed = Role.parse(role)
    user = _get_user_or_404(session, user_id)

    if parsed.category is RoleCategory.COMPANY:
        if company_id is None:
            raise ValidationError(f"Role {parsed.value} requires a company")
        if session.get(Company, company_id) is None:
            raise NotFoundError(f"Company {company_id} not found")
    else:
        company_id = None
    if bank_id is not None and session.get(Bank, bank_id) is None:
        raise NotFoundError(f"Bank {bank_id} not found")

    user.role = parsed.value
    user.company_id = company_id
    user.bank_id = bank_id
    user.pending_approval = False
    session.add(user)
    session.commit()
    session.refresh(user)
    LOGGER.info("user_role_assigned", user_id=user.id, role=parsed.value, by=actor.actor_id)
    return user


def deactivate_user(session: Session, actor: Actor, user_id: int) -> UserProfile:
    """Soft deactivate a user account."""

    _require_super_user(actor)
    user = _get_user_or_404(session, user_id)
    user.is_active = False
    session.add(user)
    session.commit()
    session.refresh(user)
    LOGGER.info("user_deactivated", user_id=user.id, by=actor.actor_id)
    return user


def create_company(session: Session, actor: Actor, payload: CompanyCreate) -> Company:
    _require_super_user(actor)
    if not payload.name.strip():
        raise ValidationError("Company name is required")
    company = Company(**payload.model_dump())
    company.name = payload.name.strip()
    session.add(company)
    _commit(session, f"Company {company.name!r}")
    session.refresh(company)
    return company


def delete_company(session: Session, actor: Actor, company_id: int) -> None:
    """Delete a company and unlink it from every user that referenced it."""

    _require_super_user(actor)
    company = session.get(Company, company_id)
    if company is None:
        raise NotFoundError(f"Company {company_id} not found")
    if session.scalar(select(exists().where(Voucher.company_id == company_id))):
        raise ConflictError(f"Company {company_id} is referenced by vouchers")
    session.execute(
        update(UserProfile)
        .where(UserProfile.company_id == company_id)
        .values(company_id=None)
        .execution_options(synchronize_session=False)
    )
    session.delete(company)
    session.commit()
    LOGGER.info("company_deleted", company_id=company_id, by=actor.actor_id)


def create_bank(session: Session, actor: Actor, payload: BankCreate) -> Bank:
    _require_super_user(actor)
    if not payload.name.strip():
        raise ValidationError("Bank name is required")
    bank = Bank(**payload.model_dump())
    bank.name = payload.name.strip()
    session.add(bank)
    _commit(session, f"Bank {bank.name!r}")
    session.refresh(bank)
    return bank


def delete_bank(session: Session, actor: Actor, bank_id: int) -> None:
    """Delete a bank and unlink it from every user that referenced it."""

    _require_super_user(actor)
    bank = session.get(Bank, bank_id)
    if bank is None:
        raise NotFoundError(f"Bank {bank_id} not found")
    if session.scalar(select(exists().where(Voucher.bank_id == bank_id))):
        raise ConflictError(f"Bank {bank_id} is referenced by vouchers")
    session.execute(
        update(UserProfile)
        .where(UserProfile.bank_id == bank_id)
        .values(bank_id=None)
        .execution_options(synchronize_session=False)
    )
    session.delete(bank)
    session.commit()
    LOGGER.info("bank_deleted", bank_id=bank_id, by=actor.actor_id)


__all__ = [
    "assign_role",
    "create_bank",
    "create_company",
    "deactivate_user",
    "delete_bank",
    "delete_company",
    "list_pending_users",
    "list_users",
    "register_user",
]
