"""Utilities for seeding development data."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.orm import Session

from voucherflow.core.roles import Role
from voucherflow.models import Company, UserProfile

DEFAULT_COMPANY_NAME = "Demo Supplies Ltd"
DEFAULT_USER_EMAIL = "owner@voucherflow.io"
DEFAULT_USER_NAME = "Platform Owner"


@dataclass
class SeedResult:
    """Information about the seeded company and super-user."""

    company: Company
    user: UserProfile
    company_created: bool
    user_created: bool
    user_updated: bool = False


def seed_super_user(
    session: Session,
    *,
    company_name: str = DEFAULT_COMPANY_NAME,
    user_email: str = DEFAULT_USER_EMAIL,
    user_name: str = DEFAULT_USER_NAME,
) -> SeedResult:
    """Ensure a demo company and an active super-user exist.

    The directory refuses every administrative call until a super-user
    exists, so a fresh database needs this once. Existing records are
    promoted and reactivated rather than duplicated.
    """

    company = session.query(Company).filter(Company.name == company_name).one_or_none()
    company_created = False
    if company is None:
        company = Company(name=company_name)
        session.add(company)
        session.flush()
        company_created = True

    user = session.query(UserProfile).filter(UserProfile.email == user_email).one_or_none()
    user_created = False
    user_updated = False
    if user is None:
        user = UserProfile(
            email=user_email,
            name=user_name,
            role=Role.SUPER_USER.value,
            pending_approval=False,
            is_active=True,
        )
        session.add(user)
        user_created = True
    elif (
        user.role != Role.SUPER_USER.value
        or user.pending_approval
        or not user.is_active
    ):
        user.role = Role.SUPER_USER.value
        user.company_id = None
        user.pending_approval = False
        user.is_active = True
        user_updated = True

    session.flush()

    return SeedResult(
        company=company,
        user=user,
        company_created=company_created,
        user_created=user_created,
        user_updated=user_updated,
    )


__all__ = ["SeedResult", "seed_super_user"]
