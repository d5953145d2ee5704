"""User profile model."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from voucherflow.core.roles import Role

from .base import Base

_ROLE_VALUES = ",".join(f"'{role.value}'" for role in Role)


class UserProfile(Base):
    """Represents an application user and their designation."""

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint(
            f"(role IS NULL) OR (role IN ({_ROLE_VALUES}))",
            name="role_valid",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    contact: Mapped[str | None] = mapped_column(String(64), nullable=True)
    role: Mapped[str | None] = mapped_column(String(50), nullable=True)
    company_id: Mapped[int | None] = mapped_column(
        ForeignKey("companies.id"), nullable=True, index=True
    )
    bank_id: Mapped[int | None] = mapped_column(
        ForeignKey("banks.id"), nullable=True, index=True
    )
    pending_approval: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default="true"
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default="true"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    company: Mapped["Company | None"] = relationship("Company", back_populates="users")
    bank: Mapped["Bank | None"] = relationship("Bank", back_populates="users")

    @property
    def role_enum(self) -> Role | None:
        """Return the parsed role, or ``None`` while unassigned."""

        return Role(self.role) if self.role else None

    @property
    def company_name(self) -> str | None:
        return self.company.name if self.company else None

    @property
    def bank_name(self) -> str | None:
        return self.bank.name if self.bank else None


__all__ = ["UserProfile"]
