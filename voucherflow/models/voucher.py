"""Voucher record and its append-only history."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    event,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base


class Voucher(Base):
    """Disbursement record tracking one payment from receipt to payout."""

    __tablename__ = "vouchers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    bank_name: Mapped[str] = mapped_column(String(255), nullable=False)
    account_title: Mapped[str] = mapped_column(String(255), nullable=False)
    account_number: Mapped[str] = mapped_column(String(64), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    receipt_ref: Mapped[str] = mapped_column(String(1024), nullable=False)
    voucher_ref: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    paid_ref: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    ticket_number: Mapped[str | None] = mapped_column(
        String(64), unique=True, nullable=True, index=True
    )
    submitted_by_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"), nullable=False, index=True
    )
    company_id: Mapped[int | None] = mapped_column(
        ForeignKey("companies.id"), nullable=True, index=True
    )
    bank_id: Mapped[int | None] = mapped_column(ForeignKey("banks.id"), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status_changed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )
    approved_by_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    voucher_created_by_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id"), nullable=True, index=True
    )
    voucher_created_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    published_by_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    closed_by_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    history: Mapped[list["VoucherHistory"]] = relationship(
        "VoucherHistory",
        back_populates="voucher",
        order_by="VoucherHistory.sequence",
        lazy="selectin",
    )


class VoucherHistory(Base):
    """One immutable audit entry: a custody transfer or a comment."""

    __tablename__ = "voucher_history"
    __table_args__ = (
        UniqueConstraint("voucher_id", "sequence", name="uq_voucher_history_sequence"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    voucher_id: Mapped[int] = mapped_column(
        ForeignKey("vouchers.id"), nullable=False, index=True
    )
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    actor_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    actor_role: Mapped[str] = mapped_column(String(50), nullable=False)
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    from_status: Mapped[str | None] = mapped_column(String(32), nullable=True)
    to_status: Mapped[str] = mapped_column(String(32), nullable=False)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    voucher: Mapped[Voucher] = relationship("Voucher", back_populates="history")


@event.listens_for(VoucherHistory, "before_update")
def _refuse_history_update(mapper, connection, target) -> None:  # type: ignore[no-untyped-def]
    raise RuntimeError(f"voucher history entry {target.id} is immutable")


@event.listens_for(VoucherHistory, "before_delete")
def _refuse_history_delete(mapper, connection, target) -> None:  # type: ignore[no-untyped-def]
    raise RuntimeError(f"voucher history entry {target.id} cannot be removed")


__all__ = ["Voucher", "VoucherHistory"]
