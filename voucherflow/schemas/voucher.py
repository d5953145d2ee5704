"""Voucher schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict

from voucherflow.core.roles import Role, VoucherStatus


class VoucherDraft(BaseModel):
    """Fields a payee supplies when submitting a payment request."""

    amount: Decimal | None = None
    bank_name: str | None = None
    account_title: str | None = None
    account_number: str | None = None
    description: str | None = None
    receipt_ref: str | None = None


class HistoryEntryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    sequence: int
    actor_id: int
    actor_role: Role
    action: str
    from_status: VoucherStatus | None
    to_status: VoucherStatus
    comment: str | None
    created_at: datetime


class VoucherRead(BaseModel):
    """Snapshot of a voucher record returned by every engine operation."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    amount: Decimal
    bank_name: str
    account_title: str
    account_number: str
    description: str | None
    receipt_ref: str
    voucher_ref: str | None
    paid_ref: str | None
    status: VoucherStatus
    ticket_number: str | None
    submitted_by_id: int
    company_id: int | None
    bank_id: int | None
    rejection_reason: str | None
    version: int
    created_at: datetime
    status_changed_at: datetime
    approved_by_id: int | None
    approved_at: datetime | None
    voucher_created_by_id: int | None
    voucher_created_at: datetime | None
    published_by_id: int | None
    published_at: datetime | None
    closed_by_id: int | None
    closed_at: datetime | None
    history: list[HistoryEntryRead]


class RejectRequest(BaseModel):
    reason: str = ""
    expected_version: int | None = None


class CommentRequest(BaseModel):
    text: str = ""
    expected_version: int | None = None


class TransitionRequest(BaseModel):
    """Body for transitions that carry no payload beyond the expected version."""

    expected_version: int | None = None
