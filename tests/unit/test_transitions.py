"""Tests for roles and the transition graph."""

from __future__ import annotations

import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[2]))

import pytest

from voucherflow.core.errors import ValidationError
from voucherflow.core.roles import Role, RoleCategory, VoucherStatus
from voucherflow.services.transitions import (
    EDGES,
    TRANSITIONS,
    actionable_statuses,
    is_valid_path,
)


def test_role_parse_is_lenient_about_case() -> None:
    assert Role.parse(" Finance ") is Role.FINANCE
    assert Role.parse("voucher_create") is Role.VOUCHER_CREATOR
    with pytest.raises(ValidationError):
        Role.parse("invalid")


def test_role_categories() -> None:
    assert Role.PAYEE.category is RoleCategory.COMPANY
    assert Role.VOUCHER_CREATOR.category is RoleCategory.FINANCE
    assert Role.PUBLISHER.category is RoleCategory.OPERATIONS
    assert Role.SUPER_USER.category is RoleCategory.PLATFORM
    assert Role.ADMIN.is_administrative
    assert not Role.CHECKER.is_administrative


def test_terminal_statuses_have_no_outgoing_role_edges() -> None:
    sources = {source for source, _ in EDGES}

    assert VoucherStatus.PAYMENT_CLOSED not in sources
    assert VoucherStatus.PAYMENT_CLOSED.is_terminal
    assert VoucherStatus.REJECTED.is_terminal


def test_actionable_statuses_follow_the_graph() -> None:
    assert actionable_statuses(Role.FINANCE) == {VoucherStatus.PENDING}
    assert actionable_statuses(Role.VOUCHER_CREATOR) == {VoucherStatus.APPROVED}
    assert actionable_statuses(Role.PAYMENT_RELEASER) == {
        VoucherStatus.INITIATED,
        VoucherStatus.PAYMENT_RELEASED,
    }
    assert actionable_statuses(Role.ADMIN) == {VoucherStatus.PAYMENT_DONE}
    assert actionable_statuses(Role.PAYEE) == frozenset()


def test_only_submitter_may_resubmit() -> None:
    assert TRANSITIONS["resubmit"].roles == frozenset()
    assert TRANSITIONS["create_voucher"].attachment == "voucher_ref"
    assert TRANSITIONS["publish_paid_proof"].attachment == "paid_ref"


@pytest.mark.parametrize(
    ("steps", "expected"),
    [
        ([(None, VoucherStatus.PENDING)], True),
        (
            [
                (None, VoucherStatus.PENDING),
                (VoucherStatus.PENDING, VoucherStatus.REJECTED),
                (VoucherStatus.REJECTED, VoucherStatus.PENDING),
                (VoucherStatus.PENDING, VoucherStatus.PENDING),
                (VoucherStatus.PENDING, VoucherStatus.APPROVED),
            ],
            True,
        ),
        ([(VoucherStatus.PENDING, VoucherStatus.APPROVED)], False),
        (
            [
                (None, VoucherStatus.PENDING),
                (VoucherStatus.PENDING, VoucherStatus.CHECKED),
            ],
            False,
        ),
        (
            [
                (None, VoucherStatus.PENDING),
                (VoucherStatus.APPROVED, VoucherStatus.VOUCHER_CREATED),
            ],
            False,
        ),
    ],
)
def test_is_valid_path(steps: list, expected: bool) -> None:
    assert is_valid_path(steps) is expected
