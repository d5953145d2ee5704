"""Voucher transition graph."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from voucherflow.core.roles import ADMINISTRATIVE_ROLES, Role, VoucherStatus

SUBMIT = "submit"
APPROVE = "approve"
REJECT = "reject"
RESUBMIT = "resubmit"
CREATE_VOUCHER = "create_voucher"
CHECK = "check"
INITIATE = "initiate"
RELEASE_PAYMENT = "release_payment"
MARK_PAYMENT_INITIATED = "mark_payment_initiated"
PUBLISH_PAID_PROOF = "publish_paid_proof"
CLOSE = "close"
COMMENT = "comment"


@dataclass(frozen=True)
class Transition:
    """One edge of the graph and who may traverse it.

    ``roles`` empty means the edge is authorized by ownership rather than by
    role (only the original submitter may resubmit).
    """

    action: str
    sources: frozenset[VoucherStatus]
    target: VoucherStatus
    roles: frozenset[Role]
    attachment: str | None = None


def _edge(
    action: str,
    source: VoucherStatus,
    target: VoucherStatus,
    roles: Iterable[Role],
    attachment: str | None = None,
) -> Transition:
    return Transition(action, frozenset({source}), target, frozenset(roles), attachment)


TRANSITIONS: dict[str, Transition] = {
    t.action: t
    for t in (
        _edge(APPROVE, VoucherStatus.PENDING, VoucherStatus.APPROVED, {Role.FINANCE}),
        _edge(REJECT, VoucherStatus.PENDING, VoucherStatus.REJECTED, {Role.FINANCE}),
        _edge(RESUBMIT, VoucherStatus.REJECTED, VoucherStatus.PENDING, ()),
        _edge(
            CREATE_VOUCHER,
            VoucherStatus.APPROVED,
            VoucherStatus.VOUCHER_CREATED,
            {Role.VOUCHER_CREATOR},
            attachment="voucher_ref",
        ),
        _edge(CHECK, VoucherStatus.VOUCHER_CREATED, VoucherStatus.CHECKED, {Role.CHECKER}),
        _edge(INITIATE, VoucherStatus.CHECKED, VoucherStatus.INITIATED, {Role.INITIATOR}),
        _edge(
            RELEASE_PAYMENT,
            VoucherStatus.INITIATED,
            VoucherStatus.PAYMENT_RELEASED,
            {Role.PAYMENT_RELEASER},
        ),
        _edge(
            MARK_PAYMENT_INITIATED,
            VoucherStatus.PAYMENT_RELEASED,
            VoucherStatus.PAYMENT_INITIATED,
            {Role.PAYMENT_RELEASER},
        ),
        _edge(
            PUBLISH_PAID_PROOF,
            VoucherStatus.PAYMENT_INITIATED,
            VoucherStatus.PAYMENT_DONE,
            {Role.PUBLISHER},
            attachment="paid_ref",
        ),
        _edge(CLOSE, VoucherStatus.PAYMENT_DONE, VoucherStatus.PAYMENT_CLOSED, ADMINISTRATIVE_ROLES),
    )
}

INITIAL_STATUS = VoucherStatus.PENDING

EDGES: frozenset[tuple[VoucherStatus, VoucherStatus]] = frozenset(
    (source, t.target) for t in TRANSITIONS.values() for source in t.sources
)


def actionable_statuses(role: Role) -> frozenset[VoucherStatus]:
    """Return the statuses from which ``role`` can advance a record."""

    return frozenset(
        source
        for t in TRANSITIONS.values()
        if role in t.roles
        for source in t.sources
    )


def is_valid_path(
    steps: Iterable[tuple[VoucherStatus | None, VoucherStatus]],
) -> bool:
    """Return ``True`` when a history's ``(from, to)`` steps walk the graph.

    The first step must be the creation step ``(None, pending)``, every step
    must start where the previous one ended, and a step that keeps the status
    (a comment) is always allowed.
    """

    previous: VoucherStatus | None = None
    for index, (source, target) in enumerate(steps):
        if index == 0:
            if source is not None or target != INITIAL_STATUS:
                return False
        elif source != previous:
            return False
        elif source != target and (source, target) not in EDGES:
            return False
        previous = target
    return True


__all__ = [
    "APPROVE",
    "CHECK",
    "CLOSE",
    "COMMENT",
    "CREATE_VOUCHER",
    "EDGES",
    "INITIAL_STATUS",
    "INITIATE",
    "MARK_PAYMENT_INITIATED",
    "PUBLISH_PAID_PROOF",
    "REJECT",
    "RELEASE_PAYMENT",
    "RESUBMIT",
    "SUBMIT",
    "TRANSITIONS",
    "Transition",
    "actionable_statuses",
    "is_valid_path",
]
