"""Role view projection: which vouchers each role sees, newest change first."""

from __future__ import annotations

from sqlalchemy import ColumnElement, and_, or_

from voucherflow.core.errors import ForbiddenError, NotFoundError
from voucherflow.core.roles import Role, VoucherStatus
from voucherflow.models import Voucher
from voucherflow.schemas.actor import Actor

from .document_store import SqlDocumentStore
from .transitions import actionable_statuses

# Ties on the change timestamp fall back to id so repeated reads agree.
VIEW_ORDER = (Voucher.status_changed_at.desc(), Voucher.id.desc())


def _status_in(statuses: frozenset[VoucherStatus]) -> ColumnElement[bool]:
    return Voucher.status.in_(sorted(status.value for status in statuses))


def visibility_filter(role: Role, actor: Actor) -> ColumnElement[bool] | None:
    """Return the predicate selecting records visible to ``role``; ``None`` means all."""

    if role.is_administrative:
        return None
    if role is Role.PAYEE:
        return Voucher.submitted_by_id == actor.actor_id
    if role is Role.VOUCHER_CREATOR:
        return or_(
            _status_in(actionable_statuses(role)),
            Voucher.voucher_created_by_id == actor.actor_id,
        )
    return _status_in(actionable_statuses(role))


def list_for(store: SqlDocumentStore, role: Role, actor: Actor) -> list[Voucher]:
    """Return the ordered records ``actor`` sees when acting as ``role``."""

    if role is not actor.role:
        raise ForbiddenError(f"Actor {actor.actor_id} cannot view vouchers as {role.value}")
    return store.query(visibility_filter(role, actor), order_by=VIEW_ORDER)


def get_for(store: SqlDocumentStore, voucher_id: int, actor: Actor) -> Voucher:
    """Return one record if it falls inside ``actor``'s view.

    Records outside the view are reported as missing so their existence does
    not leak to other payees or roles.
    """

    predicate = visibility_filter(actor.role, actor)
    if predicate is None:
        return store.get(voucher_id)
    matches = store.query(and_(Voucher.id == voucher_id, predicate))
    if not matches:
        raise NotFoundError(f"Voucher {voucher_id} not found")
    return matches[0]


__all__ = ["VIEW_ORDER", "get_for", "list_for", "visibility_filter"]
