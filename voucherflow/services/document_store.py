"""Document store adapter over a SQLAlchemy session.

Every write goes through :meth:`SqlDocumentStore.compare_and_set`, which
issues a single ``UPDATE ... WHERE id = :id AND version = :expected`` so that
exactly one of several racing writers wins. Driver failures surface as
:class:`~voucherflow.core.errors.StorageError`; the store never retries.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

import structlog
from sqlalchemy import ColumnElement, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from voucherflow.core.errors import ConflictError, NotFoundError, StorageError
from voucherflow.models import IdempotencyKey, Voucher, VoucherHistory

LOGGER = structlog.get_logger(__name__)


class SqlDocumentStore:
    """Per-record voucher storage bound to one unit of work."""

    def __init__(self, session: Session) -> None:
        self._session = session

    @property
    def session(self) -> Session:
        return self._session

    def get(self, voucher_id: int) -> Voucher:
        try:
            voucher = self._session.get(Voucher, voucher_id, populate_existing=True)
        except SQLAlchemyError as exc:
            raise StorageError(f"Unable to read voucher {voucher_id}") from exc
        if voucher is None:
            raise NotFoundError(f"Voucher {voucher_id} not found")
        return voucher

    def put(self, voucher_id: int | None, fields: Mapping[str, Any]) -> Voucher:
        """Insert a new record, or overwrite fields of an existing one unconditionally."""

        try:
            if voucher_id is None:
                voucher = Voucher(**fields)
                self._session.add(voucher)
                self._session.flush()
                return voucher

            voucher = self.get(voucher_id)
            for name, value in fields.items():
                setattr(voucher, name, value)
            self._session.flush()
            return voucher
        except IntegrityError as exc:
            raise ConflictError("Voucher write violates a uniqueness constraint") from exc
        except SQLAlchemyError as exc:
            raise StorageError("Unable to write voucher") from exc

    def compare_and_set(
        self,
        voucher_id: int,
        expected_version: int,
        fields: Mapping[str, Any],
    ) -> Voucher:
        """Apply ``fields`` only if the stored version still equals ``expected_version``."""

        values = dict(fields)
        values["version"] = expected_version + 1
        statement = (
            update(Voucher)
            .where(Voucher.id == voucher_id, Voucher.version == expected_version)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        try:
            result = self._session.execute(statement)
        except IntegrityError as exc:
            raise ConflictError(
                f"Voucher {voucher_id} update violates a uniqueness constraint"
            ) from exc
        except SQLAlchemyError as exc:
            raise StorageError(f"Unable to update voucher {voucher_id}") from exc

        if result.rowcount != 1:
            LOGGER.warning(
                "voucher_compare_and_set_lost",
                voucher_id=voucher_id,
                expected_version=expected_version,
            )
            raise ConflictError(
                f"Voucher {voucher_id} was modified concurrently; reload and retry"
            )
        return self.get(voucher_id)

    def append_history(self, voucher_id: int, entries: Iterable[Mapping[str, Any]]) -> None:
        """Append entries after the current highest sequence number."""

        try:
            current = self._session.execute(
                select(func.coalesce(func.max(VoucherHistory.sequence), 0)).where(
                    VoucherHistory.voucher_id == voucher_id
                )
            ).scalar_one()
            for offset, entry in enumerate(entries, start=1):
                self._session.add(
                    VoucherHistory(voucher_id=voucher_id, sequence=current + offset, **entry)
                )
            self._session.flush()
        except IntegrityError as exc:
            raise ConflictError(f"History of voucher {voucher_id} changed concurrently") from exc
        except SQLAlchemyError as exc:
            raise StorageError(f"Unable to append history for voucher {voucher_id}") from exc

    def query(
        self,
        predicate: ColumnElement[bool] | None = None,
        order_by: Sequence[Any] = (),
    ) -> list[Voucher]:
        statement = select(Voucher)
        if predicate is not None:
            statement = statement.where(predicate)
        if order_by:
            statement = statement.order_by(*order_by)
        try:
            return list(self._session.execute(statement).scalars().all())
        except SQLAlchemyError as exc:
            raise StorageError("Unable to query vouchers") from exc

    def count_tickets(self) -> int:
        try:
            return self._session.execute(
                select(func.count(Voucher.id)).where(Voucher.ticket_number.is_not(None))
            ).scalar_one()
        except SQLAlchemyError as exc:
            raise StorageError("Unable to count issued tickets") from exc

    def find_idempotency_key(self, key: str) -> IdempotencyKey | None:
        try:
            return self._session.get(IdempotencyKey, key)
        except SQLAlchemyError as exc:
            raise StorageError("Unable to read idempotency ledger") from exc

    def record_idempotency_key(
        self,
        key: str,
        *,
        action: str,
        voucher_id: int,
        actor_id: int,
        response: str,
    ) -> None:
        try:
            self._session.add(
                IdempotencyKey(
                    key=key,
                    action=action,
                    voucher_id=voucher_id,
                    actor_id=actor_id,
                    response=response,
                )
            )
            self._session.flush()
        except IntegrityError as exc:
            raise ConflictError(f"Idempotency key {key!r} was applied concurrently") from exc
        except SQLAlchemyError as exc:
            raise StorageError("Unable to write idempotency ledger") from exc


__all__ = ["SqlDocumentStore"]
