"""Voucher approval and disbursement workflow engine.

Each operation runs as one unit of work: read the record, validate it
(existence, caller's expected version, status, role, required fields), then
commit the new status, its attachment reference and the history entries
through a single compare-and-set. Attachments must already be stored when
an operation is called; the engine only verifies the reference.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from functools import lru_cache
from typing import Any

import structlog
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from voucherflow.core.config import get_settings
from voucherflow.core.errors import (
    ConflictError,
    ForbiddenError,
    InvalidTransitionError,
    StorageError,
    ValidationError,
    WorkflowError,
)
from voucherflow.core.roles import Role, VoucherStatus
from voucherflow.db import session_scope
from voucherflow.models import Voucher
from voucherflow.schemas.actor import Actor
from voucherflow.schemas.voucher import VoucherDraft, VoucherRead

from . import role_views
from .attachments import AttachmentStore, get_attachment_store
from .document_store import SqlDocumentStore
from .metrics import (
    voucher_idempotent_replays_total,
    voucher_transition_failures_total,
    voucher_transitions_total,
)
from .tickets import TicketGenerator
from .transitions import (
    APPROVE,
    CHECK,
    CLOSE,
    COMMENT,
    CREATE_VOUCHER,
    INITIATE,
    MARK_PAYMENT_INITIATED,
    PUBLISH_PAID_PROOF,
    REJECT,
    RELEASE_PAYMENT,
    RESUBMIT,
    SUBMIT,
    TRANSITIONS,
    Transition,
)

LOGGER = structlog.get_logger(__name__)

# Largest value the Numeric(12, 2) amount column holds.
MAX_AMOUNT = Decimal("9999999999.99")

# (changed fields, [(action, from_status, to_status, comment)])
Plan = tuple[dict[str, Any], list[tuple[str, VoucherStatus, VoucherStatus, str | None]]]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _required_text(value: str | None, label: str) -> str:
    text = (value or "").strip()
    if not text:
        raise ValidationError(f"{label} is required")
    return text


class WorkflowEngine:
    """Owns the transition graph, authorization checks and the audit trail."""

    def __init__(
        self,
        *,
        session_factory: Callable[[], Any] = session_scope,
        attachment_store: AttachmentStore | None = None,
        ticket_generator: TicketGenerator | None = None,
        clock: Callable[[], datetime] = _utcnow,
        auto_initiate_payment: bool | None = None,
    ) -> None:
        settings = get_settings()
        self._session_factory = session_factory
        self._attachments = attachment_store or get_attachment_store()
        self._tickets = ticket_generator or TicketGenerator(settings.ticket_prefix)
        self._tickets_seeded = ticket_generator is not None
        self._clock = clock
        self._auto_initiate_payment = (
            settings.auto_initiate_payment
            if auto_initiate_payment is None
            else auto_initiate_payment
        )

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    @contextmanager
    def _unit_of_work(self) -> Iterator[SqlDocumentStore]:
        try:
            with self._session_factory() as session:
                yield SqlDocumentStore(session)
        except IntegrityError as exc:
            raise ConflictError("Concurrent update detected while committing") from exc
        except SQLAlchemyError as exc:
            raise StorageError("Document store unavailable") from exc

    def _replay(
        self,
        store: SqlDocumentStore,
        idempotency_key: str | None,
        action: str,
        voucher_id: int | None,
        actor: Actor,
    ) -> VoucherRead | None:
        if not idempotency_key:
            return None
        entry = store.find_idempotency_key(idempotency_key)
        if entry is None:
            return None
        same_target = (
            entry.actor_id == actor.actor_id if voucher_id is None else entry.voucher_id == voucher_id
        )
        if entry.action != action or not same_target:
            raise ValidationError(
                f"Idempotency key {idempotency_key!r} was already used for another request"
            )
        voucher_idempotent_replays_total.labels(action=action).inc()
        LOGGER.info(
            "voucher_idempotent_replay",
            action=action,
            voucher_id=entry.voucher_id,
            idempotency_key=idempotency_key,
        )
        return VoucherRead.model_validate_json(entry.response)

    @staticmethod
    def _snapshot(store: SqlDocumentStore, voucher: Voucher) -> VoucherRead:
        store.session.flush()
        store.session.expire(voucher)
        return VoucherRead.model_validate(voucher)

    @staticmethod
    def _remember(
        store: SqlDocumentStore,
        idempotency_key: str | None,
        action: str,
        snapshot: VoucherRead,
        actor: Actor,
    ) -> None:
        if idempotency_key:
            store.record_idempotency_key(
                idempotency_key,
                action=action,
                voucher_id=snapshot.id,
                actor_id=actor.actor_id,
                response=snapshot.model_dump_json(),
            )

    @staticmethod
    def _refused(action: str, voucher_id: int | None, actor: Actor, exc: WorkflowError) -> None:
        voucher_transition_failures_total.labels(
            action=action, error=type(exc).__name__
        ).inc()
        LOGGER.warning(
            "voucher_transition_rejected",
            action=action,
            voucher_id=voucher_id,
            actor_id=actor.actor_id,
            role=actor.role.value,
            error=type(exc).__name__,
            detail=exc.detail,
        )

    def _require_attachment(self, reference: str | None, label: str) -> str:
        reference = (reference or "").strip()
        if not reference:
            raise ValidationError(f"{label} attachment is required")
        if not self._attachments.exists(reference):
            raise ValidationError(f"{label} attachment {reference!r} has not been stored")
        return reference

    @staticmethod
    def _authorize(transition: Transition, voucher: Voucher, actor: Actor) -> None:
        if transition.roles:
            if actor.role not in transition.roles:
                raise ForbiddenError(
                    f"Role {actor.role.value} may not {transition.action.replace('_', ' ')}"
                )
        elif actor.actor_id != voucher.submitted_by_id:
            raise ForbiddenError("Only the original submitter may resubmit a voucher")

    @staticmethod
    def _check_status(transition: Transition, voucher: Voucher) -> VoucherStatus:
        current = VoucherStatus(voucher.status)
        if current not in transition.sources:
            raise InvalidTransitionError(
                f"Cannot {transition.action.replace('_', ' ')} voucher {voucher.id} "
                f"in status {current.value}"
            )
        return current

    def _apply(
        self,
        action: str,
        voucher_id: int,
        actor: Actor,
        plan: Callable[[SqlDocumentStore, Voucher, datetime], Plan],
        *,
        expected_version: int | None,
        idempotency_key: str | None,
    ) -> VoucherRead:
        """Run ``plan`` against the current record and commit it via compare-and-set."""

        try:
            with self._unit_of_work() as store:
                replayed = self._replay(store, idempotency_key, action, voucher_id, actor)
                if replayed is not None:
                    return replayed

                voucher = store.get(voucher_id)
                if expected_version is not None and expected_version != voucher.version:
                    raise ConflictError(
                        f"Voucher {voucher_id} is at version {voucher.version}, "
                        f"expected {expected_version}; reload and retry"
                    )
                now = self._clock()
                fields, steps = plan(store, voucher, now)
                if steps:
                    fields.setdefault("status", steps[-1][2].value)
                    if steps[-1][2] != steps[0][1]:
                        fields.setdefault("status_changed_at", now)

                updated = store.compare_and_set(voucher.id, voucher.version, fields)
                store.append_history(
                    voucher.id,
                    [
                        {
                            "actor_id": actor.actor_id,
                            "actor_role": actor.role.value,
                            "action": step_action,
                            "from_status": source.value,
                            "to_status": target.value,
                            "comment": comment,
                            "created_at": now,
                        }
                        for step_action, source, target, comment in steps
                    ],
                )
                snapshot = self._snapshot(store, updated)
                self._remember(store, idempotency_key, action, snapshot, actor)
        except WorkflowError as exc:
            self._refused(action, voucher_id, actor, exc)
            raise

        voucher_transitions_total.labels(action=action).inc()
        LOGGER.info(
            "voucher_transition_applied",
            action=action,
            voucher_id=snapshot.id,
            actor_id=actor.actor_id,
            status=snapshot.status.value,
            version=snapshot.version,
        )
        return snapshot

    def _edge(
        self,
        action: str,
        voucher_id: int,
        actor: Actor,
        *,
        expected_version: int | None,
        idempotency_key: str | None,
        validate: Callable[[SqlDocumentStore], dict[str, Any]] | None = None,
        stamp: str | None = None,
        comment: str | None = None,
    ) -> VoucherRead:
        """Traverse one graph edge; ``validate`` runs after status and role checks."""

        transition = TRANSITIONS[action]

        def plan(store: SqlDocumentStore, voucher: Voucher, now: datetime) -> Plan:
            current = self._check_status(transition, voucher)
            self._authorize(transition, voucher, actor)
            fields = validate(store) if validate else {}
            if stamp:
                fields[f"{stamp}_by_id"] = actor.actor_id
                fields[f"{stamp}_at"] = now
            return fields, [(action, current, transition.target, comment)]

        return self._apply(
            action,
            voucher_id,
            actor,
            plan,
            expected_version=expected_version,
            idempotency_key=idempotency_key,
        )

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def upload_attachment(
        self,
        data: bytes,
        *,
        filename: str,
        kind: str,
        content_type: str | None = None,
    ) -> str:
        """Store an attachment and return its durable reference.

        Runs outside any database transaction; callers pass the returned
        reference to the gated operation afterwards.
        """

        return self._attachments.upload(
            data, filename=filename, kind=kind, content_type=content_type
        )

    def submit(
        self,
        draft: VoucherDraft,
        actor: Actor,
        *,
        idempotency_key: str | None = None,
    ) -> VoucherRead:
        """Create a record in ``pending`` from a payee's payment request."""

        try:
            with self._unit_of_work() as store:
                replayed = self._replay(store, idempotency_key, SUBMIT, None, actor)
                if replayed is not None:
                    return replayed

                if actor.role is not Role.PAYEE:
                    raise ForbiddenError(f"Role {actor.role.value} may not submit vouchers")
                if draft.amount is None:
                    raise ValidationError("Amount is required")
                try:
                    amount = Decimal(draft.amount).quantize(Decimal("0.01"))
                except InvalidOperation as exc:
                    raise ValidationError("Amount must be a number") from exc
                if amount <= 0:
                    raise ValidationError("Amount must be greater than zero")
                if amount > MAX_AMOUNT:
                    raise ValidationError(f"Amount must not exceed {MAX_AMOUNT}")
                bank_name = _required_text(draft.bank_name, "Bank name")
                account_title = _required_text(draft.account_title, "Account title")
                account_number = _required_text(draft.account_number, "Account number")
                receipt_ref = self._require_attachment(draft.receipt_ref, "Receipt")

                now = self._clock()
                voucher = store.put(
                    None,
                    {
                        "amount": amount,
                        "bank_name": bank_name,
                        "account_title": account_title,
                        "account_number": account_number,
                        "description": (draft.description or "").strip() or None,
                        "receipt_ref": receipt_ref,
                        "status": VoucherStatus.PENDING.value,
                        "submitted_by_id": actor.actor_id,
                        "company_id": actor.company_id,
                        "bank_id": actor.bank_id,
                        "version": 1,
                        "created_at": now,
                        "status_changed_at": now,
                    },
                )
                store.append_history(
                    voucher.id,
                    [
                        {
                            "actor_id": actor.actor_id,
                            "actor_role": actor.role.value,
                            "action": SUBMIT,
                            "from_status": None,
                            "to_status": VoucherStatus.PENDING.value,
                            "comment": None,
                            "created_at": now,
                        }
                    ],
                )
                snapshot = self._snapshot(store, voucher)
                self._remember(store, idempotency_key, SUBMIT, snapshot, actor)
        except WorkflowError as exc:
            self._refused(SUBMIT, None, actor, exc)
            raise

        voucher_transitions_total.labels(action=SUBMIT).inc()
        LOGGER.info(
            "voucher_submitted",
            voucher_id=snapshot.id,
            actor_id=actor.actor_id,
            amount=str(snapshot.amount),
        )
        return snapshot

    def approve(
        self,
        voucher_id: int,
        actor: Actor,
        *,
        expected_version: int | None = None,
        idempotency_key: str | None = None,
    ) -> VoucherRead:
        return self._edge(
            APPROVE,
            voucher_id,
            actor,
            expected_version=expected_version,
            idempotency_key=idempotency_key,
            stamp="approved",
        )

    def reject(
        self,
        voucher_id: int,
        actor: Actor,
        reason: str | None,
        *,
        expected_version: int | None = None,
        idempotency_key: str | None = None,
    ) -> VoucherRead:
        def validate(store: SqlDocumentStore) -> dict[str, Any]:
            return {"rejection_reason": _required_text(reason, "Rejection reason")}

        return self._edge(
            REJECT,
            voucher_id,
            actor,
            expected_version=expected_version,
            idempotency_key=idempotency_key,
            validate=validate,
            comment=(reason or "").strip() or None,
        )

    def resubmit(
        self,
        voucher_id: int,
        actor: Actor,
        *,
        expected_version: int | None = None,
        idempotency_key: str | None = None,
    ) -> VoucherRead:
        return self._edge(
            RESUBMIT,
            voucher_id,
            actor,
            expected_version=expected_version,
            idempotency_key=idempotency_key,
            validate=lambda store: {"rejection_reason": None},
        )

    def create_voucher(
        self,
        voucher_id: int,
        actor: Actor,
        voucher_attachment: str | None,
        description: str | None,
        ticket_generator: TicketGenerator | None = None,
        *,
        expected_version: int | None = None,
        idempotency_key: str | None = None,
    ) -> VoucherRead:
        """Attach the voucher document and issue the record's ticket number."""

        def validate(store: SqlDocumentStore) -> dict[str, Any]:
            reference = self._require_attachment(voucher_attachment, "Voucher")
            text = _required_text(description, "Description")
            return {
                "voucher_ref": reference,
                "description": text,
                "ticket_number": self._issue_ticket(store, ticket_generator),
            }

        return self._edge(
            CREATE_VOUCHER,
            voucher_id,
            actor,
            expected_version=expected_version,
            idempotency_key=idempotency_key,
            validate=validate,
            stamp="voucher_created",
        )

    def _issue_ticket(
        self, store: SqlDocumentStore, ticket_generator: TicketGenerator | None
    ) -> str:
        if ticket_generator is not None:
            return ticket_generator.next()
        if not self._tickets_seeded:
            self._tickets.seed(store.count_tickets())
            self._tickets_seeded = True
        return self._tickets.next()

    def check(
        self,
        voucher_id: int,
        actor: Actor,
        *,
        expected_version: int | None = None,
        idempotency_key: str | None = None,
    ) -> VoucherRead:
        return self._edge(
            CHECK,
            voucher_id,
            actor,
            expected_version=expected_version,
            idempotency_key=idempotency_key,
        )

    def initiate(
        self,
        voucher_id: int,
        actor: Actor,
        *,
        expected_version: int | None = None,
        idempotency_key: str | None = None,
    ) -> VoucherRead:
        return self._edge(
            INITIATE,
            voucher_id,
            actor,
            expected_version=expected_version,
            idempotency_key=idempotency_key,
        )

    def release_payment(
        self,
        voucher_id: int,
        actor: Actor,
        *,
        expected_version: int | None = None,
        idempotency_key: str | None = None,
    ) -> VoucherRead:
        """Release payment; optionally flag it for payout proof in the same commit."""

        if not self._auto_initiate_payment:
            return self._edge(
                RELEASE_PAYMENT,
                voucher_id,
                actor,
                expected_version=expected_version,
                idempotency_key=idempotency_key,
            )

        release = TRANSITIONS[RELEASE_PAYMENT]
        follow_up = TRANSITIONS[MARK_PAYMENT_INITIATED]

        def plan(store: SqlDocumentStore, voucher: Voucher, now: datetime) -> Plan:
            current = self._check_status(release, voucher)
            self._authorize(release, voucher, actor)
            return {}, [
                (RELEASE_PAYMENT, current, release.target, None),
                (MARK_PAYMENT_INITIATED, release.target, follow_up.target, None),
            ]

        return self._apply(
            RELEASE_PAYMENT,
            voucher_id,
            actor,
            plan,
            expected_version=expected_version,
            idempotency_key=idempotency_key,
        )

    def mark_payment_initiated(
        self,
        voucher_id: int,
        actor: Actor,
        *,
        expected_version: int | None = None,
        idempotency_key: str | None = None,
    ) -> VoucherRead:
        return self._edge(
            MARK_PAYMENT_INITIATED,
            voucher_id,
            actor,
            expected_version=expected_version,
            idempotency_key=idempotency_key,
        )

    def publish_paid_proof(
        self,
        voucher_id: int,
        actor: Actor,
        paid_attachment: str | None,
        *,
        expected_version: int | None = None,
        idempotency_key: str | None = None,
    ) -> VoucherRead:
        return self._edge(
            PUBLISH_PAID_PROOF,
            voucher_id,
            actor,
            expected_version=expected_version,
            idempotency_key=idempotency_key,
            validate=lambda store: {
                "paid_ref": self._require_attachment(paid_attachment, "Paid proof")
            },
            stamp="published",
        )

    def close(
        self,
        voucher_id: int,
        actor: Actor,
        *,
        expected_version: int | None = None,
        idempotency_key: str | None = None,
    ) -> VoucherRead:
        return self._edge(
            CLOSE,
            voucher_id,
            actor,
            expected_version=expected_version,
            idempotency_key=idempotency_key,
            stamp="closed",
        )

    def add_comment(
        self,
        voucher_id: int,
        actor: Actor,
        text: str | None,
        *,
        expected_version: int | None = None,
        idempotency_key: str | None = None,
    ) -> VoucherRead:
        """Append a comment entry; status and attachments are left untouched."""

        def plan(store: SqlDocumentStore, voucher: Voucher, now: datetime) -> Plan:
            current = VoucherStatus(voucher.status)
            if current.is_terminal:
                raise InvalidTransitionError(
                    f"Voucher {voucher.id} is {current.value}; comments are closed"
                )
            body = _required_text(text, "Comment text")
            return {}, [(COMMENT, current, current, body)]

        return self._apply(
            COMMENT,
            voucher_id,
            actor,
            plan,
            expected_version=expected_version,
            idempotency_key=idempotency_key,
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, voucher_id: int, actor: Actor | None = None) -> VoucherRead:
        """Return a snapshot; with ``actor``, only if the record is in their role view."""

        with self._unit_of_work() as store:
            if actor is None:
                return VoucherRead.model_validate(store.get(voucher_id))
            return VoucherRead.model_validate(role_views.get_for(store, voucher_id, actor))

    def list_for(self, role: Role, actor: Actor) -> list[VoucherRead]:
        with self._unit_of_work() as store:
            return [
                VoucherRead.model_validate(voucher)
                for voucher in role_views.list_for(store, role, actor)
            ]


@lru_cache()
def get_workflow_engine() -> WorkflowEngine:
    """Return the process-wide engine built from configuration."""

    return WorkflowEngine()


__all__ = ["WorkflowEngine", "get_workflow_engine"]
