"""Voucher workflow endpoints."""

from __future__ import annotations

from decimal import Decimal
from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, Header, UploadFile
from fastapi.concurrency import run_in_threadpool

from voucherflow.core.security import get_current_actor
from voucherflow.schemas.actor import Actor
from voucherflow.schemas.voucher import (
    CommentRequest,
    RejectRequest,
    TransitionRequest,
    VoucherDraft,
    VoucherRead,
)
from voucherflow.services.attachments import PAID_VOUCHERS, RECEIPTS, VOUCHERS
from voucherflow.services.workflow import WorkflowEngine, get_workflow_engine

router = APIRouter(prefix="/vouchers", tags=["vouchers"])

ActorDep = Annotated[Actor, Depends(get_current_actor)]
EngineDep = Annotated[WorkflowEngine, Depends(get_workflow_engine)]
IdempotencyKey = Annotated[str | None, Header(alias="Idempotency-Key")]


async def _store_upload(engine: WorkflowEngine, upload: UploadFile, kind: str) -> str:
    """Persist an uploaded file and return its reference before any transition runs."""

    data = await upload.read()
    return await run_in_threadpool(
        engine.upload_attachment,
        data,
        filename=upload.filename or kind,
        kind=kind,
        content_type=upload.content_type,
    )


@router.get("", response_model=list[VoucherRead])
def list_vouchers(actor: ActorDep, engine: EngineDep) -> list[VoucherRead]:
    """Return the vouchers visible to the caller's role, newest change first."""

    return engine.list_for(actor.role, actor)


@router.post("", response_model=VoucherRead, status_code=201)
async def submit_voucher(
    actor: ActorDep,
    engine: EngineDep,
    amount: Annotated[Decimal, Form()],
    bank_name: Annotated[str, Form()],
    account_title: Annotated[str, Form()],
    account_number: Annotated[str, Form()],
    receipt: Annotated[UploadFile, File()],
    description: Annotated[str | None, Form()] = None,
    idempotency_key: IdempotencyKey = None,
) -> VoucherRead:
    """Submit a payment request with its receipt."""

    receipt_ref = await _store_upload(engine, receipt, RECEIPTS)
    draft = VoucherDraft(
        amount=amount,
        bank_name=bank_name,
        account_title=account_title,
        account_number=account_number,
        description=description,
        receipt_ref=receipt_ref,
    )
    return await run_in_threadpool(
        engine.submit, draft, actor, idempotency_key=idempotency_key
    )


@router.get("/{voucher_id}", response_model=VoucherRead)
def get_voucher(voucher_id: int, actor: ActorDep, engine: EngineDep) -> VoucherRead:
    return engine.get(voucher_id, actor)


@router.post("/{voucher_id}/approve", response_model=VoucherRead)
def approve_voucher(
    voucher_id: int,
    actor: ActorDep,
    engine: EngineDep,
    payload: TransitionRequest | None = None,
    idempotency_key: IdempotencyKey = None,
) -> VoucherRead:
    payload = payload or TransitionRequest()
    return engine.approve(
        voucher_id,
        actor,
        expected_version=payload.expected_version,
        idempotency_key=idempotency_key,
    )


@router.post("/{voucher_id}/reject", response_model=VoucherRead)
def reject_voucher(
    voucher_id: int,
    payload: RejectRequest,
    actor: ActorDep,
    engine: EngineDep,
    idempotency_key: IdempotencyKey = None,
) -> VoucherRead:
    return engine.reject(
        voucher_id,
        actor,
        payload.reason,
        expected_version=payload.expected_version,
        idempotency_key=idempotency_key,
    )


@router.post("/{voucher_id}/resubmit", response_model=VoucherRead)
def resubmit_voucher(
    voucher_id: int,
    actor: ActorDep,
    engine: EngineDep,
    payload: TransitionRequest | None = None,
    idempotency_key: IdempotencyKey = None,
) -> VoucherRead:
    payload = payload or TransitionRequest()
    return engine.resubmit(
        voucher_id,
        actor,
        expected_version=payload.expected_version,
        idempotency_key=idempotency_key,
    )


@router.post("/{voucher_id}/voucher", response_model=VoucherRead)
async def create_voucher(
    voucher_id: int,
    actor: ActorDep,
    engine: EngineDep,
    description: Annotated[str, Form()],
    voucher: Annotated[UploadFile, File()],
    expected_version: Annotated[int | None, Form()] = None,
    idempotency_key: IdempotencyKey = None,
) -> VoucherRead:
    """Attach the voucher document and issue a ticket number."""

    voucher_ref = await _store_upload(engine, voucher, VOUCHERS)
    return await run_in_threadpool(
        engine.create_voucher,
        voucher_id,
        actor,
        voucher_ref,
        description,
        expected_version=expected_version,
        idempotency_key=idempotency_key,
    )


@router.post("/{voucher_id}/check", response_model=VoucherRead)
def check_voucher(
    voucher_id: int,
    actor: ActorDep,
    engine: EngineDep,
    payload: TransitionRequest | None = None,
    idempotency_key: IdempotencyKey = None,
) -> VoucherRead:
    payload = payload or TransitionRequest()
    return engine.check(
        voucher_id,
        actor,
        expected_version=payload.expected_version,
        idempotency_key=idempotency_key,
    )


@router.post("/{voucher_id}/initiate", response_model=VoucherRead)
def initiate_voucher(
    voucher_id: int,
    actor: ActorDep,
    engine: EngineDep,
    payload: TransitionRequest | None = None,
    idempotency_key: IdempotencyKey = None,
) -> VoucherRead:
    payload = payload or TransitionRequest()
    return engine.initiate(
        voucher_id,
        actor,
        expected_version=payload.expected_version,
        idempotency_key=idempotency_key,
    )


@router.post("/{voucher_id}/release", response_model=VoucherRead)
def release_payment(
    voucher_id: int,
    actor: ActorDep,
    engine: EngineDep,
    payload: TransitionRequest | None = None,
    idempotency_key: IdempotencyKey = None,
) -> VoucherRead:
    payload = payload or TransitionRequest()
    return engine.release_payment(
        voucher_id,
        actor,
        expected_version=payload.expected_version,
        idempotency_key=idempotency_key,
    )


@router.post("/{voucher_id}/mark-initiated", response_model=VoucherRead)
def mark_payment_initiated(
    voucher_id: int,
    actor: ActorDep,
    engine: EngineDep,
    payload: TransitionRequest | None = None,
    idempotency_key: IdempotencyKey = None,
) -> VoucherRead:
    payload = payload or TransitionRequest()
    return engine.mark_payment_initiated(
        voucher_id,
        actor,
        expected_version=payload.expected_version,
        idempotency_key=idempotency_key,
    )


@router.post("/{voucher_id}/paid-proof", response_model=VoucherRead)
async def publish_paid_proof(
    voucher_id: int,
    actor: ActorDep,
    engine: EngineDep,
    paid: Annotated[UploadFile, File()],
    expected_version: Annotated[int | None, Form()] = None,
    idempotency_key: IdempotencyKey = None,
) -> VoucherRead:
    """Attach the proof of payout."""

    paid_ref = await _store_upload(engine, paid, PAID_VOUCHERS)
    return await run_in_threadpool(
        engine.publish_paid_proof,
        voucher_id,
        actor,
        paid_ref,
        expected_version=expected_version,
        idempotency_key=idempotency_key,
    )


@router.post("/{voucher_id}/close", response_model=VoucherRead)
def close_voucher(
    voucher_id: int,
    actor: ActorDep,
    engine: EngineDep,
    payload: TransitionRequest | None = None,
    idempotency_key: IdempotencyKey = None,
) -> VoucherRead:
    payload = payload or TransitionRequest()
    return engine.close(
        voucher_id,
        actor,
        expected_version=payload.expected_version,
        idempotency_key=idempotency_key,
    )


@router.post("/{voucher_id}/comments", response_model=VoucherRead)
def add_comment(
    voucher_id: int,
    payload: CommentRequest,
    actor: ActorDep,
    engine: EngineDep,
    idempotency_key: IdempotencyKey = None,
) -> VoucherRead:
    return engine.add_comment(
        voucher_id,
        actor,
        payload.text,
        expected_version=payload.expected_version,
        idempotency_key=idempotency_key,
    )


__all__ = ["router"]
