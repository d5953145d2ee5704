"""Liveness, readiness and metrics endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.config import get_settings
from ..core.errors import StorageError
from ..db import get_session_dependency

router = APIRouter(tags=["health"])


@router.get("/health/live")
def liveness() -> dict[str, str]:
    return {"status": "live"}


@router.get("/health/ready")
def readiness(session: Session = Depends(get_session_dependency)) -> dict[str, str]:
    """Report ready once the document store answers; 503 otherwise."""

    try:
        session.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        raise StorageError("Document store unavailable") from exc
    backend = "local" if get_settings().local_attachments else "s3"
    return {"status": "ready", "attachments": backend}


@router.get("/metrics")
def metrics() -> Response:
    """Expose Prometheus counters for workflow transitions."""

    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
