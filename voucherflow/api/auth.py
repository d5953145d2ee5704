"""Signup and profile endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from voucherflow.core.security import get_current_actor, issue_token
from voucherflow.db import get_session_dependency
from voucherflow.models import UserProfile
from voucherflow.schemas.actor import Actor
from voucherflow.schemas.user import SignupRequest, SignupResponse, UserRead
from voucherflow.services import directory

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/signup", response_model=SignupResponse, status_code=status.HTTP_201_CREATED)
def signup(
    payload: SignupRequest,
    session: Session = Depends(get_session_dependency),
) -> SignupResponse:
    """Register a profile that stays pending until a super-user assigns a role."""

    user = directory.register_user(session, payload)
    return SignupResponse(user=UserRead.model_validate(user), token=issue_token(user.id))


@router.get("/me", response_model=UserRead)
def read_current_user(
    actor: Actor = Depends(get_current_actor),
    session: Session = Depends(get_session_dependency),
) -> UserProfile | None:
    """Return the authenticated user's profile."""

    return session.get(UserProfile, actor.actor_id)
