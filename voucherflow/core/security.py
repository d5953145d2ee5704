"""Identity directory: bearer tokens to resolved actors."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import structlog
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from voucherflow.core.config import get_settings
from voucherflow.core.errors import ForbiddenError, StorageError, UnauthorizedError
from voucherflow.core.roles import Role
from voucherflow.db import get_session_dependency
from voucherflow.models import UserProfile
from voucherflow.schemas.actor import Actor

LOGGER = structlog.get_logger(__name__)

_scheme = HTTPBearer(auto_error=False)


# -------------------------------------------------------
# Token Utilities
# -------------------------------------------------------

def issue_token(user_id: int, *, ttl: timedelta | None = None) -> str:
    """Sign a bearer token for ``user_id`` with the configured secret."""

    settings = get_settings()
    now = datetime.now(timezone.utc)
    expires = now + (ttl or timedelta(minutes=settings.identity_token_ttl_minutes))
    claims = {
        "sub": str(user_id),
        "aud": settings.identity_audience,
        "iat": int(now.timestamp()),
        "exp": int(expires.timestamp()),
    }
    return jwt.encode(
        claims,
        settings.identity_token_secret,
        algorithm=settings.identity_token_algorithm,
    )


def _decode_token(token: str) -> dict[str, Any]:
    settings = get_settings()
    try:
        return jwt.decode(
            token,
            settings.identity_token_secret,
            algorithms=[settings.identity_token_algorithm],
            audience=settings.identity_audience,
        )
    except ExpiredSignatureError as exc:
        raise UnauthorizedError("Token expired") from exc
    except JWTError as exc:
        raise UnauthorizedError("Invalid token") from exc


# -------------------------------------------------------
# Actor Resolution
# -------------------------------------------------------

class IdentityDirectory:
    """Authenticates a bearer token and reports the actor's role and affiliation."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def lookup(self, user_id: int) -> Actor:
        """Return the actor for an existing, active user with an assigned role."""

        try:
            user = self._session.get(UserProfile, user_id)
        except SQLAlchemyError as exc:
            raise StorageError("Identity directory unavailable") from exc
        if user is None or not user.is_active:
            raise UnauthorizedError("Account not found or deactivated")
        if user.pending_approval or not user.role:
            raise ForbiddenError("Account pending approval")
        return Actor(
            actor_id=user.id,
            role=Role(user.role),
            name=user.name,
            company_id=user.company_id,
            bank_id=user.bank_id,
        )

    def resolve(self, token: str) -> Actor:
        payload = _decode_token(token)
        subject = payload.get("sub")
        try:
            user_id = int(subject)
        except (TypeError, ValueError) as exc:
            raise UnauthorizedError("Token missing subject") from exc
        actor = self.lookup(user_id)
        LOGGER.debug("actor_resolved", actor_id=actor.actor_id, role=actor.role.value)
        return actor


def get_current_actor(
    credentials: HTTPAuthorizationCredentials | None = Depends(_scheme),
    session: Session = Depends(get_session_dependency),
) -> Actor:
    """Resolve the calling actor from the bearer token."""

    if credentials is None:
        raise UnauthorizedError("Authorization header missing")
    return IdentityDirectory(session).resolve(credentials.credentials)


def require_roles(*roles: Role):
    """Return a dependency that admits only actors holding one of ``roles``."""

    allowed = frozenset(roles)

    def dependency(actor: Actor = Depends(get_current_actor)) -> Actor:
        if actor.role not in allowed:
            raise ForbiddenError("Insufficient permissions")
        return actor

    return dependency


__all__ = [
    "IdentityDirectory",
    "get_current_actor",
    "issue_token",
    "require_roles",
]
