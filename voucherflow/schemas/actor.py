"""Resolved actor passed explicitly into every engine call."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from voucherflow.core.roles import Role


class Actor(BaseModel):
    """Authenticated identity with its role and organizational affiliation."""

    model_config = ConfigDict(frozen=True)

    actor_id: int
    role: Role
    name: str | None = None
    company_id: int | None = None
    bank_id: int | None = None
