"""Enumerated roles, role categories and voucher statuses."""

from __future__ import annotations

from enum import Enum

from .errors import ValidationError


class Role(str, Enum):
    """Designation controlling which transitions an actor may perform."""

    PAYEE = "payee"
    ADMIN = "admin"
    FINANCE = "finance"
    VOUCHER_CREATOR = "voucher_create"
    CHECKER = "checker"
    INITIATOR = "initiator"
    PAYMENT_RELEASER = "payment_releaser"
    PUBLISHER = "publisher"
    SUPER_USER = "super_user"

    @classmethod
    def parse(cls, value: "str | Role | None") -> "Role":
        """Return the role for ``value``, tolerating case and surrounding whitespace."""

        if isinstance(value, Role):
            return value
        normalized = (value or "").strip().lower()
        try:
            return cls(normalized)
        except ValueError as exc:
            raise ValidationError(f"Invalid role: {value!r}") from exc

    @property
    def category(self) -> "RoleCategory":
        return ROLE_CATEGORY[self]

    @property
    def is_administrative(self) -> bool:
        return self in ADMINISTRATIVE_ROLES


class RoleCategory(str, Enum):
    """Organizational side a role belongs to."""

    COMPANY = "company"
    FINANCE = "finance"
    OPERATIONS = "operations"
    PLATFORM = "platform"


ROLE_CATEGORY: dict[Role, RoleCategory] = {
    Role.PAYEE: RoleCategory.COMPANY,
    Role.ADMIN: RoleCategory.COMPANY,
    Role.FINANCE: RoleCategory.FINANCE,
    Role.VOUCHER_CREATOR: RoleCategory.FINANCE,
    Role.CHECKER: RoleCategory.OPERATIONS,
    Role.INITIATOR: RoleCategory.OPERATIONS,
    Role.PAYMENT_RELEASER: RoleCategory.OPERATIONS,
    Role.PUBLISHER: RoleCategory.OPERATIONS,
    Role.SUPER_USER: RoleCategory.PLATFORM,
}

ADMINISTRATIVE_ROLES: frozenset[Role] = frozenset({Role.ADMIN, Role.SUPER_USER})


class VoucherStatus(str, Enum):
    """Lifecycle states of a voucher record."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    VOUCHER_CREATED = "voucher_created"
    CHECKED = "checked"
    INITIATED = "initiated"
    PAYMENT_RELEASED = "payment_released"
    PAYMENT_INITIATED = "payment_initiated"
    PAYMENT_DONE = "payment_done"
    PAYMENT_CLOSED = "payment_closed"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES: frozenset[VoucherStatus] = frozenset(
    {VoucherStatus.PAYMENT_CLOSED, VoucherStatus.REJECTED}
)


__all__ = [
    "ADMINISTRATIVE_ROLES",
    "ROLE_CATEGORY",
    "Role",
    "RoleCategory",
    "TERMINAL_STATUSES",
    "VoucherStatus",
]
