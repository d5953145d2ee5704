"""ORM models exposed for easy imports."""

from .bank import Bank
from .company import Company
from .idempotency import IdempotencyKey
from .user import UserProfile
from .voucher import Voucher, VoucherHistory

__all__ = [
    "Bank",
    "Company",
    "IdempotencyKey",
    "UserProfile",
    "Voucher",
    "VoucherHistory",
]
