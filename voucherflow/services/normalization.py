"""One-time normalization of legacy attachment and status names.

Older mobile clients wrote the same attachment under different keys
(``imageUrl`` or ``receiptUrl`` for the receipt, ``voucherUrl`` or ``pdfUrl``
for the voucher, ``paidPdfUrl`` for the payout proof) and used
``in_progress`` for records awaiting finance review. Documents pass through
:func:`normalize_legacy_attachments` once on import; nothing downstream reads
the legacy keys.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

LEGACY_ATTACHMENT_KEYS: dict[str, tuple[str, ...]] = {
    "receipt_ref": ("receiptUrl", "imageUrl"),
    "voucher_ref": ("voucherUrl", "pdfUrl"),
    "paid_ref": ("paidPdfUrl",),
}

LEGACY_STATUS_ALIASES: dict[str, str] = {
    "in_progress": "pending",
}


def normalize_legacy_attachments(document: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of ``document`` using only canonical attachment keys.

    A canonical key already present wins; otherwise the first non-empty
    legacy key in preference order is used. Legacy keys are dropped.
    """

    normalized = dict(document)
    for canonical, legacy_keys in LEGACY_ATTACHMENT_KEYS.items():
        value = normalized.get(canonical)
        for legacy_key in legacy_keys:
            legacy_value = normalized.pop(legacy_key, None)
            if not value and legacy_value:
                value = legacy_value
        if value:
            normalized[canonical] = value
        else:
            normalized.pop(canonical, None)

    status = normalized.get("status")
    if isinstance(status, str):
        normalized["status"] = LEGACY_STATUS_ALIASES.get(status, status)
    return normalized


__all__ = [
    "LEGACY_ATTACHMENT_KEYS",
    "LEGACY_STATUS_ALIASES",
    "normalize_legacy_attachments",
]
