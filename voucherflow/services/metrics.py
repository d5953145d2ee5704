"""Prometheus metric definitions for the voucher workflow."""

from __future__ import annotations

from prometheus_client import Counter

voucher_transitions_total = Counter(
    "voucher_transitions_total",
    "Voucher workflow operations applied, by action.",
    labelnames=["action"],
)

voucher_transition_failures_total = Counter(
    "voucher_transition_failures_total",
    "Voucher workflow operations refused, by action and error class.",
    labelnames=["action", "error"],
)

voucher_idempotent_replays_total = Counter(
    "voucher_idempotent_replays_total",
    "Operations answered from the idempotency ledger.",
    labelnames=["action"],
)

__all__ = [
    "voucher_idempotent_replays_total",
    "voucher_transition_failures_total",
    "voucher_transitions_total",
]
