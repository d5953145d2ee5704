"""Tests for ticket-number issuance."""

from __future__ import annotations

import re
import sys
import threading
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[2]))

from voucherflow.services.tickets import TicketGenerator


def test_ticket_format_and_counter() -> None:
    generator = TicketGenerator("VOC", clock_ns=lambda: 255)

    first = generator.next()
    second = generator()

    assert first == "VOC-000001-ff"
    assert second == "VOC-000002-100"
    assert generator.issued == 2


def test_stalled_clock_still_yields_increasing_suffix() -> None:
    generator = TicketGenerator("VOC", clock_ns=lambda: 1_000)

    suffixes = [int(generator.next().rsplit("-", 1)[1], 16) for _ in range(5)]

    assert suffixes == sorted(set(suffixes))


def test_seed_never_moves_counter_backwards() -> None:
    generator = TicketGenerator("VOC", start=10)

    generator.seed(4)
    assert generator.issued == 10
    generator.seed(40)
    assert re.fullmatch(r"VOC-000041-[0-9a-f]+", generator.next())


def test_concurrent_issuance_is_unique() -> None:
    generator = TicketGenerator("VOC")
    issued: list[str] = []
    lock = threading.Lock()

    def worker() -> None:
        local = [generator.next() for _ in range(200)]
        with lock:
            issued.extend(local)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(issued) == 1600
    assert len(set(issued)) == 1600
    assert generator.issued == 1600
