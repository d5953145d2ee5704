"""Tests for legacy attachment normalization and its migration script."""

from __future__ import annotations

import importlib.util
import json
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[2]))

from voucherflow.services.normalization import normalize_legacy_attachments

MIGRATION = (
    Path(__file__).resolve().parents[2]
    / "voucherflow"
    / "db"
    / "migrations"
    / "20251019_normalize_attachment_refs.py"
)


def _load_migration():  # type: ignore[no-untyped-def]
    loader_spec = importlib.util.spec_from_file_location("normalize_attachment_refs", MIGRATION)
    module = importlib.util.module_from_spec(loader_spec)
    assert loader_spec.loader is not None
    loader_spec.loader.exec_module(module)
    return module


def test_legacy_keys_are_renamed() -> None:
    document = {
        "imageUrl": "s3://files/receipts/a.jpg",
        "pdfUrl": "s3://files/vouchers/a.pdf",
        "paidPdfUrl": "s3://files/paid_vouchers/a.pdf",
        "status": "in_progress",
        "amount": 100,
    }

    normalized = normalize_legacy_attachments(document)

    assert normalized == {
        "receipt_ref": "s3://files/receipts/a.jpg",
        "voucher_ref": "s3://files/vouchers/a.pdf",
        "paid_ref": "s3://files/paid_vouchers/a.pdf",
        "status": "pending",
        "amount": 100,
    }
    assert "imageUrl" in document


def test_canonical_key_wins_over_legacy_keys() -> None:
    normalized = normalize_legacy_attachments(
        {
            "receipt_ref": "s3://files/receipts/new.jpg",
            "receiptUrl": "s3://files/receipts/old.jpg",
            "voucherUrl": "",
            "pdfUrl": "s3://files/vouchers/fallback.pdf",
            "status": "approved",
        }
    )

    assert normalized["receipt_ref"] == "s3://files/receipts/new.jpg"
    assert normalized["voucher_ref"] == "s3://files/vouchers/fallback.pdf"
    assert "paid_ref" not in normalized
    assert normalized["status"] == "approved"
    assert not {"receiptUrl", "voucherUrl", "pdfUrl"} & normalized.keys()


def test_migration_rewrites_keyed_export(tmp_path: Path) -> None:
    source = tmp_path / "export.json"
    destination = tmp_path / "normalized.json"
    source.write_text(
        json.dumps(
            {
                "abc": {"imageUrl": "s3://files/receipts/a.jpg", "status": "in_progress"},
                "def": {"receiptUrl": "s3://files/receipts/b.jpg", "status": "approved"},
            }
        ),
        encoding="utf-8",
    )

    written = _load_migration().upgrade(source, destination)

    assert written == 2
    documents = json.loads(destination.read_text(encoding="utf-8"))
    assert documents == [
        {"id": "abc", "receipt_ref": "s3://files/receipts/a.jpg", "status": "pending"},
        {"id": "def", "receipt_ref": "s3://files/receipts/b.jpg", "status": "approved"},
    ]
