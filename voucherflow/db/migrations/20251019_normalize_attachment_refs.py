"""Rewrite a legacy voucher export so every document uses canonical attachment keys."""

from __future__ import annotations

import json
import sys
from pathlib import Path

import structlog

from voucherflow.services.normalization import normalize_legacy_attachments

LOGGER = structlog.get_logger(__name__)


def upgrade(source: Path, destination: Path) -> int:
    """Normalize every document in ``source`` and write them to ``destination``.

    ``source`` holds a JSON list of documents, or an object mapping document
    ids to documents. Returns the number of documents written.
    """

    raw = json.loads(source.read_text(encoding="utf-8"))
    if isinstance(raw, dict):
        documents = [{"id": key, **value} for key, value in raw.items()]
    elif isinstance(raw, list):
        documents = raw
    else:
        raise RuntimeError(f"Unsupported export format in {source}")

    normalized = [normalize_legacy_attachments(document) for document in documents]
    destination.write_text(json.dumps(normalized, indent=2, default=str), encoding="utf-8")
    LOGGER.info(
        "legacy_attachments_normalized",
        source=str(source),
        destination=str(destination),
        documents=len(normalized),
    )
    return len(normalized)


if __name__ == "__main__":
    if len(sys.argv) != 3:
        raise SystemExit("usage: 20251019_normalize_attachment_refs.py SOURCE DESTINATION")
    upgrade(Path(sys.argv[1]), Path(sys.argv[2]))


__all__ = ["upgrade"]
