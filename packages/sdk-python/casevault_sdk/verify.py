"""Offline verification of an exported audit chain."""

import hashlib
import hmac
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional

GENESIS_HASH = "0" * 64
SUPPORTED_FORMAT_VERSIONS = (1,)


@dataclass
class ChainVerdict:
    """Result of re-verifying an exported chain."""

    valid: bool
    entries_checked: int
    broken_at: Optional[int] = None
    reason: Optional[str] = None


def entry_hash(row: Mapping) -> str:
    """Recompute an entry hash from an exported row (format version 1)."""
    version = int(row.get("format_version") or 1)
    if version not in SUPPORTED_FORMAT_VERSIONS:
        raise ValueError(f"Unsupported ledger format version {version}")
    fields = [row["action"], row["details"], row["timestamp"], row["previous_hash"]]
    for value in fields:
        if not isinstance(value, str):
            raise TypeError(f"Expected text field, got {type(value).__name__}")
    preimage = "|".join([str(row["case_id"]), str(row["actor_id"])] + fields)
    return hashlib.sha256(preimage.encode("utf-8")).hexdigest()


def verify_exported_chain(rows: Iterable[Mapping]) -> ChainVerdict:
    """
    Re-verify audit log entries as returned by ``CaseVaultClient.get_audit_log``.

    Rows must be in chain order. The first hash or link mismatch ends the walk.
    """
    expected_prev = GENESIS_HASH
    checked = 0
    for position, row in enumerate(rows):
        try:
            recomputed = entry_hash(row)
        except (KeyError, TypeError, ValueError):
            return ChainVerdict(False, position, position, "HASH_MISMATCH")
        stored = str(row.get("entry_hash") or "").encode("utf-8")
        if not hmac.compare_digest(recomputed.encode("ascii"), stored):
            return ChainVerdict(False, position, position, "HASH_MISMATCH")
        if row["previous_hash"] != expected_prev:
            return ChainVerdict(False, position, position, "LINK_MISMATCH")
        expected_prev = row["entry_hash"]
        checked = position + 1
    return ChainVerdict(True, checked)
