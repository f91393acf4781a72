"""Hash chain verification for case audit ledgers."""

import hmac
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from casevault_api.ledger.entry import GENESIS_HASH, hash_of
from casevault_api.ledger.exceptions import ChainBroken
from casevault_api.ledger.store import LedgerStore
from casevault_api.utils.metrics import chain_verifications

logger = logging.getLogger(__name__)


class BreakReason(str, Enum):
    """Why a chain failed verification."""

    HASH_MISMATCH = "HASH_MISMATCH"  # an entry's fields no longer produce its stored hash
    LINK_MISMATCH = "LINK_MISMATCH"  # an entry was deleted, inserted or reordered


@dataclass(frozen=True)
class VerificationResult:
    """Verdict of walking a case's chain."""

    case_id: int
    valid: bool
    entries_checked: int
    head_hash: str = GENESIS_HASH
    broken_at: Optional[int] = None
    reason: Optional[BreakReason] = None
    detail: Optional[str] = None

    def raise_for_broken(self):
        """Raise ChainBroken if the chain did not verify."""
        if not self.valid:
            raise ChainBroken(self.case_id, self.broken_at, self.reason.value, self.detail)

    def to_dict(self) -> dict:
        return {
            "case_id": self.case_id,
            "valid": self.valid,
            "entries_checked": self.entries_checked,
            "head_hash": self.head_hash,
            "broken_at": self.broken_at,
            "reason": self.reason.value if self.reason else None,
            "detail": self.detail,
        }


def verify_entries(case_id: int, entries: Iterable) -> VerificationResult:
    """Verify an ordered sequence of entries belonging to one case.

    Each entry is checked in two steps: its hash is recomputed from its own
    fields, then its ``previous_hash`` and sequence are compared with the entry
    before it. The first failure ends the walk.
    """
    expected_prev = GENESIS_HASH
    position = -1

    for position, entry in enumerate(entries):
        try:
            recomputed = hash_of(entry)
        except ValueError as e:
            return VerificationResult(
                case_id=case_id,
                valid=False,
                entries_checked=position,
                head_hash=expected_prev,
                broken_at=position,
                reason=BreakReason.HASH_MISMATCH,
                detail=str(e),
            )

        stored = (entry.entry_hash or "").encode("utf-8")
        if not hmac.compare_digest(recomputed.encode("ascii"), stored):
            return VerificationResult(
                case_id=case_id,
                valid=False,
                entries_checked=position,
                head_hash=expected_prev,
                broken_at=position,
                reason=BreakReason.HASH_MISMATCH,
                detail=f"entry {entry.id} stored hash does not match its fields",
            )

        if entry.previous_hash != expected_prev:
            return VerificationResult(
                case_id=case_id,
                valid=False,
                entries_checked=position,
                head_hash=expected_prev,
                broken_at=position,
                reason=BreakReason.LINK_MISMATCH,
                detail=f"entry {entry.id} does not link to the preceding entry",
            )

        if entry.sequence is not None and entry.sequence != position:
            return VerificationResult(
                case_id=case_id,
                valid=False,
                entries_checked=position,
                head_hash=expected_prev,
                broken_at=position,
                reason=BreakReason.LINK_MISMATCH,
                detail=f"entry {entry.id} has sequence {entry.sequence}, expected {position}",
            )

        expected_prev = entry.entry_hash

    return VerificationResult(
        case_id=case_id,
        valid=True,
        entries_checked=position + 1,
        head_hash=expected_prev,
    )


class ChainVerifier:
    """Walk a case's stored chain and recompute every link."""

    def __init__(self, db: Session):
        """Initialize chain verifier."""
        self.store = LedgerStore(db)

    def verify(self, case_id: int) -> VerificationResult:
        """Verify a case's chain from the store."""
        result = verify_entries(case_id, self.store.all_entries(case_id))
        chain_verifications.labels(result="valid" if result.valid else "broken").inc()

        if not result.valid:
            logger.warning(
                "Audit chain verification failed",
                extra={
                    "case_id": case_id,
                    "broken_at": result.broken_at,
                    "reason": result.reason.value,
                },
            )
        return result
