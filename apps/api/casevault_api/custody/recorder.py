"""Chain-of-custody recording.

Every custody event is stored twice over: as a queryable ``CustodyRecord`` and
as a ``COC_<TYPE>`` entry on the case's hash chain.
"""

import hmac
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from casevault_api.custody.schemas import CustodyEventCreate
from casevault_api.ledger.actions import AuditAction, CustodyEventType
from casevault_api.ledger.exceptions import CustodyValidationError
from casevault_api.ledger.hasher import HASH_ALGORITHM, is_sha256_hex, normalize_digest
from casevault_api.ledger.service import LedgerService
from casevault_api.models import CustodyRecord, EvidenceRecord
from casevault_api.utils.metrics import custody_events, custody_hash_mismatches

logger = logging.getLogger(__name__)

_SHA256_ALIASES = {"sha-256", "sha256", "sha_256"}


def _blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def normalize_algorithm(name: Optional[str]) -> Optional[str]:
    """Map common spellings of SHA-256 to the canonical name."""
    if name is None:
        return None
    stripped = name.strip()
    if stripped.lower() in _SHA256_ALIASES:
        return HASH_ALGORITHM
    return stripped


class CustodyRecorder:
    """Validate, persist and chain-protect custody events."""

    def __init__(self, db: Session, ledger: Optional[LedgerService] = None):
        """Initialize custody recorder."""
        self.db = db
        self.ledger = ledger or LedgerService(db)

    def _validate(self, case_id: int, event: CustodyEventCreate) -> EvidenceRecord:
        """Check type-specific required fields. Nothing is written on failure."""
        evidence = (
            self.db.query(EvidenceRecord)
            .filter(EvidenceRecord.id == event.evidence_id, EvidenceRecord.case_id == case_id)
            .first()
        )
        if not evidence:
            raise CustodyValidationError(
                f"Evidence {event.evidence_id} does not belong to case {case_id}",
                field="evidence_id",
            )

        if _blank(event.reason):
            raise CustodyValidationError("reason is required", field="reason")

        event_type = CustodyEventType(event.event_type)
        if event_type == CustodyEventType.TRANSFERRED:
            if _blank(event.released_by_name):
                raise CustodyValidationError(
                    "TRANSFERRED events require released_by_name", field="released_by_name"
                )
            if _blank(event.received_by_name):
                raise CustodyValidationError(
                    "TRANSFERRED events require received_by_name", field="received_by_name"
                )
        elif event_type == CustodyEventType.ACCESSED:
            if _blank(event.access_type):
                raise CustodyValidationError(
                    "ACCESSED events require access_type", field="access_type"
                )
        elif event_type == CustodyEventType.VERIFIED:
            if _blank(event.hash_algorithm):
                raise CustodyValidationError(
                    "VERIFIED events require hash_algorithm", field="hash_algorithm"
                )
            if event.hash_value is None and event.hash_match is None:
                raise CustodyValidationError(
                    "VERIFIED events require hash_value or hash_match", field="hash_value"
                )
            if event.hash_value is not None:
                if normalize_algorithm(event.hash_algorithm) != HASH_ALGORITHM:
                    raise CustodyValidationError(
                        f"Only {HASH_ALGORITHM} digests can be compared with stored evidence hashes",
                        field="hash_algorithm",
                    )
                if not is_sha256_hex(normalize_digest(event.hash_value)):
                    raise CustodyValidationError(
                        "hash_value must be a 64-character SHA-256 hex digest",
                        field="hash_value",
                    )

        return evidence

    def record_event(self, case_id: int, actor_id: int, event: CustodyEventCreate) -> CustodyRecord:
        """Record a custody event and append its COC_<TYPE> ledger entry.

        For VERIFIED events with a supplied digest, ``hash_match`` is the result
        of comparing it with the evidence's stored content hash. A mismatch is
        recorded as-is; it is an auditable fact, not an error.

        Raises:
            CustodyValidationError: before anything is persisted
        """
        evidence = self._validate(case_id, event)
        event_type = CustodyEventType(event.event_type)

        record = CustodyRecord(
            case_id=case_id,
            evidence_id=evidence.id,
            event_type=event_type.value,
            event_datetime=event.event_datetime or datetime.utcnow(),
            reason=event.reason,
            location=event.location,
            condition_at_event=event.condition_at_event,
            security_controls=event.security_controls,
            notes=event.notes,
            created_by=actor_id,
        )

        if event_type == CustodyEventType.TRANSFERRED:
            record.released_by_name = event.released_by_name
            record.released_by_role = event.released_by_role
            record.received_by_name = event.received_by_name
            record.received_by_role = event.received_by_role
        elif event_type == CustodyEventType.ACCESSED:
            record.access_type = event.access_type
        elif event_type == CustodyEventType.VERIFIED:
            record.hash_algorithm = normalize_algorithm(event.hash_algorithm)
            record.hash_verified = True
            if event.hash_value is not None:
                supplied = normalize_digest(event.hash_value)
                record.hash_value = supplied
                record.hash_match = hmac.compare_digest(supplied, evidence.content_hash)
            else:
                record.hash_match = event.hash_match
            if not record.hash_match:
                custody_hash_mismatches.inc()
                logger.warning(
                    "Evidence integrity check failed",
                    extra={"case_id": case_id, "evidence_id": evidence.id, "actor_id": actor_id},
                )

        self.db.add(record)
        self.db.commit()
        custody_events.labels(event_type=event_type.value).inc()

        entry = self.ledger.record(
            case_id,
            actor_id,
            AuditAction.for_custody(event_type),
            self._details(record, evidence),
        )
        if entry is not None:
            record.ledger_entry_id = entry.id
            self.db.commit()

        return record

    @staticmethod
    def _details(record: CustodyRecord, evidence: EvidenceRecord) -> str:
        """Ledger details line summarizing a custody event."""
        details = f"{record.event_type}: {record.reason} (evidence #{evidence.id} {evidence.file_name})"
        if record.event_type == CustodyEventType.TRANSFERRED.value:
            details += f" from {record.released_by_name} to {record.received_by_name}"
        elif record.event_type == CustodyEventType.ACCESSED.value:
            details += f" access={record.access_type}"
        elif record.event_type == CustodyEventType.VERIFIED.value:
            details += f" {record.hash_algorithm} hash_match={str(bool(record.hash_match)).lower()}"
        return details

    def list_events(self, case_id: int, evidence_id: Optional[int] = None) -> list[CustodyRecord]:
        """Custody records for a case in event order."""
        query = self.db.query(CustodyRecord).filter(CustodyRecord.case_id == case_id)
        if evidence_id is not None:
            query = query.filter(CustodyRecord.evidence_id == evidence_id)
        return query.order_by(CustodyRecord.event_datetime.asc(), CustodyRecord.id.asc()).all()
