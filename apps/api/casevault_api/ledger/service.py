"""Audit ledger service with per-case hash chaining."""

import logging
import threading
import time
import weakref
from datetime import datetime, timezone
from typing import Callable, Optional, Union

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from casevault_api.ledger.actions import AuditAction, action_value
from casevault_api.ledger.entry import (
    CURRENT_FORMAT_VERSION,
    GENESIS_HASH,
    compute_entry_hash,
    format_timestamp,
)
from casevault_api.ledger.exceptions import (
    LedgerAppendConflict,
    LedgerError,
    LedgerPersistenceError,
)
from casevault_api.ledger.store import LedgerStore
from casevault_api.ledger.verifier import ChainVerifier, VerificationResult
from casevault_api.models import LedgerEntry
from casevault_api.settings import get_settings
from casevault_api.utils.metrics import (
    ledger_append_conflicts,
    ledger_append_duration,
    ledger_appends,
)

logger = logging.getLogger(__name__)
settings = get_settings()

# One lock per case, shared by every LedgerService in the process. Entries go
# away once no append for the case holds its lock.
_case_locks: "weakref.WeakValueDictionary[int, threading.Lock]" = weakref.WeakValueDictionary()
_case_locks_guard = threading.Lock()


def _lock_for_case(case_id: int) -> threading.Lock:
    """Get or create the append lock for a case."""
    with _case_locks_guard:
        lock = _case_locks.get(case_id)
        if lock is None:
            lock = threading.Lock()
            _case_locks[case_id] = lock
        return lock


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LedgerService:
    """Tamper-evident audit ledger with hash chaining.

    ``append`` commits the session it was given. Business handlers commit their
    own changes first and then audit them, so a failed append can roll back
    without touching the business write.
    """

    def __init__(self, db: Session, clock: Optional[Callable[[], datetime]] = None):
        """Initialize ledger service."""
        self.db = db
        self.store = LedgerStore(db)
        self._clock = clock or _utcnow

    def append(
        self,
        case_id: int,
        actor_id: int,
        action: Union[AuditAction, str],
        details: str,
    ) -> LedgerEntry:
        """Append an entry to a case's chain.

        Raises:
            LedgerAppendConflict: if the chain head moved twice underneath us
            LedgerPersistenceError: if the store is unavailable or the lock timed out
        """
        action = action_value(action)
        if not isinstance(details, str):
            raise TypeError("details must be a string")

        started = time.perf_counter()
        lock = _lock_for_case(case_id)
        if not lock.acquire(timeout=settings.ledger_lock_timeout_seconds):
            ledger_appends.labels(action=action, outcome="failed").inc()
            raise LedgerPersistenceError(
                case_id, action, "timed out waiting for the case append lock"
            )

        try:
            try:
                entry = self._append_once(case_id, actor_id, action, details)
            except LedgerAppendConflict as e:
                ledger_append_conflicts.inc()
                logger.warning(
                    "Ledger append conflict, retrying with fresh chain head",
                    extra={"case_id": case_id, "action": action, "previous_hash": e.previous_hash},
                )
                entry = self._append_once(case_id, actor_id, action, details)
        except LedgerError:
            ledger_appends.labels(action=action, outcome="failed").inc()
            raise
        finally:
            lock.release()
            ledger_append_duration.observe(time.perf_counter() - started)

        ledger_appends.labels(action=action, outcome="appended").inc()
        logger.debug(
            "Ledger entry appended",
            extra={"case_id": case_id, "action": action, "sequence": entry.sequence},
        )
        return entry

    def _append_once(self, case_id: int, actor_id: int, action: str, details: str) -> LedgerEntry:
        """Read the head, build the next entry and commit it."""
        previous = self.store.most_recent_entry(case_id)
        if previous is None:
            previous_hash = GENESIS_HASH
            sequence = 0
            floor = None
        else:
            previous_hash = previous.entry_hash
            sequence = previous.sequence + 1
            floor = previous.timestamp

        timestamp = format_timestamp(self._clock())
        # Keep timestamps non-decreasing if the clock steps backwards
        if floor is not None and timestamp < floor:
            timestamp = floor

        entry_hash = compute_entry_hash(
            case_id, actor_id, action, details, timestamp, previous_hash
        )
        entry = LedgerEntry(
            case_id=case_id,
            actor_id=actor_id,
            action=action,
            details=details,
            timestamp=timestamp,
            sequence=sequence,
            entry_hash=entry_hash,
            previous_hash=previous_hash,
            format_version=CURRENT_FORMAT_VERSION,
        )

        try:
            self.store.add(entry)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            head = self.store.most_recent_entry(case_id)
            head_hash = head.entry_hash if head is not None else GENESIS_HASH
            if head_hash != previous_hash:
                raise LedgerAppendConflict(case_id, previous_hash) from e
            raise LedgerPersistenceError(case_id, action, str(e.orig)) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            raise LedgerPersistenceError(case_id, action, str(e)) from e

        return entry

    def record(
        self,
        case_id: int,
        actor_id: int,
        action: Union[AuditAction, str],
        details: str,
    ) -> Optional[LedgerEntry]:
        """Append on behalf of a business action that must not fail because of auditing.

        Returns None when the append failed; the failure is logged for operators.
        """
        try:
            return self.append(case_id, actor_id, action, details)
        except LedgerError as e:
            logger.error(
                f"Audit ledger append failed, action left unaudited: {e}",
                exc_info=True,
                extra={
                    "case_id": case_id,
                    "actor_id": actor_id,
                    "action": action_value(action),
                },
            )
            return None

    def get_entries(self, case_id: int) -> list[LedgerEntry]:
        """Get a case's entries in chain order."""
        return self.store.all_entries(case_id)

    def verify_chain(self, case_id: int) -> VerificationResult:
        """Verify hash chain integrity for a case."""
        return ChainVerifier(self.db).verify(case_id)
