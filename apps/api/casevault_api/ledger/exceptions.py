"""Errors raised by the audit ledger, content hashing and custody recording."""

from typing import Optional


class LedgerError(Exception):
    """Base class for audit ledger errors."""


class HashComputationError(LedgerError):
    """Input bytes could not be hashed. No digest is ever substituted."""


class LedgerAppendConflict(LedgerError):
    """Another append claimed the same chain position for this case."""

    def __init__(self, case_id: int, previous_hash: str):
        super().__init__(
            f"Concurrent append detected for case {case_id} after {previous_hash[:16]}"
        )
        self.case_id = case_id
        self.previous_hash = previous_hash


class LedgerPersistenceError(LedgerError):
    """The ledger store could not persist an entry."""

    def __init__(self, case_id: int, action: str, message: str):
        super().__init__(f"Failed to append {action} to case {case_id}: {message}")
        self.case_id = case_id
        self.action = action


class ChainBroken(LedgerError):
    """A case's hash chain failed verification."""

    def __init__(self, case_id: int, position: int, reason: str, detail: Optional[str] = None):
        message = f"Chain for case {case_id} broken at position {position}: {reason}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)
        self.case_id = case_id
        self.position = position
        self.reason = reason
        self.detail = detail


class CustodyValidationError(LedgerError):
    """A custody event is missing fields required by its event type."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field
