"""Case-scoped, append-only persistence for ledger entries."""

from typing import Optional

from sqlalchemy.orm import Session

from casevault_api.models import LedgerEntry


class LedgerStore:
    """Read and append ledger entries for a single case at a time.

    There is no update or per-entry delete. Entries only leave the store through ``delete_case_entries`` when a whole case is purged.
    """

    def __init__(self, db: Session):
        """Initialize ledger store."""
        self.db = db

    def most_recent_entry(self, case_id: int) -> Optional[LedgerEntry]:
        """Get the chain head for a case, or None for an empty chain."""
        return (
            self.db.query(LedgerEntry)
            .filter(LedgerEntry.case_id == case_id)
            .order_by(
                LedgerEntry.timestamp.desc(),
                LedgerEntry.sequence.desc(),
                LedgerEntry.id.desc(),
            )
            .first()
        )

    def all_entries(self, case_id: int) -> list[LedgerEntry]:
        """Get every entry for a case in chain order."""
        return (
            self.db.query(LedgerEntry)
            .filter(LedgerEntry.case_id == case_id)
            .order_by(
                LedgerEntry.timestamp.asc(),
                LedgerEntry.sequence.asc(),
                LedgerEntry.id.asc(),
            )
            .all()
        )

    def count(self, case_id: int) -> int:
        """Count entries for a case."""
        return self.db.query(LedgerEntry).filter(LedgerEntry.case_id == case_id).count()

    def add(self, entry: LedgerEntry) -> LedgerEntry:
        """Stage a new entry and flush it so constraint violations surface here."""
        self.db.add(entry)
        self.db.flush()
        return entry

    def delete_case_entries(self, case_id: int) -> int:
        """Remove a purged case's entire chain. Returns the number of rows removed."""
        return (
            self.db.query(LedgerEntry)
            .filter(LedgerEntry.case_id == case_id)
            .delete(synchronize_session=False)
        )
