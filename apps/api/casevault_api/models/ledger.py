"""Audit ledger models."""

from sqlalchemy import Column, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from casevault_api.db.base import Base


class LedgerEntry(Base):
    """Append-only audit ledger with per-case hash chaining.

    ``timestamp`` is stored as the exact ISO-8601 string that was hashed, so the
    entry hash can be recomputed byte-for-byte from the row.
    """

    __tablename__ = "ledger_entries"

    id = Column(Integer, primary_key=True, index=True)
    case_id = Column(Integer, ForeignKey("cases.id"), nullable=False, index=True)
    actor_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    action = Column(String(100), nullable=False, index=True)  # CASE_CREATED, EVIDENCE_UPLOADED, COC_VERIFIED, ...
    details = Column(Text, nullable=False)
    timestamp = Column(String(32), nullable=False, index=True)
    sequence = Column(Integer, nullable=False)
    entry_hash = Column(String(64), nullable=False, index=True)
    previous_hash = Column(String(64), nullable=False)  # genesis sentinel for the first entry
    format_version = Column(Integer, nullable=False, default=1)

    __table_args__ = (
        UniqueConstraint("case_id", "previous_hash", name="uq_ledger_case_previous_hash"),
        UniqueConstraint("case_id", "sequence", name="uq_ledger_case_sequence"),
        {"sqlite_autoincrement": True},
    )

    # Relationships
    actor = relationship("User")
