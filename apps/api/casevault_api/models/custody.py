"""Chain-of-custody models."""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from casevault_api.db.base import Base


class CustodyRecord(Base):
    """Evidence handling event (acquisition, transfer, access, verification, storage, disposal)."""

    __tablename__ = "custody_records"

    id = Column(Integer, primary_key=True, index=True)
    case_id = Column(Integer, ForeignKey("cases.id"), nullable=False, index=True)
    evidence_id = Column(Integer, ForeignKey("evidence.id"), nullable=False, index=True)
    event_type = Column(String(20), nullable=False, index=True)
    event_datetime = Column(DateTime, default=datetime.utcnow, nullable=False)
    reason = Column(Text, nullable=False)
    location = Column(String(255), nullable=True)
    condition_at_event = Column(String(255), nullable=True)
    security_controls = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)

    # TRANSFERRED
    released_by_name = Column(String(255), nullable=True)
    released_by_role = Column(String(255), nullable=True)
    received_by_name = Column(String(255), nullable=True)
    received_by_role = Column(String(255), nullable=True)

    # ACCESSED
    access_type = Column(String(100), nullable=True)

    # VERIFIED
    hash_algorithm = Column(String(50), nullable=True)
    hash_value = Column(String(128), nullable=True)
    hash_verified = Column(Boolean, default=False, nullable=False)
    hash_match = Column(Boolean, nullable=True)

    created_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    ledger_entry_id = Column(Integer, ForeignKey("ledger_entries.id"), nullable=True)

    # Relationships
    evidence = relationship("EvidenceRecord")
    creator = relationship("User")
    ledger_entry = relationship("LedgerEntry")
