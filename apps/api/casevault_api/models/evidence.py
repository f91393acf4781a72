"""Evidence record models."""

from datetime import datetime

from sqlalchemy import BigInteger, Column, DateTime, ForeignKey, Integer, JSON, String, Text
from sqlalchemy.orm import relationship

from casevault_api.db.base import Base


class EvidenceRecord(Base):
    """Uploaded evidence file. Rows are immutable once created."""

    __tablename__ = "evidence"

    id = Column(Integer, primary_key=True, index=True)
    case_id = Column(Integer, ForeignKey("cases.id"), nullable=False, index=True)
    file_reference = Column(String(1024), nullable=False)  # object storage key
    file_name = Column(String(255), nullable=False)
    file_size = Column(BigInteger, nullable=False)
    content_type = Column(String(255), nullable=True)
    content_hash = Column(String(64), nullable=False, index=True)  # SHA-256 hex, computed before upload
    summary = Column(Text, nullable=True)
    capture_metadata = Column(JSON, nullable=True)  # Make, Model, DateTimeOriginal, Software, GPS...
    uploaded_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    uploaded_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    # Relationships
    case = relationship("Case")
    uploader = relationship("User")
