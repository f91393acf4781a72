"""Chain-of-custody request and response models."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from casevault_api.ledger.actions import CustodyEventType


class CustodyEventCreate(BaseModel):
    """Chain-of-custody event payload. Type-specific fields are checked by the recorder."""

    evidence_id: int
    event_type: CustodyEventType
    reason: str = Field(..., description="Why the evidence was handled")
    event_datetime: Optional[datetime] = None
    location: Optional[str] = None
    condition_at_event: Optional[str] = None
    security_controls: Optional[str] = None
    notes: Optional[str] = None

    # TRANSFERRED
    released_by_name: Optional[str] = None
    released_by_role: Optional[str] = None
    received_by_name: Optional[str] = None
    received_by_role: Optional[str] = None

    # ACCESSED
    access_type: Optional[str] = None

    # VERIFIED
    hash_algorithm: Optional[str] = None
    hash_value: Optional[str] = Field(None, description="Digest recomputed by the verifier")
    hash_match: Optional[bool] = Field(
        None, description="Manual verdict, used only when no digest is supplied"
    )


class CustodyRecordResponse(BaseModel):
    """Chain-of-custody record joined with evidence and recorder details."""

    id: int
    case_id: int
    evidence_id: int
    evidence_name: Optional[str] = None
    event_type: str
    event_datetime: datetime
    reason: str
    location: Optional[str] = None
    condition_at_event: Optional[str] = None
    security_controls: Optional[str] = None
    notes: Optional[str] = None
    released_by_name: Optional[str] = None
    released_by_role: Optional[str] = None
    received_by_name: Optional[str] = None
    received_by_role: Optional[str] = None
    access_type: Optional[str] = None
    hash_algorithm: Optional[str] = None
    hash_value: Optional[str] = None
    hash_verified: bool = False
    hash_match: Optional[bool] = None
    created_by: int
    created_by_name: Optional[str] = None
    created_at: datetime
    ledger_entry_id: Optional[int] = None
    ledger_entry_hash: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)
