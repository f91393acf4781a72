"""Chain-of-custody routes."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from casevault_api.auth.api_key import get_current_user, require_investigator
from casevault_api.custody.recorder import CustodyRecorder
from casevault_api.custody.schemas import CustodyEventCreate, CustodyRecordResponse
from casevault_api.db.session import get_db
from casevault_api.ledger.exceptions import CustodyValidationError
from casevault_api.models import CustodyRecord, User
from casevault_api.routes.deps import load_case

router = APIRouter(prefix="/v1", tags=["custody"])


def _custody_response(record: CustodyRecord) -> CustodyRecordResponse:
    response = CustodyRecordResponse.model_validate(record)
    response.evidence_name = record.evidence.file_name if record.evidence else None
    response.created_by_name = record.creator.full_name if record.creator else None
    response.ledger_entry_hash = record.ledger_entry.entry_hash if record.ledger_entry else None
    return response


@router.get(
    "/cases/{case_id}/chain-of-custody",
    response_model=list[CustodyRecordResponse],
)
def list_custody_events(
    case_id: int,
    evidence_id: Optional[int] = Query(None),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """List chain-of-custody events for a case, optionally for one evidence item."""
    case = load_case(db, case_id, user)
    records = CustodyRecorder(db).list_events(case.id, evidence_id=evidence_id)
    return [_custody_response(record) for record in records]


@router.post(
    "/cases/{case_id}/chain-of-custody",
    response_model=CustodyRecordResponse,
    status_code=status.HTTP_201_CREATED,
)
def record_custody_event(
    case_id: int,
    event: CustodyEventCreate,
    user: User = Depends(require_investigator),
    db: Session = Depends(get_db),
):
    """Record a chain-of-custody event against a piece of evidence."""
    case = load_case(db, case_id, user, write=True)
    try:
        record = CustodyRecorder(db).record_event(case.id, user.id, event)
    except CustodyValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"message": str(e), "field": e.field},
        )
    return _custody_response(record)
