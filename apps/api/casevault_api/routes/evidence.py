"""Evidence routes."""

import json
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from casevault_api.auth.api_key import get_current_user, require_investigator
from casevault_api.db.session import get_db
from casevault_api.evidence.service import EvidenceHashMismatch, EvidenceService
from casevault_api.ledger.exceptions import HashComputationError
from casevault_api.ledger.hasher import stream_size
from casevault_api.models import EvidenceRecord, User
from casevault_api.routes.deps import load_case
from casevault_api.settings import get_settings

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/v1", tags=["evidence"])
settings = get_settings()


class EvidenceResponse(BaseModel):
    """Evidence record response."""

    id: int
    case_id: int
    file_name: str
    file_size: int
    content_type: Optional[str] = None
    content_hash: str
    summary: Optional[str] = None
    capture_metadata: Optional[dict] = None
    uploaded_by: int
    uploaded_by_name: Optional[str] = None
    uploaded_at: datetime
    download_url: Optional[str] = None


def _evidence_response(
    record: EvidenceRecord, download_url: Optional[str] = None
) -> EvidenceResponse:
    uploader = record.uploader
    return EvidenceResponse(
        id=record.id,
        case_id=record.case_id,
        file_name=record.file_name,
        file_size=record.file_size,
        content_type=record.content_type,
        content_hash=record.content_hash,
        summary=record.summary,
        capture_metadata=record.capture_metadata,
        uploaded_by=record.uploaded_by,
        uploaded_by_name=uploader.full_name if uploader else None,
        uploaded_at=record.uploaded_at,
        download_url=download_url,
    )


@router.post(
    "/cases/{case_id}/evidence",
    response_model=EvidenceResponse,
    status_code=status.HTTP_201_CREATED,
)
def upload_evidence(
    case_id: int,
    file: UploadFile = File(...),
    file_hash: str = Form(..., description="SHA-256 hex digest computed before upload"),
    summary: Optional[str] = Form(None),
    metadata: Optional[str] = Form(None, description="Capture metadata as a JSON object"),
    user: User = Depends(require_investigator),
    db: Session = Depends(get_db),
):
    """Upload an evidence file together with its client-computed hash."""
    case = load_case(db, case_id, user, write=True)

    capture_metadata = None
    if metadata:
        try:
            capture_metadata = json.loads(metadata)
        except json.JSONDecodeError:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="metadata must be a JSON object",
            )
        if not isinstance(capture_metadata, dict):
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="metadata must be a JSON object",
            )

    # The spooled upload is hashed and stored as a stream
    if stream_size(file.file) > settings.evidence_max_upload_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Evidence file exceeds {settings.evidence_max_upload_bytes} bytes",
        )

    service = EvidenceService(db)
    if not service.storage.available:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Evidence storage unavailable",
        )

    try:
        record = service.upload(
            case,
            user,
            file_name=file.filename or "evidence.bin",
            data=file.file,
            file_hash=file_hash,
            summary=summary,
            content_type=file.content_type,
            metadata=capture_metadata,
        )
    except (HashComputationError, EvidenceHashMismatch) as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    except Exception as e:
        logger.error(f"Evidence storage failed for case {case_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Evidence storage unavailable",
        )

    return _evidence_response(record)


@router.get("/cases/{case_id}/evidence", response_model=list[EvidenceResponse])
def list_evidence(
    case_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """List evidence for a case, newest first."""
    case = load_case(db, case_id, user)
    return [_evidence_response(record) for record in EvidenceService(db).list_evidence(case)]


@router.get("/cases/{case_id}/evidence-timeline", response_model=list[EvidenceResponse])
def evidence_timeline(
    case_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """List evidence for a case in upload order."""
    case = load_case(db, case_id, user)
    return [_evidence_response(record) for record in EvidenceService(db).timeline(case)]


@router.get("/cases/{case_id}/evidence/{evidence_id}", response_model=EvidenceResponse)
def get_evidence(
    case_id: int,
    evidence_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Get evidence details. Every view is written to the audit log."""
    case = load_case(db, case_id, user)
    service = EvidenceService(db)
    try:
        record = service.view_evidence(case, user, evidence_id)
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    download_url = service.storage.generate_signed_url(
        record.file_reference, expires_in_seconds=settings.evidence_signed_url_ttl
    )
    return _evidence_response(record, download_url=download_url)
