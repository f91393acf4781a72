"""Evidence upload, listing and access auditing."""

import hmac
import logging
from io import BytesIO
from typing import BinaryIO, Optional, Union

from sqlalchemy.orm import Session

from casevault_api.ledger.actions import AuditAction
from casevault_api.ledger.exceptions import HashComputationError
from casevault_api.ledger.hasher import (
    hash_bytes,
    hash_stream,
    is_sha256_hex,
    normalize_digest,
    stream_size,
)
from casevault_api.ledger.service import LedgerService
from casevault_api.models import Case, EvidenceRecord, User
from casevault_api.settings import get_settings
from casevault_api.storage.service import StorageService, get_storage_service
from casevault_api.utils.metrics import evidence_bytes_uploaded, evidence_uploads

logger = logging.getLogger(__name__)
settings = get_settings()

# Capture metadata keys kept from client-side extraction (EXIF and friends)
CAPTURE_METADATA_KEYS = (
    "Make",
    "Model",
    "DateTime",
    "DateTimeOriginal",
    "DateTimeDigitized",
    "Orientation",
    "XResolution",
    "YResolution",
    "Software",
    "Artist",
    "Copyright",
    "ExposureTime",
    "FNumber",
    "ISO",
    "FocalLength",
    "Flash",
    "WhiteBalance",
    "PixelXDimension",
    "PixelYDimension",
    "GPSLatitude",
    "GPSLatitudeRef",
    "GPSLongitude",
    "GPSLongitudeRef",
    "GPSAltitude",
    "LastModified",
)


class EvidenceHashMismatch(ValueError):
    """The uploaded bytes do not hash to the digest the client attested."""

    def __init__(self, claimed: str, computed: str):
        super().__init__(
            f"Uploaded file hash {computed[:16]}... does not match supplied hash {claimed[:16]}..."
        )
        self.claimed = claimed
        self.computed = computed


def filter_capture_metadata(metadata: Optional[dict]) -> Optional[dict]:
    """Keep known capture-metadata tags, dropping empty values. Returns None when nothing is left."""
    if not metadata:
        return None
    kept = {
        key: value
        for key, value in metadata.items()
        if key in CAPTURE_METADATA_KEYS and value not in (None, "")
    }
    return kept or None


class EvidenceService:
    """Store evidence files with their content hash and audit every touch."""

    def __init__(
        self,
        db: Session,
        ledger: Optional[LedgerService] = None,
        storage: Optional[StorageService] = None,
    ):
        """Initialize evidence service."""
        self.db = db
        self.ledger = ledger or LedgerService(db)
        self.storage = storage or get_storage_service()

    def upload(
        self,
        case: Case,
        uploader: User,
        file_name: str,
        data: Union[bytes, BinaryIO],
        file_hash: str,
        summary: Optional[str] = None,
        content_type: Optional[str] = None,
        metadata: Optional[dict] = None,
    ) -> EvidenceRecord:
        """Persist an evidence file whose hash was computed before transmission.

        ``data`` is either the file's bytes or a seekable binary stream; streams
        are hashed in chunks and handed to storage without being read whole.
        The content is re-hashed on arrival and rejected if it does not match
        the client's digest, so the stored ``content_hash`` is one both sides
        agree on.

        Raises:
            HashComputationError: the supplied digest is malformed or the content is unreadable
            EvidenceHashMismatch: the content does not match the supplied digest
            ValueError: the file is empty or too large
        """
        claimed = normalize_digest(file_hash)
        if not is_sha256_hex(claimed):
            evidence_uploads.labels(outcome="rejected").inc()
            raise HashComputationError("file_hash must be a 64-character SHA-256 hex digest")

        if isinstance(data, (bytes, bytearray)):
            size = len(data)
            stream = BytesIO(data)
        else:
            stream = data
            size = stream_size(stream)

        if not size:
            evidence_uploads.labels(outcome="rejected").inc()
            raise ValueError("Evidence file is empty")
        if size > settings.evidence_max_upload_bytes:
            evidence_uploads.labels(outcome="rejected").inc()
            raise ValueError(
                f"Evidence file exceeds {settings.evidence_max_upload_bytes} bytes"
            )

        if isinstance(data, (bytes, bytearray)):
            computed = hash_bytes(data)
        else:
            computed = hash_stream(stream)
        if not hmac.compare_digest(claimed, computed):
            evidence_uploads.labels(outcome="hash_mismatch").inc()
            logger.warning(
                "Evidence upload rejected: hash mismatch",
                extra={"case_id": case.id, "actor_id": uploader.id, "file_name": file_name},
            )
            raise EvidenceHashMismatch(claimed, computed)

        stream.seek(0)
        object_key = StorageService.build_object_key(case.id, file_name)
        self.storage.put_object(
            object_key,
            stream,
            content_type=content_type or "application/octet-stream",
            length=size,
        )

        record = EvidenceRecord(
            case_id=case.id,
            file_reference=object_key,
            file_name=file_name,
            file_size=size,
            content_type=content_type,
            content_hash=computed,
            summary=summary,
            capture_metadata=filter_capture_metadata(metadata),
            uploaded_by=uploader.id,
        )
        try:
            self.db.add(record)
            self.db.commit()
        except Exception:
            self.db.rollback()
            self.storage.delete_object(object_key)
            evidence_uploads.labels(outcome="failed").inc()
            raise

        evidence_uploads.labels(outcome="stored").inc()
        evidence_bytes_uploaded.inc(size)

        self.ledger.record(
            case.id,
            uploader.id,
            AuditAction.EVIDENCE_UPLOADED,
            f"Evidence {file_name} uploaded. Hash: {computed}",
        )
        logger.info(
            "Evidence stored",
            extra={"case_id": case.id, "evidence_id": record.id, "content_hash": computed},
        )
        return record

    def list_evidence(self, case: Case) -> list[EvidenceRecord]:
        """Evidence for a case, newest first."""
        return (
            self.db.query(EvidenceRecord)
            .filter(EvidenceRecord.case_id == case.id)
            .order_by(EvidenceRecord.uploaded_at.desc(), EvidenceRecord.id.desc())
            .all()
        )

    def timeline(self, case: Case) -> list[EvidenceRecord]:
        """Evidence for a case in upload order."""
        return (
            self.db.query(EvidenceRecord)
            .filter(EvidenceRecord.case_id == case.id)
            .order_by(EvidenceRecord.uploaded_at.asc(), EvidenceRecord.id.asc())
            .all()
        )

    def get_evidence(self, case: Case, evidence_id: int) -> EvidenceRecord:
        """Load one evidence record of a case, without auditing."""
        record = (
            self.db.query(EvidenceRecord)
            .filter(EvidenceRecord.id == evidence_id, EvidenceRecord.case_id == case.id)
            .first()
        )
        if not record:
            raise LookupError(f"Evidence {evidence_id} not found")
        return record

    def view_evidence(self, case: Case, viewer: User, evidence_id: int) -> EvidenceRecord:
        """Load an evidence record and audit the access."""
        record = self.get_evidence(case, evidence_id)
        self.ledger.record(
            case.id,
            viewer.id,
            AuditAction.EVIDENCE_ACCESSED,
            f"Evidence {record.file_name} viewed by {viewer.full_name}",
        )
        return record
