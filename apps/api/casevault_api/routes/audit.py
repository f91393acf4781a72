"""Audit log routes."""

import io
import logging

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from casevault_api.auth.api_key import get_current_user
from casevault_api.db.session import get_db
from casevault_api.ledger.actions import AuditAction
from casevault_api.ledger.export import (
    actor_names,
    audit_stats,
    entry_to_dict,
    write_audit_csv,
)
from casevault_api.ledger.service import LedgerService
from casevault_api.models import User
from casevault_api.models.user import ROLE_INVESTIGATOR
from casevault_api.routes.deps import load_case

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/v1", tags=["audit"])


@router.get("/cases/{case_id}/audit-log")
def get_audit_log(
    case_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Get a case's audit log in chain order, with display fields and statistics."""
    case = load_case(db, case_id, user)
    entries = LedgerService(db).get_entries(case.id)
    names = actor_names(db, entries)

    return {
        "case_id": case.id,
        "case_number": case.case_number,
        "entries": [entry_to_dict(entry, names) for entry in entries],
        "stats": audit_stats(entries),
    }


@router.get("/cases/{case_id}/audit-log/verify")
def verify_audit_log(
    case_id: int,
    record: bool = Query(False, description="Append a CHAIN_VERIFIED entry with the verdict"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Verify a case's hash chain. A broken chain is reported, not raised."""
    case = load_case(db, case_id, user)
    ledger = LedgerService(db)
    result = ledger.verify_chain(case.id)

    response = result.to_dict()
    if record and user.role == ROLE_INVESTIGATOR:
        verdict = "valid" if result.valid else f"broken at {result.broken_at} ({result.reason.value})"
        entry = ledger.record(
            case.id,
            user.id,
            AuditAction.CHAIN_VERIFIED,
            f"Audit chain verified by {user.full_name}: {verdict}, {result.entries_checked} entries checked",
        )
        response["recorded_entry_id"] = entry.id if entry is not None else None

    logger.info(
        "Audit chain verified",
        extra={"case_id": case.id, "actor_id": user.id, "valid": result.valid},
    )
    return response


@router.get("/cases/{case_id}/audit-log/export.csv")
def export_audit_log(
    case_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Download a case's audit log as CSV."""
    case = load_case(db, case_id, user)
    entries = LedgerService(db).get_entries(case.id)

    buffer = io.StringIO()
    write_audit_csv(buffer, entries, actor_names(db, entries))

    return Response(
        content=buffer.getvalue(),
        media_type="text/csv",
        headers={
            "Content-Disposition": f'attachment; filename="audit-log-{case.case_number}.csv"'
        },
    )
