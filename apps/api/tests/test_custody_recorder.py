"""Tests for chain-of-custody recording."""

import pytest
from sqlalchemy.orm import Session

from casevault_api.cases.service import CaseService
from casevault_api.custody.recorder import CustodyRecorder, normalize_algorithm
from casevault_api.custody.schemas import CustodyEventCreate, CustodyRecordResponse
from casevault_api.ledger.exceptions import CustodyValidationError
from casevault_api.ledger.service import LedgerService
from casevault_api.models import CustodyRecord


def _event(evidence_id: int, event_type: str, **fields) -> CustodyEventCreate:
    fields.setdefault("reason", "Routine handling")
    return CustodyEventCreate(evidence_id=evidence_id, event_type=event_type, **fields)


def test_verified_with_matching_digest(db: Session, case, evidence, investigator):
    """A recomputed digest equal to the stored hash records a match."""
    recorder = CustodyRecorder(db)
    record = recorder.record_event(
        case.id,
        investigator.id,
        _event(evidence.id, "VERIFIED", hash_algorithm="SHA-256", hash_value=evidence.content_hash),
    )

    assert record.hash_verified is True
    assert record.hash_match is True
    assert record.hash_algorithm == "SHA-256"

    entry = LedgerService(db).store.most_recent_entry(case.id)
    assert record.ledger_entry_id == entry.id
    assert entry.action == "COC_VERIFIED"
    assert entry.details.endswith("hash_match=true")
    assert f"(evidence #{evidence.id} disk.img)" in entry.details


def test_verified_with_different_digest_is_recorded(db: Session, case, evidence, investigator):
    """A mismatch is stored as a fact and still chained."""
    store = LedgerService(db).store
    before = store.count(case.id)

    record = CustodyRecorder(db).record_event(
        case.id,
        investigator.id,
        _event(evidence.id, "VERIFIED", hash_algorithm="sha256", hash_value="A" * 64),
    )

    assert record.hash_verified is True
    assert record.hash_match is False
    assert record.hash_value == "a" * 64

    assert store.count(case.id) == before + 1
    entry = store.most_recent_entry(case.id)
    assert record.ledger_entry_id == entry.id
    assert entry.action == "COC_VERIFIED"
    assert entry.details.endswith("hash_match=false")
    assert LedgerService(db).verify_chain(case.id).valid


def test_verified_with_manual_verdict(db: Session, case, evidence, investigator):
    record = CustodyRecorder(db).record_event(
        case.id,
        investigator.id,
        _event(evidence.id, "VERIFIED", hash_algorithm="MD5", hash_match=True),
    )
    assert record.hash_match is True
    assert record.hash_value is None


def test_transfer_details(db: Session, case, evidence, investigator):
    record = CustodyRecorder(db).record_event(
        case.id,
        investigator.id,
        _event(
            evidence.id,
            "TRANSFERRED",
            reason="Sent to lab",
            released_by_name="Dana Reyes",
            received_by_name="Lab Intake",
            received_by_role="Technician",
        ),
    )
    assert record.received_by_role == "Technician"
    entry = LedgerService(db).store.most_recent_entry(case.id)
    assert entry.action == "COC_TRANSFERRED"
    assert entry.details == (
        f"TRANSFERRED: Sent to lab (evidence #{evidence.id} disk.img) from Dana Reyes to Lab Intake"
    )


@pytest.mark.parametrize(
    "event_type,fields,field",
    [
        ("TRANSFERRED", {"received_by_name": "Lab"}, "released_by_name"),
        ("TRANSFERRED", {"released_by_name": "Dana"}, "received_by_name"),
        ("ACCESSED", {}, "access_type"),
        ("VERIFIED", {"hash_value": "a" * 64}, "hash_algorithm"),
        ("VERIFIED", {"hash_algorithm": "SHA-256"}, "hash_value"),
        ("VERIFIED", {"hash_algorithm": "SHA-256", "hash_value": "not-a-digest"}, "hash_value"),
        ("VERIFIED", {"hash_algorithm": "MD5", "hash_value": "a" * 64}, "hash_algorithm"),
        ("STORED", {"reason": "   "}, "reason"),
    ],
)
def test_invalid_events_write_nothing(db: Session, case, evidence, investigator, event_type, fields, field):
    """Validation failures leave both the custody table and the chain untouched."""
    ledger = LedgerService(db)
    entries_before = ledger.store.count(case.id)

    with pytest.raises(CustodyValidationError) as excinfo:
        CustodyRecorder(db).record_event(case.id, investigator.id, _event(evidence.id, event_type, **fields))

    assert excinfo.value.field == field
    assert db.query(CustodyRecord).count() == 0
    assert ledger.store.count(case.id) == entries_before


def test_evidence_from_another_case_rejected(db: Session, case, evidence, investigator, client_user):

    other = CaseService(db).create_case(investigator, "Other", client_user.id)
    with pytest.raises(CustodyValidationError) as excinfo:
        CustodyRecorder(db).record_event(other.id, investigator.id, _event(evidence.id, "ACQUIRED"))
    assert excinfo.value.field == "evidence_id"


def test_list_events_in_event_order(db: Session, case, evidence, investigator):
    recorder = CustodyRecorder(db)
    for event_type in ("ACQUIRED", "STORED", "DISPOSED"):
        recorder.record_event(case.id, investigator.id, _event(evidence.id, event_type))

    events = recorder.list_events(case.id)
    assert [e.event_type for e in events] == ["ACQUIRED", "STORED", "DISPOSED"]
    assert recorder.list_events(case.id, evidence_id=evidence.id + 100) == []


@pytest.mark.parametrize("name", ["SHA-256", "sha256", " Sha_256 ", "SHA256"])
def test_normalize_algorithm(name):
    assert normalize_algorithm(name) == "SHA-256"


def test_normalize_algorithm_leaves_others():
    assert normalize_algorithm("MD5") == "MD5"
    assert normalize_algorithm(None) is None


def test_response_reads_orm_record(db: Session, case, evidence, investigator):
    record = CustodyRecorder(db).record_event(
        case.id, investigator.id, _event(evidence.id, "STORED", location="Locker 4")
    )

    response = CustodyRecordResponse.model_validate(record)
    assert response.id == record.id
    assert response.event_type == "STORED"
    assert response.location == "Locker 4"
    assert response.ledger_entry_id == record.ledger_entry_id
