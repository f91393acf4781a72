"""Tests for case lifecycle operations."""

import pytest
from sqlalchemy.orm import Session

from casevault_api.cases.service import CaseService
from casevault_api.custody.recorder import CustodyRecorder
from casevault_api.custody.schemas import CustodyEventCreate
from casevault_api.ledger.service import LedgerService
from casevault_api.models import (
    Case,
    CaseTeamMember,
    CaseTool,
    CustodyRecord,
    EvidenceRecord,
    LedgerEntry,
)


def _actions(db: Session, case_id: int) -> list[str]:
    return [e.action for e in LedgerService(db).get_entries(case_id)]


def test_create_case_audits_creation_and_team(db: Session, case, teammate):
    entries = LedgerService(db).get_entries(case.id)
    assert [e.action for e in entries] == ["CASE_CREATED", "TEAM_MEMBER_ADDED"]
    assert entries[0].details == "Case CASE-00001 created"
    assert entries[1].details == f"Investigator {teammate.full_name} added to case team"


def test_next_case_number(db: Session, case):
    assert CaseService(db).next_case_number() == "CASE-00002"


def test_next_case_number_empty(db: Session):
    assert CaseService(db).next_case_number() == "CASE-00001"


def test_create_case_rejects_unknown_client(db: Session, investigator, outsider):
    with pytest.raises(ValueError, match="Client"):
        CaseService(db).create_case(investigator, "Bad", client_id=outsider.id)


def test_create_case_rejects_duplicate_number(db: Session, case, investigator, client_user):
    with pytest.raises(ValueError, match="already exists"):
        CaseService(db).create_case(investigator, "Dup", client_user.id, case_number="CASE-00001")


def test_create_case_rejects_unknown_team_member(db: Session, investigator, client_user):
    with pytest.raises(ValueError, match="Unknown investigators"):
        CaseService(db).create_case(investigator, "Team", client_user.id, team_member_ids=[client_user.id])


def test_access_rules(db: Session, case, investigator, teammate, outsider, client_user):
    service = CaseService(db)
    assert service.get_case_for_user(case.id, investigator, write=True).id == case.id
    assert service.get_case_for_user(case.id, teammate, write=True).id == case.id
    assert service.get_case_for_user(case.id, client_user).id == case.id

    with pytest.raises(PermissionError):
        service.get_case_for_user(case.id, client_user, write=True)
    with pytest.raises(PermissionError):
        service.get_case_for_user(case.id, outsider)
    with pytest.raises(LookupError):
        service.get_case_for_user(case.id + 100, investigator)


def test_list_cases(db: Session, case, investigator, teammate, outsider, client_user):
    service = CaseService(db)
    assert [c.id for c in service.list_cases(investigator)] == [case.id]
    assert [c.id for c in service.list_cases(teammate)] == [case.id]
    assert [c.id for c in service.list_cases(client_user)] == [case.id]
    assert service.list_cases(outsider) == []


def test_soft_delete_and_restore(db: Session, case, investigator):
    service = CaseService(db)
    service.soft_delete(case, investigator)
    assert case.is_deleted
    assert service.list_cases(investigator) == []
    assert [c.id for c in service.list_cases(investigator, deleted=True)] == [case.id]
    with pytest.raises(LookupError):
        service.get_case_for_user(case.id, investigator)

    service.restore(case, investigator)
    assert not case.is_deleted
    assert case.status == "Open"
    assert _actions(db, case.id)[-2:] == ["CASE_DELETED", "CASE_RESTORED"]
    assert LedgerService(db).verify_chain(case.id).valid


def test_overview_findings_and_tools_are_audited(db: Session, case, investigator):
    service = CaseService(db)
    service.update_overview(case, investigator, "Suspect laptop imaged")
    service.update_findings(case, investigator, "No malware found")
    tool = service.add_tool(case, investigator, "Autopsy", "4.21", "Timeline analysis")
    service.remove_tool(case, investigator, tool.id)

    entries = LedgerService(db).get_entries(case.id)
    assert [e.action for e in entries[-4:]] == [
        "OVERVIEW_MODIFIED",
        "FINDINGS_MODIFIED",
        "TOOL_ADDED",
        "TOOL_REMOVED",
    ]
    assert entries[-4].details == "Case overview updated by Dana Reyes"
    assert entries[-2].details == "Tool Autopsy 4.21 added"
    assert entries[-1].details == "Tool Autopsy removed"
    assert case.overview == "Suspect laptop imaged"


def test_remove_missing_tool(db: Session, case, investigator):
    with pytest.raises(LookupError):
        CaseService(db).remove_tool(case, investigator, 12345)


def test_permanent_delete_requires_soft_delete(db: Session, case, investigator):
    with pytest.raises(ValueError):
        CaseService(db).permanent_delete(case, investigator)


def test_permanent_delete_requires_lead(db: Session, case, investigator, teammate):
    service = CaseService(db)
    service.soft_delete(case, investigator)
    with pytest.raises(PermissionError):
        service.permanent_delete(case, teammate)


def test_permanent_delete_removes_everything(db: Session, case, evidence, investigator, storage):
    CustodyRecorder(db).record_event(
        case.id,
        investigator.id,
        CustodyEventCreate(evidence_id=evidence.id, event_type="ACQUIRED", reason="Seized on site"),
    )
    CaseService(db).add_tool(case, investigator, "FTK Imager")
    object_key = evidence.file_reference
    case_id = case.id

    service = CaseService(db)
    service.soft_delete(case, investigator)
    removed = service.permanent_delete(case, investigator)

    assert removed["custody_records"] == 1
    assert removed["evidence"] == 1
    assert removed["team_members"] == 1
    assert removed["tools"] == 1
    assert removed["ledger_entries"] >= 5

    assert db.query(Case).filter(Case.id == case_id).count() == 0
    for model in (CustodyRecord, EvidenceRecord, LedgerEntry, CaseTeamMember, CaseTool):
        assert db.query(model).filter(model.case_id == case_id).count() == 0
    storage.delete_object.assert_called_once_with(object_key)


def test_permanent_delete_survives_storage_errors(db: Session, case, evidence, investigator, storage):
    storage.delete_object.side_effect = RuntimeError("bucket offline")
    case_id = case.id
    service = CaseService(db)
    service.soft_delete(case, investigator)
    service.permanent_delete(case, investigator)
    assert db.query(Case).filter(Case.id == case_id).count() == 0
