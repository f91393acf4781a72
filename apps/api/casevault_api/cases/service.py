"""Case lifecycle operations and their audit trail."""

import logging
import re
from datetime import date, datetime
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from casevault_api.ledger.actions import AuditAction
from casevault_api.ledger.service import LedgerService
from casevault_api.models import (
    Case,
    CaseTeamMember,
    CaseTool,
    CustodyRecord,
    EvidenceRecord,
    User,
)
from casevault_api.models.user import ROLE_CLIENT, ROLE_INVESTIGATOR
from casevault_api.settings import get_settings
from casevault_api.storage.service import get_storage_service

logger = logging.getLogger(__name__)
settings = get_settings()


class CaseService:
    """Create, read and retire cases. Every state change is audited."""

    def __init__(self, db: Session, ledger: Optional[LedgerService] = None):
        """Initialize case service."""
        self.db = db
        self.ledger = ledger or LedgerService(db)

    # -------------------------
    # NUMBERING
    # -------------------------

    def next_case_number(self) -> str:
        """Next free case number, e.g. ``CASE-00042``."""
        prefix = settings.case_number_prefix
        pattern = re.compile(rf"^{re.escape(prefix)}-(\d+)$")
        highest = 0
        for (case_number,) in self.db.query(Case.case_number).all():
            match = pattern.match(case_number)
            if match:
                highest = max(highest, int(match.group(1)))
        return f"{prefix}-{highest + 1:05d}"

    # -------------------------
    # ACCESS
    # -------------------------

    def get_case_for_user(
        self,
        case_id: int,
        user: User,
        write: bool = False,
        include_deleted: bool = False,
    ) -> Case:
        """Load a case the user may see.

        Raises:
            LookupError: case does not exist (or is deleted and not requested)
            PermissionError: user is not on the case, or a client asked for write access
        """
        case = self.db.query(Case).filter(Case.id == case_id).first()
        if not case or (case.is_deleted and not include_deleted):
            raise LookupError(f"Case {case_id} not found")

        if user.role == ROLE_INVESTIGATOR and self._is_on_team(case, user.id):
            return case
        if user.role == ROLE_CLIENT and case.client_id == user.id and not write:
            return case
        raise PermissionError(f"User {user.id} may not access case {case_id}")

    def _is_on_team(self, case: Case, user_id: int) -> bool:
        if case.lead_investigator_id == user_id:
            return True
        return (
            self.db.query(CaseTeamMember)
            .filter(CaseTeamMember.case_id == case.id, CaseTeamMember.user_id == user_id)
            .first()
            is not None
        )

    def list_cases(self, user: User, deleted: bool = False) -> list[Case]:
        """Cases visible to a user: lead/team cases for investigators, own cases for clients."""
        query = self.db.query(Case).filter(Case.is_deleted == deleted)
        if user.role == ROLE_CLIENT:
            query = query.filter(Case.client_id == user.id)
        else:
            team_case_ids = self.db.query(CaseTeamMember.case_id).filter(
                CaseTeamMember.user_id == user.id
            )
            query = query.filter(
                or_(Case.lead_investigator_id == user.id, Case.id.in_(team_case_ids))
            )
        return query.order_by(Case.created_at.desc(), Case.id.desc()).all()

    # -------------------------
    # LIFECYCLE
    # -------------------------

    def create_case(
        self,
        lead: User,
        case_name: str,
        client_id: int,
        case_number: Optional[str] = None,
        case_type: Optional[str] = None,
        priority: str = "Medium",
        status: str = "Open",
        start_date: Optional[date] = None,
        team_member_ids: Optional[list[int]] = None,
    ) -> Case:
        """Create a case with its team and audit the creation."""
        client = (
            self.db.query(User)
            .filter(User.id == client_id, User.role == ROLE_CLIENT)
            .first()
        )
        if not client:
            raise ValueError(f"Client {client_id} not found")

        case_number = case_number or self.next_case_number()
        if self.db.query(Case).filter(Case.case_number == case_number).first():
            raise ValueError(f"Case number {case_number} already exists")

        member_ids = sorted(set(team_member_ids or []) - {lead.id})
        members = []
        if member_ids:
            members = (
                self.db.query(User)
                .filter(User.id.in_(member_ids), User.role == ROLE_INVESTIGATOR)
                .all()
            )
            missing = set(member_ids) - {m.id for m in members}
            if missing:
                raise ValueError(f"Unknown investigators: {sorted(missing)}")

        case = Case(
            case_number=case_number,
            case_name=case_name,
            case_type=case_type,
            priority=priority,
            status=status,
            start_date=start_date or date.today(),
            lead_investigator_id=lead.id,
            client_id=client.id,
        )
        self.db.add(case)
        self.db.flush()
        for member in members:
            self.db.add(CaseTeamMember(case_id=case.id, user_id=member.id))
        self.db.commit()

        self.ledger.record(
            case.id, lead.id, AuditAction.CASE_CREATED, f"Case {case_number} created"
        )
        for member in members:
            self.ledger.record(
                case.id,
                lead.id,
                AuditAction.TEAM_MEMBER_ADDED,
                f"Investigator {member.full_name} added to case team",
            )

        logger.info(
            "Case created",
            extra={"case_id": case.id, "case_number": case_number, "actor_id": lead.id},
        )
        return case

    def soft_delete(self, case: Case, actor: User) -> Case:
        """Move a case to the deleted list. Its chain stays intact."""
        case.is_deleted = True
        case.deleted_at = datetime.utcnow()
        self.db.commit()
        self.ledger.record(
            case.id, actor.id, AuditAction.CASE_DELETED, f"Case {case.case_number} moved to deleted cases"
        )
        return case

    def restore(self, case: Case, actor: User) -> Case:
        """Bring a soft-deleted case back and reopen it."""
        case.is_deleted = False
        case.deleted_at = None
        case.status = "Open"
        self.db.commit()
        self.ledger.record(
            case.id, actor.id, AuditAction.CASE_RESTORED, f"Case {case.case_number} restored"
        )
        return case

    def permanent_delete(self, case: Case, actor: User) -> dict:
        """Purge a soft-deleted case and everything it owns.

        Rows are removed in dependency order: custody records, evidence, ledger
        entries, team, tools, then the case. Stored evidence objects are removed
        after the database commit.
        """
        if not case.is_deleted:
            raise ValueError("Only deleted cases can be permanently deleted")
        if case.lead_investigator_id != actor.id:
            raise PermissionError("Only the lead investigator can permanently delete a case")

        case_id = case.id
        case_number = case.case_number
        actor_id = actor.id
        object_keys = [
            key
            for (key,) in self.db.query(EvidenceRecord.file_reference)
            .filter(EvidenceRecord.case_id == case_id)
            .all()
        ]

        removed = {
            "custody_records": self.db.query(CustodyRecord)
            .filter(CustodyRecord.case_id == case_id)
            .delete(synchronize_session=False),
            "evidence": self.db.query(EvidenceRecord)
            .filter(EvidenceRecord.case_id == case_id)
            .delete(synchronize_session=False),
            "ledger_entries": self.ledger.store.delete_case_entries(case_id),
            "team_members": self.db.query(CaseTeamMember)
            .filter(CaseTeamMember.case_id == case_id)
            .delete(synchronize_session=False),
            "tools": self.db.query(CaseTool)
            .filter(CaseTool.case_id == case_id)
            .delete(synchronize_session=False),
        }
        self.db.query(Case).filter(Case.id == case_id).delete(synchronize_session=False)
        self.db.commit()

        storage = get_storage_service()
        for key in object_keys:
            try:
                storage.delete_object(key)
            except Exception as e:
                logger.error(
                    f"Failed to remove evidence object {key}: {e}",
                    extra={"case_id": case_id},
                )

        logger.warning(
            "Case permanently deleted",
            extra={"case_id": case_id, "case_number": case_number, "actor_id": actor_id, **removed},
        )
        return removed

    # -------------------------
    # OVERVIEW / FINDINGS
    # -------------------------

    def update_overview(self, case: Case, actor: User, overview: str) -> Case:
        """Replace the case overview and audit the edit."""
        case.overview = overview
        self.db.commit()
        self.ledger.record(
            case.id,
            actor.id,
            AuditAction.OVERVIEW_MODIFIED,
            f"Case overview updated by {actor.full_name}",
        )
        return case

    def update_findings(self, case: Case, actor: User, findings: str) -> Case:
        """Replace the case findings and audit the edit."""
        case.findings = findings
        self.db.commit()
        self.ledger.record(
            case.id,
            actor.id,
            AuditAction.FINDINGS_MODIFIED,
            f"Case findings updated by {actor.full_name}",
        )
        return case

    # -------------------------
    # TOOLS
    # -------------------------

    def add_tool(
        self,
        case: Case,
        actor: User,
        tool_name: str,
        tool_version: Optional[str] = None,
        purpose: Optional[str] = None,
    ) -> CaseTool:
        """Register a forensic tool used on the case."""
        tool = CaseTool(
            case_id=case.id,
            tool_name=tool_name,
            tool_version=tool_version,
            purpose=purpose,
            created_by=actor.id,
        )
        self.db.add(tool)
        self.db.commit()
        version = f" {tool_version}" if tool_version else ""
        self.ledger.record(
            case.id, actor.id, AuditAction.TOOL_ADDED, f"Tool {tool_name}{version} added"
        )
        return tool

    def remove_tool(self, case: Case, actor: User, tool_id: int):
        """Remove a tool from the case."""
        tool = (
            self.db.query(CaseTool)
            .filter(CaseTool.id == tool_id, CaseTool.case_id == case.id)
            .first()
        )
        if not tool:
            raise LookupError(f"Tool {tool_id} not found")

        tool_name = tool.tool_name
        self.db.delete(tool)
        self.db.commit()
        self.ledger.record(
            case.id, actor.id, AuditAction.TOOL_REMOVED, f"Tool {tool_name} removed"
        )
