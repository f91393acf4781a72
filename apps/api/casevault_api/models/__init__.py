"""Database models - import all models here for Alembic discovery."""

from casevault_api.models.case import Case, CaseTeamMember, CaseTool
from casevault_api.models.custody import CustodyRecord
from casevault_api.models.evidence import EvidenceRecord
from casevault_api.models.ledger import LedgerEntry
from casevault_api.models.user import APIKey, User

__all__ = [
    "User",
    "APIKey",
    "Case",
    "CaseTeamMember",
    "CaseTool",
    "EvidenceRecord",
    "CustodyRecord",
    "LedgerEntry",
]
