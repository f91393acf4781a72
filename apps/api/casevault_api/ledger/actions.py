"""Audit action tags."""

from enum import Enum
from typing import Union


class CustodyEventType(str, Enum):
    """Chain-of-custody event types."""

    ACQUIRED = "ACQUIRED"
    TRANSFERRED = "TRANSFERRED"
    ACCESSED = "ACCESSED"
    VERIFIED = "VERIFIED"
    STORED = "STORED"
    DISPOSED = "DISPOSED"


class AuditAction(str, Enum):
    """Actions written to the audit ledger by this service.

    Entries are persisted with the plain string value, so tags written by other
    producers still load and verify.
    """

    CASE_CREATED = "CASE_CREATED"
    CASE_DELETED = "CASE_DELETED"
    CASE_RESTORED = "CASE_RESTORED"
    TEAM_MEMBER_ADDED = "TEAM_MEMBER_ADDED"
    EVIDENCE_UPLOADED = "EVIDENCE_UPLOADED"
    EVIDENCE_ACCESSED = "EVIDENCE_ACCESSED"
    OVERVIEW_MODIFIED = "OVERVIEW_MODIFIED"
    FINDINGS_MODIFIED = "FINDINGS_MODIFIED"
    TOOL_ADDED = "TOOL_ADDED"
    TOOL_REMOVED = "TOOL_REMOVED"
    CHAIN_VERIFIED = "CHAIN_VERIFIED"
    COC_ACQUIRED = "COC_ACQUIRED"
    COC_TRANSFERRED = "COC_TRANSFERRED"
    COC_ACCESSED = "COC_ACCESSED"
    COC_VERIFIED = "COC_VERIFIED"
    COC_STORED = "COC_STORED"
    COC_DISPOSED = "COC_DISPOSED"

    @classmethod
    def for_custody(cls, event_type: Union[CustodyEventType, str]) -> "AuditAction":
        """Map a custody event type to its COC_<TYPE> action."""
        return cls(f"COC_{CustodyEventType(event_type).value}")


def action_value(action: Union[AuditAction, str]) -> str:
    """Return the persisted string form of an action."""
    if isinstance(action, AuditAction):
        return action.value
    return str(action)


def format_action(action: Union[AuditAction, str]) -> str:
    """De-slug an action tag for display: ``EVIDENCE_UPLOADED`` -> ``Evidence Uploaded``."""
    words = action_value(action).replace("_", " ").lower().split()
    return " ".join(word[:1].upper() + word[1:] for word in words)


def action_category(action: Union[AuditAction, str]) -> str:
    """Bucket an action for audit log statistics and filters."""
    value = action_value(action)
    if value.startswith("COC_"):
        return "coc"
    if "VERIFIED" in value or "HASH" in value:
        return "verified"
    if "EVIDENCE" in value or "UPLOADED" in value:
        return "evidence"
    return "case"
