"""Audit log presentation: display rows, statistics and CSV export."""

import csv
from collections import Counter
from typing import Iterable, Mapping, Optional, TextIO

from sqlalchemy.orm import Session

from casevault_api.ledger.actions import action_category, format_action
from casevault_api.models import LedgerEntry, User

SHORT_HASH_LENGTH = 16

AUDIT_CSV_HEADERS = [
    "Event ID",
    "Sequence",
    "Timestamp",
    "Action",
    "User",
    "Details",
    "Hash",
    "Previous Hash",
]

STAT_CATEGORIES = ("case", "evidence", "coc", "verified")


def short_hash(value: Optional[str]) -> str:
    if not value:
        return ""
    return value[:SHORT_HASH_LENGTH]


def actor_names(db: Session, entries: Iterable[LedgerEntry]) -> dict[int, str]:
    """Resolve display names for the actors of a set of entries."""
    actor_ids = {entry.actor_id for entry in entries}
    if not actor_ids:
        return {}
    users = db.query(User).filter(User.id.in_(actor_ids)).all()
    return {user.id: user.full_name for user in users}


def entry_to_dict(entry: LedgerEntry, names: Optional[Mapping[int, str]] = None) -> dict:
    """Serialize an entry with everything needed to re-verify it offline."""
    names = names or {}
    return {
        "id": entry.id,
        "case_id": entry.case_id,
        "sequence": entry.sequence,
        "timestamp": entry.timestamp,
        "actor_id": entry.actor_id,
        "actor_name": names.get(entry.actor_id, "Unknown"),
        "action": entry.action,
        "display_action": format_action(entry.action),
        "category": action_category(entry.action),
        "details": entry.details,
        "entry_hash": entry.entry_hash,
        "previous_hash": entry.previous_hash,
        "short_hash": short_hash(entry.entry_hash),
        "short_previous_hash": short_hash(entry.previous_hash),
        "format_version": entry.format_version,
    }


def audit_stats(entries: Iterable[LedgerEntry]) -> dict:
    """Count entries per display category."""
    counts = Counter(action_category(entry.action) for entry in entries)
    stats = {category: counts.get(category, 0) for category in STAT_CATEGORIES}
    stats["total"] = sum(counts.values())
    return stats


def write_audit_csv(
    stream: TextIO,
    entries: Iterable[LedgerEntry],
    names: Optional[Mapping[int, str]] = None,
) -> int:
    """Write entries as CSV in chain order. Returns the number of rows written."""
    names = names or {}
    writer = csv.writer(stream)
    writer.writerow(AUDIT_CSV_HEADERS)
    rows = 0
    for entry in entries:
        writer.writerow(
            [
                entry.id,
                entry.sequence,
                entry.timestamp,
                format_action(entry.action),
                names.get(entry.actor_id, "Unknown"),
                entry.details,
                entry.entry_hash,
                entry.previous_hash,
            ]
        )
        rows += 1
    return rows
