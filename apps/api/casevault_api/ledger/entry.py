"""Canonical preimage format for ledger entries.

The preimage is the six fields below joined with ``|`` in this exact order::

    case_id|actor_id|action|details|timestamp|previous_hash

encoded as UTF-8 and hashed with SHA-256. ``details`` is used verbatim, with no
trimming or escaping. Changing the field order, the delimiter or the encoding
changes every hash, so any change must ship as a new ``format_version`` while
version 1 stays verifiable.
"""

import hashlib
from datetime import datetime, timezone
from typing import Optional, Union

from casevault_api.ledger.actions import AuditAction, action_value

GENESIS_HASH = "0" * 64
PREIMAGE_DELIMITER = "|"
CURRENT_FORMAT_VERSION = 1
SUPPORTED_FORMAT_VERSIONS = frozenset({1})


def format_timestamp(value: Optional[datetime] = None) -> str:
    """Render a UTC timestamp with millisecond precision, e.g. ``2026-10-19T12:00:00.123Z``."""
    if value is None:
        value = datetime.now(timezone.utc)
    elif value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    else:
        value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def parse_timestamp(value: str) -> datetime:
    """Parse a ledger timestamp back into an aware datetime."""
    return datetime.strptime(value, "%Y-%m-%dT%H:%M:%S.%fZ").replace(tzinfo=timezone.utc)


def build_preimage(
    case_id: Union[int, str],
    actor_id: Union[int, str],
    action: Union[AuditAction, str],
    details: str,
    timestamp: str,
    previous_hash: str,
) -> str:
    """Build the version 1 preimage string."""
    return PREIMAGE_DELIMITER.join(
        [
            str(case_id),
            str(actor_id),
            action_value(action),
            details,
            timestamp,
            previous_hash,
        ]
    )


def compute_entry_hash(
    case_id: Union[int, str],
    actor_id: Union[int, str],
    action: Union[AuditAction, str],
    details: str,
    timestamp: str,
    previous_hash: str,
    format_version: int = CURRENT_FORMAT_VERSION,
) -> str:
    """Compute the hex SHA-256 entry hash for the given fields."""
    if format_version not in SUPPORTED_FORMAT_VERSIONS:
        raise ValueError(f"Unsupported ledger format version: {format_version}")

    preimage = build_preimage(case_id, actor_id, action, details, timestamp, previous_hash)
    return hashlib.sha256(preimage.encode("utf-8")).hexdigest()


def hash_of(entry) -> str:
    """Recompute the hash of a stored entry from its own fields."""
    return compute_entry_hash(
        entry.case_id,
        entry.actor_id,
        entry.action,
        entry.details,
        entry.timestamp,
        entry.previous_hash,
        format_version=entry.format_version or CURRENT_FORMAT_VERSION,
    )
