"""Prometheus metrics."""

from prometheus_client import Counter, Histogram

# Ledger metrics
ledger_appends = Counter(
    "casevault_ledger_appends_total",
    "Total audit ledger append attempts",
    ["action", "outcome"],
)

ledger_append_conflicts = Counter(
    "casevault_ledger_append_conflicts_total",
    "Concurrent append conflicts detected on the audit ledger",
)

ledger_append_duration = Histogram(
    "casevault_ledger_append_duration_seconds",
    "Audit ledger append duration, including lock wait",
)

chain_verifications = Counter(
    "casevault_chain_verifications_total",
    "Audit chain verifications",
    ["result"],
)

# Evidence metrics
evidence_uploads = Counter(
    "casevault_evidence_uploads_total",
    "Evidence upload attempts",
    ["outcome"],
)

evidence_bytes_uploaded = Counter(
    "casevault_evidence_bytes_uploaded_total",
    "Evidence bytes accepted",
)

# Custody metrics
custody_events = Counter(
    "casevault_custody_events_total",
    "Chain-of-custody events recorded",
    ["event_type"],
)

custody_hash_mismatches = Counter(
    "casevault_custody_hash_mismatches_total",
    "VERIFIED custody events whose digest did not match the stored content hash",
)
