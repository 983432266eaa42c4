"""
Prometheus metrics for the claims service.
"""

from prometheus_client import Counter, Histogram


# ── Claims ───────────────────────────────────────────────────
claims_submitted_total = Counter(
    "claims_submitted_total",
    "Total claims submitted",
    ["issue_type"],
)

claim_status_transitions_total = Counter(
    "claim_status_transitions_total",
    "Claim status transitions applied",
    ["from_status", "to_status"],
)

claim_status_transitions_rejected_total = Counter(
    "claim_status_transitions_rejected_total",
    "Status changes refused by the transition guard",
    ["from_status", "to_status"],
)

uploads_rejected_total = Counter(
    "uploads_rejected_total",
    "Uploaded files dropped from a claim",
    ["reason"],
)

# ── Eligibility ──────────────────────────────────────────────
eligibility_verdicts_total = Counter(
    "eligibility_verdicts_total",
    "Eligibility verdicts by outcome and source",
    ["eligible", "source"],
)

# ── Side Effects ─────────────────────────────────────────────
side_effects_total = Counter(
    "side_effects_total",
    "Best-effort side effects by outcome",
    ["effect", "outcome"],
)

# ── Consent ──────────────────────────────────────────────────
consent_records_total = Counter(
    "consent_records_total",
    "Consent records written",
    ["consent_type"],
)

# ── External APIs ────────────────────────────────────────────
external_api_latency_seconds = Histogram(
    "external_api_latency_seconds",
    "Latency of external API calls",
    ["provider", "operation"],
    buckets=[0.1, 0.5, 1, 2, 5, 10, 30],
)

external_api_errors_total = Counter(
    "external_api_errors_total",
    "Failed external API calls",
    ["provider", "operation"],
)
