"""
Prometheus metrics for the expense reports service.
"""

from prometheus_client import Counter, Histogram


# ── Reports ──────────────────────────────────────────────────
reports_submitted_total = Counter(
    "expense_reports_submitted_total",
    "Total expense reports created by first submission",
)

report_saves_total = Counter(
    "expense_report_saves_total",
    "Total item edits saved on existing reports",
    ["actor", "outcome"],
)

report_status_changes_total = Counter(
    "expense_report_status_changes_total",
    "Total approve/reject decisions",
    ["status"],
)

reports_deleted_total = Counter(
    "expense_reports_deleted_total",
    "Total expense reports deleted by their owner",
)

save_duration_seconds = Histogram(
    "expense_report_save_duration_seconds",
    "Time to validate, persist and notify a report save",
    ["operation"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10],
)

# ── Notifications ────────────────────────────────────────────
notifications_total = Counter(
    "expense_report_notifications_total",
    "Submission notifications by outcome",
    ["outcome"],
)

# ── Receipts ─────────────────────────────────────────────────
receipts_uploaded_total = Counter(
    "expense_receipts_uploaded_total",
    "Total receipt files stored",
    ["mime_type"],
)
