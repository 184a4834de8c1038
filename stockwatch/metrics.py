"""Metrics facade.

Service code should ONLY call the semantic helpers here so we can change backend freely.

Metrics:
- stock_alerts_generated_total{alert_type}         Alerts opened by sweeps
- stock_alert_generation_failures_total{subject}   Candidates that failed during a sweep
- stock_alert_duplicates_skipped_total             Inserts rejected by the open-alert index
- stock_alerts_resolved_total{actor}               Alerts closed (operator or system)
- stock_alert_sweep_duration_seconds               Wall time of a full sweep
"""

from __future__ import annotations

import logging

from prometheus_client import Counter, Histogram

logger = logging.getLogger("metrics")

_ALERTS_GENERATED = Counter(
    "stock_alerts_generated_total", "Alerts opened by generation sweeps", ["alert_type"]
)
_GENERATION_FAILURES = Counter(
    "stock_alert_generation_failures_total", "Candidates that failed during a sweep", ["subject"]
)
_DUPLICATES_SKIPPED = Counter(
    "stock_alert_duplicates_skipped_total", "Alert inserts rejected because an open alert already existed"
)
_ALERTS_RESOLVED = Counter(
    "stock_alerts_resolved_total", "Alerts resolved", ["actor"]
)
_SWEEP_DURATION = Histogram(
    "stock_alert_sweep_duration_seconds",
    "Duration of a full alert generation sweep",
    buckets=(0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10, 30, 60),
)


def alert_generated(alert_type: str) -> None:
    _ALERTS_GENERATED.labels(alert_type=alert_type).inc()


def generation_failure(subject: str) -> None:
    _GENERATION_FAILURES.labels(subject=subject).inc()


def duplicate_skipped() -> None:
    _DUPLICATES_SKIPPED.inc()


def alert_resolved(system: bool = False) -> None:
    _ALERTS_RESOLVED.labels(actor="system" if system else "user").inc()


def sweep_completed(duration_seconds: float) -> None:
    _SWEEP_DURATION.observe(duration_seconds)
    logger.debug("observe stock_alert_sweep_duration_seconds=%s", duration_seconds)
