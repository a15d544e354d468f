"""Prometheus counters for initData verification and remote store calls."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

RESULT_LABEL = "result"
OPERATION_LABEL = "operation"
OUTCOME_LABEL = "outcome"

INITDATA_VERIFICATIONS_TOTAL = Counter(
    "app_initdata_verifications_total",
    "Telegram initData verification attempts by result (ok or failure reason).",
    labelnames=(RESULT_LABEL,),
)

STORE_REQUESTS_TOTAL = Counter(
    "app_store_requests_total",
    "Remote store REST calls by operation and outcome.",
    labelnames=(OPERATION_LABEL, OUTCOME_LABEL),
)

STORE_REQUEST_SECONDS = Histogram(
    "app_store_request_seconds",
    "Latency of remote store REST calls.",
    labelnames=(OPERATION_LABEL,),
    buckets=(0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, float("inf")),
)


def record_verification(result: str | None) -> None:
    INITDATA_VERIFICATIONS_TOTAL.labels(**{RESULT_LABEL: (result or "ok").lower()}).inc()


def record_store_call(operation: str, *, ok: bool, duration_seconds: float) -> None:
    """Count one store call and observe its latency."""
    STORE_REQUESTS_TOTAL.labels(
        **{OPERATION_LABEL: operation, OUTCOME_LABEL: "ok" if ok else "error"}
    ).inc()
    STORE_REQUEST_SECONDS.labels(**{OPERATION_LABEL: operation}).observe(
        max(duration_seconds, 0.0)
    )


__all__ = [
    "INITDATA_VERIFICATIONS_TOTAL",
    "STORE_REQUESTS_TOTAL",
    "STORE_REQUEST_SECONDS",
    "record_store_call",
    "record_verification",
]
