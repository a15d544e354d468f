"""Prometheus instrumentation helpers for the FastAPI application."""

from __future__ import annotations

from typing import Callable, cast

from fastapi import FastAPI
from fastapi.responses import Response
from prometheus_client import CollectorRegistry, Histogram
from prometheus_client.openmetrics.exposition import generate_latest as generate_openmetrics
from prometheus_fastapi_instrumentator import Instrumentator, metrics

REQUEST_LATENCY_BUCKETS = (0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, float("inf"))

OPENMETRICS_MEDIA_TYPE = "application/openmetrics-text; version=1.0.0; charset=utf-8"


def setup_metrics(app: FastAPI) -> None:
    """Attach Prometheus instrumentation and expose the /metrics endpoint."""

    instrumentator = Instrumentator(
        should_group_status_codes=False,
        should_ignore_untemplated=True,
        should_respect_env_var=False,
        excluded_handlers=[r"/metrics"],
    )
    instrumentator.add(metrics.default())
    instrumentator.add(_latency_by_action())

    instrumentator.instrument(app)
    _register_metrics_endpoint(app, instrumentator.registry)


def _latency_by_action() -> Callable[[metrics.Info], None] | None:
    """Record latency per handler and ``action`` query value, with request_id exemplars."""

    try:
        latency_histogram = Histogram(
            "app_action_latency_seconds",
            "Latency distribution per handler and sync action.",
            labelnames=("handler", "action", "status"),
            buckets=REQUEST_LATENCY_BUCKETS,
        )
    except ValueError as error:  # pragma: no cover - occurs only on reload
        if "Duplicated timeseries" in str(error) or "Duplicated time series" in str(error):
            return None
        raise

    def instrumentation(info: metrics.Info) -> None:
        request_id = getattr(info.request.state, "request_id", None)
        exemplar = {"request_id": request_id} if request_id else None
        action = info.request.query_params.get("action") or info.method.lower()
        labels = (info.modified_handler, action, info.modified_status)

        try:
            latency_histogram.labels(*labels).observe(info.modified_duration, exemplar=exemplar)
        except TypeError:
            latency_histogram.labels(*labels).observe(info.modified_duration)

    return instrumentation


def _register_metrics_endpoint(app: FastAPI, registry: CollectorRegistry) -> None:
    @app.get("/metrics", include_in_schema=False, tags=["observability"])
    async def metrics_endpoint() -> Response:
        generate = cast(Callable[[CollectorRegistry], bytes], generate_openmetrics)
        return Response(content=generate(registry), media_type=OPENMETRICS_MEDIA_TYPE)


__all__ = ["setup_metrics"]
