from __future__ import annotations

import re

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.requests import Request


http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
)

contact_aggregate_total = Counter(
    "contact_aggregate_total",
    "Total contact aggregate operations by outcome",
    ["operation", "status"],
)

contact_aggregate_duration_seconds = Histogram(
    "contact_aggregate_duration_seconds",
    "Contact aggregate operation duration in seconds",
    ["operation"],
)

contact_stage_resolved_total = Counter(
    "contact_stage_resolved_total",
    "Total resolved lifecycle stages by view",
    ["view", "stage"],
)


_UUID_RE = re.compile(
    r"\b[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[1-5][0-9a-fA-F]{3}-[89abAB][0-9a-fA-F]{3}-[0-9a-fA-F]{12}\b"
)
_INT_RE = re.compile(r"/\d+\b")
_PATH_PARAM_RE = re.compile(r"\{[^{}]+\}")


def _normalize_route_template(path: str) -> str:
    return _PATH_PARAM_RE.sub("{id}", path)


def _sanitize_path(path: str) -> str:
    without_uuids = _UUID_RE.sub("{id}", path)
    return _INT_RE.sub("/{id}", without_uuids)


def resolve_http_path_label(request: Request) -> str:
    route = request.scope.get("route")
    if route is not None:
        path_format = getattr(route, "path_format", None)
        if isinstance(path_format, str) and path_format:
            return _normalize_route_template(path_format)
        route_path = getattr(route, "path", None)
        if isinstance(route_path, str) and route_path:
            return _normalize_route_template(route_path)
    return _sanitize_path(request.url.path)


def observe_http_request(method: str, path: str, status: int, duration: float) -> None:
    status_str = str(status)
    http_requests_total.labels(method=method, path=path, status=status_str).inc()
    http_request_duration_seconds.labels(method=method, path=path).observe(duration)


def observe_contact_aggregate(operation: str, status: str, duration: float) -> None:
    contact_aggregate_total.labels(operation=operation, status=status).inc()
    contact_aggregate_duration_seconds.labels(operation=operation).observe(duration)


def observe_stage_resolved(view: str, stage: str, count: int = 1) -> None:
    if count > 0:
        contact_stage_resolved_total.labels(view=view, stage=stage).inc(count)


def generate_metrics_payload() -> bytes:
    return generate_latest()


def metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
