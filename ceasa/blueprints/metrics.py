"""
Prometheus metrics: HTTP traffic plus workflow counters, served at /metrics.

The endpoint is unauthenticated; restrict it at the network level.
"""
import os
import time

from flask import Blueprint, Response, request, g
from prometheus_client import (
    Counter, Histogram, Gauge, CollectorRegistry, REGISTRY, CONTENT_TYPE_LATEST, generate_latest, multiprocess,
)

metrics_bp = Blueprint('metrics', __name__)

# Gunicorn workers share metrics through PROMETHEUS_MULTIPROC_DIR
MULTIPROCESS_MODE = os.environ.get('PROMETHEUS_MULTIPROC_DIR') is not None

if MULTIPROCESS_MODE:
    registry = CollectorRegistry()
    multiprocess.MultiProcessCollector(registry)
    _metric_registry = None
else:
    registry = REGISTRY
    _metric_registry = REGISTRY

http_requests_total = Counter(
    'ceasa_http_requests_total',
    'HTTP requests by endpoint and status',
    ['method', 'endpoint', 'http_status'],
    registry=_metric_registry,
)

http_request_duration_seconds = Histogram(
    'ceasa_http_request_duration_seconds',
    'HTTP request latency in seconds',
    ['method', 'endpoint'],
    registry=_metric_registry,
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)

http_requests_in_flight = Gauge(
    'ceasa_http_requests_in_flight',
    'HTTP requests being processed',
    registry=_metric_registry,
)

workflow_transitions_total = Counter(
    'ceasa_workflow_transitions_total',
    'Status transitions applied by the workflows',
    ['entity', 'action'],
    registry=_metric_registry,
)

titles_emitted_total = Counter(
    'ceasa_titles_emitted_total',
    'Financial titles emitted as workflow side effects',
    ['kind', 'title_type'],
    registry=_metric_registry,
)


def record_transition(entity: str, action: str) -> None:
    workflow_transitions_total.labels(entity=entity, action=action).inc()


def record_titles(kind: str, title_type: str, count: int = 1) -> None:
    if count:
        titles_emitted_total.labels(kind=kind, title_type=title_type).inc(count)


def setup_metrics_instrumentation(app):
    """Time every request and count it by endpoint and status."""

    @app.before_request
    def start_request_timer():
        g._metrics_started = time.perf_counter()
        http_requests_in_flight.inc()

    @app.after_request
    def observe_request(response):
        started = g.pop('_metrics_started', None)
        if started is None:
            return response

        endpoint = request.endpoint or 'unknown'
        http_request_duration_seconds.labels(request.method, endpoint).observe(time.perf_counter() - started)
        http_requests_total.labels(request.method, endpoint, response.status_code).inc()
        http_requests_in_flight.dec()
        return response


@metrics_bp.route('/metrics')
def metrics():
    return Response(generate_latest(registry), mimetype=CONTENT_TYPE_LATEST)
