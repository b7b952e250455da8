"""Prometheus metrics for monitoring covenant test outcomes, alerts, risk scores and webhook performance"""

from prometheus_client import Counter, Histogram

from covenant_gateway.domain.models import BorrowerRiskScore, TestRunSummary

# Covenant test metrics
covenant_test_counter = Counter(
    "covenant_tests_total",
    "Total covenant tests evaluated",
    ["status"],  # compliant | warning | breach
)

covenant_failure_counter = Counter(
    "covenant_test_failures_total",
    "Covenants that could not be evaluated",
)

alert_counter = Counter(
    "covenant_alerts_total",
    "Alerts raised from covenant tests",
    ["severity"],  # warning | critical
)

# Risk scoring metrics
risk_score_histogram = Histogram(
    "borrower_risk_score",
    "Distribution of borrower risk scores",
    buckets=[10, 20, 30, 40, 50, 60, 70, 80, 90, 100],
)

# Webhook metrics
webhook_latency_histogram = Histogram(
    "notification_webhook_latency_seconds",
    "Alert notification webhook response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

webhook_failure_counter = Counter(
    "notification_webhook_failures_total",
    "Failed alert notification deliveries",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_test_run(summary: TestRunSummary) -> None:
    """Record per-status test counts, alert severities and evaluation failures"""
    for result in summary.results:
        covenant_test_counter.labels(status=result.status).inc()
    for alert in summary.alerts:
        alert_counter.labels(severity=alert.severity).inc()
    if summary.failures:
        covenant_failure_counter.inc(len(summary.failures))


def record_risk_scores(scores: list[BorrowerRiskScore]) -> None:
    for borrower in scores:
        risk_score_histogram.observe(borrower.risk_score.score)
