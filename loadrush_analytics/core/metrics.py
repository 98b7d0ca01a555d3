"""
Prometheus Metrics Server

Simple HTTP server that exposes /metrics endpoint.
"""


from prometheus_client import Counter, Gauge, generate_latest, CONTENT_TYPE_LATEST
from http.server import HTTPServer, BaseHTTPRequestHandler
from threading import Thread
from loadrush_analytics.core.logging import get_logger

logger = get_logger("core.metrics", labels={"component": "metrics"})


class _Handler(BaseHTTPRequestHandler):
    def do_GET(self):
        if self.path == "/metrics":
            self.send_response(200)
            self.send_header("Content-Type", CONTENT_TYPE_LATEST)
            self.end_headers()
            self.wfile.write(generate_latest())
        elif self.path == "/health":
            self.send_response(200)
            self.send_header("Content-Type", "text/plain")
            self.end_headers()
            self.wfile.write(b"OK")
        else:
            self.send_response(404)
            self.end_headers()

    def log_message(self, *args):
        pass


class Metrics:
    """Container for all application metrics."""

    # Aggregator metrics
    aggregation_runs = Counter(
        "analytics_aggregation_runs_total",
        "Total aggregation passes",
        ["aggregator"]
    )

    aggregation_errors = Counter(
        "analytics_aggregation_errors_total",
        "Total aggregation or subscription errors",
        ["aggregator"]
    )

    records_skipped = Counter(
        "analytics_records_skipped_total",
        "Records excluded from aggregation because of bad fields",
        ["aggregator", "field"]
    )

    # Revenue
    platform_revenue = Gauge(
        "analytics_platform_revenue_dollars",
        "Total revenue from completed loads"
    )

    platform_commission = Gauge(
        "analytics_platform_commission_dollars",
        "Platform commission on completed loads"
    )

    # Trends
    trend_current_value = Gauge(
        "analytics_trend_current_value",
        "Current-week value of a trend KPI",
        ["kpi"]
    )

    trend_percent_change = Gauge(
        "analytics_trend_percent_change",
        "Signed week-over-week percent change of a trend KPI",
        ["kpi"]
    )

    # Subscriptions
    active_subscriptions = Gauge(
        "analytics_active_subscriptions",
        "Active subscriptions by role",
        ["role"]
    )

    subscription_mrr = Gauge(
        "analytics_subscription_mrr_dollars",
        "Monthly recurring subscription revenue by role",
        ["role"]
    )

    # Load lifecycle
    loads_by_status = Gauge(
        "analytics_loads_by_status",
        "Loads currently in each normalized status",
        ["status"]
    )

    # Insights
    insights_generated = Counter(
        "analytics_insights_generated_total",
        "Insights emitted after ranking and truncation",
        ["insight_id", "type"]
    )

    # Write side
    loads_uploaded = Counter(
        "analytics_loads_uploaded_total",
        "Bulk upload rows by outcome",
        ["outcome"]
    )

    # Kafka metrics
    change_events_consumed = Counter(
        "analytics_change_events_consumed_total",
        "Total change events consumed",
        ["collection"]
    )


# Global metrics instance
metrics = Metrics()


class MetricsServer:
    def __init__(self, port: int = 9090):
        self.port = port
        self._server = None
        self._thread = None

    def start(self):
        self._server = HTTPServer(("0.0.0.0", self.port), _Handler)
        self._thread = Thread(target=self._server.serve_forever, daemon=True)
        self._thread.start()
        logger.info(f"Metrics server listening on port {self.port}")

    def stop(self):
        if self._server:
            self._server.shutdown()
            self._server.server_close()
