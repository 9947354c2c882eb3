"""Prometheus metrics and a tiny HTTP server to expose them.

Call `start_metrics_server(port)` once in a process to expose /metrics.
"""

from __future__ import annotations

from prometheus_client import Counter, Histogram, Gauge, start_http_server


# Connection manager
CONNECT_ATTEMPT_TOTAL = Counter(
    "eventbus_connect_attempt_total", "Total connection attempts", ["result"]
)
RECONNECT_SCHEDULED_TOTAL = Counter(
    "eventbus_reconnect_scheduled_total", "Total reconnects scheduled", ["reason"]
)
CONNECTION_READY = Gauge(
    "eventbus_connection_ready", "1 while the broker connection is ready, else 0"
)

# Publisher
PUBLISH_ATTEMPT_TOTAL = Counter(
    "eventbus_publish_attempt_total", "Total publish attempts", ["queue", "result"]
)
PUBLISH_FAILED_TOTAL = Counter(
    "eventbus_publish_failed_total", "Total publish failures", ["reason"]
)

# Consumer
CONSUMER_MESSAGE_TOTAL = Counter(
    "eventbus_consumer_message_total", "Total deliveries handled", ["queue", "status"]
)
HANDLER_LATENCY_SECONDS = Histogram(
    "eventbus_handler_latency_seconds",
    "Time spent in a consumer handler",
    ["queue"],
    buckets=(0.005, 0.01, 0.05, 0.1, 0.5, 1, 2, 5),
)


def start_metrics_server(port: int = 9000) -> None:
    start_http_server(port)
