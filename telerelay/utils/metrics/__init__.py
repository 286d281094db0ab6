"""
Prometheus metrics definitions and utilities.

Metrics are organized into submodules by subsystem (HTTP, WebSocket,
rooms/delivery) and re-exported here:

    from telerelay.utils.metrics import ws_connections_active

New code should prefer the MetricsCollector facade:

    from telerelay.utils.metrics import MetricsCollector
    MetricsCollector.record_ws_message_received("offer")
"""

from telerelay.utils.metrics._helpers import (
    _get_or_create_counter,
    _get_or_create_gauge,
)
from telerelay.utils.metrics.collector import MetricsCollector
from telerelay.utils.metrics.http import (
    http_request_duration_seconds,
    http_requests_in_progress,
    http_requests_total,
)
from telerelay.utils.metrics.relay import (
    delivery_records_active,
    delivery_tick_errors_total,
    delivery_updates_total,
    relay_room_joins_total,
    relay_rooms_active,
    relay_rooms_expired_total,
)
from telerelay.utils.metrics.websocket import (
    ws_connections_active,
    ws_connections_total,
    ws_message_processing_duration_seconds,
    ws_messages_dropped_total,
    ws_messages_received_total,
    ws_messages_sent_total,
)

# Application-level metrics
app_errors_total = _get_or_create_counter(
    "app_errors_total",
    "Total application errors",
    ["error_type", "handler"],
)

app_info = _get_or_create_gauge(
    "app_info",
    "Application information",
    ["version", "python_version", "environment"],
)

__all__ = [
    "MetricsCollector",
    # HTTP metrics
    "http_requests_total",
    "http_request_duration_seconds",
    "http_requests_in_progress",
    # WebSocket metrics
    "ws_connections_active",
    "ws_connections_total",
    "ws_messages_received_total",
    "ws_messages_sent_total",
    "ws_messages_dropped_total",
    "ws_message_processing_duration_seconds",
    # Room and delivery metrics
    "relay_rooms_active",
    "relay_room_joins_total",
    "relay_rooms_expired_total",
    "delivery_records_active",
    "delivery_updates_total",
    "delivery_tick_errors_total",
    # Application metrics
    "app_errors_total",
    "app_info",
]
