"""
Prometheus metrics for WebSocket connection monitoring.

This module defines metrics for tracking relay connections, message rates,
dropped messages and message processing durations.
"""

from telerelay.utils.metrics._helpers import (
    _get_or_create_counter,
    _get_or_create_gauge,
    _get_or_create_histogram,
)

# WebSocket Connection Metrics
ws_connections_active = _get_or_create_gauge(
    "ws_connections_active", "Number of active WebSocket connections"
)

ws_connections_total = _get_or_create_counter(
    "ws_connections_total",
    "Total WebSocket connections",
    ["status"],  # accepted, closed
)

ws_messages_received_total = _get_or_create_counter(
    "ws_messages_received_total",
    "Total WebSocket messages received",
    ["event"],
)

ws_messages_sent_total = _get_or_create_counter(
    "ws_messages_sent_total", "Total WebSocket messages sent"
)

ws_messages_dropped_total = _get_or_create_counter(
    "ws_messages_dropped_total",
    "Total WebSocket messages dropped by the relay",
    ["reason"],  # invalid_frame, unknown_event, invalid_data, not_member, reserved_room, outbox_full, ...
)

ws_message_processing_duration_seconds = _get_or_create_histogram(
    "ws_message_processing_duration_seconds",
    "WebSocket message processing duration in seconds",
    ["event"],
    buckets=(0.0005, 0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0),
)


__all__ = [
    "ws_connections_active",
    "ws_connections_total",
    "ws_messages_received_total",
    "ws_messages_sent_total",
    "ws_messages_dropped_total",
    "ws_message_processing_duration_seconds",
]
