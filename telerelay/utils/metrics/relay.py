"""Prometheus metrics for rooms and delivery tracking."""

from telerelay.utils.metrics._helpers import (
    _get_or_create_counter,
    _get_or_create_gauge,
)

# Room Metrics
relay_rooms_active = _get_or_create_gauge(
    "relay_rooms_active", "Number of rooms with at least one member"
)

relay_room_joins_total = _get_or_create_counter(
    "relay_room_joins_total", "Total room joins", ["kind"]  # call, delivery
)

relay_rooms_expired_total = _get_or_create_counter(
    "relay_rooms_expired_total", "Total rooms closed for inactivity"
)

# Delivery Metrics
delivery_records_active = _get_or_create_gauge(
    "delivery_records_active", "Number of tracked delivery records"
)

delivery_updates_total = _get_or_create_counter(
    "delivery_updates_total", "Total delivery updates produced", ["status"]
)

delivery_tick_errors_total = _get_or_create_counter(
    "delivery_tick_errors_total",
    "Total delivery records that failed during a tick",
)

__all__ = [
    "relay_rooms_active",
    "relay_room_joins_total",
    "relay_rooms_expired_total",
    "delivery_records_active",
    "delivery_updates_total",
    "delivery_tick_errors_total",
]
