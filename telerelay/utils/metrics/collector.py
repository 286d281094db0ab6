"""
Facade for centralized metrics emission.

Provides high-level methods for recording metrics without exposing
Prometheus implementation details to the rest of the codebase.
"""


class MetricsCollector:
    """
    Centralized facade for all Prometheus metrics.

    All methods are static for easy use without instantiation.
    Organizes metrics by domain (websocket, rooms, delivery, application).
    """

    # ========== WebSocket Metrics ==========

    @staticmethod
    def record_ws_connection_accepted() -> None:
        """Record successful WebSocket connection."""
        from telerelay.utils.metrics import (
            ws_connections_active,
            ws_connections_total,
        )

        ws_connections_total.labels(status="accepted").inc()
        ws_connections_active.inc()

    @staticmethod
    def record_ws_disconnection() -> None:
        """Record WebSocket disconnection."""
        from telerelay.utils.metrics import (
            ws_connections_active,
            ws_connections_total,
        )

        ws_connections_total.labels(status="closed").inc()
        ws_connections_active.dec()

    @staticmethod
    def record_ws_message_received(event: str) -> None:
        """Record WebSocket message received for the given event name."""
        from telerelay.utils.metrics import ws_messages_received_total

        ws_messages_received_total.labels(event=event).inc()

    @staticmethod
    def record_ws_message_sent() -> None:
        """Record WebSocket message written to a transport."""
        from telerelay.utils.metrics import ws_messages_sent_total

        ws_messages_sent_total.inc()

    @staticmethod
    def record_ws_message_dropped(reason: str) -> None:
        """
        Record a message the relay did not deliver.

        Args:
            reason: Short machine-readable cause, e.g. 'outbox_full'
        """
        from telerelay.utils.metrics import ws_messages_dropped_total

        ws_messages_dropped_total.labels(reason=reason).inc()

    @staticmethod
    def record_ws_message_processing(event: str, duration: float) -> None:
        """
        Record WebSocket message processing duration.

        Args:
            event: Event name of the message handler
            duration: Processing duration in seconds
        """
        from telerelay.utils.metrics import ws_message_processing_duration_seconds

        ws_message_processing_duration_seconds.labels(event=event).observe(
            duration
        )

    # ========== Room Metrics ==========

    @staticmethod
    def set_active_rooms(count: int) -> None:
        from telerelay.utils.metrics import relay_rooms_active

        relay_rooms_active.set(count)

    @staticmethod
    def record_room_join(kind: str) -> None:
        from telerelay.utils.metrics import relay_room_joins_total

        relay_room_joins_total.labels(kind=kind).inc()

    @staticmethod
    def record_room_expired() -> None:
        from telerelay.utils.metrics import relay_rooms_expired_total

        relay_rooms_expired_total.inc()

    # ========== Delivery Metrics ==========

    @staticmethod
    def set_active_deliveries(count: int) -> None:
        from telerelay.utils.metrics import delivery_records_active

        delivery_records_active.set(count)

    @staticmethod
    def record_delivery_update(status: str) -> None:
        from telerelay.utils.metrics import delivery_updates_total

        delivery_updates_total.labels(status=status).inc()

    @staticmethod
    def record_delivery_tick_error() -> None:
        from telerelay.utils.metrics import delivery_tick_errors_total

        delivery_tick_errors_total.inc()

    # ========== Application Metrics ==========

    @staticmethod
    def record_app_error(error_type: str, handler: str) -> None:
        """
        Record an application error.

        Args:
            error_type: Exception class name or category
            handler: Name of the handler where the error occurred
        """
        from telerelay.utils.metrics import app_errors_total

        app_errors_total.labels(error_type=error_type, handler=handler).inc()
