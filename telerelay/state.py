import random

from telerelay.logging import logger
from telerelay.managers.connection_registry import ConnectionRegistry
from telerelay.managers.delivery_tracker import DeliveryTracker
from telerelay.managers.room_broker import RoomBroker
from telerelay.settings import Settings, app_settings


class RelayState:
    """
    All mutable relay state of one application instance.

    Held on `app.state.relay`; tests build their own instance instead of
    sharing module-level registries.
    """

    def __init__(
        self,
        settings: Settings = app_settings,
        rng: random.Random | None = None,
    ) -> None:
        self.settings = settings
        self.registry = ConnectionRegistry(
            outbox_max_size=settings.WS_OUTBOX_MAX_SIZE
        )
        self.broker = RoomBroker(self.registry)
        self.deliveries = DeliveryTracker(self.broker, settings, rng=rng)

    def close(self) -> None:
        """Unregister every connection, stopping their writers."""
        connections = list(self.registry)
        for connection in connections:
            self.registry.on_disconnect(connection.connection_id)
        if connections:
            logger.info(f"Closed {len(connections)} relay connections")
