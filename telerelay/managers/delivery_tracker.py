import random
import uuid
from datetime import timedelta

from telerelay.constants import DELIVERY_ROOM_PREFIX, DELIVERY_TRACKER_ROLE
from telerelay.exceptions import ConflictError
from telerelay.logging import logger
from telerelay.managers.room_broker import RoomBroker
from telerelay.schemas.delivery import DeliveryRecord, DeliveryStatus, Location
from telerelay.settings import Settings, app_settings
from telerelay.utils.metrics import MetricsCollector
from telerelay.utils.timestamps import utc_now


class DeliveryTracker:
    """
    Simulated delivery tracking on top of the room broker.

    Each tracked order has a `DeliveryRecord` and a tracking room
    (`delivery:<order id>`). Every `tick` moves the undelivered orders a
    little and pushes a `delivery-update` into their rooms.
    """

    def __init__(
        self,
        broker: RoomBroker,
        settings: Settings = app_settings,
        rng: random.Random | None = None,
    ) -> None:
        self.broker = broker
        self.records: dict[str, DeliveryRecord] = {}
        self.jitter = settings.DELIVERY_JITTER
        self.complete_probability = settings.DELIVERY_COMPLETE_PROBABILITY
        self.retention_seconds = settings.DELIVERY_RETENTION_SECONDS
        self.start_location = Location(
            lat=settings.DELIVERY_START_LAT, lng=settings.DELIVERY_START_LNG
        )
        self._rng = rng or random.Random()

    @staticmethod
    def room_for(order_id: str) -> str:
        """Tracking room id of an order."""
        return f"{DELIVERY_ROOM_PREFIX}{order_id}"

    def create(
        self, order_id: str | None = None, location: Location | None = None
    ) -> DeliveryRecord:
        """
        Start tracking an order.

        Called by the payment flow once checkout succeeded.

        Args:
            order_id: Order id; generated when omitted.
            location: Start location; the configured depot when omitted.

        Raises:
            ConflictError: If the order is already tracked.
        """
        order_id = order_id or uuid.uuid4().hex[:12]
        if order_id in self.records:
            raise ConflictError(f"Order {order_id} is already tracked")

        record = DeliveryRecord(
            order_id=order_id,
            location=location or self.start_location.model_copy(),
        )
        self.records[order_id] = record
        MetricsCollector.set_active_deliveries(len(self.records))
        logger.info(f"Tracking delivery of order {order_id}")
        return record

    def get(self, order_id: str) -> DeliveryRecord | None:
        return self.records.get(order_id)

    def remove(self, order_id: str) -> bool:
        if self.records.pop(order_id, None) is None:
            return False
        MetricsCollector.set_active_deliveries(len(self.records))
        logger.info(f"Stopped tracking delivery of order {order_id}")
        return True

    def active(self) -> list[DeliveryRecord]:
        """Records that have not reached the terminal status yet."""
        return [r for r in self.records.values() if not r.is_terminal]

    def join(self, connection_id: str, order_id: str) -> bool:
        """
        Subscribe a connection to the tracking room of an order.

        The current record, if any, is sent to the joiner right away.
        """
        room = self.broker.join(
            connection_id,
            self.room_for(order_id),
            role=DELIVERY_TRACKER_ROLE,
            kind="delivery",
        )
        if room is None:
            return False

        if record := self.records.get(order_id):
            self.broker.send_to_connection(
                connection_id, record.to_update_message()
            )
        return True

    def tick(self) -> list[str]:
        """
        Advance every undelivered order by one step and broadcast it.

        A failure while handling one record is logged and does not stop
        the others. Delivered records older than the retention period
        are dropped first.

        Returns:
            Ids of the orders updated in this tick.
        """
        self.prune_delivered()
        updated: list[str] = []

        for order_id in list(self.records):
            try:
                record = self.records.get(order_id)
                if record is None or record.is_terminal:
                    continue

                self._advance(record)
                self.broker.send_to_room(
                    self.room_for(order_id),
                    record.to_update_message(),
                    exclude_sender=False,
                )
                MetricsCollector.record_delivery_update(record.status.value)
                updated.append(order_id)

                if record.is_terminal:
                    logger.info(f"Order {order_id} delivered")
            except Exception as ex:
                # Isolate per-record failures from the rest of the tick
                logger.error(
                    f"Delivery update for order {order_id} failed: {ex}",
                    exc_info=True,
                )
                MetricsCollector.record_delivery_tick_error()

        return updated

    def prune_delivered(self) -> list[str]:
        """
        Stop tracking orders delivered more than `retention_seconds` ago.

        Returns:
            Ids of the removed orders.
        """
        if self.retention_seconds <= 0:
            return []

        cutoff = utc_now() - timedelta(seconds=self.retention_seconds)
        expired = [
            order_id
            for order_id, record in self.records.items()
            if record.is_terminal and record.updated_at <= cutoff
        ]
        for order_id in expired:
            del self.records[order_id]

        if expired:
            MetricsCollector.set_active_deliveries(len(self.records))
            logger.info(f"Dropped {len(expired)} delivered orders")
        return expired

    def _advance(self, record: DeliveryRecord) -> None:
        record.location = Location(
            lat=record.location.lat
            + self._rng.uniform(-self.jitter, self.jitter),
            lng=record.location.lng
            + self._rng.uniform(-self.jitter, self.jitter),
        )
        if self._rng.random() < self.complete_probability:
            record.status = DeliveryStatus.DELIVERED
        else:
            record.status = DeliveryStatus.OUT_FOR_DELIVERY
        record.updated_at = utc_now()
