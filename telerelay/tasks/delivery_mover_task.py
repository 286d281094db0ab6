from asyncio import CancelledError, sleep

from telerelay.constants import TASK_ERROR_BACKOFF_SECONDS
from telerelay.logging import logger
from telerelay.managers.delivery_tracker import DeliveryTracker


async def delivery_mover_task(tracker: DeliveryTracker, interval: float):
    """
    Periodically advances every undelivered order and broadcasts it.

    Runs `tracker.tick()` every `interval` seconds until cancelled. The
    tracker isolates failures per record; anything escaping a tick is
    logged and the loop backs off before the next one.
    """
    logger.info(f"Delivery mover started (every {interval}s)")

    while True:
        try:
            await sleep(interval)

            updated = tracker.tick()
            if updated:
                logger.debug(f"Delivery tick updated {len(updated)} orders")

        except CancelledError:
            logger.info("Task for delivery mover cancelled!")
            break

        except Exception as ex:
            logger.error(f"Delivery mover task error occurred with: {ex}")
            await sleep(TASK_ERROR_BACKOFF_SECONDS)
