from asyncio import CancelledError, sleep

from telerelay.constants import TASK_ERROR_BACKOFF_SECONDS
from telerelay.logging import logger
from telerelay.managers.room_broker import RoomBroker


async def room_reaper_task(
    broker: RoomBroker, max_idle_seconds: float, interval: float
):
    """
    Closes single-member rooms that saw no join, leave or message for
    `max_idle_seconds`.

    A negotiation abandoned by one side otherwise keeps its room (and the
    remaining membership) forever.
    """
    logger.info(
        f"Room reaper started (idle timeout {max_idle_seconds}s, "
        f"checked every {interval}s)"
    )

    while True:
        try:
            await sleep(interval)

            if expired := broker.expire_idle_rooms(max_idle_seconds):
                logger.info(f"Expired {len(expired)} idle rooms")

        except CancelledError:
            logger.info("Task for room reaper cancelled!")
            break

        except Exception as ex:
            logger.error(f"Room reaper task error occurred with: {ex}")
            await sleep(TASK_ERROR_BACKOFF_SECONDS)
