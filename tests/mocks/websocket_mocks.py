"""
Mock factory functions for relay testing.

Helpers to register fake connections on a relay and read what was
queued for them.
"""

import asyncio
from typing import Any
from unittest.mock import AsyncMock

from telerelay.managers.connection_registry import Connection
from telerelay.state import RelayState


def connect(relay: RelayState) -> Connection:
    """
    Registers a connection whose transport is an AsyncMock.

    The writer task is not started, so queued messages stay on the outbox
    and can be read with `drain`.
    """
    return relay.registry.on_connect(AsyncMock())


def drain(connection: Connection) -> list[dict[str, Any]]:
    """Removes and returns every message queued for a connection."""
    messages = []
    while True:
        try:
            messages.append(connection.outbox.get_nowait())
        except asyncio.QueueEmpty:
            return messages


def events(messages: list[dict[str, Any]]) -> list[str]:
    return [message["event"] for message in messages]
