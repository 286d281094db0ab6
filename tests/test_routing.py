"""
Tests for the WebSocket event router.

This module tests handler registration, payload validation and the
drop-and-log behaviour for unknown events and failing handlers.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from telerelay.api.ws.validation import validator
from telerelay.routing import EventRouter, collect_subrouters, event_router
from telerelay.schemas.events import ClientEvent, EventRequest

schema = {
    "type": "object",
    "properties": {"room": {"type": "string"}},
    "required": ["room"],
}


class TestEventRouterRegistration:
    """Tests for EventRouter.register."""

    def test_register_handler(self):
        """Test a handler is stored with its validator."""
        router = EventRouter()
        handler = AsyncMock(__name__="handler")

        router.register(ClientEvent.JOIN, json_schema=schema, validator_callback=validator)(handler)

        assert router.handlers_registry[ClientEvent.JOIN] is handler
        assert router.validators_registry[ClientEvent.JOIN] == (schema, validator)
        assert router.events() == [ClientEvent.JOIN]

    def test_register_many_events(self):
        """Test one handler can serve several events."""
        router = EventRouter()
        handler = AsyncMock(__name__="handler")

        router.register(ClientEvent.OFFER, ClientEvent.ANSWER)(handler)

        assert router.handlers_registry[ClientEvent.OFFER] is handler
        assert router.handlers_registry[ClientEvent.ANSWER] is handler

    def test_register_same_handler_twice(self):
        """Test re-registering the same handler is allowed."""
        router = EventRouter()
        handler = AsyncMock(__name__="handler")

        router.register(ClientEvent.CHAT)(handler)
        router.register(ClientEvent.CHAT)(handler)

        assert router.handlers_registry[ClientEvent.CHAT] is handler

    def test_register_conflicting_handler(self):
        """Test a second handler for the same event is rejected."""
        router = EventRouter()
        router.register(ClientEvent.CHAT)(AsyncMock(__name__="first"))

        with pytest.raises(ValueError):
            router.register(ClientEvent.CHAT)(AsyncMock(__name__="second"))

    def test_all_client_events_have_handlers(self):
        """Test the application router covers every client event."""
        collect_subrouters()

        assert set(event_router.events()) == set(ClientEvent)


class TestEventRouterDispatch:
    """Tests for EventRouter.handle_event."""

    @pytest.mark.asyncio
    async def test_dispatch_valid_event(self):
        """Test a valid event reaches its handler."""
        router = EventRouter()
        handler = AsyncMock(__name__="handler")
        router.register(ClientEvent.JOIN, json_schema=schema, validator_callback=validator)(handler)
        state, connection = MagicMock(), MagicMock()
        request = EventRequest(event="join", data={"room": "r"})

        assert await router.handle_event(state, connection, request)

        handler.assert_awaited_once_with(state, connection, request)

    @pytest.mark.asyncio
    async def test_unknown_event_is_dropped(self):
        """Test events with no registered handler."""
        router = EventRouter()

        assert not await router.handle_event(
            MagicMock(), MagicMock(), EventRequest(event="teleport")
        )
        assert not await router.handle_event(
            MagicMock(), MagicMock(), EventRequest(event="chat")
        )

    @pytest.mark.asyncio
    async def test_invalid_payload_is_dropped(self):
        """Test the handler is skipped when validation fails."""
        router = EventRouter()
        handler = AsyncMock(__name__="handler")
        router.register(ClientEvent.JOIN, json_schema=schema, validator_callback=validator)(handler)

        assert not await router.handle_event(
            MagicMock(), MagicMock(), EventRequest(event="join", data={"room": 5})
        )
        handler.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_handler_without_schema(self):
        """Test handlers registered without schema accept any payload."""
        router = EventRouter()
        handler = AsyncMock(__name__="handler")
        router.register(ClientEvent.LEAVE)(handler)

        assert await router.handle_event(
            MagicMock(), MagicMock(), EventRequest(event="leave", data={"x": 1})
        )

    @pytest.mark.asyncio
    async def test_failing_handler_is_contained(self):
        """Test handler exceptions do not propagate to the transport."""
        router = EventRouter()
        handler = AsyncMock(__name__="handler", side_effect=KeyError("room"))
        router.register(ClientEvent.CHAT)(handler)

        assert not await router.handle_event(
            MagicMock(), MagicMock(), EventRequest(event="chat")
        )


class TestValidator:
    """Tests for the JSON schema validator callback."""

    def test_valid_payload(self):
        assert validator(EventRequest(event="join", data={"room": "r"}), schema)

    def test_missing_required_field(self):
        assert not validator(EventRequest(event="join", data={}), schema)
