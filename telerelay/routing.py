import os
import pkgutil
import time
from importlib import import_module
from typing import TYPE_CHECKING

from fastapi import APIRouter

from telerelay.logging import logger
from telerelay.schemas.events import ClientEvent, EventRequest
from telerelay.schemas.generic_typing import (
    HandlerCallableType,
    JsonSchemaType,
    ValidatorType,
)
from telerelay.utils.metrics import MetricsCollector

if TYPE_CHECKING:
    from telerelay.managers.connection_registry import Connection
    from telerelay.state import RelayState


class EventRouter:
    """
    Router for WebSocket events.

    Manages registration and dispatching of relay handlers by event name,
    including validation of each event's payload.
    """

    def __init__(self):
        """
        The `handlers_registry` dictionary maps events to their handler functions.
        The `validators_registry` dictionary maps events to a tuple of the JSON
        schema and the validator callback used for their payload.
        """
        self.handlers_registry: dict[ClientEvent, HandlerCallableType] = {}
        self.validators_registry: dict[
            ClientEvent, tuple[JsonSchemaType | None, ValidatorType | None]
        ] = {}

    def register(
        self,
        *events: ClientEvent,
        json_schema: JsonSchemaType | None = None,
        validator_callback: ValidatorType | None = None,
    ):
        """
        Decorator function to register a handler and validator for events.

        Args:
            *events (ClientEvent): One or more events handled by the function.
            json_schema (JsonSchemaType | None): Optional JSON schema for the payload.
            validator_callback (ValidatorType | None): Optional callback validating
                the payload against `json_schema`.

        Returns:
            A decorator function that can be used to register a handler function.
        """

        def decorator(func: HandlerCallableType):
            for event in events:
                # Idempotent for module reloads, strict for conflicting handlers
                if event in self.handlers_registry:
                    if self.handlers_registry[event] != func:
                        raise ValueError(
                            f"Different handler already registered for event {event}"
                        )
                    continue

                self.handlers_registry[event] = func
                self.validators_registry[event] = (
                    json_schema,
                    validator_callback,
                )

                logger.info(
                    f"Register {func.__module__}.{func.__name__} for event: {event}"
                )

            return func

        return decorator

    def _has_handler(self, event: ClientEvent) -> bool:
        return event in self.handlers_registry

    def _validate_request(
        self, event: ClientEvent, request: EventRequest
    ) -> bool:
        json_schema, validator_func = self.validators_registry[event]

        if validator_func is None or json_schema is None:
            return True

        # Convert Pydantic model to JSON schema if needed
        if hasattr(json_schema, "model_json_schema"):
            json_schema = json_schema.model_json_schema()

        return validator_func(request, json_schema)

    async def handle_event(
        self,
        state: "RelayState",
        connection: "Connection",
        request: EventRequest,
    ) -> bool:
        """
        Validate an inbound event and pass it to its handler.

        Unknown events, invalid payloads and handler failures are logged and
        dropped; nothing is raised to the transport.

        Returns:
            True if a handler processed the event.
        """
        try:
            event = ClientEvent(request.event)
        except ValueError:
            event = None

        if event is None or not self._has_handler(event):
            logger.debug(f"No handler found for event {request.event!r}")
            MetricsCollector.record_ws_message_dropped("unknown_event")
            return False

        MetricsCollector.record_ws_message_received(event.value)

        if not self._validate_request(event, request):
            MetricsCollector.record_ws_message_dropped("invalid_data")
            return False

        handler = self.handlers_registry[event]
        start_time = time.perf_counter()
        try:
            await handler(state, connection, request)
        except Exception as ex:
            logger.error(
                f"Handler {handler.__name__} failed for event {event}: {ex}",
                exc_info=True,
            )
            MetricsCollector.record_app_error(
                type(ex).__name__, handler.__name__
            )
            return False
        finally:
            MetricsCollector.record_ws_message_processing(
                event.value, time.perf_counter() - start_time
            )

        return True

    def events(self) -> list[ClientEvent]:
        return [event for event in ClientEvent if self._has_handler(event)]


event_router = EventRouter()


# Track registered modules to prevent duplicate logging
_registered_http_modules: set[str] = set()
_registered_ws_modules: set[str] = set()


def collect_subrouters() -> APIRouter:
    """
    Collects and registers all HTTP and WebSocket routers of the application.

    Iterates through the `api/http` and `api/ws/consumers` directories, imports
    each module and adds its `router` to the returned `APIRouter`.
    """
    main_router: APIRouter = APIRouter()

    app_dir = os.path.dirname(__file__)
    app_name = os.path.basename(app_dir)

    for _, module, _ in pkgutil.iter_modules([f"{app_dir}/api/http"]):
        api = import_module(f".{module}", package=f"{app_name}.api.http")
        main_router.include_router(api.router)

        if module not in _registered_http_modules:
            logger.info(f'Register "{module}" api')
            _registered_http_modules.add(module)

    for _, module, _ in pkgutil.iter_modules([f"{app_dir}/api/ws/consumers"]):
        ws_consumer = import_module(
            f".{module}", package=f"{app_name}.api.ws.consumers"
        )
        main_router.include_router(ws_consumer.router)

        if module not in _registered_ws_modules:
            logger.info(f'Register "{module}" websocket consumer')
            _registered_ws_modules.add(module)

    return main_router
