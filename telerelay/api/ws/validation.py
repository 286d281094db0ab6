from typing import Any

from jsonschema import Draft7Validator, ValidationError

from telerelay.logging import logger
from telerelay.schemas.events import EventRequest


def validator(request: EventRequest, schema: dict[str, Any]) -> bool:
    """
    Validates the data field of an EventRequest against the provided JSON schema.

    Args:
        request (EventRequest): The inbound frame to validate.
        schema (dict[str, Any]): The JSON schema (draft 7) for the event's payload.

    Returns:
        bool: True if the payload is valid, False otherwise.
    """
    try:
        Draft7Validator(schema).validate(request.data)
    except ValidationError as ex:
        logger.debug(f"Invalid data for event {request.event}: {ex.message}")
        return False
    return True
