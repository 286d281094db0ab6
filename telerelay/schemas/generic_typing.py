from collections.abc import Awaitable
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Protocol,
    Union,
)

from telerelay.schemas.events import EventRequest

if TYPE_CHECKING:
    from telerelay.managers.connection_registry import Connection
    from telerelay.state import RelayState


class PydanticModel(Protocol):
    """Protocol for Pydantic models with model_json_schema method."""

    def model_json_schema(self) -> dict[str, Any]: ...


# Type definitions
JsonSchemaType = (
    dict[str, Union[str, int, float, bool, list[Any], "JsonSchemaType"]]
    | type[PydanticModel]
)
ValidatorType = Callable[[EventRequest, JsonSchemaType], bool]
HandlerCallableType = Callable[
    ["RelayState", "Connection", EventRequest], Awaitable[None]
]
