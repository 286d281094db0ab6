"""
Custom exception classes for the application.

The relay itself never raises to the transport layer; these exceptions are
used by the HTTP collaborator endpoints and converted into responses by
`telerelay.utils.error_handler.handle_http_errors`.
"""


class AppException(Exception):
    """
    Base class for application errors.

    Attributes:
        message: Human-readable error description.
        http_status: HTTP status code the error maps to.
    """

    http_status: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(AppException):
    """Requested room or delivery record does not exist."""

    http_status = 404


class ConflictError(AppException):
    """
    Resource already exists.

    Raised when creating a delivery record for an order id that is
    already being tracked.
    """

    http_status = 409
