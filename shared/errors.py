"""
Shared error handling for the provisioning clients.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response format."""

    code: str
    message: str
    status_code: Optional[int] = None
    details: Dict[str, Any] = {}


class AccessLayerException(Exception):
    """Base exception for the provisioning clients."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            code=self.code,
            message=self.message,
            status_code=getattr(self, "status_code", None),
            details=self.details
        )


class ValidationError(AccessLayerException):
    """Missing or malformed call arguments, raised before any I/O."""

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class ClientError(AccessLayerException):
    """Root of the uniform error taxonomy produced by the translator.

    ``status_code`` is the HTTP status category and ``rest_code`` the
    uniform REST code callers switch on.
    """

    status_code = 500
    rest_code = "InternalError"
    default_message = "Internal error"

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None,
                 *, status_code: Optional[int] = None, rest_code: Optional[str] = None):
        if status_code is not None:
            self.status_code = status_code
        if rest_code is not None:
            self.rest_code = rest_code
        super().__init__(self.rest_code, message or self.default_message, details)

    def copy(self) -> "ClientError":
        """Return an independent error of the same kind and shape."""
        return type(self)(
            self.message,
            dict(self.details),
            status_code=self.status_code,
            rest_code=self.rest_code
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ClientError):
            return NotImplemented
        return (
            type(self) is type(other)
            and self.status_code == other.status_code
            and self.rest_code == other.rest_code
            and self.message == other.message
        )

    def __hash__(self) -> int:
        return hash((type(self), self.status_code, self.rest_code, self.message))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.status_code}, {self.rest_code!r}, {self.message!r})"


class InvalidArgumentError(ClientError):
    """Bad client input; reported with conflict semantics."""

    status_code = 409
    rest_code = "InvalidArgument"
    default_message = "Invalid Argument"


class NotFoundError(ClientError):
    """Requested resource does not exist."""

    status_code = 404
    rest_code = "ResourceNotFound"
    default_message = "Not found"


class InvalidStateError(ClientError):
    """Resource is not in a state that allows the operation."""

    status_code = 409
    rest_code = "InvalidState"
    default_message = "Invalid state"


class InsufficientCapacityError(ClientError):
    """Backend has no capacity to satisfy the request."""

    status_code = 503
    rest_code = "InsufficientCapacity"
    default_message = "Insufficient capacity"


class ServiceUnavailableError(ClientError):
    """Backend is up but cannot serve the request."""

    status_code = 503
    rest_code = "InternalError"
    default_message = "Service unavailable"


class InternalError(ClientError):
    """Unexpected backend or transport failure."""

    status_code = 500
    rest_code = "InternalError"
    default_message = "Internal error"


class InvalidCredentialsError(ClientError):
    """Credential check rejected."""

    status_code = 403
    rest_code = "InvalidCredentials"
    default_message = "The credentials provided are invalid"


class PassthroughError(ClientError):
    """Unmapped backend error forwarded with its original message."""

    default_message = "Backend error"
