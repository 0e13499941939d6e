"""
Translation of backend error payloads into the uniform error taxonomy.
"""

from typing import Dict, Optional, Tuple, Type

from shared.errors import (
    ClientError,
    InsufficientCapacityError,
    InternalError,
    InvalidArgumentError,
    InvalidStateError,
    NotFoundError,
    PassthroughError,
    ServiceUnavailableError,
)
from .rest_client import BackendError, RETRIES_EXCEEDED


SETUP_ERROR_MESSAGE = "System is unavailable for provisioning"
INVALID_HOSTNAME_MESSAGE = "name syntax is invalid"

# backend code -> (error kind, message override)
ERROR_CODE_MAP: Dict[str, Tuple[Type[ClientError], Optional[str]]] = {
    "InvalidHostnameError": (InvalidArgumentError, INVALID_HOSTNAME_MESSAGE),
    "InvalidParamError": (InvalidArgumentError, None),
    "NotFoundError": (NotFoundError, None),
    "NoAvailableServersError": (InsufficientCapacityError, None),
    "NoAvailableServersWithDatasetError": (InsufficientCapacityError, None),
    "SetupError": (ServiceUnavailableError, SETUP_ERROR_MESSAGE),
    "TransitionConflictError": (InvalidStateError, None),
    "TransitionToCurrentStatusError": (InvalidStateError, None),
    "UnacceptableTransitionError": (InvalidStateError, None),
    "UnknownDatasetError": (InvalidArgumentError, None),
    "UnknownPackageError": (InvalidArgumentError, None),
    RETRIES_EXCEEDED: (InternalError, None),
}

# Applied only when the payload carries no code at all.
STATUS_FALLBACK_MAP: Dict[int, Type[ClientError]] = {
    400: InvalidArgumentError,
    404: NotFoundError,
    409: InvalidArgumentError,
}


def backend_message(error: BackendError) -> Optional[str]:
    """Pick the most specific human message a backend supplied."""
    if error.messages and error.messages[0]:
        return str(error.messages[0])
    if error.message:
        return error.message
    if error.errors and error.errors[0]:
        return str(error.errors[0])
    return None


def translate_error(error: BackendError) -> ClientError:
    """Map a backend error to exactly one uniform error kind.

    Deterministic and stateless: the same backend error always yields an
    equal translated error.
    """
    message = backend_message(error)
    details = {"backend_code": error.code, "backend_status": error.status_code}

    if error.code in ERROR_CODE_MAP:
        kind, override = ERROR_CODE_MAP[error.code]
        return kind(override or message, details)

    if error.code is None and error.status_code in STATUS_FALLBACK_MAP:
        return STATUS_FALLBACK_MAP[error.status_code](message, details)

    return PassthroughError(
        message,
        details,
        status_code=error.status_code or 500,
        rest_code=error.code or "InternalError"
    )
