"""
Adapters package for the provisioning clients.

Contains the HTTP transport and the backend-specific clients built on it.
These adapters encapsulate:

- Base URLs, request paths and headers
- Retry policies and circuit breakers (in the transport)
- Translation of backend errors into shared errors
- Read-through caching with invalidation after mutations

Keep adapters thin and side-effect free outside of explicit calls.
"""

from .rest_client import BackendError, RestClient, RestResult
from .error_translator import translate_error
from .account_client import AccountClient
from .provisioning_client import ProvisioningClient

__all__ = [
    "BackendError",
    "RestClient",
    "RestResult",
    "translate_error",
    "AccountClient",
    "ProvisioningClient",
]
