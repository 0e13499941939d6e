"""
REST clients for account and provisioning backends.

Each client wraps one backend behind the same plumbing: build a path,
authenticate, issue the call, translate backend errors into the shared
taxonomy, and serve slow-changing catalog data from per-client caches.
"""

from .adapters import AccountClient, ProvisioningClient, RestClient, translate_error

__all__ = ["AccountClient", "ProvisioningClient", "RestClient", "translate_error"]
