"""
Shared utilities for the provisioning clients.

This package aggregates common building blocks consumed by every client:

- config: Client configuration via pydantic-settings
- logging: Structured logging with correlation context
- metrics: Prometheus metrics helpers
- errors: Uniform error taxonomy and responses
- retry: Retry decorator for transport calls
- circuit_breaker: Protection against a failing backend

Do not import from provisioning_clients into shared/.
"""
