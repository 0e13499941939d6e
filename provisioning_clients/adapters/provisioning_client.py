"""
Provisioning backend client: packages, datasets, machines and networks.
"""

import time
from typing import Any, Callable, Dict, List, Optional, Union, TYPE_CHECKING

from shared.config import CacheSettings, ClientsConfig
from shared.errors import ClientError, InternalError, NotFoundError
from shared.logging import get_logger
from shared.retry import RetryConfig
from shared.circuit_breaker import CircuitBreaker
from ..caching import LIST, Found, NotFound, PartitionedTTLCache
from ..caching.entries import ResourceName
from .error_translator import translate_error
from .rest_client import BackendError, RestClient, RestResult
from .validation import require, require_mapping

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


CUST_FMT = "/customers/{customer}"
PACKAGES_FMT = CUST_FMT + "/packages"
PACKAGE_FMT = PACKAGES_FMT + "/{name}"
DATASETS_FMT = CUST_FMT + "/datasets"
DATASET_FMT = DATASETS_FMT + "/{dataset}"
VMS_FMT = CUST_FMT + "/vms"
VM_FMT = VMS_FMT + "/{vm}"

TRANSITION_HEADER = "x-joyent-transition-uri"
FULL_ERRORS_HEADER = {"X-Joyent-Full-Error-Messages": "true"}

READ_EXPECT = (200, 204)
CREATE_EXPECT = (200, 201, 202, 204)
DELETE_EXPECT = (200, 202, 204, 410)


class ProvisioningClient:
    """Client for the provisioning backend.

    Package and dataset lookups go through partitioned caches: a listing
    for one tenant also warms the shared catalog entries for everyone, and
    failed lookups are cached negatively until they expire. Creating a
    package leaves cached package lists untouched, so a list read right
    after a create can be stale until its entry expires.
    """

    def __init__(
        self,
        transport: RestClient,
        *,
        package_cache: Optional[PartitionedTTLCache] = None,
        dataset_cache: Optional[PartitionedTTLCache] = None,
        metrics: Optional["MetricsCollector"] = None,
        logger=None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.transport = transport
        self.metrics = metrics
        self.logger = logger or get_logger("clients.provisioning")
        self.package_cache = package_cache or PartitionedTTLCache("packages", 100, 300, clock=clock, metrics=metrics)
        self.dataset_cache = dataset_cache or PartitionedTTLCache("datasets", 100, 300, clock=clock, metrics=metrics)

    @classmethod
    def from_config(
        cls,
        config: ClientsConfig,
        *,
        metrics: Optional["MetricsCollector"] = None,
        transport: Optional[RestClient] = None,
    ) -> "ProvisioningClient":
        """Build a client, its transport and its caches from configuration."""
        if transport is None:
            transport = RestClient(
                config.provisioning_api_url,
                config.provisioning_api_username,
                config.provisioning_api_password,
                name="provisioning",
                timeout=config.http_timeout,
                retry_config=RetryConfig(
                    max_attempts=config.retry_attempts,
                    base_delay=config.retry_base_delay,
                    max_delay=config.retry_max_delay
                ),
                circuit_breaker=CircuitBreaker(
                    failure_threshold=config.breaker_failure_threshold,
                    recovery_timeout=config.breaker_recovery_timeout,
                    name="provisioning"
                ),
                metrics=metrics,
            )

        def _cache(name: str, settings: CacheSettings) -> PartitionedTTLCache:
            return PartitionedTTLCache(name, settings.size, settings.expiry, metrics=metrics)

        return cls(
            transport,
            package_cache=_cache("packages", config.package_cache),
            dataset_cache=_cache("datasets", config.dataset_cache),
            metrics=metrics,
        )

    # Catalog reads

    async def list_packages(self, customer: str) -> List[Dict[str, Any]]:
        """List packages visible to a tenant, shared ones included."""
        require(customer=customer)
        return await self._cached_read(
            self.package_cache,
            customer,
            LIST,
            PACKAGES_FMT.format(customer=customer),
            operation="list_packages",
        )

    async def get_package_by_name(self, customer: str, name: str) -> Dict[str, Any]:
        """Get a package by name for a tenant."""
        require(customer=customer, name=name)
        return await self._cached_read(
            self.package_cache,
            customer,
            name,
            PACKAGE_FMT.format(customer=customer, name=name),
            operation="get_package_by_name",
            headers={"X-Joyent-Find-With": "name"},
            not_found=f"package {name} not found.",
        )

    async def list_datasets(self, customer: str) -> List[Dict[str, Any]]:
        """List datasets visible to a tenant, shared ones included."""
        require(customer=customer)
        return await self._cached_read(
            self.dataset_cache,
            customer,
            LIST,
            DATASETS_FMT.format(customer=customer),
            operation="list_datasets",
        )

    async def get_dataset(self, customer: str, dataset: str) -> Dict[str, Any]:
        """Get a dataset by uuid (or numeric id) for a tenant."""
        require(customer=customer, dataset=dataset)
        return await self._cached_read(
            self.dataset_cache,
            customer,
            str(dataset),
            DATASET_FMT.format(customer=customer, dataset=dataset),
            operation="get_dataset",
            not_found=f"dataset {dataset} not found.",
        )

    # Catalog writes

    async def create_package(self, customer: str, package: Dict[str, Any]) -> Dict[str, Any]:
        """Create a package. Cached package lists are not updated."""
        require(customer=customer)
        require_mapping("package", package)

        result = await self.transport.post(
            PACKAGES_FMT.format(customer=customer),
            dict(package),
            headers=self._headers(customer),
            expect=CREATE_EXPECT
        )
        if result.error:
            raise self._translate(result.error, "create_package")
        return result.body

    async def delete_package(self, customer: str, name: str) -> None:
        """Delete a package and purge the tenant's cached entry for it."""
        require(customer=customer, name=name)

        result = await self.transport.delete(
            PACKAGE_FMT.format(customer=customer, name=name),
            headers=self._headers(customer),
            expect=DELETE_EXPECT
        )
        if result.error:
            raise self._translate(result.error, "delete_package")

        self.package_cache.purge(customer, name)

    # Machines and networks (uncached)

    async def create_machine(self, customer: str, options: Dict[str, Any]) -> Dict[str, Any]:
        """Provision a machine and return its record.

        The backend answers with a transition URI naming the new machine,
        which is fetched once; waiting for provisioning to finish is left
        to the caller.
        """
        require(customer=customer)
        require_mapping("options", options)

        body = dict(options, owner_uuid=customer)
        result = await self.transport.post(
            VMS_FMT.format(customer=customer),
            body,
            headers=self._headers(customer),
            expect=CREATE_EXPECT
        )
        if result.error:
            raise self._translate(result.error, "create_machine")

        transition = result.headers.get(TRANSITION_HEADER)
        if not transition:
            self.logger.warning("No transition returned for machine create", customer=customer)
            raise InternalError("No transition returned from provisioning backend")

        machine_id = transition.rstrip("/").rsplit("/", 1)[-1]
        return await self.get_machine(customer, machine_id)

    async def get_machine(self, customer: str, machine_id: str) -> Dict[str, Any]:
        require(customer=customer, machine_id=machine_id)

        result = await self.transport.get(
            VM_FMT.format(customer=customer, vm=machine_id),
            headers=self._headers(customer)
        )
        if result.error:
            raise self._translate(result.error, "get_machine")
        if not result.body:
            raise NotFoundError(f"machine {machine_id} not found.")
        return result.body

    async def delete_machine(self, customer: str, machine_id: str) -> None:
        require(customer=customer, machine_id=machine_id)

        result = await self.transport.delete(
            VM_FMT.format(customer=customer, vm=machine_id),
            headers={**self._headers(customer), "x-joyent-ignore-provisioning-state": "true"},
            expect=DELETE_EXPECT
        )
        if result.error:
            raise self._translate(result.error, "delete_machine")

    async def list_networks(self) -> List[Dict[str, Any]]:
        result = await self.transport.get("/networks", headers=dict(FULL_ERRORS_HEADER))
        if result.error:
            raise self._translate(result.error, "list_networks")
        return result.body or []

    async def close(self) -> None:
        await self.transport.close()

    # Internals

    async def _cached_read(
        self,
        cache: PartitionedTTLCache,
        customer: str,
        name: ResourceName,
        path: str,
        *,
        operation: str,
        headers: Optional[Dict[str, str]] = None,
        not_found: Optional[str] = None,
    ) -> Union[Dict[str, Any], List[Dict[str, Any]]]:
        """Check ``cache``, fall back to the backend, cache the outcome either way."""
        cached = cache.get(customer, name)
        if isinstance(cached, NotFound):
            raise cached.error
        if isinstance(cached, Found):
            return cached.value

        result: RestResult = await self.transport.get(
            path,
            headers={**self._headers(customer), **(headers or {})},
            expect=READ_EXPECT
        )
        if result.error:
            error = self._translate(result.error, operation)
            cache.put(customer, name, error)
            raise error

        if name is LIST:
            records = result.body or []
            cache.put(customer, name, records)
            return records

        if not result.body:
            error = NotFoundError(not_found)
            cache.put(customer, name, error)
            raise error

        cache.put(customer, name, result.body)
        return result.body

    @staticmethod
    def _headers(customer: str) -> Dict[str, str]:
        return {"User": customer, **FULL_ERRORS_HEADER}

    def _translate(self, error: BackendError, operation: str) -> ClientError:
        translated = translate_error(error)
        self.logger.warning(
            "Provisioning backend request failed",
            operation=operation,
            backend_code=error.code,
            backend_status=error.status_code,
            error_kind=type(translated).__name__
        )
        if self.metrics:
            self.metrics.record_error(type(translated).__name__, service="provisioning")
        return translated
