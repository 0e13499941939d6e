"""
Account backend client: accounts, credential checks and SSH keys.
"""

import hashlib
import time
from typing import Any, Callable, Dict, List, Optional, Union, TYPE_CHECKING

from shared.config import ClientsConfig
from shared.errors import ClientError, InvalidCredentialsError, NotFoundError
from shared.logging import get_logger
from shared.retry import RetryConfig
from shared.circuit_breaker import CircuitBreaker
from ..caching import TTLCache, cache_key
from .error_translator import translate_error
from .rest_client import BackendError, RestClient
from .validation import require

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


KEYS_FMT = "/customers/{customer}/keys"
KEY_FMT = KEYS_FMT + "/{key_id}"
ACCOUNT_FMT = "/customers/{customer}"
LOGIN_FMT = "/login/{login}"

DELETE_EXPECT = (200, 202, 204, 410)


class AccountClient:
    """Client for the account backend.

    Account records, successful credential checks and SSH keys are kept in
    TTL caches owned by this client. Errors are never cached: every failed
    lookup goes back to the backend.
    """

    def __init__(
        self,
        transport: RestClient,
        *,
        account_cache: Optional[TTLCache] = None,
        auth_cache: Optional[TTLCache] = None,
        keys_cache: Optional[TTLCache] = None,
        metrics: Optional["MetricsCollector"] = None,
        logger=None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.transport = transport
        self.metrics = metrics
        self.logger = logger or get_logger("clients.account")
        self.account_cache = account_cache or TTLCache("account", 1000, 300, clock=clock, metrics=metrics)
        self.auth_cache = auth_cache or TTLCache("auth", 100, 60, clock=clock, metrics=metrics)
        self.keys_cache = keys_cache or TTLCache("keys", 1000, 300, clock=clock, metrics=metrics)

    @classmethod
    def from_config(
        cls,
        config: ClientsConfig,
        *,
        metrics: Optional["MetricsCollector"] = None,
        transport: Optional[RestClient] = None,
    ) -> "AccountClient":
        """Build a client, its transport and its caches from configuration."""
        if transport is None:
            transport = RestClient(
                config.account_api_url,
                config.account_api_username,
                config.account_api_password,
                name="account",
                timeout=config.http_timeout,
                retry_config=RetryConfig(
                    max_attempts=config.retry_attempts,
                    base_delay=config.retry_base_delay,
                    max_delay=config.retry_max_delay
                ),
                circuit_breaker=CircuitBreaker(
                    failure_threshold=config.breaker_failure_threshold,
                    recovery_timeout=config.breaker_recovery_timeout,
                    name="account"
                ),
                metrics=metrics,
            )

        def _cache(name: str, settings) -> TTLCache:
            return TTLCache(name, settings.size, settings.expiry, metrics=metrics)

        return cls(
            transport,
            account_cache=_cache("account", config.account_cache),
            auth_cache=_cache("auth", config.auth_cache),
            keys_cache=_cache("keys", config.keys_cache),
            metrics=metrics,
        )

    async def get_account(self, customer: str) -> Dict[str, Any]:
        """Get an account by uuid.

        Served from the account cache when fresh, so recent backend-side
        changes may not be visible until the entry expires.
        """
        require(customer=customer)

        key = cache_key("uuid", customer)
        cached = self.account_cache.get(key)
        if cached is not None:
            return cached

        result = await self.transport.get(ACCOUNT_FMT.format(customer=customer))
        if result.error:
            raise self._translate(result.error, "get_account")
        if not result.body:
            raise NotFoundError(f"customer {customer} does not exist")

        self.account_cache.put(key, result.body)
        return result.body

    async def get_account_by_name(self, login: str) -> Dict[str, Any]:
        """Get an account by its login name."""
        require(login=login)

        key = cache_key("username", login)
        cached = self.account_cache.get(key)
        if cached is not None:
            return cached

        result = await self.transport.get("/customers", query={"login": login})
        if result.error:
            raise self._translate(result.error, "get_account_by_name")
        if not result.body:
            raise NotFoundError(f"customer {login} does not exist")

        account = result.body[0] if isinstance(result.body, list) else result.body
        self.account_cache.put(key, account)
        return account

    load_account = get_account_by_name

    async def authenticate(self, login: str, password: str) -> Dict[str, Any]:
        """Check a login/password pair and return the customer record.

        Successful checks are cached, so a password change can take up to
        the auth cache expiry to be noticed.
        """
        require(login=login, password=password)

        key = cache_key(login, hashlib.sha256(password.encode("utf-8")).hexdigest())
        cached = self.auth_cache.get(key)
        if cached is not None:
            return cached

        salt_result = await self.transport.get(LOGIN_FMT.format(login=login))
        if salt_result.error:
            raise self._translate(salt_result.error, "authenticate")

        salt_body = salt_result.body if isinstance(salt_result.body, dict) else {}
        salt = salt_body.get("salt", "")
        digest = hashlib.sha1(f"--{salt}--{password}--".encode("utf-8")).hexdigest()
        result = await self.transport.post("/login", {"login": login, "digest": digest})

        if result.error or not isinstance(result.body, dict) or not result.body.get("customer_id"):
            self.logger.info(
                "Credential check rejected",
                login=login,
                backend_code=result.error.code if result.error else None
            )
            raise InvalidCredentialsError(details={"login": login})

        self.auth_cache.put(key, result.body)
        return result.body

    async def create_key(self, customer: str, name: str, key: str) -> Dict[str, Any]:
        """Add an SSH key; the new key is cached for later lookups by name."""
        require(customer=customer, name=name, key=key)

        result = await self.transport.post(
            KEYS_FMT.format(customer=customer),
            {"name": name, "key": key}
        )
        if result.error:
            raise self._translate(result.error, "create_key")

        if result.body:
            self.keys_cache.put(cache_key(customer, name), result.body)
        return result.body

    async def list_keys(self, customer: str) -> List[Dict[str, Any]]:
        """List every SSH key of an account (uncached)."""
        require(customer=customer)

        result = await self.transport.get(KEYS_FMT.format(customer=customer))
        if result.error:
            raise self._translate(result.error, "list_keys")
        return result.body or []

    async def get_key_by_name(self, customer: str, name: str) -> Dict[str, Any]:
        """Get an SSH key by name; a miss lists all keys and picks the match."""
        require(customer=customer, name=name)

        key = cache_key(customer, name)
        cached = self.keys_cache.get(key)
        if cached is not None:
            return cached

        keys = await self.list_keys(customer)
        match = next((k for k in keys if k.get("name") == name), None)
        if match is None:
            raise NotFoundError(f"{name} does not exist")

        self.keys_cache.put(key, match)
        return match

    async def delete_key(self, customer: str, key_id: Union[str, int], name: Optional[str] = None) -> None:
        """Delete an SSH key by id, purging its cache entry when ``name`` is known."""
        require(customer=customer, key_id=key_id)

        result = await self.transport.delete(
            KEY_FMT.format(customer=customer, key_id=key_id),
            expect=DELETE_EXPECT
        )
        if result.error:
            raise self._translate(result.error, "delete_key")

        if name:
            self.keys_cache.purge(cache_key(customer, name))

    async def close(self) -> None:
        await self.transport.close()

    def _translate(self, error: BackendError, operation: str) -> ClientError:
        translated = translate_error(error)
        self.logger.warning(
            "Account backend request failed",
            operation=operation,
            backend_code=error.code,
            backend_status=error.status_code,
            error_kind=type(translated).__name__
        )
        if self.metrics:
            self.metrics.record_error(type(translated).__name__, service="account")
        return translated
