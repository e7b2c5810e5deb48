"""Per-identity service clients.

Every Google service client is bound to exactly one identity: either the
operator's default identity (single-tenant mode) or a caller's bearer
credential (multi-tenant mode). The SessionManager hands out the right
instance for a ``(service, credential)`` pair, building it on first use
and reusing it afterwards, so per-client state such as a default calendar
or the last email listing never leaks between callers.

Example:
    ```python
    factory = ServiceClientFactory(Authenticator(http_client), http_client)
    sessions = SessionManager(factory, multi_tenant=True, idle_ttl=3600)
    calendar = await sessions.get(ServiceKind.CALENDAR, credential)
    ```
"""

import asyncio
import logging
import time
from collections import OrderedDict
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum

import httpx

from google_mcp.auth.credentials import (
    AuthenticatedHandle,
    Authenticator,
    fingerprint,
    short_fingerprint,
)
from google_mcp.clients import (
    CalendarClient,
    DriveClient,
    GmailClient,
    GoogleApiClient,
    MeetClient,
    TasksClient,
)
from google_mcp.errors import AuthInitializationError

logger = logging.getLogger(__name__)

DEFAULT_IDENTITY = "default"


class ServiceKind(str, Enum):
    """Google services with a client in the session cache."""

    CALENDAR = "calendar"
    GMAIL = "gmail"
    DRIVE = "drive"
    TASKS = "tasks"
    MEET = "meet"


# A service's dependencies are resolved for the same identity first
SERVICE_DEPENDENCIES: dict[ServiceKind, tuple[ServiceKind, ...]] = {
    ServiceKind.MEET: (ServiceKind.CALENDAR,),
}

_CLIENT_CLASSES: dict[ServiceKind, type[GoogleApiClient]] = {
    ServiceKind.CALENDAR: CalendarClient,
    ServiceKind.GMAIL: GmailClient,
    ServiceKind.DRIVE: DriveClient,
    ServiceKind.TASKS: TasksClient,
    ServiceKind.MEET: MeetClient,
}


def resolution_order() -> list[ServiceKind]:
    """Return every service with its dependencies ahead of it."""
    order: list[ServiceKind] = []

    def visit(service: ServiceKind) -> None:
        if service in order:
            return
        for dependency in SERVICE_DEPENDENCIES.get(service, ()):
            visit(dependency)
        order.append(service)

    for service in ServiceKind:
        visit(service)
    return order


@dataclass(frozen=True)
class ServiceIdentity:
    """Cache key: which service, for whom.

    Attributes:
        service: The Google service.
        fingerprint: SHA-256 fingerprint of the caller credential, or
            DEFAULT_IDENTITY for the operator's stored token.
    """

    service: ServiceKind
    fingerprint: str

    def __str__(self) -> str:
        return f"{self.service.value}:{short_fingerprint(self.fingerprint)}"


class ServiceClientFactory:
    """Build service clients from credentials. Never caches.

    Args:
        authenticator: Turns a credential (or None) into an auth handle.
        http_client: Pooled client shared by every built service client.
    """

    def __init__(self, authenticator: Authenticator, http_client: httpx.AsyncClient) -> None:
        self.authenticator = authenticator
        self.http_client = http_client
        self._default_handle: AuthenticatedHandle | None = None

    async def _authenticate(self, credential: str | None) -> AuthenticatedHandle:
        try:
            return await self.authenticator.authenticate(credential)
        except AuthInitializationError:
            raise
        except Exception as e:
            raise AuthInitializationError(f"Authentication failed: {e}") from e

    async def prepare_default(self) -> None:
        """Authenticate the default identity from the stored token.

        Raises:
            AuthInitializationError: If no usable stored token exists.
        """
        self._default_handle = await self._authenticate(None)

    async def build(
        self,
        service: ServiceKind,
        credential: str | None = None,
        dependencies: Mapping[ServiceKind, GoogleApiClient] | None = None,
    ) -> GoogleApiClient:
        """Create a fresh client for ``service``.

        Args:
            service: Service to build.
            credential: Caller credential, or None for the default identity.
            dependencies: Already-resolved clients listed in
                SERVICE_DEPENDENCIES for this service, same identity.

        Raises:
            AuthInitializationError: If the credential is rejected, or the
                default identity was requested before ``prepare_default``.
        """
        if credential:
            handle = await self._authenticate(credential)
        elif self._default_handle is not None:
            handle = self._default_handle
        else:
            raise AuthInitializationError("Default identity is not initialized")

        if service == ServiceKind.MEET:
            calendar = (dependencies or {}).get(ServiceKind.CALENDAR)
            if calendar is not None and not isinstance(calendar, CalendarClient):
                raise TypeError(f"Meet needs a CalendarClient, got {type(calendar).__name__}")
            return MeetClient(handle, self.http_client, calendar=calendar)

        return _CLIENT_CLASSES[service](handle, self.http_client)

    async def close(self) -> None:
        """Release the shared HTTP client."""
        await self.http_client.aclose()


class SessionManager:
    """Cache of service clients keyed by ServiceIdentity.

    In single-tenant mode a credential-less request gets the default
    client built at startup. A credentialed request gets the client built
    for that credential's fingerprint, built on first use. Failed builds
    are never cached.

    Two concurrent first requests for the same identity may both build;
    the later store wins. Cache mutations happen only between awaits, so
    the maps stay consistent without a lock.

    Cached caller identities expire after ``idle_ttl`` seconds without use,
    and at most ``max_identities`` are kept (least recently used first
    out). Default clients are never evicted.

    Args:
        factory: Builds clients on cache misses.
        multi_tenant: Disable the default identity entirely.
        idle_ttl: Idle expiry in seconds, None to keep forever.
        max_identities: LRU bound on cached caller identities, None for no bound.
        clock: Monotonic time source, seconds.
    """

    def __init__(
        self,
        factory: ServiceClientFactory,
        multi_tenant: bool = False,
        idle_ttl: float | None = None,
        max_identities: int | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.factory = factory
        self.multi_tenant = multi_tenant
        self.idle_ttl = idle_ttl
        self.max_identities = max_identities
        self._clock = clock
        self._clients: dict[ServiceIdentity, GoogleApiClient] = {}
        self._last_used: OrderedDict[str, float] = OrderedDict()
        self._defaults: dict[ServiceKind, GoogleApiClient] = {}
        self._init_task: asyncio.Task[None] | None = None

    async def get(self, service: ServiceKind | str, credential: str | None = None) -> GoogleApiClient:
        """Return the client for ``service`` acting as ``credential``.

        Args:
            service: Service kind (or its string value).
            credential: Raw bearer token, or None/empty for the default identity.

        Returns:
            The cached client, or a newly built one.

        Raises:
            AuthInitializationError: If no credential was given in
                multi-tenant mode, the default client is not ready, or the
                credential could not be authenticated.
        """
        service = ServiceKind(service)

        if not credential:
            if self.multi_tenant:
                raise AuthInitializationError(
                    "A bearer credential is required: the server runs in multi-tenant mode"
                )
            client = self._defaults.get(service)
            if client is None:
                raise AuthInitializationError(f"Default {service.value} client is not initialized")
            return client

        key = fingerprint(credential)
        self._evict_idle()
        client = await self._resolve(service, credential, key)
        self._touch(key)
        self._enforce_capacity()
        return client

    async def _resolve(self, service: ServiceKind, credential: str, key: str) -> GoogleApiClient:
        identity = ServiceIdentity(service, key)
        cached = self._clients.get(identity)
        if cached is not None:
            return cached

        dependencies = {
            dependency: await self._resolve(dependency, credential, key)
            for dependency in SERVICE_DEPENDENCIES.get(service, ())
        }
        client = await self.factory.build(service, credential, dependencies)
        self._clients[identity] = client
        self._touch(key)
        logger.info("Built %s client", identity)
        return client

    def _touch(self, key: str) -> None:
        self._last_used[key] = self._clock()
        self._last_used.move_to_end(key)

    def _evict(self, key: str, reason: str) -> None:
        self._last_used.pop(key, None)
        stale = [identity for identity in self._clients if identity.fingerprint == key]
        for identity in stale:
            del self._clients[identity]
        logger.info("Evicted %d client(s) for %s (%s)", len(stale), short_fingerprint(key), reason)

    def _evict_idle(self) -> None:
        if self.idle_ttl is None:
            return
        now = self._clock()
        # _last_used is ordered oldest first
        for key, last_used in list(self._last_used.items()):
            if now - last_used <= self.idle_ttl:
                break
            self._evict(key, "idle")

    def _enforce_capacity(self) -> None:
        if self.max_identities is None:
            return
        while len(self._last_used) > self.max_identities:
            oldest = next(iter(self._last_used))
            self._evict(oldest, "capacity")

    async def initialize_defaults(self) -> None:
        """Authenticate the default identity and build all its clients.

        No-op in multi-tenant mode.

        Raises:
            AuthInitializationError: If the stored token is unusable.
        """
        if self.multi_tenant:
            return

        await self.factory.prepare_default()
        defaults: dict[ServiceKind, GoogleApiClient] = {}
        for service in resolution_order():
            dependencies = {d: defaults[d] for d in SERVICE_DEPENDENCIES.get(service, ())}
            defaults[service] = await self.factory.build(service, None, dependencies)
        self._defaults = defaults
        logger.info("Default clients initialized: %s", ", ".join(s.value for s in defaults))

    def start(self) -> None:
        """Schedule default initialization in the background (single-tenant only)."""
        if self.multi_tenant or self._init_task is not None:
            return
        self._init_task = asyncio.create_task(self.initialize_defaults())
        self._init_task.add_done_callback(self._log_initialization)

    @staticmethod
    def _log_initialization(task: "asyncio.Task[None]") -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("Default initialization failed: %s", error)

    async def wait_until_ready(self) -> None:
        """Wait for default initialization, starting it if needed.

        A failed initialization is reported again on every call.

        Raises:
            AuthInitializationError: If default initialization failed.
        """
        if self.multi_tenant:
            return
        if self._init_task is None:
            self.start()
        assert self._init_task is not None

        try:
            # A cancelled tool call must not cancel startup
            await asyncio.shield(self._init_task)
        except Exception as e:
            raise AuthInitializationError(
                f"Authentication failed to initialize services: {e}"
            ) from e

    def cached_identities(self) -> list[ServiceIdentity]:
        """Identities with a cached client, excluding the defaults."""
        return list(self._clients)

    def __len__(self) -> int:
        return len(self._clients)

    def clear(self) -> None:
        """Drop every cached caller client. Default clients are kept."""
        self._clients.clear()
        self._last_used.clear()
