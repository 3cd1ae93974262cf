"""
Site-wide flags (maintenance mode) and the access gate built on them.

The database row is the source of truth. A SiteFlag keeps the last value it
saw and whether that value is fresh:

    UNINITIALIZED  never read; `value` is the default
    SYNCED         read or written successfully within the cache window
    STALE          the last refresh failed, or the cache window expired
"""
from enum import Enum
from typing import Callable, Optional
import hmac
import logging
import time

from sitecms.errors import FetchError, StoreError

logger = logging.getLogger(__name__)

MAINTENANCE_MODE = "maintenance_mode"

# Reachable while the site is in maintenance mode
ALWAYS_OPEN_PREFIXES = (
    "/api/cms",
    "/api/auth",
    "/api/site/status",
    "/health",
    "/docs",
    "/redoc",
    "/openapi.json",
)


class FlagState(str, Enum):
    UNINITIALIZED = "uninitialized"
    SYNCED = "synced"
    STALE = "stale"


def _parse(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() == "true"


class SiteFlag:
    def __init__(
        self,
        key: str,
        default: bool = False,
        max_age: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.key = key
        self.default = default
        self.max_age = max_age
        self._clock = clock
        self.value = default
        self.state = FlagState.UNINITIALIZED
        self.error: Optional[str] = None
        self._synced_at: Optional[float] = None

    @property
    def fresh(self) -> bool:
        return (
            self.state is FlagState.SYNCED
            and self._synced_at is not None
            and self._clock() - self._synced_at < self.max_age
        )

    def _synced(self, value: bool) -> None:
        self.value = value
        self.state = FlagState.SYNCED
        self.error = None
        self._synced_at = self._clock()

    def mark_stale(self) -> None:
        if self.state is FlagState.SYNCED:
            self.state = FlagState.STALE

    async def refresh(self, store, force: bool = False) -> bool:
        """
        Re-read the flag unless the cached value is still fresh.
        A failed read keeps the last known value and marks it stale.
        """
        if self.fresh and not force:
            return self.value
        try:
            record = await store.get("site_settings", {"key": self.key})
        except (FetchError, StoreError) as e:
            logger.error(f"Error fetching {self.key} status: {e.message}")
            self.error = e.message
            if self.state is not FlagState.UNINITIALIZED:
                self.state = FlagState.STALE
            return self.value
        self._synced(_parse(record.value if record is not None else None, self.default))
        return self.value

    async def set(self, store, value: bool) -> bool:
        """Persist a new value. On StoreError the local value is left alone."""
        try:
            await store.upsert("site_settings", {"key": self.key, "value": "true" if value else "false"}, key="key")
        except StoreError as e:
            logger.error(f"Error saving {self.key}: {e.message}")
            self.error = e.message
            raise
        self._synced(value)
        logger.info(f"Site flag {self.key} set to {value}")
        return self.value

    async def toggle(self, store) -> bool:
        current = await self.refresh(store, force=True)
        return await self.set(store, not current)


class SiteFlags:
    """The flags the application consults on every request."""

    def __init__(self, max_age: float = 30.0):
        self.maintenance_mode = SiteFlag(MAINTENANCE_MODE, default=False, max_age=max_age)


def has_dev_access(provided: Optional[str], expected: str) -> bool:
    if not expected or not provided:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


def is_request_allowed(path: str, maintenance: bool, dev_access: bool = False) -> bool:
    """Whether a request may reach its route given the maintenance flag."""
    if not maintenance or dev_access:
        return True
    return path == "/" or path.startswith(ALWAYS_OPEN_PREFIXES)
