"""
Circuit breaker that fails over from the relational store to the in-memory one.

closed     the primary store serves every call.
open       a StorageUnavailableError tripped the breaker; the secondary store
           serves calls until ``retry_after`` seconds have passed.
half-open  the next call tries the primary again. Success closes the breaker,
           failure re-opens it for another ``retry_after`` seconds.

Writes accepted by the secondary store while the breaker is open stay there;
they are not replayed into the primary after recovery. Account creation never
falls back: the secondary holds no users, so provisioning there would let
anyone claim the admin address.
"""

from __future__ import annotations

import functools
import inspect
import logging
import time
from enum import Enum
from typing import Callable, Optional

from portfolio.storage.base import Storage, StorageUnavailableError

logger = logging.getLogger(__name__)

# Operations that must only ever run against the primary store
PRIMARY_ONLY = frozenset({"create_user"})


class BreakerState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class FallbackStorage:
    def __init__(
        self,
        primary: Storage,
        secondary: Storage,
        retry_after: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.primary = primary
        self.secondary = secondary
        self.retry_after = retry_after
        self._clock = clock
        self.state = BreakerState.CLOSED
        self._opened_at: Optional[float] = None

    @property
    def name(self) -> str:
        if self.state == BreakerState.CLOSED:
            return self.primary.name
        return f"{self.secondary.name} (fallback)"

    async def init(self) -> None:
        await self.secondary.init()
        try:
            await self.primary.init()
        except StorageUnavailableError:
            self._trip("init")

    async def close(self) -> None:
        await self.primary.close()
        await self.secondary.close()

    def _trip(self, operation: str) -> None:
        if self.state != BreakerState.OPEN:
            logger.warning(
                f"Primary storage failed during {operation}; serving from "
                f"{self.secondary.name} for the next {self.retry_after:.0f}s"
            )
        self.state = BreakerState.OPEN
        self._opened_at = self._clock()

    async def _call(self, operation: str, *args, **kwargs):
        if (
            self.state == BreakerState.OPEN
            and self._clock() - self._opened_at >= self.retry_after
        ):
            self.state = BreakerState.HALF_OPEN
            logger.info(f"Retrying primary storage with {operation}")

        if self.state != BreakerState.OPEN:
            try:
                result = await getattr(self.primary, operation)(*args, **kwargs)
            except StorageUnavailableError:
                self._trip(operation)
                if operation in PRIMARY_ONLY:
                    raise
            else:
                if self.state == BreakerState.HALF_OPEN:
                    logger.info("Primary storage recovered; breaker closed")
                    self.state = BreakerState.CLOSED
                    self._opened_at = None
                return result

        if operation in PRIMARY_ONLY:
            raise StorageUnavailableError(f"{operation} is unavailable while the primary store is down")
        return await getattr(self.secondary, operation)(*args, **kwargs)

    def __getattr__(self, name: str):
        attr = getattr(self.primary, name)
        if name.startswith("_") or not inspect.iscoroutinefunction(attr):
            return attr
        return functools.partial(self._call, name)
