from __future__ import annotations

import inspect
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Sequence
from typing import Any

from field_rate_limit.services.identity import Identity


class Store(ABC):
    """
    Call history per identity.

    Implementations may be synchronous or return awaitables; the rate limiter
    accepts both. Any object with these two methods can be used as a store.
    """

    @abstractmethod
    def get_for_identity(self, identity: Identity) -> Sequence[int] | Awaitable[Sequence[int]]:
        """Return every recorded call timestamp (ms) for identity, or an empty sequence."""

    @abstractmethod
    def set_for_identity(
            self,
            identity: Identity,
            timestamps: Sequence[int],
            window_ms: int | None = None,
    ) -> None | Awaitable[None]:
        """
        Replace the call timestamps for identity.

        With window_ms, the record should expire window_ms after its newest timestamp.
        """

    def close(self) -> None | Awaitable[None]:
        """Release backend connections. Stores without any keep this no-op."""
        return None


async def maybe_await(result: Any) -> Any:
    if inspect.isawaitable(result):
        return await result
    return result
