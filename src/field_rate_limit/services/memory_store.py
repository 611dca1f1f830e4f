from __future__ import annotations

from collections.abc import Sequence

from field_rate_limit.services.identity import Identity
from field_rate_limit.services.store import Store


class InMemoryStore(Store):
    """
    Per-process store: context identity -> field identity -> timestamps.

    No expiry sweep; stale timestamps are pruned by the rate limiter on each
    check, but identities that are never checked again stay in memory.
    """

    def __init__(self) -> None:
        self._store: dict[str, dict[str, list[int]]] = {}

    def get_for_identity(self, identity: Identity) -> list[int]:
        fields = self._store.get(identity.context_identity, {})
        return list(fields.get(identity.field_identity, []))

    def set_for_identity(
            self,
            identity: Identity,
            timestamps: Sequence[int],
            window_ms: int | None = None,
    ) -> None:
        fields = self._store.setdefault(identity.context_identity, {})
        fields[identity.field_identity] = list(timestamps)

    def clear(self) -> None:
        """
        Test helper. Drops all recorded calls.
        """
        self._store.clear()
