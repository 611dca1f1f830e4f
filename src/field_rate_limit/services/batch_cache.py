from __future__ import annotations

import logging
import weakref
from collections.abc import Sequence
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class BatchCache(Protocol):
    def contribute(self, context: Any, field_identity: str, new_timestamps: Sequence[int]) -> list[int]:
        ...

    def release(self, context: Any, field_identity: str, timestamps: Sequence[int]) -> None:
        ...


class NoOpBatchCache:
    def contribute(self, context: Any, field_identity: str, new_timestamps: Sequence[int]) -> list[int]:
        return list(new_timestamps)

    def release(self, context: Any, field_identity: str, timestamps: Sequence[int]) -> None:
        return None


class WeakBatchCache:
    """
    Pending timestamps per request context, per field identity.

    Entries are keyed by the identity of the context object (not its contents)
    and dropped by a weakref callback once the context is collected, so nothing
    outlives the request. Contexts that cannot be weakly referenced (plain dicts,
    for example) are not cached at all.
    """

    def __init__(self) -> None:
        self._calls: dict[int, tuple[weakref.ref, dict[str, list[int]]]] = {}
        self._warned_types: set[type] = set()

    def __len__(self) -> int:
        return len(self._calls)

    def contribute(self, context: Any, field_identity: str, new_timestamps: Sequence[int]) -> list[int]:
        current_calls = self._calls_for(context)
        if current_calls is None:
            return list(new_timestamps)

        pending = current_calls.setdefault(field_identity, [])
        pending.extend(new_timestamps)
        return list(pending)

    def release(self, context: Any, field_identity: str, timestamps: Sequence[int]) -> None:
        """
        Drop timestamps whose store round-trip has finished; from then on the
        store holds them and later checks must not count them twice.
        """
        current_calls = self._existing_calls(context)
        if not current_calls:
            return

        pending = current_calls.get(field_identity)
        if not pending:
            return

        for timestamp in timestamps:
            try:
                pending.remove(timestamp)
            except ValueError:
                break

        if not pending:
            del current_calls[field_identity]

    def _existing_calls(self, context: Any) -> dict[str, list[int]] | None:
        entry = self._calls.get(id(context))
        # id() may be reused by a new object once the old context is gone
        if entry is not None and entry[0]() is context:
            return entry[1]
        return None

    def _calls_for(self, context: Any) -> dict[str, list[int]] | None:
        existing = self._existing_calls(context)
        if existing is not None:
            return existing

        context_id = id(context)
        try:
            ref = weakref.ref(context, lambda r, cid=context_id: self._forget(cid, r))
        except TypeError:
            self._warn_unreferenceable(context)
            return None

        current_calls: dict[str, list[int]] = {}
        self._calls[context_id] = (ref, current_calls)
        return current_calls

    def _forget(self, context_id: int, ref: weakref.ref) -> None:
        entry = self._calls.get(context_id)
        if entry is not None and entry[0] is ref:
            del self._calls[context_id]

    def _warn_unreferenceable(self, context: Any) -> None:
        context_type = type(context)
        if context_type not in self._warned_types:
            self._warned_types.add(context_type)
            logger.warning(
                "Batch request cache skipped for context type=%s (not weak-referenceable)",
                context_type.__name__,
            )


def make_batch_cache(enabled: bool) -> BatchCache:
    return WeakBatchCache() if enabled else NoOpBatchCache()
