from __future__ import annotations

import asyncio
import functools
import inspect
import logging
import time
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from field_rate_limit.core.config import get_settings
from field_rate_limit.core.duration import parse_window
from field_rate_limit.core.errors import ConfigurationError, RateLimitError, StoreError
from field_rate_limit.services.batch_cache import BatchCache, make_batch_cache
from field_rate_limit.services.identity import Identity, get_field_identity, get_path
from field_rate_limit.services.memory_store import InMemoryStore
from field_rate_limit.services.redis_store import RedisStore
from field_rate_limit.services.store import Store, maybe_await

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FormatErrorInput:
    field_name: str
    context_identity: str
    field_identity: str
    max: int
    window: int


def default_format_error(error_input: FormatErrorInput) -> str:
    return f"You are trying to access '{error_input.field_name}' too often"


@dataclass(frozen=True)
class FieldRateLimit:
    """
    Limit for one field: at most `max` calls per `window`.

    `window` is milliseconds or a duration string ("10s", "0.5s", "1m").
    Unset `max`/`window` fall back to RATE_LIMIT_DEFAULT_MAX/RATE_LIMIT_DEFAULT_WINDOW.
    An unparsable window fails here, when the limit is declared.
    """
    max: int | None = None
    window: int | str | None = None
    identity_args: Sequence[str] = ()
    array_length_field: str | None = None
    message: str | None = None
    uncount_rejected: bool = False

    max_calls: int = field(init=False)
    window_ms: int = field(init=False)

    def __post_init__(self) -> None:
        settings = get_settings()

        max_calls = settings.default_max if self.max is None else self.max
        if isinstance(max_calls, bool) or not isinstance(max_calls, int) or max_calls < 0:
            raise ConfigurationError(f"Invalid rate limit max: {max_calls!r}")

        window_ms = parse_window(settings.default_window if self.window is None else self.window)

        identity_args = self.identity_args
        if isinstance(identity_args, str):
            identity_args = (identity_args,)

        object.__setattr__(self, "identity_args", tuple(identity_args))
        object.__setattr__(self, "max_calls", max_calls)
        object.__setattr__(self, "window_ms", window_ms)

    @classmethod
    def coerce(cls, value: "FieldRateLimit | Mapping[str, Any]") -> "FieldRateLimit":
        if isinstance(value, FieldRateLimit):
            return value
        return cls(**value)


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    error_message: str | None = None

    def __bool__(self) -> bool:
        return self.allowed


ALLOWED = RateLimitDecision(allowed=True)

StoreErrorObserver = Callable[[Exception], "None | Awaitable[None]"]
ErrorFactory = Callable[[str], Exception]


def _now_ms() -> int:
    return int(time.time() * 1000)


def _call_count(args: Any, array_length_field: str | None) -> int:
    if not array_length_field:
        return 1
    value = get_path(args, array_length_field)
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
        return max(len(value), 1)
    return 1


async def _read_history(store: Store, identity: Identity) -> Sequence[int]:
    result = store.get_for_identity(identity)
    if inspect.isawaitable(result):
        return await result
    # Sync stores still suspend here so sibling checks of a batch contribute first
    await asyncio.sleep(0)
    return result


def _write_settled(identity: Identity, release: Callable[[], None], write: asyncio.Future) -> None:
    """Done-callback for a store write that outlived its cancelled caller."""
    release()
    if write.cancelled():
        return
    exc = write.exception()
    if exc is not None:
        logger.error(
            "Rate limit store set failed after caller cancellation context=%s field=%s",
            identity.context_identity,
            identity.field_identity,
            exc_info=exc,
        )


class RateLimiter:
    """
    Sliding-window limiter for named fields/operations.

    Every check records its call(s) for (caller, field + identity args), drops
    timestamps older than the window and rejects once more than `max` calls
    remain. With the batch request cache enabled, checks sharing one context
    object see each other's calls before their store writes complete.
    """

    def __init__(
            self,
            identify_context: Callable[[Any], str] | None,
            *,
            store: Store | None = None,
            format_error: Callable[[FormatErrorInput], str] | None = None,
            enable_batch_request_cache: bool = False,
            on_store_error: StoreErrorObserver | None = None,
            create_error: ErrorFactory = RateLimitError,
            clock: Callable[[], int] = _now_ms,
    ) -> None:
        if identify_context is None:
            raise ConfigurationError("RateLimiter requires identify_context (e.g. lambda ctx: ctx.client_ip)")

        self._identify_context = identify_context
        self.store = store if store is not None else InMemoryStore()
        self._format_error = format_error or default_format_error
        self._batch_cache: BatchCache = make_batch_cache(enable_batch_request_cache)
        self._on_store_error = on_store_error
        self._create_error = create_error
        self._clock = clock

    async def check(
            self,
            *,
            field_name: str,
            args: Any,
            context: Any,
            config: FieldRateLimit | Mapping[str, Any],
    ) -> RateLimitDecision:
        limit = FieldRateLimit.coerce(config)

        context_identity = str(self._identify_context(context))
        field_identity = get_field_identity(field_name, limit.identity_args, args)
        identity = Identity(context_identity=context_identity, field_identity=field_identity)

        now = self._clock()
        new_timestamps = [now] * _call_count(args, limit.array_length_field)
        pending = self._batch_cache.contribute(context, field_identity, new_timestamps)

        release = functools.partial(self._batch_cache.release, context, field_identity, new_timestamps)
        release_now = True
        try:
            try:
                history = await _read_history(self.store, identity)
            except Exception as exc:
                return await self._store_failed("get", identity, exc)

            merged = [*pending, *(t for t in history if t + limit.window_ms > now)]
            over_limit = len(merged) > limit.max_calls

            if not (over_limit and limit.uncount_rejected):
                try:
                    write = self.store.set_for_identity(identity, merged, limit.window_ms)
                    if inspect.isawaitable(write):
                        write = asyncio.ensure_future(write)
                        try:
                            # An issued write must land even if the caller is cancelled
                            await asyncio.shield(write)
                        except asyncio.CancelledError:
                            release_now = False
                            write.add_done_callback(functools.partial(_write_settled, identity, release))
                            raise
                except Exception as exc:
                    return await self._store_failed("set", identity, exc)
        finally:
            if release_now:
                release()

        logger.debug(
            "Rate limit check field=%s context=%s count=%s max=%s",
            field_identity,
            context_identity,
            len(merged),
            limit.max_calls,
        )

        if not over_limit:
            return ALLOWED

        message = limit.message or self._format_error(
            FormatErrorInput(
                field_name=field_name,
                context_identity=context_identity,
                field_identity=field_identity,
                max=limit.max_calls,
                window=limit.window_ms,
            )
        )
        logger.warning(
            "Rate limit exceeded field=%s context=%s count=%s max=%s window_ms=%s",
            field_identity,
            context_identity,
            len(merged),
            limit.max_calls,
            limit.window_ms,
        )
        return RateLimitDecision(allowed=False, error_message=message)

    async def enforce(
            self,
            *,
            field_name: str,
            args: Any,
            context: Any,
            config: FieldRateLimit | Mapping[str, Any],
    ) -> None:
        decision = await self.check(field_name=field_name, args=args, context=context, config=config)
        if not decision.allowed:
            raise self._create_error(decision.error_message or "")

    async def aclose(self) -> None:
        close = getattr(self.store, "close", None)
        if close is not None:
            await maybe_await(close())

    async def _store_failed(self, operation: str, identity: Identity, exc: Exception) -> RateLimitDecision:
        if self._on_store_error is None:
            logger.exception(
                "Rate limit store %s failed context=%s field=%s",
                operation,
                identity.context_identity,
                identity.field_identity,
            )
            raise StoreError(operation, exc) from exc

        logger.warning(
            "Rate limit store %s failed, allowing call context=%s field=%s error=%s",
            operation,
            identity.context_identity,
            identity.field_identity,
            type(exc).__name__,
        )
        await maybe_await(self._on_store_error(exc))
        return ALLOWED


def build_store() -> Store:
    settings = get_settings()
    if settings.store_backend == "memory":
        return InMemoryStore()
    if settings.store_backend == "redis":
        return RedisStore.from_url(settings.redis_url, key_prefix=settings.key_prefix)
    raise ConfigurationError(f"Unknown RATE_LIMIT_STORE: {settings.store_backend!r} (expected 'memory' or 'redis')")


def get_rate_limiter(
        identify_context: Callable[[Any], str] | None,
        *,
        store: Store | None = None,
        enable_batch_request_cache: bool | None = None,
        format_error: Callable[[FormatErrorInput], str] | None = None,
        on_store_error: StoreErrorObserver | None = None,
        create_error: ErrorFactory = RateLimitError,
) -> RateLimiter:
    """
    RateLimiter wired from the environment; explicit arguments win over settings.
    """
    settings = get_settings()
    if enable_batch_request_cache is None:
        enable_batch_request_cache = settings.batch_cache_enabled

    return RateLimiter(
        identify_context,
        store=store if store is not None else build_store(),
        format_error=format_error,
        enable_batch_request_cache=enable_batch_request_cache,
        on_store_error=on_store_error,
        create_error=create_error,
    )
