"""In-memory computation cache with per-entry TTL."""
import asyncio
import inspect
import logging
import threading
import time
from typing import Any, Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)

_MISSING = object()


class ComputationCache:
    """
    Key -> value memoization with an absolute expiry per entry.

    An entry is valid while ``clock() < expires_at``; expired entries are
    treated as absent and dropped lazily. Reads and writes are guarded by a
    lock so the cache can be shared by concurrent requests and threads.

    With ``single_flight`` enabled, concurrent misses on the same key inside
    one event loop share a single in-flight computation; threads running
    their own loops compute independently. If the caller that started a
    computation is cancelled, the callers waiting on it retry rather than
    inherit the cancellation. Callers must still
    not rely on exactly-once invocation: an entry that expires between two
    calls is recomputed.
    """

    def __init__(
        self,
        default_ttl: float = 30,
        single_flight: bool = True,
        clock: Optional[Callable[[], float]] = None
    ):
        """
        Initialize the cache.

        Args:
            default_ttl: TTL in seconds used when ``set`` gets no ttl
            single_flight: Coalesce concurrent misses for the same key
            clock: Monotonic time source (seconds). Defaults to time.monotonic.
        """
        self.default_ttl = default_ttl
        self.single_flight = single_flight
        self._clock = clock or time.monotonic
        self._entries: Dict[str, Tuple[Any, float]] = {}
        self._inflight: Dict[Tuple[asyncio.AbstractEventLoop, str], asyncio.Future] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def _lookup(self, key: str) -> Any:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return _MISSING
            value, expires_at = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                self._misses += 1
                return _MISSING
            self._hits += 1
            return value

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None if absent or expired."""
        value = self._lookup(key)
        return None if value is _MISSING else value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """Store a value that expires ``ttl`` seconds from now."""
        ttl = self.default_ttl if ttl is None else ttl
        with self._lock:
            self._entries[key] = (value, self._clock() + ttl)

    async def get_or_compute(
        self,
        key: str,
        producer: Callable[[], Any],
        ttl: Optional[float] = None
    ) -> Any:
        """
        Return the cached value for ``key`` or compute, store and return it.

        Args:
            key: Cache key
            producer: Zero-argument callable; may return an awaitable
            ttl: Entry TTL in seconds (default_ttl if None)

        Returns:
            The cached or freshly produced value

        Raises:
            Whatever ``producer`` raises; failures are never cached
        """
        while True:
            value = self._lookup(key)
            if value is not _MISSING:
                return value

            if not self.single_flight:
                value = await self._produce(producer)
                self.set(key, value, ttl)
                return value

            # Futures are loop-bound, so flights are only shared within a loop
            flight_key = (asyncio.get_running_loop(), key)
            with self._lock:
                pending = self._inflight.get(flight_key)
                if pending is None:
                    future = asyncio.get_running_loop().create_future()
                    self._inflight[flight_key] = future
                    break

            logger.debug(f"Joining in-flight computation for {key}")
            try:
                return await asyncio.shield(pending)
            except asyncio.CancelledError:
                if not pending.cancelled():
                    raise
                # The owning caller was cancelled, not this one: start over
                logger.debug(f"In-flight computation for {key} was cancelled, retrying")

        try:
            value = await self._produce(producer)
        except BaseException as e:
            if isinstance(e, asyncio.CancelledError):
                future.cancel()
            else:
                future.set_exception(e)
                # Mark retrieved so an unjoined failure does not warn at GC
                future.exception()
            raise
        else:
            self.set(key, value, ttl)
            future.set_result(value)
            return value
        finally:
            with self._lock:
                if self._inflight.get(flight_key) is future:
                    del self._inflight[flight_key]

    @staticmethod
    async def _produce(producer: Callable[[], Any]) -> Any:
        result = producer()
        if inspect.isawaitable(result):
            result = await result
        return result

    def invalidate(self, key: str) -> None:
        """Remove an entry unconditionally."""
        with self._lock:
            self._entries.pop(key, None)

    def flush(self) -> None:
        """Clear all entries."""
        with self._lock:
            self._entries.clear()
        logger.info("Computation cache flushed")

    def stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        with self._lock:
            now = self._clock()
            live = sum(1 for _, expires_at in self._entries.values() if now < expires_at)
            return {
                "keys": live,
                "hits": self._hits,
                "misses": self._misses,
                "inflight": len(self._inflight),
                "single_flight": self.single_flight,
            }
