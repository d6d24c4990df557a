"""
Process-wide request cache.

Every remote resource the pages show is fetched through `QueryCache.fetch`
under a tuple key such as ("user", auth_id) or ("followers", auth_id).
The cache gives each key:

  • a tri-state snapshot  — loading / error / success (`QueryResult`)
  • request sharing       — concurrent fetches of a key await one request
  • retry                 — failures are retried with exponential backoff
                            before the key settles as an error
  • staleness             — data older than `stale_time`, or explicitly
                            invalidated, is refetched on next access while
                            the old data keeps being served
  • garbage collection    — entries nobody has read for `gc_time` and
                            with no request in flight are dropped

A page hands `fetch` a `wait` budget. If the request has not settled by
then the snapshot is `loading`; the request keeps running and fills the
entry for the next render.

All state is touched from the event loop thread only, so no locking.
"""
import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Hashable, Optional

from glifghe.web.config import settings
from glifghe.web.telemetry import MUTATIONS_TOTAL, QUERY_CACHE_TOTAL, QUERY_FAILURES_TOTAL

logger = logging.getLogger(__name__)

LOADING = "loading"
ERROR = "error"
SUCCESS = "success"

QueryKey = tuple[Hashable, ...]


@dataclass(frozen=True)
class QueryResult:
    status: str
    data: Any = None
    error: Any = None

    @property
    def is_loading(self) -> bool:
        return self.status == LOADING

    @property
    def is_error(self) -> bool:
        return self.status == ERROR

    @property
    def is_success(self) -> bool:
        return self.status == SUCCESS

    @classmethod
    def loading(cls) -> "QueryResult":
        return cls(LOADING)

    @classmethod
    def failure(cls, error: Any, data: Any = None) -> "QueryResult":
        return cls(ERROR, data=data, error=error)

    @classmethod
    def success(cls, data: Any) -> "QueryResult":
        return cls(SUCCESS, data=data)


@dataclass
class _Entry:
    status: str = LOADING
    data: Any = None
    error: Optional[BaseException] = None
    updated_at: float = 0.0
    invalidated: bool = False
    last_read: float = field(default_factory=time.monotonic)
    task: Optional[asyncio.Task] = field(default=None, repr=False)

    def snapshot(self) -> QueryResult:
        if self.status == SUCCESS:
            return QueryResult.success(self.data)
        if self.status == ERROR:
            return QueryResult.failure(self.error, self.data)
        return QueryResult.loading()

    @property
    def in_flight(self) -> bool:
        return self.task is not None and not self.task.done()


class QueryCache:
    def __init__(
        self,
        retry: int | None = None,
        retry_delay: float | None = None,
        stale_time: float | None = None,
        gc_time: float | None = None,
    ) -> None:
        self.retry = settings.query_retry if retry is None else retry
        self.retry_delay = settings.query_retry_delay if retry_delay is None else retry_delay
        self.stale_time = settings.query_stale_time if stale_time is None else stale_time
        self.gc_time = settings.query_gc_time if gc_time is None else gc_time
        self._entries: dict[QueryKey, _Entry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def _collect_garbage(self) -> None:
        now = time.monotonic()
        unused = [
            key
            for key, entry in self._entries.items()
            if not entry.in_flight and now - entry.last_read >= self.gc_time
        ]
        for key in unused:
            del self._entries[key]
        if unused:
            logger.debug("Collected %d unused queries", len(unused))

    def _is_fresh(self, entry: _Entry) -> bool:
        if entry.status != SUCCESS or entry.invalidated:
            return False
        return time.monotonic() - entry.updated_at < self.stale_time

    async def fetch(
        self,
        key: QueryKey,
        fn: Callable[[], Awaitable[Any]],
        wait: float | None = None,
    ) -> QueryResult:
        """
        Return a snapshot of `key`, starting a request when the cached value
        is missing or stale. `wait=None` waits for the request to settle.
        """
        self._collect_garbage()
        entry = self._entries.get(key)
        if entry is not None:
            entry.last_read = time.monotonic()

        if entry is not None and self._is_fresh(entry):
            QUERY_CACHE_TOTAL.labels(result="hit").inc()
            return entry.snapshot()

        if entry is not None and entry.in_flight:
            QUERY_CACHE_TOTAL.labels(result="shared").inc()
        else:
            if entry is None:
                entry = _Entry()
                self._entries[key] = entry
            elif entry.status == ERROR:
                entry.status = LOADING
            QUERY_CACHE_TOTAL.labels(result="fetch").inc()
            entry.task = asyncio.create_task(self._run(key, entry, fn))

        try:
            await asyncio.wait_for(asyncio.shield(entry.task), wait)
        except asyncio.TimeoutError:
            logger.debug("Query %s still loading after %ss", key, wait)
        return entry.snapshot()

    async def _run(self, key: QueryKey, entry: _Entry, fn: Callable[[], Awaitable[Any]]) -> None:
        attempts = self.retry + 1
        for attempt in range(attempts):
            try:
                data = await fn()
            except Exception as exc:
                if attempt + 1 < attempts:
                    delay = self.retry_delay * (2 ** attempt)
                    logger.debug("Query %s failed (%s), retrying in %.1fs", key, exc, delay)
                    await asyncio.sleep(delay)
                    continue
                logger.warning("Query %s failed after %d attempts: %s", key, attempts, exc)
                QUERY_FAILURES_TOTAL.inc()
                entry.status = ERROR
                entry.error = exc
                return
            entry.status = SUCCESS
            entry.data = data
            entry.error = None
            entry.updated_at = time.monotonic()
            entry.invalidated = False
            return

    def get(self, key: QueryKey) -> QueryResult | None:
        """Snapshot of `key` without fetching; None if never requested."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        entry.last_read = time.monotonic()
        return entry.snapshot()

    def set_data(self, key: QueryKey, data: Any) -> None:
        entry = self._entries.setdefault(key, _Entry())
        entry.status = SUCCESS
        entry.data = data
        entry.error = None
        entry.updated_at = time.monotonic()
        entry.invalidated = False

    def invalidate(self, *prefix: Hashable) -> int:
        """Mark every key starting with `prefix` stale. Returns how many matched."""
        self._collect_garbage()
        count = 0
        for key, entry in self._entries.items():
            if key[: len(prefix)] == prefix:
                entry.invalidated = True
                count += 1
        logger.debug("Invalidated %d queries under %s", count, prefix)
        return count

    def clear(self) -> None:
        for entry in self._entries.values():
            if entry.in_flight:
                entry.task.cancel()
        self._entries.clear()


class Mutation:
    """
    A named write. `run` awaits it; `launch` fires it in the background and
    only logs a failure. `is_pending` is true while any call is in flight.
    `on_success(result, *args)` runs after each successful call, typically
    to invalidate the queries the write made stale.
    """

    def __init__(
        self,
        name: str,
        fn: Callable[..., Awaitable[Any]],
        on_success: Callable[..., None] | None = None,
    ) -> None:
        self.name = name
        self._fn = fn
        self._on_success = on_success
        self._pending = 0
        self._tasks: set[asyncio.Task] = set()

    @property
    def is_pending(self) -> bool:
        return self._pending > 0

    async def run(self, *args: Any) -> Any:
        self._pending += 1
        try:
            result = await self._fn(*args)
        except Exception:
            MUTATIONS_TOTAL.labels(name=self.name, outcome="error").inc()
            raise
        finally:
            self._pending -= 1
        MUTATIONS_TOTAL.labels(name=self.name, outcome="ok").inc()
        if self._on_success:
            self._on_success(result, *args)
        return result

    def launch(self, *args: Any) -> asyncio.Task:
        # Counted as pending from the moment it is launched
        self._pending += 1
        task = asyncio.create_task(self._launched(*args))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _launched(self, *args: Any) -> None:
        self._pending -= 1
        try:
            await self.run(*args)
        except Exception as exc:
            logger.error("Mutation %s failed: %s", self.name, exc)
