import asyncio
import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Sequence

from ledger.errors import LedgerError

logger = logging.getLogger(__name__)

__all__ = ['QueryKey', 'QueryStatus', 'QueryState', 'QueryCache', 'Mutation']


class QueryKey:
    CATEGORIES = "categories"
    REVENUES = "revenues"
    EXPENSES = "expenses"


class QueryStatus(Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class QueryState:
    status: QueryStatus = QueryStatus.IDLE
    data: Any = None
    error: Optional[LedgerError] = None
    stale: bool = False

    @property
    def is_loading(self) -> bool:
        return self.status is QueryStatus.LOADING

    @property
    def is_error(self) -> bool:
        return self.status is QueryStatus.ERROR

    @property
    def is_success(self) -> bool:
        return self.status is QueryStatus.SUCCESS


Fetcher = Callable[[], Awaitable[Any]]
Subscriber = Callable[[str, QueryState], None]


class QueryCache:
    """Per-key {status, data, error} records for fetched collections.

    One instance per view session. Entries are replaced, never mutated:
    a mutation invalidates its list key and the list is fetched again.
    """

    def __init__(self):
        self._fetchers: Dict[str, Fetcher] = {}
        self._states: Dict[str, QueryState] = {}
        self._subscribers: Dict[str, List[Subscriber]] = {}

    def register(self, key: str, fetcher: Fetcher) -> None:
        self._fetchers[key] = fetcher

    def state(self, key: str) -> QueryState:
        return self._states.get(key, QueryState())

    def subscribe(self, key: str, callback: Subscriber) -> None:
        if key not in self._subscribers:
            self._subscribers[key] = []
        self._subscribers[key].append(callback)

    def unsubscribe(self, key: str, callback: Subscriber) -> None:
        if key in self._subscribers:
            if callback in self._subscribers[key]:
                self._subscribers[key].remove(callback)

    def _set(self, key: str, state: QueryState) -> QueryState:
        self._states[key] = state
        for callback in list(self._subscribers.get(key, [])):
            callback(key, state)
        return state

    async def fetch(self, key: str) -> QueryState:
        """Run the key's fetcher now: loading -> success | error."""
        if key not in self._fetchers:
            raise KeyError(f"No fetcher registered for {key!r}")
        previous = self.state(key)
        # keep the last good data visible while reloading
        self._set(key, QueryState(status=QueryStatus.LOADING, data=previous.data))
        try:
            data = await self._fetchers[key]()
        except LedgerError as e:
            logger.warning(f"Query {key!r} failed: {e}")
            return self._set(key, QueryState(status=QueryStatus.ERROR, data=previous.data, error=e))
        except BaseException:
            # never leave the key stuck in LOADING; the next read retries
            self._set(key, replace(previous, stale=True))
            raise
        return self._set(key, QueryState(status=QueryStatus.SUCCESS, data=data))

    async def read(self, key: str) -> QueryState:
        """Cached state, fetching first when the key was never loaded or is stale."""
        current = self.state(key)
        if current.status is QueryStatus.IDLE or current.stale:
            return await self.fetch(key)
        return current

    async def read_many(self, keys: Sequence[str]) -> Dict[str, QueryState]:
        results = await asyncio.gather(*(self.read(k) for k in keys))
        return dict(zip(keys, results))

    def mark_stale(self, key: str) -> None:
        """Flag the key so the next read re-fetches."""
        self._set(key, replace(self.state(key), stale=True))

    async def invalidate(self, key: str) -> QueryState:
        """Mark the key stale and re-fetch it right away."""
        logger.debug(f"Invalidating query {key!r}")
        self.mark_stale(key)
        if key not in self._fetchers:
            return self.state(key)
        return await self.fetch(key)

    def reset(self, keys: Optional[Iterable[str]] = None) -> None:
        for key in list(keys if keys is not None else self._states):
            self._states.pop(key, None)


class Mutation:
    """A write that refreshes its list keys once the request succeeded.

    is_pending is advisory UI state (used to disable the submit control);
    it is not a guard against duplicate submits.
    """

    def __init__(self, fn: Callable[[Any], Awaitable[Any]], cache: QueryCache, invalidates: Sequence[str]):
        self.fn = fn
        self.cache = cache
        self.invalidates = tuple(invalidates)
        self.is_pending = False
        self.error: Optional[LedgerError] = None

    async def run(self, payload: Any) -> Any:
        self.is_pending = True
        self.error = None
        try:
            result = await self.fn(payload)
        except LedgerError as e:
            self.error = e
            raise
        finally:
            self.is_pending = False
        for key in self.invalidates:
            await self.cache.invalidate(key)
        return result
