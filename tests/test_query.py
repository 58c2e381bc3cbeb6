import pytest

from ledger.domain import CategoryKind, CreateCategoryPayload
from ledger.errors import NetworkFailure, RequestFailed
from ledger.forms import category_mutation
from ledger.query import Mutation, QueryCache, QueryKey, QueryState, QueryStatus


def counting_fetcher(results):
    calls = []

    async def fetch():
        calls.append(len(calls))
        outcome = results[min(len(calls) - 1, len(results) - 1)]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    return fetch, calls


def test_unknown_key_is_idle():
    state = QueryCache().state("nothing")
    assert state.status is QueryStatus.IDLE
    assert state.data is None
    assert not state.is_loading
    assert not state.is_error


@pytest.mark.asyncio
async def test_read_fetches_once_then_serves_cache():
    cache = QueryCache()
    fetch, calls = counting_fetcher([["a"]])
    cache.register("k", fetch)

    first = await cache.read("k")
    second = await cache.read("k")

    assert first.is_success
    assert first.data == ["a"]
    assert second == first
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_state_transitions_are_published():
    cache = QueryCache()
    fetch, _ = counting_fetcher([["a"]])
    cache.register("k", fetch)
    seen = []
    cache.subscribe("k", lambda key, state: seen.append((key, state.status)))

    await cache.read("k")

    assert seen == [("k", QueryStatus.LOADING), ("k", QueryStatus.SUCCESS)]


@pytest.mark.asyncio
async def test_unsubscribe_stops_notifications():
    cache = QueryCache()
    fetch, _ = counting_fetcher([["a"]])
    cache.register("k", fetch)
    seen = []

    def callback(key, state):
        seen.append(state.status)

    cache.subscribe("k", callback)
    cache.unsubscribe("k", callback)
    await cache.read("k")

    assert seen == []


@pytest.mark.asyncio
async def test_fetch_error_goes_to_error_state():
    cache = QueryCache()
    fetch, _ = counting_fetcher([NetworkFailure("down")])
    cache.register("k", fetch)

    state = await cache.read("k")

    assert state.is_error
    assert isinstance(state.error, NetworkFailure)
    assert state.data is None


@pytest.mark.asyncio
async def test_non_ledger_errors_are_not_swallowed():
    cache = QueryCache()

    async def broken():
        raise RuntimeError("bug")

    cache.register("k", broken)

    with pytest.raises(RuntimeError):
        await cache.fetch("k")

    state = cache.state("k")
    assert not state.is_loading
    assert state.stale


@pytest.mark.asyncio
async def test_read_retries_after_unexpected_error():
    cache = QueryCache()
    fetch, calls = counting_fetcher([RuntimeError("bug"), ["a"]])
    cache.register("k", fetch)

    with pytest.raises(RuntimeError):
        await cache.read("k")
    state = await cache.read("k")

    assert state.is_success
    assert state.data == ["a"]
    assert len(calls) == 2


@pytest.mark.asyncio
async def test_invalidate_refetches():
    cache = QueryCache()
    fetch, calls = counting_fetcher([["a"], ["a", "b"]])
    cache.register("k", fetch)
    await cache.read("k")
    seen = []
    cache.subscribe("k", lambda key, state: seen.append(state.status))

    state = await cache.invalidate("k")

    assert state.data == ["a", "b"]
    assert len(calls) == 2
    assert seen[-2:] == [QueryStatus.LOADING, QueryStatus.SUCCESS]


@pytest.mark.asyncio
async def test_mark_stale_defers_refetch_to_next_read():
    cache = QueryCache()
    fetch, calls = counting_fetcher([["a"], ["b"]])
    cache.register("k", fetch)
    await cache.read("k")

    cache.mark_stale("k")
    assert len(calls) == 1
    assert cache.state("k").stale

    state = await cache.read("k")
    assert state.data == ["b"]
    assert not state.stale


@pytest.mark.asyncio
async def test_read_many_loads_each_key(cache, backend):
    backend.seed("/categories", {"id": 1, "name": "Salary", "type": "REVENUE"})
    backend.fail("GET", "/expenses", 503, "maintenance")

    states = await cache.read_many([QueryKey.CATEGORIES, QueryKey.REVENUES, QueryKey.EXPENSES])

    assert states[QueryKey.CATEGORIES].is_success
    assert states[QueryKey.REVENUES].data == []
    assert states[QueryKey.EXPENSES].is_error
    assert isinstance(states[QueryKey.EXPENSES].error, RequestFailed)


@pytest.mark.asyncio
async def test_fetch_without_fetcher_raises():
    with pytest.raises(KeyError):
        await QueryCache().fetch("missing")


@pytest.mark.asyncio
async def test_mutation_success_invalidates_list(cache, api, backend):
    await cache.read(QueryKey.CATEGORIES)
    mutation = category_mutation(api, cache)

    created = await mutation.run(CreateCategoryPayload("Food", CategoryKind.EXPENSE))
    state = cache.state(QueryKey.CATEGORIES)

    assert [c.id for c in state.data] == [created.id]
    assert len(backend.calls("GET", "/categories")) == 2
    assert not mutation.is_pending


@pytest.mark.asyncio
async def test_mutation_failure_leaves_cache_alone(cache, api, backend):
    before = await cache.read(QueryKey.CATEGORIES)
    backend.fail("POST", "/categories", 500, "boom")
    mutation = category_mutation(api, cache)

    with pytest.raises(RequestFailed):
        await mutation.run(CreateCategoryPayload("Food", CategoryKind.EXPENSE))

    assert cache.state(QueryKey.CATEGORIES) == before
    assert len(backend.calls("GET", "/categories")) == 1
    assert isinstance(mutation.error, RequestFailed)
    assert not mutation.is_pending


@pytest.mark.asyncio
async def test_mutation_is_pending_while_request_runs():
    cache = QueryCache()
    observed = []

    async def create(payload):
        observed.append(mutation.is_pending)
        return payload

    mutation = Mutation(create, cache, invalidates=[])
    assert await mutation.run("x") == "x"
    assert observed == [True]
    assert not mutation.is_pending


@pytest.mark.asyncio
async def test_cached_collection_is_replaced_not_mutated(cache, api):
    before = await cache.read(QueryKey.CATEGORIES)
    await category_mutation(api, cache).run(CreateCategoryPayload("Food", CategoryKind.EXPENSE))

    assert before.data == []
    assert cache.state(QueryKey.CATEGORIES) is not before


def test_query_state_flags():
    assert QueryState(status=QueryStatus.LOADING).is_loading
    assert QueryState(status=QueryStatus.ERROR).is_error
    assert QueryState(status=QueryStatus.SUCCESS, data=[]).is_success
