from typing import Any, Callable, Generic, List, TypeVar

from ledger.api import ApiClient
from ledger.domain import (
    Category, CategoryKind, CreateCategoryPayload, CreateTransactionPayload, Transaction,
)
from ledger.errors import DeserializationFailure
from ledger.query import QueryCache, QueryKey

__all__ = ['ResourceClient', 'Api', 'register_queries', 'CATEGORIES_PATH', 'REVENUES_PATH', 'EXPENSES_PATH']

CATEGORIES_PATH = "/categories"
REVENUES_PATH = "/revenues"
EXPENSES_PATH = "/expenses"

T = TypeVar('T')


class ResourceClient(Generic[T]):
    """list/create for one collection path.

    parse: turns one wire object into a domain entity (normalization happens here)
    """

    def __init__(self, api: ApiClient, path: str, parse: Callable[[Any], T]):
        self.api = api
        self.path = path
        self.parse = parse

    async def list(self) -> List[T]:
        data = await self.api.get(self.path)
        if not isinstance(data, list):
            raise DeserializationFailure(f"Expected an array from {self.path}, got {type(data).__name__}")
        # server order is kept as-is
        return [self.parse(item) for item in data]

    async def create(self, payload) -> T:
        data = await self.api.post(self.path, payload.to_wire())
        return self.parse(data)


class Api:
    """The three resource families the dashboard talks to."""

    def __init__(self, client: ApiClient):
        self.client = client
        self.categories: ResourceClient[Category] = ResourceClient(client, CATEGORIES_PATH, Category.from_wire)
        self.revenues: ResourceClient[Transaction] = ResourceClient(client, REVENUES_PATH, Transaction.from_wire)
        self.expenses: ResourceClient[Transaction] = ResourceClient(client, EXPENSES_PATH, Transaction.from_wire)

    def transactions(self, kind: CategoryKind) -> ResourceClient[Transaction]:
        return self.revenues if kind is CategoryKind.REVENUE else self.expenses

    async def create_category(self, payload: CreateCategoryPayload) -> Category:
        return await self.categories.create(payload)

    async def create_transaction(self, kind: CategoryKind, payload: CreateTransactionPayload) -> Transaction:
        return await self.transactions(kind).create(payload)


def register_queries(cache: QueryCache, api: Api) -> QueryCache:
    cache.register(QueryKey.CATEGORIES, api.categories.list)
    cache.register(QueryKey.REVENUES, api.revenues.list)
    cache.register(QueryKey.EXPENSES, api.expenses.list)
    return cache
