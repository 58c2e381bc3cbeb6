import json

import httpx
import pytest

from ledger.api import ApiClient
from ledger.events import EventBus
from ledger.query import QueryCache
from ledger.resources import Api, register_queries

BASE_URL = "http://backend.test"


class FakeBackend:
    """In-memory stand-in for the REST backend, served through httpx.MockTransport."""

    def __init__(self):
        self.collections = {"/categories": [], "/revenues": [], "/expenses": []}
        self.next_id = 1
        self.requests = []
        self.failures = {}  # (method, path) -> (status, body)

    def fail(self, method, path, status, body=""):
        self.failures[(method, path)] = (status, body)

    def seed(self, path, *items):
        for item in items:
            self.collections[path].append(dict(item))

    def calls(self, method=None, path=None):
        return [
            r for r in self.requests
            if (method is None or r.method == method) and (path is None or r.url.path == path)
        ]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        failure = self.failures.get((request.method, path))
        if failure:
            status, body = failure
            return httpx.Response(status, text=body)
        if path not in self.collections:
            return httpx.Response(404, text="Not Found")
        if request.method == "GET":
            return httpx.Response(200, json=self.collections[path])
        if request.method == "POST":
            body = json.loads(request.content)
            created = dict(body, id=self.next_id)
            self.next_id += 1
            if path == "/categories":
                created = {
                    "id": created["id"],
                    "name": body["name"],
                    "type": "REVENUE" if body["categoryType"] == 1 else "EXPENSE",
                }
            self.collections[path].append(created)
            return httpx.Response(201, json=created)
        return httpx.Response(405, text="Method Not Allowed")

    def transport(self):
        return httpx.MockTransport(self.handler)


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def api(backend):
    return Api(ApiClient(BASE_URL, transport=backend.transport()))


@pytest.fixture
def cache(api):
    return register_queries(QueryCache(), api)


@pytest.fixture
def notifications():
    return []


@pytest.fixture
def bus(notifications):
    bus = EventBus()
    bus.collect(notifications)
    return bus
