"""
Pytest configuration and fixtures.

The ledger is exercised against InMemoryDocumentStore, which implements the
DocumentStore protocol with plain dicts and can be told to fail a given
(operation, collection) pair. The Bot API is replaced by httpx.MockTransport.
"""

import copy
import itertools
import json
from collections import defaultdict
from datetime import datetime, timezone

import httpx
import pytest

from restaurant_ops.config import Settings
from restaurant_ops.domain.models import OrderItem, PendingOrder
from restaurant_ops.services.ledger import OrderLedger
from restaurant_ops.services.notify import NotificationDispatcher


class StoreFailure(RuntimeError):
    pass


class InMemoryDocumentStore:
    def __init__(self):
        self.collections: dict[str, dict[str, dict]] = defaultdict(dict)
        self.failures: set[tuple[str, str]] = set()
        self._ids = itertools.count(1)

    def fail_on(self, operation: str, collection: str) -> None:
        self.failures.add((operation, collection))

    def _check(self, operation: str, collection: str) -> None:
        if (operation, collection) in self.failures:
            raise StoreFailure(f"{operation} on {collection} failed")

    def docs(self, collection: str) -> list[dict]:
        return [{**doc, "id": doc_id} for doc_id, doc in self.collections[collection].items()]

    async def insert(self, collection, data):
        self._check("insert", collection)
        doc_id = f"{collection}-{next(self._ids)}"
        self.collections[collection][doc_id] = copy.deepcopy({k: v for k, v in data.items() if k != "id"})
        return doc_id

    async def get(self, collection, doc_id):
        self._check("get", collection)
        doc = self.collections[collection].get(doc_id)
        return {**copy.deepcopy(doc), "id": doc_id} if doc is not None else None

    async def update(self, collection, doc_id, fields):
        self._check("update", collection)
        if doc_id in self.collections[collection]:
            self.collections[collection][doc_id].update(copy.deepcopy(dict(fields)))

    async def delete(self, collection, doc_id):
        self._check("delete", collection)
        self.collections[collection].pop(doc_id, None)

    async def query(self, collection, filters, order_by=None, descending=False, limit=None):
        self._check("query", collection)
        found = [
            {**copy.deepcopy(doc), "id": doc_id}
            for doc_id, doc in self.collections[collection].items()
            if all(doc.get(key) == value for key, value in filters.items())
        ]
        if order_by:
            found.sort(key=lambda d: d[order_by], reverse=descending)
        return found[:limit] if limit else found


class InMemoryObjectStore:
    def __init__(self):
        self.blobs: dict[str, bytes] = {}

    async def upload(self, path, data, content_type=None):
        self.blobs[path] = data
        return f"https://files.example.test/{path}"


class BotAPI:
    """Records Bot API calls and answers them; `responses` maps method -> (status, body)."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.responses: dict[str, tuple[int, dict]] = {}

    def method(self, request: httpx.Request) -> str:
        return request.url.path.rsplit("/", 1)[-1]

    def json_bodies(self, method: str = "sendMessage") -> list[dict]:
        return [json.loads(r.content) for r in self.requests if self.method(r) == method]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status, body = self.responses.get(self.method(request), (200, {"ok": True, "result": {}}))
        return httpx.Response(status, json=body)


def dt(year, month, day=1, hour=12):
    return datetime(year, month, day, hour, tzinfo=timezone.utc)


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        telegram_bot_token="123:TEST",
        telegram_chat_id=-1001234,
        telegram_api_url="https://bot.example.test",
        display_timezone="UTC",
        tax_rate=0.15,
    )


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def objects():
    return InMemoryObjectStore()


@pytest.fixture
def ledger(store, objects, settings):
    return OrderLedger(store, settings, objects=objects)


@pytest.fixture
def bot():
    return BotAPI()


@pytest.fixture
async def dispatcher(settings, bot):
    async with httpx.AsyncClient(transport=httpx.MockTransport(bot)) as http:
        yield NotificationDispatcher(settings, http=http)


@pytest.fixture
def menu_docs(store):
    """Seed owner-1's menu: two kitchen dishes and one bar drink."""
    store.collections["menu_items"].update(
        {
            "burger": {"owner_id": "owner-1", "name": "Burger", "price": 10.0, "department": "kitchen"},
            "fries": {"owner_id": "owner-1", "name": "Fries", "price": 4.0},
            "mojito": {"owner_id": "owner-1", "name": "Mojito", "price": 8.0, "department": "bar"},
        }
    )
    return store


@pytest.fixture
def pending_order():
    return PendingOrder(
        owner_id="owner-1",
        table_number="7",
        items=[
            OrderItem(id="burger", name="Burger", quantity=2, total=20.0),
            OrderItem(id="fries", name="Fries", quantity=1, total=4.0),
            OrderItem(id="mojito", name="Mojito", quantity=1, total=8.0),
        ],
        total_amount=32.0,
        timestamp=dt(2024, 5, 4, 19),
    )


@pytest.fixture
async def stored_pending(store, pending_order):
    pending_id = await store.insert("pending_orders", pending_order.to_document())
    return pending_id, pending_order.model_copy(update={"id": pending_id})
