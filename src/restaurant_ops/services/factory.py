"""
Simple factory for service singletons.

Activities call `ServiceFactory.get_*()` instead of constructing services, so
one MongoDB client and one HTTP client are shared by every activity the worker
runs. Tests swap implementations by assigning the class-level cache and call
`reset()` afterwards.
"""

from restaurant_ops.config import Settings, get_settings
from restaurant_ops.services.ledger import OrderLedger
from restaurant_ops.services.notify import NotificationDispatcher
from restaurant_ops.services.store import GridFSObjectStore, MongoDocumentStore


class ServiceFactory:
    """Lazily creates and caches service instances (class-level singletons)."""

    _settings: Settings | None = None
    _store: MongoDocumentStore | None = None
    _ledger: OrderLedger | None = None
    _dispatcher: NotificationDispatcher | None = None

    @classmethod
    def get_settings(cls) -> Settings:
        if cls._settings is None:
            cls._settings = get_settings()
        return cls._settings

    @classmethod
    def get_store(cls) -> MongoDocumentStore:
        if cls._store is None:
            cls._store = MongoDocumentStore.from_settings(cls.get_settings())
        return cls._store

    @classmethod
    def get_ledger(cls) -> OrderLedger:
        if cls._ledger is None:
            settings = cls.get_settings()
            store = cls.get_store()
            objects = GridFSObjectStore.from_settings(store.client, settings)
            cls._ledger = OrderLedger(store, settings, objects=objects)
        return cls._ledger

    @classmethod
    def get_dispatcher(cls) -> NotificationDispatcher:
        if cls._dispatcher is None:
            cls._dispatcher = NotificationDispatcher(cls.get_settings())
        return cls._dispatcher

    @classmethod
    async def aclose(cls) -> None:
        """Close the shared clients (worker shutdown)."""
        if cls._dispatcher is not None:
            await cls._dispatcher.aclose()
        if cls._store is not None:
            await cls._store.close()
        cls.reset()

    @classmethod
    def reset(cls) -> None:
        cls._settings = None
        cls._store = None
        cls._ledger = None
        cls._dispatcher = None
