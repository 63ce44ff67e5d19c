# price_tracker/store/__init__.py
from typing import Optional

from price_tracker.store.base import PriceStore
from price_tracker.store.memory import InMemoryStore


def build_store(database_url: Optional[str] = None) -> PriceStore:
    """In-memory store unless a database URL is configured."""
    if not database_url:
        return InMemoryStore()

    from price_tracker.store.sql import SqlStore

    return SqlStore(database_url)


__all__ = ["PriceStore", "InMemoryStore", "build_store"]
