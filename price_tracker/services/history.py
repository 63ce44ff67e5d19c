# price_tracker/services/history.py
from datetime import datetime
from typing import List, Optional

from price_tracker.models import HistoryEntry, Source, utcnow
from price_tracker.store.base import PriceStore


class HistoryLedger:
    """
    Append-only price timeline per product, kept in the store.

    An update for a source whose value is still missing on the latest entry
    is folded into that entry; otherwise a new entry is appended, so two
    updates for the same source never overwrite each other.
    Callers serialize appends per product.
    """

    def __init__(self, store: PriceStore):
        self.store = store

    def append(
        self,
        product_id: str,
        source: Source,
        price: float,
        timestamp: Optional[datetime] = None,
    ) -> bool:
        timestamp = timestamp or utcnow()
        latest = self.store.latest_history_entry(product_id)

        if latest is not None and not latest.has(source):
            return self.store.merge_into_latest_entry(product_id, source, price)

        if latest is not None and timestamp < latest.timestamp:
            # keep the timeline non-decreasing even if the clock steps back
            timestamp = latest.timestamp
        return self.store.add_history_entry(product_id, HistoryEntry(timestamp, {source: price}))

    def timeline(self, product_id: str) -> List[HistoryEntry]:
        return self.store.history(product_id)
