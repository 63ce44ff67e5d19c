# price_tracker/models/history.py
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict

from price_tracker.models.product import Source


@dataclass
class HistoryEntry:
    """One point of a product's price timeline; may hold only some sources."""

    timestamp: datetime
    prices: Dict[Source, float] = field(default_factory=dict)

    def has(self, source: Source) -> bool:
        return self.prices.get(source) is not None
