# price_tracker/models/product.py
"""Tracked product and the marketplaces it is priced on."""

import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional


class Source(str, Enum):
    """Marketplace a price is read from. Declaration order is check order."""

    AMAZON = "amazon"
    FLIPKART = "flipkart"


@dataclass
class Product:
    id: str
    name: str
    category: Optional[str] = None
    source_urls: Dict[Source, Optional[str]] = field(default_factory=dict)
    source_prices: Dict[Source, Optional[float]] = field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def url_for(self, source: Source) -> Optional[str]:
        return self.source_urls.get(source) or None

    def price_for(self, source: Source) -> Optional[float]:
        return self.source_prices.get(source)

    def monitored_sources(self) -> List[Source]:
        """Sources with a configured URL, in declaration order."""
        return [s for s in Source if self.url_for(s)]


def utcnow() -> datetime:
    # naive UTC, the same shape SQLite hands back
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_product_id() -> str:
    # time-ordered so listing by id matches creation order
    return f"{time.time_ns():016x}{uuid.uuid4().hex[:8]}"
