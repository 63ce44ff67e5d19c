# price_tracker/store/base.py
"""
Repository contract for products, price timelines and alerts.

A single store instance is built at process start and handed to the
monitor, the scheduler and the API. Implementations must make every
method atomic on its own; read-modify-write sequences across several
calls are serialized by the caller (see PriceMonitor.product_lock).
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional

from price_tracker.models import Alert, HistoryEntry, Product, Source

PATCHABLE_FIELDS = ("name", "category", "source_urls", "source_prices")


class PriceStore(ABC):
    # ---------- products ----------

    @abstractmethod
    def create_product(
        self,
        name: str,
        category: Optional[str] = None,
        source_urls: Optional[Mapping[Source, Optional[str]]] = None,
        source_prices: Optional[Mapping[Source, Optional[float]]] = None,
    ) -> Product:
        """
        Register a product with a fresh id. When any initial price is given
        the timeline starts with one entry holding those prices.
        """

    @abstractmethod
    def get_product(self, product_id: str) -> Optional[Product]:
        ...

    @abstractmethod
    def list_products(self) -> List[Product]:
        ...

    @abstractmethod
    def update_product(self, product_id: str, patch: Mapping[str, Any]) -> Optional[Product]:
        """
        Apply a partial update. ``source_urls`` / ``source_prices`` in the
        patch are merged per source; unknown keys are ignored.
        Returns None for an unknown id.
        """

    @abstractmethod
    def set_source_price(self, product_id: str, source: Source, price: float) -> Optional[Product]:
        ...

    @abstractmethod
    def delete_product(self, product_id: str) -> bool:
        """Remove the product and its whole timeline in one step."""

    # ---------- history ----------

    @abstractmethod
    def history(self, product_id: str) -> List[HistoryEntry]:
        """Timeline oldest first; empty for unknown ids."""

    @abstractmethod
    def latest_history_entry(self, product_id: str) -> Optional[HistoryEntry]:
        ...

    @abstractmethod
    def add_history_entry(self, product_id: str, entry: HistoryEntry) -> bool:
        """Append an entry. False (nothing written) if the product is gone."""

    @abstractmethod
    def merge_into_latest_entry(self, product_id: str, source: Source, price: float) -> bool:
        """Set ``source`` on the most recent entry. False if there is none."""

    # ---------- alerts ----------

    @abstractmethod
    def add_alert(self, alert: Alert) -> None:
        ...

    @abstractmethod
    def list_alerts(self) -> List[Alert]:
        ...

    @abstractmethod
    def get_alert(self, alert_id: str) -> Optional[Alert]:
        ...

    @abstractmethod
    def delete_alert(self, alert_id: str) -> bool:
        ...

    @abstractmethod
    def clear_alerts(self) -> int:
        ...

    # ---------- misc ----------

    def counts(self) -> Dict[str, int]:
        return {
            "products": len(self.list_products()),
            "alerts": len(self.list_alerts()),
        }

    def close(self) -> None:
        pass


def split_patch(patch: Mapping[str, Any]) -> Dict[str, Any]:
    """Keep only patchable keys, normalising source-keyed dicts to Source."""
    out: Dict[str, Any] = {}
    for key in PATCHABLE_FIELDS:
        if key not in patch:
            continue
        value = patch[key]
        if key in ("source_urls", "source_prices"):
            value = {Source(k): v for k, v in (value or {}).items()}
        out[key] = value
    return out
