# price_tracker/store/memory.py
import threading
from collections import OrderedDict
from dataclasses import replace
from typing import Any, Dict, List, Mapping, Optional

from price_tracker.models import Alert, HistoryEntry, Product, Source, new_product_id, utcnow
from price_tracker.store.base import PriceStore, split_patch


def _copy_product(product: Product) -> Product:
    return replace(
        product,
        source_urls=dict(product.source_urls),
        source_prices=dict(product.source_prices),
    )


def _copy_entry(entry: HistoryEntry) -> HistoryEntry:
    return HistoryEntry(timestamp=entry.timestamp, prices=dict(entry.prices))


class InMemoryStore(PriceStore):
    """Process-local store. Everything is copied in and out under one RLock."""

    def __init__(self):
        self._lock = threading.RLock()
        self._products: "OrderedDict[str, Product]" = OrderedDict()
        self._history: Dict[str, List[HistoryEntry]] = {}
        self._alerts: "OrderedDict[str, Alert]" = OrderedDict()

    # ---------- products ----------

    def create_product(self, name, category=None, source_urls=None, source_prices=None) -> Product:
        now = utcnow()
        prices = {Source(k): v for k, v in (source_prices or {}).items()}
        product = Product(
            id=new_product_id(),
            name=name,
            category=category,
            source_urls={Source(k): v for k, v in (source_urls or {}).items()},
            source_prices=prices,
            created_at=now,
        )
        initial = {s: p for s, p in prices.items() if p is not None}
        with self._lock:
            self._products[product.id] = product
            self._history[product.id] = [HistoryEntry(now, initial)] if initial else []
            return _copy_product(product)

    def get_product(self, product_id: str) -> Optional[Product]:
        with self._lock:
            product = self._products.get(product_id)
            return _copy_product(product) if product else None

    def list_products(self) -> List[Product]:
        with self._lock:
            return [_copy_product(p) for p in self._products.values()]

    def update_product(self, product_id: str, patch: Mapping[str, Any]) -> Optional[Product]:
        changes = split_patch(patch)
        with self._lock:
            product = self._products.get(product_id)
            if product is None:
                return None
            if "name" in changes:
                product.name = changes["name"]
            if "category" in changes:
                product.category = changes["category"]
            product.source_urls.update(changes.get("source_urls", {}))
            product.source_prices.update(changes.get("source_prices", {}))
            product.updated_at = utcnow()
            return _copy_product(product)

    def set_source_price(self, product_id: str, source: Source, price: float) -> Optional[Product]:
        with self._lock:
            product = self._products.get(product_id)
            if product is None:
                return None
            product.source_prices[source] = price
            product.updated_at = utcnow()
            return _copy_product(product)

    def delete_product(self, product_id: str) -> bool:
        with self._lock:
            if product_id not in self._products:
                return False
            del self._products[product_id]
            self._history.pop(product_id, None)
            return True

    # ---------- history ----------

    def history(self, product_id: str) -> List[HistoryEntry]:
        with self._lock:
            return [_copy_entry(e) for e in self._history.get(product_id, [])]

    def latest_history_entry(self, product_id: str) -> Optional[HistoryEntry]:
        with self._lock:
            entries = self._history.get(product_id)
            return _copy_entry(entries[-1]) if entries else None

    def add_history_entry(self, product_id: str, entry: HistoryEntry) -> bool:
        with self._lock:
            if product_id not in self._products:
                return False
            self._history.setdefault(product_id, []).append(_copy_entry(entry))
            return True

    def merge_into_latest_entry(self, product_id: str, source: Source, price: float) -> bool:
        with self._lock:
            entries = self._history.get(product_id)
            if not entries:
                return False
            entries[-1].prices[source] = price
            return True

    # ---------- alerts ----------

    def add_alert(self, alert: Alert) -> None:
        with self._lock:
            self._alerts[alert.id] = alert

    def list_alerts(self) -> List[Alert]:
        with self._lock:
            return list(self._alerts.values())

    def get_alert(self, alert_id: str) -> Optional[Alert]:
        with self._lock:
            return self._alerts.get(alert_id)

    def delete_alert(self, alert_id: str) -> bool:
        with self._lock:
            return self._alerts.pop(alert_id, None) is not None

    def clear_alerts(self) -> int:
        with self._lock:
            n = len(self._alerts)
            self._alerts.clear()
            return n
