# price_tracker/services/monitor.py
"""
Per-product price checks.

For every source with a URL the page is fetched (in parallel across
sources and, during a sweep, across products), the price extracted and
compared with the stored one. Applying a result (stored price, history,
then alert) happens under a per-product lock, re-reading the stored price
inside the lock, so concurrent checks of one product never apply a stale
read-modify-write. Results are applied in the order fetches complete.

A source that fails to fetch or yields no price is skipped for this
round; it never stops the other source or other products.
"""

import logging
import threading
import uuid
from concurrent.futures import ThreadPoolExecutor, as_completed
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterator, List, Optional

from price_tracker.core.errors import FetchError, ProductNotFoundError
from price_tracker.models import Alert, Product, Source, utcnow
from price_tracker.services.change_detector import DEFAULT_THRESHOLD_PERCENT, evaluate
from price_tracker.services.extractor import PriceExtractor
from price_tracker.services.fetch_http import FetchDocument
from price_tracker.services.history import HistoryLedger
from price_tracker.store.base import PriceStore

logger = logging.getLogger(__name__)


@dataclass
class CheckResult:
    product: Product
    alerts: List[Alert] = field(default_factory=list)


@dataclass
class SweepResult:
    checked_count: int
    total_products: int
    alerts: List[Alert] = field(default_factory=list)
    failed: List[Dict[str, str]] = field(default_factory=list)


def new_alert_id(product_id: str, source: Source, created_at: datetime) -> str:
    return f"{created_at:%Y%m%d%H%M%S%f}-{product_id}-{source.value}-{uuid.uuid4().hex[:8]}"


class PriceMonitor:
    def __init__(
        self,
        store: PriceStore,
        fetch_document: FetchDocument,
        extractor: Optional[PriceExtractor] = None,
        threshold: float = DEFAULT_THRESHOLD_PERCENT,
        max_workers: int = 8,
    ):
        self.store = store
        self.fetch_document = fetch_document
        self.extractor = extractor or PriceExtractor()
        self.ledger = HistoryLedger(store)
        self.threshold = threshold
        self.max_workers = max_workers

        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()
        # fetch tasks only; they never wait on other tasks
        self._fetch_pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="price-fetch")

    @contextmanager
    def product_lock(self, product_id: str) -> Iterator[None]:
        """Critical section for a product's stored prices and history."""
        with self._locks_guard:
            lock = self._locks.setdefault(product_id, threading.Lock())
        with lock:
            yield

    def forget(self, product_id: str) -> None:
        with self._locks_guard:
            self._locks.pop(product_id, None)

    # ---------- single product ----------

    def check_product(self, product_id: str) -> CheckResult:
        product = self.store.get_product(product_id)
        if product is None:
            raise ProductNotFoundError(product_id)

        alerts = self._check(product)
        updated = self.store.get_product(product_id) or product
        return CheckResult(product=updated, alerts=alerts)

    def _check(self, product: Product) -> List[Alert]:
        sources = product.monitored_sources()
        if not sources:
            return []

        futures = {self._fetch_pool.submit(self._fetch_price, product, s): s for s in sources}
        by_source: Dict[Source, Alert] = {}
        errors: List[Exception] = []
        for fut in as_completed(futures):
            source = futures[fut]
            price = fut.result()
            if price is None:
                continue
            try:
                alert = self._apply(product.id, source, price)
            except Exception as e:
                logger.warning(
                    "Could not record %s price for %r: %s", source.value, product.name, e, exc_info=True
                )
                errors.append(e)
                continue
            if alert is not None:
                by_source[source] = alert

        if errors:
            # the other sources are already applied; report the check as failed
            raise errors[0]
        return [by_source[s] for s in sources if s in by_source]

    def _fetch_price(self, product: Product, source: Source) -> Optional[float]:
        url = product.url_for(source)
        try:
            document = self.fetch_document(url)
        except FetchError as e:
            logger.warning("Error scraping %s for %r: %s", source.value, product.name, e)
            return None
        except Exception as e:
            logger.warning(
                "Unexpected error fetching %s for %r: %s", source.value, product.name, e, exc_info=True
            )
            return None

        price = self.extractor.extract(document, source)
        if price is None:
            logger.info("No %s price found for %r at %s", source.value, product.name, url)
        return price

    def _apply(self, product_id: str, source: Source, price: float) -> Optional[Alert]:
        with self.product_lock(product_id):
            current = self.store.get_product(product_id)
            if current is None:
                logger.info("Product %s was removed mid-check; dropping %s price", product_id, source.value)
                return None

            now = utcnow()
            old_price = current.price_for(source)
            draft = evaluate(old_price, price, self.threshold)

            # price and history first: an alert is only stored once its
            # price is the new baseline, so a failed write cannot repeat it
            self.store.set_source_price(product_id, source, price)
            self.ledger.append(product_id, source, price, now)

            alert = None
            if draft is not None:
                alert = Alert(
                    id=new_alert_id(product_id, source, now),
                    product_id=product_id,
                    product_name=current.name,
                    source=source,
                    old_price=draft.old_price,
                    new_price=draft.new_price,
                    percent_change=round(draft.percent_change, 1),
                    created_at=now,
                )
                self.store.add_alert(alert)
                logger.info(
                    "ALERT: %s on %s dropped %.1f%% (%.2f -> %.2f)",
                    current.name, source.value, alert.percent_change, draft.old_price, price,
                )
            return alert

    # ---------- all products ----------

    def check_all(self) -> SweepResult:
        products = self.store.list_products()
        if not products:
            return SweepResult(checked_count=0, total_products=0)

        done: Dict[str, List[Alert]] = {}
        failed: List[Dict[str, str]] = []
        workers = min(self.max_workers, len(products))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="price-sweep") as pool:
            futures = {pool.submit(self._check, p): p for p in products}
            for fut in as_completed(futures):
                product = futures[fut]
                try:
                    done[product.id] = fut.result()
                except Exception as e:
                    logger.exception("Price check failed for %r (%s)", product.name, product.id)
                    failed.append(
                        {"product_id": product.id, "name": product.name, "reason": str(e) or type(e).__name__}
                    )

        alerts = [a for p in products for a in done.get(p.id, [])]
        return SweepResult(
            checked_count=len(done),
            total_products=len(products),
            alerts=alerts,
            failed=failed,
        )

    def close(self) -> None:
        self._fetch_pool.shutdown(wait=True)
