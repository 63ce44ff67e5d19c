"""Tests for PriceMonitor: single-product checks, sweeps and locking."""

import threading
import time

import pytest

from conftest import AMAZON_URL, FLIPKART_URL, FakeFetcher
from price_tracker.core.errors import FetchError, NotFoundError
from price_tracker.models import Source
from price_tracker.services.monitor import PriceMonitor
from price_tracker.store.memory import InMemoryStore


def _add(store, name, amazon=None, flipkart=None, amazon_url=AMAZON_URL, flipkart_url=None):
    return store.create_product(
        name,
        source_urls={Source.AMAZON: amazon_url, Source.FLIPKART: flipkart_url},
        source_prices={Source.AMAZON: amazon, Source.FLIPKART: flipkart},
    )


class TestCheckProduct:
    def test_drop_then_rise_against_updated_baseline(self, store, fetcher, monitor, amazon_page):
        product = _add(store, "Laptop", amazon=80000.0)

        fetcher.pages[AMAZON_URL] = amazon_page("60,000")
        first = monitor.check_product(product.id)

        assert len(first.alerts) == 1
        alert = first.alerts[0]
        assert alert.percent_change == -25.0
        assert alert.old_price == 80000.0
        assert alert.new_price == 60000.0
        assert alert.source is Source.AMAZON
        assert alert.product_id == product.id
        assert alert.product_name == "Laptop"
        assert first.product.price_for(Source.AMAZON) == 60000.0
        assert store.list_alerts() == [alert]

        fetcher.pages[AMAZON_URL] = amazon_page("65,000")
        second = monitor.check_product(product.id)

        assert second.alerts == []
        assert second.product.price_for(Source.AMAZON) == 65000.0
        assert len(store.list_alerts()) == 1

    def test_small_drop_updates_price_without_alert(self, store, fetcher, monitor, amazon_page):
        product = _add(store, "Phone", amazon=1000.0)
        fetcher.pages[AMAZON_URL] = amazon_page("900")

        result = monitor.check_product(product.id)

        assert result.alerts == []
        assert store.get_product(product.id).price_for(Source.AMAZON) == 900.0
        assert [e.prices for e in monitor.ledger.timeline(product.id)] == [
            {Source.AMAZON: 1000.0},
            {Source.AMAZON: 900.0},
        ]

    def test_first_price_without_baseline(self, store, fetcher, monitor, amazon_page):
        product = _add(store, "Phone")
        fetcher.pages[AMAZON_URL] = amazon_page("500")

        result = monitor.check_product(product.id)

        assert result.alerts == []
        assert result.product.price_for(Source.AMAZON) == 500.0

    def test_both_sources_alert_in_declaration_order(self, store, fetcher, monitor, amazon_page, flipkart_page):
        product = _add(store, "TV", amazon=100.0, flipkart=100.0, flipkart_url=FLIPKART_URL)

        def slow_amazon():
            time.sleep(0.05)
            return amazon_page("50")

        fetcher.pages[AMAZON_URL] = slow_amazon
        fetcher.pages[FLIPKART_URL] = flipkart_page("₹70")

        result = monitor.check_product(product.id)

        assert [a.source for a in result.alerts] == [Source.AMAZON, Source.FLIPKART]
        assert [a.percent_change for a in result.alerts] == [-50.0, -30.0]
        # both updates folded into one new entry after the initial one
        assert [e.prices for e in monitor.ledger.timeline(product.id)] == [
            {Source.AMAZON: 100.0, Source.FLIPKART: 100.0},
            {Source.FLIPKART: 70.0, Source.AMAZON: 50.0},
        ]

    def test_one_source_failing_does_not_block_the_other(self, store, fetcher, monitor, flipkart_page):
        product = _add(store, "TV", amazon=100.0, flipkart=100.0, flipkart_url=FLIPKART_URL)
        fetcher.pages[AMAZON_URL] = FetchError(AMAZON_URL, "timeout")
        fetcher.pages[FLIPKART_URL] = flipkart_page("₹60")

        result = monitor.check_product(product.id)

        assert [a.source for a in result.alerts] == [Source.FLIPKART]
        assert result.product.price_for(Source.AMAZON) == 100.0
        assert result.product.price_for(Source.FLIPKART) == 60.0

    def test_unexpected_fetch_exception_is_contained(self, store, fetcher, monitor):
        product = _add(store, "TV", amazon=100.0)
        fetcher.pages[AMAZON_URL] = RuntimeError("socket exploded")

        result = monitor.check_product(product.id)

        assert result.alerts == []
        assert result.product.price_for(Source.AMAZON) == 100.0

    def test_extraction_miss_changes_nothing(self, store, fetcher, monitor):
        product = _add(store, "TV", amazon=100.0)
        fetcher.pages[AMAZON_URL] = "<html><body>captcha</body></html>"
        before = monitor.ledger.timeline(product.id)

        result = monitor.check_product(product.id)

        assert result.alerts == []
        assert result.product.price_for(Source.AMAZON) == 100.0
        assert monitor.ledger.timeline(product.id) == before

    def test_malformed_structured_data_is_a_miss(self, store, fetcher, monitor):
        product = _add(store, "TV", amazon=100.0)
        fetcher.pages[AMAZON_URL] = (
            "<script type='application/ld+json'>"
            '{"@type": "Product", "offers": {"priceSpecification": "499"}}'
            "</script>"
        )

        result = monitor.check_product(product.id)

        assert result.alerts == []
        assert result.product.price_for(Source.AMAZON) == 100.0

    def test_sources_without_url_are_not_fetched(self, store, fetcher, monitor):
        product = _add(store, "TV", amazon=100.0, amazon_url=None)

        result = monitor.check_product(product.id)

        assert result.alerts == []
        assert fetcher.calls == []

    def test_unknown_product_raises(self, monitor):
        with pytest.raises(NotFoundError):
            monitor.check_product("does-not-exist")

    def test_alert_keeps_name_after_rename(self, store, fetcher, monitor, amazon_page):
        product = _add(store, "Old name", amazon=100.0)
        fetcher.pages[AMAZON_URL] = amazon_page("10")
        alert = monitor.check_product(product.id).alerts[0]

        store.update_product(product.id, {"name": "New name"})

        assert store.get_alert(alert.id).product_name == "Old name"

    def test_custom_threshold(self, store, fetcher, amazon_page):
        product = _add(store, "TV", amazon=100.0)
        fetcher.pages[AMAZON_URL] = amazon_page("95")
        m = PriceMonitor(store, fetcher, threshold=5.0)
        try:
            assert len(m.check_product(product.id).alerts) == 1
        finally:
            m.close()


class TestCheckAll:
    def test_failing_product_does_not_affect_others(self, store, fetcher, monitor, amazon_page):
        url_a, url_b, url_c = "https://a/dp/1", "https://a/dp/2", "https://a/dp/3"
        a = _add(store, "A", amazon=100.0, amazon_url=url_a)
        b = _add(store, "B", amazon=100.0, amazon_url=url_b)
        c = _add(store, "C", amazon=100.0, amazon_url=url_c)
        fetcher.pages[url_a] = amazon_page("70")
        fetcher.pages[url_b] = FetchError(url_b, "http_503", status_code=503)
        fetcher.pages[url_c] = amazon_page("75")

        result = monitor.check_all()

        assert result.total_products == 3
        assert result.checked_count == 3
        assert result.failed == []
        assert [(x.product_id, x.percent_change) for x in result.alerts] == [(a.id, -30.0), (c.id, -25.0)]
        assert store.get_product(b.id).price_for(Source.AMAZON) == 100.0

    def test_exception_inside_a_check_is_reported(self, fetcher, amazon_page):
        class BrokenStore(InMemoryStore):
            broken_id = None

            def set_source_price(self, product_id, source, price):
                if product_id == self.broken_id:
                    raise RuntimeError("disk full")
                return super().set_source_price(product_id, source, price)

        store = BrokenStore()
        good = _add(store, "Good", amazon=100.0, amazon_url="https://a/dp/1")
        bad = _add(store, "Bad", amazon=100.0, amazon_url="https://a/dp/2")
        store.broken_id = bad.id
        fetcher.pages["https://a/dp/1"] = amazon_page("50")
        fetcher.pages["https://a/dp/2"] = amazon_page("50")

        m = PriceMonitor(store, fetcher)
        try:
            result = m.check_all()
            again = m.check_all()
        finally:
            m.close()

        assert result.total_products == 2
        assert result.checked_count == 1
        assert result.failed == [{"product_id": bad.id, "name": "Bad", "reason": "disk full"}]
        assert [x.product_id for x in result.alerts] == [good.id]

        # a failed write leaves no alert behind, so retries do not pile them up
        assert again.failed == [{"product_id": bad.id, "name": "Bad", "reason": "disk full"}]
        assert again.alerts == []
        assert [x.product_id for x in store.list_alerts()] == [good.id]
        assert store.get_product(bad.id).price_for(Source.AMAZON) == 100.0

    def test_failed_write_for_one_source_still_applies_the_other(self, fetcher, amazon_page, flipkart_page):
        class BrokenStore(InMemoryStore):
            def set_source_price(self, product_id, source, price):
                if source is Source.AMAZON:
                    raise RuntimeError("disk full")
                return super().set_source_price(product_id, source, price)

        store = BrokenStore()
        product = _add(store, "TV", amazon=100.0, flipkart=100.0, flipkart_url=FLIPKART_URL)
        fetcher.pages[AMAZON_URL] = amazon_page("50")
        fetcher.pages[FLIPKART_URL] = flipkart_page("₹60")

        m = PriceMonitor(store, fetcher)
        try:
            with pytest.raises(RuntimeError, match="disk full"):
                m.check_product(product.id)
        finally:
            m.close()

        stored = store.get_product(product.id)
        assert stored.price_for(Source.AMAZON) == 100.0
        assert stored.price_for(Source.FLIPKART) == 60.0
        assert [(a.source, a.new_price) for a in store.list_alerts()] == [(Source.FLIPKART, 60.0)]

    def test_empty_registry(self, monitor):
        result = monitor.check_all()
        assert (result.checked_count, result.total_products, result.alerts) == (0, 0, [])


class TestPerProductLocking:
    def test_concurrent_checks_do_not_double_alert(self, store, amazon_page):
        product = _add(store, "Laptop", amazon=80000.0)
        fetcher = FakeFetcher()

        def slow_page():
            time.sleep(0.05)
            return amazon_page("60,000")

        fetcher.pages[AMAZON_URL] = slow_page
        m = PriceMonitor(store, fetcher)
        results = []

        def run():
            results.append(m.check_product(product.id))

        try:
            threads = [threading.Thread(target=run) for _ in range(2)]
            for t in threads:
                t.start()
            for t in threads:
                t.join(timeout=5)
        finally:
            m.close()

        # the second applier re-reads 60000 as its baseline
        assert sum(len(r.alerts) for r in results) == 1
        assert len(store.list_alerts()) == 1
        assert [e.prices for e in store.history(product.id)] == [
            {Source.AMAZON: 80000.0},
            {Source.AMAZON: 60000.0},
            {Source.AMAZON: 60000.0},
        ]

    def test_held_lock_delays_apply(self, store, fetcher, monitor, amazon_page):
        product = _add(store, "Laptop", amazon=100.0)
        fetcher.pages[AMAZON_URL] = amazon_page("90")

        with monitor.product_lock(product.id):
            worker = threading.Thread(target=monitor.check_product, args=(product.id,))
            worker.start()
            worker.join(timeout=0.2)
            assert worker.is_alive()
            assert store.get_product(product.id).price_for(Source.AMAZON) == 100.0

        worker.join(timeout=5)
        assert not worker.is_alive()
        assert store.get_product(product.id).price_for(Source.AMAZON) == 90.0

    def test_product_deleted_mid_check_is_left_alone(self, store, fetcher, monitor, amazon_page):
        product = _add(store, "Laptop", amazon=100.0)

        def page_then_delete():
            store.delete_product(product.id)
            return amazon_page("10")

        fetcher.pages[AMAZON_URL] = page_then_delete

        result = monitor.check_product(product.id)

        assert result.alerts == []
        assert store.get_product(product.id) is None
        assert store.history(product.id) == []
        assert store.list_alerts() == []
