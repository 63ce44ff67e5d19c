"""Shared fixtures: stores, a scripted page fetcher and page builders."""

import threading

import pytest

from price_tracker.core.errors import FetchError
from price_tracker.services.monitor import PriceMonitor
from price_tracker.store.memory import InMemoryStore
from price_tracker.store.sql import SqlStore

AMAZON_URL = "https://www.amazon.in/dp/B0TEST0001"
FLIPKART_URL = "https://www.flipkart.com/p/itm0test0001"


class FakeFetcher:
    """
    Stands in for the document fetch collaborator.

    ``pages`` maps url -> markup, an exception instance to raise, or a
    zero-arg callable producing markup. Unknown urls fail like a 404.
    """

    def __init__(self, pages=None):
        self.pages = dict(pages or {})
        self.calls = []
        self._lock = threading.Lock()

    def __call__(self, url):
        with self._lock:
            self.calls.append(url)
        page = self.pages.get(url)
        if page is None:
            raise FetchError(url, "http_404", status_code=404)
        if isinstance(page, Exception):
            raise page
        if callable(page):
            return page()
        return page


def make_amazon_page(price_text):
    return (
        "<html><body><div id='ppd'>"
        f"<span class='a-price'><span class='a-price-whole'>{price_text}</span></span>"
        "</div></body></html>"
    )


def make_flipkart_page(price_text):
    return f"<html><body><div class='_30jeq3 _16Jk6d'>{price_text}</div></body></html>"


@pytest.fixture
def amazon_page():
    return make_amazon_page


@pytest.fixture
def flipkart_page():
    return make_flipkart_page


@pytest.fixture
def fetcher():
    return FakeFetcher()


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture(params=["memory", "sql"])
def any_store(request):
    """Runs the test against both store implementations."""
    if request.param == "memory":
        s = InMemoryStore()
    else:
        s = SqlStore("sqlite://")
    yield s
    s.close()


@pytest.fixture
def monitor(store, fetcher):
    m = PriceMonitor(store, fetcher, threshold=20.0, max_workers=4)
    yield m
    m.close()
