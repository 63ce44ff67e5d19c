# price_tracker/core/errors.py
"""
Exception taxonomy for the price tracker.

Extraction misses are not errors and have no exception here; a missing
price is reported as ``None`` by the extractor.
"""
from typing import Optional


class PriceTrackerError(Exception):
    """Base class for all price tracker errors."""


class ProductNotFoundError(PriceTrackerError):
    """Explicit operation on a product id that is not registered."""

    def __init__(self, product_id: str):
        super().__init__(f"Product not found: {product_id}")
        self.product_id = product_id


NotFoundError = ProductNotFoundError


class FetchError(PriceTrackerError):
    """Network failure, timeout or non-success status while fetching a page."""

    def __init__(self, url: str, reason: str, status_code: Optional[int] = None):
        super().__init__(f"Failed to fetch {url}: {reason}")
        self.url = url
        self.reason = reason
        self.status_code = status_code
