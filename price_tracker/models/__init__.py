from price_tracker.models.alert import Alert, AlertDraft
from price_tracker.models.history import HistoryEntry
from price_tracker.models.product import Product, Source, new_product_id, utcnow

__all__ = ["Alert", "AlertDraft", "HistoryEntry", "Product", "Source", "new_product_id", "utcnow"]
