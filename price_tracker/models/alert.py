# price_tracker/models/alert.py
from dataclasses import dataclass
from datetime import datetime

from price_tracker.models.product import Source


@dataclass(frozen=True)
class AlertDraft:
    old_price: float
    new_price: float
    percent_change: float  # unrounded


@dataclass(frozen=True)
class Alert:
    id: str
    product_id: str
    product_name: str
    source: Source
    old_price: float
    new_price: float
    percent_change: float  # rounded to one decimal
    created_at: datetime
