# price_tracker/services/change_detector.py

from typing import Optional

from price_tracker.models import AlertDraft

DEFAULT_THRESHOLD_PERCENT = 20.0


def percent_change(old_price: float, new_price: float) -> float:
    return (new_price - old_price) / old_price * 100


def evaluate(
    old_price: Optional[float],
    new_price: float,
    threshold: float = DEFAULT_THRESHOLD_PERCENT,
) -> Optional[AlertDraft]:
    """
    Draft an alert when the move from old_price to new_price is a drop of at
    least ``threshold`` percent (boundary inclusive).

    No baseline (None or <= 0) never alerts. The comparison uses the
    unrounded change; rounding is left to whoever displays it.
    """
    if old_price is None or old_price <= 0:
        return None
    change = percent_change(old_price, new_price)
    if change <= -threshold:
        return AlertDraft(old_price=old_price, new_price=new_price, percent_change=change)
    return None
