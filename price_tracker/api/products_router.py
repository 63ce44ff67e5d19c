# price_tracker/api/products_router.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException

from price_tracker.api.deps import get_monitor, get_scheduler, get_store
from price_tracker.api.schemas import (
    AlertOut,
    CheckPriceResponse,
    HistoryEntryOut,
    ProductCreate,
    ProductOut,
    ProductUpdate,
    SuccessResponse,
)
from price_tracker.core.errors import ProductNotFoundError
from price_tracker.models import Source
from price_tracker.services.monitor import PriceMonitor
from price_tracker.services.scheduler import SweepScheduler
from price_tracker.store.base import PriceStore

router = APIRouter(prefix="/api/products", tags=["products"])


def _not_found() -> HTTPException:
    return HTTPException(status_code=404, detail="Product not found")


@router.get("", response_model=List[ProductOut])
def list_products(store: PriceStore = Depends(get_store)):
    return [ProductOut.from_product(p) for p in store.list_products()]


@router.post("", response_model=ProductOut)
def create_product(body: ProductCreate, store: PriceStore = Depends(get_store)):
    product = store.create_product(
        name=body.name,
        category=body.category,
        source_urls={Source.AMAZON: body.amazonUrl, Source.FLIPKART: body.flipkartUrl},
        source_prices={Source.AMAZON: body.amazonPrice, Source.FLIPKART: body.flipkartPrice},
    )
    return ProductOut.from_product(product)


@router.put("/{product_id}", response_model=ProductOut)
def update_product(
    product_id: str,
    body: ProductUpdate,
    store: PriceStore = Depends(get_store),
    monitor: PriceMonitor = Depends(get_monitor),
):
    if store.get_product(product_id) is None:
        raise _not_found()
    # same critical section as price checks: a manual price edit must not
    # interleave with a check applying its result
    with monitor.product_lock(product_id):
        product = store.update_product(product_id, body.to_patch())
    if product is None:
        # deleted while we waited for the lock
        monitor.forget(product_id)
        raise _not_found()
    return ProductOut.from_product(product)


@router.delete("/{product_id}", response_model=SuccessResponse)
def delete_product(
    product_id: str,
    store: PriceStore = Depends(get_store),
    monitor: PriceMonitor = Depends(get_monitor),
):
    if store.get_product(product_id) is None:
        raise _not_found()
    with monitor.product_lock(product_id):
        deleted = store.delete_product(product_id)
    monitor.forget(product_id)
    if not deleted:
        raise _not_found()
    return SuccessResponse()


@router.get("/{product_id}/history", response_model=List[HistoryEntryOut])
def product_history(product_id: str, monitor: PriceMonitor = Depends(get_monitor)):
    return [HistoryEntryOut.from_entry(e) for e in monitor.ledger.timeline(product_id)]


@router.post("/{product_id}/check-price", response_model=CheckPriceResponse)
def check_price(product_id: str, scheduler: SweepScheduler = Depends(get_scheduler)):
    try:
        result = scheduler.trigger_product(product_id)
    except ProductNotFoundError:
        raise _not_found()
    return CheckPriceResponse(
        product=ProductOut.from_product(result.product),
        alerts=[AlertOut.from_alert(a) for a in result.alerts],
    )
