# price_tracker/api/check_router.py
from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from price_tracker.api.deps import get_scheduler, get_store
from price_tracker.api.schemas import AlertOut, CheckAllResponse, FailedItem, HealthResponse
from price_tracker.services.scheduler import SweepScheduler
from price_tracker.store.base import PriceStore

router = APIRouter(prefix="/api", tags=["check"])


@router.post("/check-all-prices", response_model=CheckAllResponse)
def check_all_prices(scheduler: SweepScheduler = Depends(get_scheduler)):
    result = scheduler.trigger_all()
    return CheckAllResponse(
        checked=result.checked_count,
        total=result.total_products,
        alerts=[AlertOut.from_alert(a) for a in result.alerts],
        failed=[
            FailedItem(productId=f["product_id"], name=f["name"], reason=f["reason"])
            for f in result.failed
        ],
    )


@router.get("/health", response_model=HealthResponse)
def health(
    store: PriceStore = Depends(get_store),
    scheduler: SweepScheduler = Depends(get_scheduler),
):
    counts = store.counts()
    last = scheduler.last_result
    return HealthResponse(
        status="ok",
        timestamp=datetime.now(timezone.utc),
        productsCount=counts["products"],
        alertsCount=counts["alerts"],
        schedulerRunning=scheduler.running,
        sweepInProgress=scheduler.sweep_in_progress,
        nextSweepAt=scheduler.next_run_time,
        lastSweepAt=scheduler.last_sweep_at,
        lastSweepChecked=last.checked_count if last else None,
        lastSweepAlerts=len(last.alerts) if last else None,
    )
