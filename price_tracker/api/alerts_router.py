# price_tracker/api/alerts_router.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException

from price_tracker.api.deps import get_store
from price_tracker.api.schemas import AlertOut, ClearAlertsResponse, SuccessResponse
from price_tracker.store.base import PriceStore

router = APIRouter(prefix="/api/alerts", tags=["alerts"])


@router.get("", response_model=List[AlertOut])
def list_alerts(store: PriceStore = Depends(get_store)):
    return [AlertOut.from_alert(a) for a in store.list_alerts()]


@router.delete("/{alert_id}", response_model=SuccessResponse)
def delete_alert(alert_id: str, store: PriceStore = Depends(get_store)):
    if not store.delete_alert(alert_id):
        raise HTTPException(status_code=404, detail="Alert not found")
    return SuccessResponse()


@router.delete("", response_model=ClearAlertsResponse)
def clear_alerts(store: PriceStore = Depends(get_store)):
    return ClearAlertsResponse(cleared=store.clear_alerts())
