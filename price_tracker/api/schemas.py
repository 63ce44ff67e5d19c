# price_tracker/api/schemas.py
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from price_tracker.models import Alert, HistoryEntry, Product, Source


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1)
    category: Optional[str] = None
    amazonUrl: Optional[str] = None
    flipkartUrl: Optional[str] = None
    amazonPrice: Optional[float] = Field(None, ge=0)
    flipkartPrice: Optional[float] = Field(None, ge=0)


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    category: Optional[str] = None
    amazonUrl: Optional[str] = None
    flipkartUrl: Optional[str] = None
    amazonPrice: Optional[float] = Field(None, ge=0)
    flipkartPrice: Optional[float] = Field(None, ge=0)

    def to_patch(self) -> Dict[str, object]:
        """Only fields the client actually sent."""
        sent = self.model_dump(exclude_unset=True)
        patch: Dict[str, object] = {}
        for key in ("name", "category"):
            if key in sent:
                patch[key] = sent[key]
        urls = {s: sent[f"{s.value}Url"] for s in Source if f"{s.value}Url" in sent}
        prices = {s: sent[f"{s.value}Price"] for s in Source if f"{s.value}Price" in sent}
        if urls:
            patch["source_urls"] = urls
        if prices:
            patch["source_prices"] = prices
        return patch


class ProductOut(BaseModel):
    id: str
    name: str
    category: Optional[str] = None
    amazonUrl: Optional[str] = None
    flipkartUrl: Optional[str] = None
    amazonPrice: Optional[float] = None
    flipkartPrice: Optional[float] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    @classmethod
    def from_product(cls, p: Product) -> "ProductOut":
        return cls(
            id=p.id,
            name=p.name,
            category=p.category,
            amazonUrl=p.url_for(Source.AMAZON),
            flipkartUrl=p.url_for(Source.FLIPKART),
            amazonPrice=p.price_for(Source.AMAZON),
            flipkartPrice=p.price_for(Source.FLIPKART),
            createdAt=p.created_at,
            updatedAt=p.updated_at,
        )


class HistoryEntryOut(BaseModel):
    timestamp: datetime
    pricesBySource: Dict[str, float]

    @classmethod
    def from_entry(cls, e: HistoryEntry) -> "HistoryEntryOut":
        return cls(timestamp=e.timestamp, pricesBySource={Source(s).value: p for s, p in e.prices.items()})


class AlertOut(BaseModel):
    id: str
    productId: str
    productName: str
    source: str
    oldPrice: float
    newPrice: float
    percentChange: float
    createdAt: datetime

    @classmethod
    def from_alert(cls, a: Alert) -> "AlertOut":
        return cls(
            id=a.id,
            productId=a.product_id,
            productName=a.product_name,
            source=a.source.value,
            oldPrice=a.old_price,
            newPrice=a.new_price,
            percentChange=a.percent_change,
            createdAt=a.created_at,
        )


class CheckPriceResponse(BaseModel):
    product: ProductOut
    alerts: List[AlertOut]


class FailedItem(BaseModel):
    productId: str
    name: str
    reason: str


class CheckAllResponse(BaseModel):
    checked: int
    total: int
    alerts: List[AlertOut]
    failed: List[FailedItem]


class SuccessResponse(BaseModel):
    success: bool = True


class ClearAlertsResponse(BaseModel):
    success: bool = True
    cleared: int


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    productsCount: int
    alertsCount: int
    schedulerRunning: bool
    sweepInProgress: bool
    nextSweepAt: Optional[datetime] = None
    lastSweepAt: Optional[datetime] = None
    lastSweepChecked: Optional[int] = None
    lastSweepAlerts: Optional[int] = None
