# price_tracker/api/router.py
from fastapi import APIRouter
from price_tracker.api.alerts_router import router as alerts_router
from price_tracker.api.check_router import router as check_router
from price_tracker.api.products_router import router as products_router

api_router = APIRouter()
api_router.include_router(products_router)
api_router.include_router(alerts_router)
api_router.include_router(check_router)
