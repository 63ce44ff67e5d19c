# price_tracker/api/deps.py
# Lifecycle-scoped components live on app.state (see main.create_app).
from fastapi import Request

from price_tracker.services.monitor import PriceMonitor
from price_tracker.services.scheduler import SweepScheduler
from price_tracker.store.base import PriceStore


def get_store(request: Request) -> PriceStore:
    return request.app.state.store


def get_monitor(request: Request) -> PriceMonitor:
    return request.app.state.monitor


def get_scheduler(request: Request) -> SweepScheduler:
    return request.app.state.scheduler
