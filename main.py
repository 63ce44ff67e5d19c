# main.py
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from price_tracker.api.router import api_router
from price_tracker.core.config import Settings, get_settings
from price_tracker.core.logging import setup_logging
from price_tracker.services.fetch_http import FetchDocument, make_fetcher
from price_tracker.services.monitor import PriceMonitor
from price_tracker.services.scheduler import SweepScheduler
from price_tracker.store import PriceStore, build_store


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[PriceStore] = None,
    fetch_document: Optional[FetchDocument] = None,
) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.store = store or build_store(settings.database_url)
        app.state.monitor = PriceMonitor(
            app.state.store,
            fetch_document or make_fetcher(settings),
            threshold=settings.alert_threshold_percent,
            max_workers=settings.max_workers,
        )
        app.state.scheduler = SweepScheduler(app.state.monitor, interval_hours=settings.sweep_interval_hours)
        if settings.scheduler_enabled:
            app.state.scheduler.start(run_now=settings.run_sweep_on_startup)
        try:
            yield
        finally:
            app.state.scheduler.shutdown()
            app.state.monitor.close()
            app.state.store.close()

    app = FastAPI(title="Price Tracker Service", version="1.0.0", lifespan=lifespan)
    app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_credentials=True, allow_methods=["*"], allow_headers=["*"])

    @app.get("/")
    def root():
        return {"service": "price-tracker", "status": "ok"}

    app.include_router(api_router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=3001)
