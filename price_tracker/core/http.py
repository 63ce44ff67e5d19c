# price_tracker/core/http.py

from typing import Optional

import httpx

from price_tracker.core.config import Settings, get_settings


def get_client(settings: Optional[Settings] = None, **client_kwargs) -> httpx.Client:
    """
    Returns a configured HTTP client for fetching product pages.
    Callers own the client and should close it (use it as a context manager).
    Extra keyword arguments go straight to ``httpx.Client``.
    """
    settings = settings or get_settings()
    return httpx.Client(
        headers={
            "User-Agent": settings.user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
            "Accept-Language": settings.accept_language,
        },
        timeout=settings.fetch_timeout_seconds,
        follow_redirects=True,
        verify=True,  # SSL verification ON
        **client_kwargs,
    )
