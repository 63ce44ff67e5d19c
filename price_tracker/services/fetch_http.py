# price_tracker/services/fetch_http.py

from typing import Callable, Dict, Optional

import httpx

from price_tracker.core.config import Settings
from price_tracker.core.errors import FetchError
from price_tracker.core.http import get_client

# url -> raw markup; raises FetchError when the page is unavailable
FetchDocument = Callable[[str], str]


def fetch_document(
    url: str,
    headers: Optional[Dict[str, str]] = None,
    settings: Optional[Settings] = None,
) -> str:
    """
    GET a product page using the shared client configuration.
    Per-call headers go ON TOP of the default headers.
    Raises FetchError on transport errors, timeouts and any non-200 status.
    """
    try:
        with get_client(settings) as client:
            resp = client.get(url, headers=headers)
    except httpx.HTTPError as e:
        raise FetchError(url, f"{type(e).__name__}: {e}") from e

    if resp.status_code != 200:
        raise FetchError(url, f"http_{resp.status_code}", status_code=resp.status_code)
    return resp.text


def make_fetcher(settings: Settings) -> FetchDocument:
    def _fetch(url: str) -> str:
        return fetch_document(url, settings=settings)

    return _fetch
