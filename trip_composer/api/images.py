# trip_composer/api/images.py
"""Background images for stop cards via the Unsplash search API."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Iterable, Optional

import requests

from trip_composer.api.config import get_image_lookup_config
from trip_composer.api.errors import ImageLookupError

logger = logging.getLogger(__name__)


def image_query(stop: str) -> str:
    """Leading part of a stop, up to its first comma."""
    return stop.split(",", 1)[0].strip()


class UnsplashClient:
    """Image-lookup boundary: one query in, zero or one image URL out."""

    def __init__(self, access_key: Optional[str] = None, session: Optional[requests.Session] = None):
        cfg = get_image_lookup_config()
        self.access_key = access_key if access_key is not None else cfg["access_key"]
        self.api_base = cfg["api_base"]
        self.timeout = cfg["timeout_seconds"]
        self.http = session or requests.Session()
        if not self.access_key:
            logger.warning("UNSPLASH_ACCESS_KEY not found. Stop images will not be available.")

    def search(self, query: str) -> Optional[str]:
        if not self.access_key:
            raise ImageLookupError("No Unsplash access key configured")

        try:
            response = self.http.get(
                f"{self.api_base}/search/photos",
                params={"query": query, "client_id": self.access_key, "per_page": 1},
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            raise ImageLookupError(f"Unsplash lookup for '{query}' failed: {e}") from e

        results = data.get("results") or []
        if not results:
            return None
        return (results[0].get("urls") or {}).get("regular") or None


class ImageLookup:
    """Per-session cache of stop text -> image URL (or None for no match)."""

    def __init__(self, client=None, max_workers: Optional[int] = None):
        self.client = client or UnsplashClient()
        self.max_workers = max_workers or get_image_lookup_config()["max_workers"]
        self._cache: Dict[str, Optional[str]] = {}
        self._lock = threading.Lock()

    def get(self, stop: str) -> Optional[str]:
        with self._lock:
            return self._cache.get(stop)

    def _lookup(self, stop: str) -> None:
        try:
            url = self.client.search(image_query(stop))
        except ImageLookupError as e:
            logger.debug("No image for %r: %s", stop, e)
            return
        with self._lock:
            self._cache[stop] = url

    def refresh(self, stops: Iterable[str]) -> Dict[str, Optional[str]]:
        """Look up every stop not yet cached; failures are left uncached."""
        with self._lock:
            missing = [stop for stop in dict.fromkeys(stops)
                       if stop not in self._cache and image_query(stop)]

        if missing:
            workers = min(self.max_workers, len(missing))
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="image-lookup") as pool:
                list(pool.map(self._lookup, missing))

        with self._lock:
            return dict(self._cache)


__all__ = ["ImageLookup", "UnsplashClient", "image_query"]
