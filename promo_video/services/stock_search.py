"""Stock Search - Pexels video search with a per-instance TTL cache."""

import time
from pathlib import Path
from typing import Any, Callable, Optional

import requests

from promo_video.core.config import Settings
from promo_video.core.exceptions import BackgroundMediaError, StorageError
from promo_video.models.schemas import StockVideo, StockVideoFile
from promo_video.utils.rate_limiter import RateLimiter
from promo_video.utils.ttl_cache import TTLCache

HD_QUALITIES = ("hd", "uhd")


def parse_search_response(payload: dict[str, Any]) -> list[StockVideo]:
    """Convert a Pexels ``videos/search`` payload into StockVideo models."""
    videos = []
    for item in payload.get("videos") or []:
        files = [
            StockVideoFile(
                link=f.get("link", ""),
                width=int(f.get("width") or 0),
                height=int(f.get("height") or 0),
                quality=f.get("quality"),
            )
            for f in item.get("video_files") or []
            if f.get("link")
        ]
        if files:
            videos.append(StockVideo(id=int(item.get("id") or 0), duration=float(item.get("duration") or 0), files=files))
    return videos


def file_tier(stock_file: StockVideoFile) -> int:
    """Rank a rendition: 0 for portrait HD, 1 for other portrait, 2 for anything else."""
    if not stock_file.is_portrait:
        return 2
    return 0 if (stock_file.quality or "").lower() in HD_QUALITIES else 1


def pick_best_file(video: StockVideo) -> Optional[StockVideoFile]:
    """Prefer a portrait HD rendition, then any portrait one, then whatever is there."""
    if not video.files:
        return None
    portrait = [f for f in video.files if f.is_portrait]
    portrait_hd = [f for f in portrait if (f.quality or "").lower() in HD_QUALITIES]
    for candidates in (portrait_hd, portrait):
        if candidates:
            return max(candidates, key=lambda f: f.height)
    return video.files[0]


class StockSearchClient:
    """Searches stock footage and downloads the chosen rendition."""

    def __init__(
        self,
        settings: Settings,
        logger: Any,
        session: Optional[requests.Session] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize stock search client.

        Args:
            settings: Application settings
            logger: Logger instance
            session: Optional requests session
            clock: Clock used by the result cache
        """
        self.settings = settings
        self.logger = logger
        self.session = session or requests.Session()
        self.cache: TTLCache[list[StockVideo]] = TTLCache(settings.stock_cache_ttl_seconds, clock=clock)
        self.rate_limiter = (
            RateLimiter(max_calls=settings.pexels_rate_limit) if settings.enable_rate_limiting else None
        )

    def search(self, query: str, orientation: str = "portrait", per_page: Optional[int] = None) -> list[StockVideo]:
        """
        Search stock videos.

        Args:
            query: Search terms
            orientation: Requested orientation
            per_page: Page size (defaults to stock_page_size)

        Returns:
            Matching videos, possibly empty

        Raises:
            BackgroundMediaError: If the API key is missing or the request fails
        """
        query = (query or "").strip()
        if not query:
            return []
        if not self.settings.pexels_api_key:
            raise BackgroundMediaError("Pexels API key not configured")

        per_page = per_page or self.settings.stock_page_size
        cache_key = f"{query.lower()}|{orientation}|{per_page}"
        cached = self.cache.get(cache_key)
        if cached is not None:
            self.logger.debug(f"Stock cache hit for '{query}'")
            return cached

        if self.rate_limiter:
            self.rate_limiter.wait_if_needed("pexels")

        try:
            response = self.session.get(
                self.settings.pexels_api_url,
                headers={"Authorization": self.settings.pexels_api_key},
                params={"query": query, "per_page": per_page, "orientation": orientation},
                timeout=self.settings.http_timeout_seconds,
            )
            response.raise_for_status()
            videos = parse_search_response(response.json())
        except (requests.RequestException, ValueError) as e:
            raise BackgroundMediaError(f"Stock search failed for '{query}': {e}") from e

        self.logger.debug(f"Stock search '{query}' returned {len(videos)} videos")
        self.cache.set(cache_key, videos)
        return videos

    def download(self, url: str, dest: Path) -> Path:
        """Stream a rendition to disk."""
        try:
            with self.session.get(url, stream=True, timeout=self.settings.http_timeout_seconds) as response:
                response.raise_for_status()
                dest.parent.mkdir(parents=True, exist_ok=True)
                with open(dest, "wb") as f:
                    for chunk in response.iter_content(chunk_size=1024 * 256):
                        if chunk:
                            f.write(chunk)
        except requests.RequestException as e:
            raise StorageError(f"Failed to download stock video: {e}") from e
        return dest
