"""Media Planner - assigns a background video and overlay photos to every segment."""

from itertools import zip_longest
from pathlib import Path
from typing import Any, Optional

from promo_video.core.config import Settings
from promo_video.core.exceptions import BackgroundMediaError
from promo_video.models.schemas import BackgroundSource, Intent, MediaHints, MediaPlanEntry, Segment
from promo_video.services.stock_search import StockSearchClient, file_tier, pick_best_file
from promo_video.utils.io_utils import TempWorkspace
from promo_video.utils.parallel_executor import ParallelExecutor
from promo_video.utils.text_utils import extract_keywords, tokenize

DEFAULT_PHOTO_CAP = 2
SOLUTION_PHOTO_CAP = 3
MAX_QUERY_TERMS = 8
NARRATION_TERMS = 5
GENERIC_CATEGORIES = ("", "general", "business")


def assign_caller_videos(segments: list[Segment], caller_videos: list[Path]) -> list[MediaPlanEntry]:
    """One caller video per segment, in upload order, until they run out."""
    entries = []
    for segment in segments:
        video = caller_videos[segment.index] if segment.index < len(caller_videos) else None
        entries.append(
            MediaPlanEntry(
                index=segment.index,
                intent=segment.intent,
                background_video_path=video,
                background_source=BackgroundSource.CALLER if video else None,
                on_screen_text=segment.on_screen_text,
            )
        )
    return entries


def build_stock_query(segment: Segment, hints: MediaHints) -> str:
    """
    Compose the stock search query for one segment.

    Brief terms (inferred keywords, title, description, context text) are drawn
    round-robin so every group gets a share. The segment's own narration
    terms keep reserved slots, so segments of one brief search for different
    footage. The query is capped at MAX_QUERY_TERMS words.
    """
    groups = [
        [k for keyword in hints.keywords[:6] for k in tokenize(keyword)],
        extract_keywords(hints.title, limit=3),
        extract_keywords(hints.description, limit=4),
        extract_keywords(hints.context_text, limit=4),
    ]
    brief_terms: list[str] = []
    for round_terms in zip_longest(*groups):
        for term in round_terms:
            if term and term not in brief_terms:
                brief_terms.append(term)

    narration = extract_keywords(segment.text, limit=NARRATION_TERMS)
    head = brief_terms[: MAX_QUERY_TERMS - len(narration)]
    terms = head + [t for t in narration if t not in head]
    if not terms:
        return fallback_term(hints)
    return " ".join(terms)


def fallback_term(hints: MediaHints, default: str = "business") -> str:
    """Single best-guess term used when the composed query finds nothing."""
    if hints.keywords:
        return hints.keywords[0]
    if hints.category not in GENERIC_CATEGORIES:
        return hints.category.replace("_", " ")
    return default


def distribute_photos(segments: list[Segment], photos: list[Path]) -> list[list[Path]]:
    """
    Spread caller photos over segments, keeping upload order.

    The first photo always opens the video (segment 0) and the last one closes
    it (last segment). Photos in between go round-robin over the interior
    segments starting at segment 1. Each segment keeps at most two photos,
    three for a solution segment; the forced first and last photos always
    survive the cap, and every bucket stays in upload order.

    Args:
        segments: Ordered segments
        photos: Caller photos in upload order

    Returns:
        One list of photo paths per segment
    """
    n = len(segments)
    if not photos or not n:
        return [[] for _ in range(n)]

    last = len(photos) - 1
    assigned: list[list[int]] = [[] for _ in range(n)]
    forced: list[set[int]] = [set() for _ in range(n)]
    assigned[0].append(0)
    forced[0].add(0)
    if last > 0:
        forced[n - 1].add(last)
        if n == 1:
            assigned[0].extend(range(1, last + 1))
        else:
            assigned[n - 1].append(last)
            end_index = max(1, n - 2)
            position = 1
            for photo_index in range(1, last):
                assigned[position].append(photo_index)
                position = position + 1 if position < end_index else 1

    buckets = []
    for segment, positions, pinned in zip(segments, assigned, forced):
        cap = SOLUTION_PHOTO_CAP if segment.intent == Intent.SOLUTION else DEFAULT_PHOTO_CAP
        keep = sorted(pinned)[:cap]
        for photo_index in sorted(positions):
            if len(keep) >= cap:
                break
            if photo_index not in keep:
                keep.append(photo_index)
        buckets.append([photos[i] for i in sorted(keep)])
    return buckets


class MediaPlanner:
    """Builds the per-segment media plan."""

    def __init__(
        self,
        settings: Settings,
        logger: Any,
        stock_client: Optional[StockSearchClient] = None,
        executor: Optional[ParallelExecutor] = None,
    ):
        """
        Initialize media planner.

        Args:
            settings: Application settings
            logger: Logger instance
            stock_client: Optional stock search client
            executor: Optional parallel executor for stock lookups
        """
        self.settings = settings
        self.logger = logger
        self.stock_client = stock_client or StockSearchClient(settings, logger)
        self.executor = executor or ParallelExecutor(settings, logger)

    def plan(
        self,
        segments: list[Segment],
        caller_videos: list[Path],
        caller_photos: list[Path],
        hints: MediaHints,
        workspace: TempWorkspace,
    ) -> list[MediaPlanEntry]:
        """
        Plan backgrounds and overlays for all segments.

        Args:
            segments: Ordered segments
            caller_videos: Local caller videos in upload order
            caller_photos: Local caller photos in upload order
            hints: Topical hints for stock queries
            workspace: Render workspace for downloads

        Returns:
            One entry per segment, each with a background video

        Raises:
            BackgroundMediaError: If a segment cannot get any background
        """
        entries = assign_caller_videos(segments, caller_videos)
        self.fill_from_stock(entries, segments, hints, workspace)

        for entry, photos in zip(entries, distribute_photos(segments, caller_photos)):
            entry.overlay_photo_paths = photos

        self.logger.info(
            f"Media plan: {sum(1 for e in entries if e.background_source == BackgroundSource.CALLER)} caller "
            f"backgrounds, {sum(1 for e in entries if e.background_source == BackgroundSource.STOCK)} stock, "
            f"{sum(len(e.overlay_photo_paths) for e in entries)} overlay photos"
        )
        return entries

    def fill_from_stock(
        self,
        entries: list[MediaPlanEntry],
        segments: list[Segment],
        hints: MediaHints,
        workspace: TempWorkspace,
    ) -> None:
        """Look up stock backgrounds concurrently for entries that have none."""
        missing = [segments[entry.index] for entry in entries if entry.background_video_path is None]
        if not missing:
            return

        tasks = [lambda seg=segment: self._stock_background(seg, hints, workspace) for segment in missing]
        results = self.executor.execute_api_calls(tasks, [f"stock_segment_{s.index}" for s in missing])

        for segment, (path, error) in zip(missing, results):
            if error is not None:
                if isinstance(error, BackgroundMediaError) and error.segment_index is not None:
                    raise error
                raise BackgroundMediaError(str(error), segment_index=segment.index) from error
            entry = entries[segment.index]
            entry.background_video_path = path
            entry.background_source = BackgroundSource.STOCK

    def _stock_background(self, segment: Segment, hints: MediaHints, workspace: TempWorkspace) -> Path:
        query = build_stock_query(segment, hints)
        link = self._find_link(query, segment.index)
        if link is None:
            fallback = fallback_term(hints, self.settings.stock_default_term)
            self.logger.warning(f"No stock result for segment {segment.index} ('{query}'), retrying with '{fallback}'")
            link = self._find_link(fallback, segment.index)
        if link is None:
            raise BackgroundMediaError(
                f"No stock footage found for segment {segment.index}", segment_index=segment.index
            )
        return self.stock_client.download(link, workspace.path(f"stock_{segment.index:02d}", ".mp4"))

    def _find_link(self, query: str, index: int) -> Optional[str]:
        videos = self.stock_client.search(query, orientation="portrait")
        best = [f for f in (pick_best_file(v) for v in videos) if f is not None]
        if not best:
            return None
        top_tier = min(file_tier(f) for f in best)
        links = [f.link for f in best if file_tier(f) == top_tier]
        # Rotate within the best tier so identical queries do not repeat one clip
        return links[index % len(links)]
