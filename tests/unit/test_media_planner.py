"""Tests for Media Planner service."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from promo_video.core.exceptions import BackgroundMediaError
from promo_video.models.schemas import BackgroundSource, Intent, MediaHints, Segment, StockVideo, StockVideoFile
from promo_video.services.media_planner import (
    MediaPlanner,
    assign_caller_videos,
    build_stock_query,
    distribute_photos,
    fallback_term,
)


def make_segments(intents):
    return [
        Segment(index=i, id=f"seg{i + 1}", intent=intent, text=f"Narration number {i + 1} about fresh pizza.")
        for i, intent in enumerate(intents)
    ]


def photo_paths(count):
    return [Path(f"photo_{i}.jpg") for i in range(count)]


def stock_video(video_id, link):
    return StockVideo(id=video_id, files=[StockVideoFile(link=link, width=1080, height=1920, quality="hd")])


@pytest.fixture
def stock_client():
    client = MagicMock()

    def download(url, dest):
        dest.write_bytes(url.encode())
        return dest

    client.download.side_effect = download
    return client


@pytest.fixture
def planner(settings, logger, stock_client):
    """Create MediaPlanner with a mocked stock client."""
    return MediaPlanner(settings, logger, stock_client=stock_client)


@pytest.fixture
def hints():
    return MediaHints(
        category="restaurant",
        keywords=["pizza", "wood oven"],
        title="Luigi's Pizzeria Grand Opening",
        description="Wood fired pizza downtown",
    )


# ============================================================================
# Photo distribution
# ============================================================================


def test_distribute_photos_forces_first_and_last():
    segments = make_segments([Intent.HOOK, Intent.PROBLEM, Intent.SOLUTION, Intent.CTA])
    photos = photo_paths(3)

    buckets = distribute_photos(segments, photos)

    assert buckets == [[photos[0]], [photos[1]], [], [photos[2]]]


def test_distribute_photos_round_robin_over_interior():
    segments = make_segments([Intent.HOOK, Intent.PROBLEM, Intent.SOLUTION, Intent.CTA])
    photos = photo_paths(6)

    buckets = distribute_photos(segments, photos)

    # Interior photos 1..4 alternate between segments 1 and 2
    assert buckets == [[photos[0]], [photos[1], photos[3]], [photos[2], photos[4]], [photos[5]]]


def test_distribute_photos_caps_per_segment():
    segments = make_segments([Intent.HOOK, Intent.PROBLEM, Intent.SOLUTION, Intent.CTA])
    photos = photo_paths(12)

    buckets = distribute_photos(segments, photos)

    assert [len(b) for b in buckets] == [1, 2, 3, 1]
    # Order of upload is preserved inside each bucket
    assert buckets[1] == [photos[1], photos[3]]
    assert buckets[2] == [photos[2], photos[4], photos[6]]


@pytest.mark.parametrize("segment_count", [1, 2, 3, 4, 6])
@pytest.mark.parametrize("photo_count", [0, 1, 2, 3, 5, 9])
def test_distribute_photos_properties(segment_count, photo_count):
    """Test caps, ordering and forced placements for many shapes."""
    intents = [Intent.HOOK, Intent.PROBLEM, Intent.SOLUTION, Intent.CTA, Intent.GENERAL, Intent.GENERAL]
    segments = make_segments(intents[:segment_count])
    photos = photo_paths(photo_count)

    buckets = distribute_photos(segments, photos)

    assert len(buckets) == segment_count
    for segment, bucket in zip(segments, buckets):
        assert len(bucket) <= (3 if segment.intent == Intent.SOLUTION else 2)
        assert bucket == sorted(bucket, key=photos.index)
    placed = [p for bucket in buckets for p in bucket]
    assert len(placed) == len(set(placed))
    if photos:
        assert buckets[0][0] == photos[0]
    if photos:
        assert photos[-1] in buckets[-1]


def test_distribute_photos_single_segment():
    """Test a single segment shows the opening and closing photos."""
    segments = make_segments([Intent.HOOK])
    photos = photo_paths(4)

    assert distribute_photos(segments, photos) == [[photos[0], photos[3]]]


def test_distribute_photos_two_segments_keeps_upload_order():
    segments = make_segments([Intent.HOOK, Intent.CTA])
    photos = photo_paths(4)

    buckets = distribute_photos(segments, photos)

    assert buckets == [[photos[0]], [photos[1], photos[3]]]


# ============================================================================
# Caller videos & stock queries
# ============================================================================


def test_assign_caller_videos_sequential():
    segments = make_segments([Intent.HOOK, Intent.PROBLEM, Intent.SOLUTION])
    videos = [Path("a.mp4"), Path("b.mp4")]

    entries = assign_caller_videos(segments, videos)

    assert [e.background_video_path for e in entries] == [videos[0], videos[1], None]
    assert [e.background_source for e in entries] == [BackgroundSource.CALLER, BackgroundSource.CALLER, None]


def test_build_stock_query_priority_and_dedup(hints):
    segment = Segment(index=0, id="hook", intent=Intent.HOOK, text="Pizza lovers, pizza night is here with pizza.")

    query = build_stock_query(segment, hints)

    # Brief groups interleave, narration terms always follow
    assert query.split() == ["pizza", "luigi's", "wood", "pizzeria", "fired", "lovers", "night"]


def test_build_stock_query_differs_per_segment():
    """Test narration terms reach the query even when the brief alone fills the cap."""
    hints = MediaHints(
        category="restaurant",
        keywords=["pizza", "wood oven", "italian food", "chef"],
        title="Luigi's Pizzeria Grand Opening",
    )
    problem = Segment(index=1, id="problem", intent=Intent.PROBLEM, text="Delivery pizza arrives cold and soggy.")
    cta = Segment(index=3, id="cta", intent=Intent.CTA, text="Order now and get free garlic knots tonight.")

    problem_terms = build_stock_query(problem, hints).split()
    cta_terms = build_stock_query(cta, hints).split()

    assert problem_terms != cta_terms
    assert {"delivery", "cold"} <= set(problem_terms)
    assert {"garlic", "knots"} <= set(cta_terms)
    assert len(problem_terms) <= 8 and len(cta_terms) <= 8
    assert problem_terms[:2] == ["pizza", "luigi's"]


def test_build_stock_query_from_narration_only():
    segment = Segment(index=0, id="hook", intent=Intent.HOOK, text="Pizza lovers, pizza night is here with pizza.")

    assert build_stock_query(segment, MediaHints()) == "pizza lovers night"


def test_build_stock_query_without_terms_uses_fallback():
    segment = Segment(index=0, id="hook", intent=Intent.HOOK, text="Is it you?")

    assert build_stock_query(segment, MediaHints(category="coffee_shop")) == "coffee shop"


def test_fallback_term():
    assert fallback_term(MediaHints(keywords=["sushi"], category="restaurant")) == "sushi"
    assert fallback_term(MediaHints(category="coffee_shop")) == "coffee shop"
    assert fallback_term(MediaHints(category="general"), default="business") == "business"


# ============================================================================
# Planning
# ============================================================================


def test_plan_all_stock(planner, stock_client, hints, workspace):
    """Test with no caller media every background comes from stock and no overlays exist."""
    stock_client.search.return_value = [stock_video(1, "https://cdn/a.mp4"), stock_video(2, "https://cdn/b.mp4")]
    segments = make_segments([Intent.HOOK, Intent.PROBLEM, Intent.SOLUTION, Intent.CTA])

    plan = planner.plan(segments, [], [], hints, workspace)

    assert [e.index for e in plan] == [0, 1, 2, 3]
    assert all(e.background_source == BackgroundSource.STOCK for e in plan)
    assert all(e.background_video_path is not None and e.background_video_path.exists() for e in plan)
    assert all(e.overlay_photo_paths == [] for e in plan)
    # Results rotate by segment index
    assert [e.background_video_path.read_text() for e in plan] == [
        "https://cdn/a.mp4",
        "https://cdn/b.mp4",
        "https://cdn/a.mp4",
        "https://cdn/b.mp4",
    ]


def test_plan_prefers_portrait_hd_over_rotation(planner, stock_client, hints, workspace):
    """Test rotation never trades a portrait HD result for a worse rendition."""
    landscape_sd = StockVideo(
        id=2, files=[StockVideoFile(link="https://cdn/landscape-sd.mp4", width=960, height=540, quality="sd")]
    )
    portrait_sd = StockVideo(
        id=3, files=[StockVideoFile(link="https://cdn/portrait-sd.mp4", width=540, height=960, quality="sd")]
    )
    stock_client.search.return_value = [stock_video(1, "https://cdn/portrait-hd.mp4"), landscape_sd, portrait_sd]
    segments = make_segments([Intent.HOOK, Intent.PROBLEM, Intent.SOLUTION, Intent.CTA])

    plan = planner.plan(segments, [], [], hints, workspace)

    assert [e.background_video_path.read_text() for e in plan] == ["https://cdn/portrait-hd.mp4"] * 4


def test_plan_rotates_within_portrait_tier(planner, stock_client, hints, workspace):
    landscape_hd = StockVideo(
        id=2, files=[StockVideoFile(link="https://cdn/landscape-hd.mp4", width=1920, height=1080, quality="hd")]
    )
    portrait_sd = [
        StockVideo(id=i, files=[StockVideoFile(link=f"https://cdn/p{i}.mp4", width=540, height=960, quality="sd")])
        for i in (3, 4)
    ]
    stock_client.search.return_value = [landscape_hd, *portrait_sd]
    segments = make_segments([Intent.HOOK, Intent.PROBLEM, Intent.SOLUTION])

    plan = planner.plan(segments, [], [], hints, workspace)

    assert [e.background_video_path.read_text() for e in plan] == [
        "https://cdn/p3.mp4",
        "https://cdn/p4.mp4",
        "https://cdn/p3.mp4",
    ]


def test_plan_caller_video_and_photos(planner, stock_client, hints, workspace):
    """Test one caller video and three photos over four segments."""
    stock_client.search.return_value = [stock_video(1, "https://cdn/a.mp4")]
    segments = make_segments([Intent.HOOK, Intent.PROBLEM, Intent.SOLUTION, Intent.CTA])
    video = Path("caller.mp4")
    photos = photo_paths(3)

    plan = planner.plan(segments, [video], photos, hints, workspace)

    assert plan[0].background_video_path == video
    assert plan[0].background_source == BackgroundSource.CALLER
    assert [e.background_source for e in plan[1:]] == [BackgroundSource.STOCK] * 3
    assert plan[0].overlay_photo_paths == [photos[0]]
    assert plan[3].overlay_photo_paths == [photos[2]]
    assert stock_client.search.call_count == 3


def test_plan_retries_with_fallback_term(planner, stock_client, hints, workspace):
    def search(query, orientation="portrait", per_page=None):
        return [stock_video(7, "https://cdn/fallback.mp4")] if query == "pizza" else []

    stock_client.search.side_effect = search
    segments = make_segments([Intent.HOOK])

    plan = planner.plan(segments, [], [], hints, workspace)

    assert plan[0].background_video_path.read_text() == "https://cdn/fallback.mp4"
    assert stock_client.search.call_count == 2


def test_plan_fails_without_any_stock(planner, stock_client, hints, workspace):
    stock_client.search.return_value = []
    segments = make_segments([Intent.HOOK, Intent.PROBLEM])

    with pytest.raises(BackgroundMediaError) as exc_info:
        planner.plan(segments, [Path("caller.mp4")], [], hints, workspace)

    assert exc_info.value.segment_index == 1
    # Only the uncovered segment is looked up: one query plus one fallback
    assert stock_client.search.call_count == 2


def test_plan_search_error_gets_segment_index(planner, stock_client, hints, workspace):
    stock_client.search.side_effect = BackgroundMediaError("Pexels API key not configured")
    segments = make_segments([Intent.HOOK])

    with pytest.raises(BackgroundMediaError) as exc_info:
        planner.plan(segments, [], [], hints, workspace)

    assert exc_info.value.segment_index == 0
