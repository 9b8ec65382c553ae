"""Subtitle Builder - SubRip captions aligned to segment timings."""

from promo_video.models.schemas import Caption, Segment, SegmentTiming
from promo_video.utils.text_utils import collapse_whitespace


def build_captions(segments: list[Segment], timings: list[SegmentTiming]) -> list[Caption]:
    """
    One caption per segment, timed by cumulative narration durations.

    Segments with empty text produce no caption and consume no time.

    Raises:
        ValueError: If segments and timings differ in length
    """
    if len(segments) != len(timings):
        raise ValueError(f"Got {len(segments)} segments but {len(timings)} timings")

    captions = []
    cursor = 0.0
    for segment, timing in zip(segments, timings):
        text = collapse_whitespace(segment.text)
        if not text:
            continue
        start = cursor
        cursor += max(0.0, timing.duration)
        captions.append(Caption(index=len(captions) + 1, start=start, end=cursor, text=text))
    return captions


def format_srt_time(seconds: float) -> str:
    """Format seconds as ``HH:MM:SS,mmm``."""
    total_ms = max(0, int(round(seconds * 1000)))
    hours, rest = divmod(total_ms, 3_600_000)
    minutes, rest = divmod(rest, 60_000)
    secs, ms = divmod(rest, 1000)
    return f"{hours:02d}:{minutes:02d}:{secs:02d},{ms:03d}"


def to_srt(captions: list[Caption]) -> str:
    blocks = [
        f"{caption.index}\n{format_srt_time(caption.start)} --> {format_srt_time(caption.end)}\n{caption.text}\n"
        for caption in captions
    ]
    return "\n".join(blocks)
