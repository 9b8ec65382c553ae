"""Composition Engine - renders segment clips and assembles the final video."""

from pathlib import Path
from typing import Any, Optional

from promo_video.core.config import Settings
from promo_video.core.exceptions import CompositionError
from promo_video.models.schemas import (
    MediaPlanEntry,
    SegmentClipSpec,
    SegmentTiming,
    SpotlightAnchor,
    SpotlightWindow,
    VoiceTrack,
)
from promo_video.services.ffmpeg_engine import EncodingEngine
from promo_video.utils.io_utils import TempWorkspace
from promo_video.utils.parallel_executor import ParallelExecutor

MAX_SPOTLIGHTS = 2
ANCHOR_OFFSET_SHARE = 0.10


def resolve_anchor(intent: str, default: str, overrides: Optional[dict[str, str]] = None) -> SpotlightAnchor:
    """Placement for one segment: the per-intent override if any, else the default."""
    value = (overrides or {}).get(str(intent), default)
    try:
        return SpotlightAnchor(str(value).lower())
    except ValueError:
        return SpotlightAnchor.LEAD_IN


def select_spotlight_photos(photos: list[Path], duration: float, short_segment_seconds: float = 3.8) -> list[Path]:
    """At most two photos per segment, one if the segment is short."""
    count = min(len(photos), MAX_SPOTLIGHTS)
    if count > 1 and duration < short_segment_seconds:
        count = 1
    return list(photos[:count])


def compute_spotlight_windows(
    photos: list[Path],
    duration: float,
    anchor: SpotlightAnchor,
    min_seconds: float = 5.0,
    max_share: float = 0.98,
    lead_in_seconds: float = 3.0,
    tail_seconds: float = 0.5,
) -> list[SpotlightWindow]:
    """
    Give each selected photo an equal, contiguous time slot inside the segment.

    The block of slots covers ``min(duration * max_share, max(min_seconds * k,
    min_seconds))`` seconds. A lead-in block starts a little after the segment
    opens; a tail block ends a little before it closes.

    Args:
        photos: Photos already selected for the segment
        duration: Segment clip duration in seconds
        anchor: Block placement
        min_seconds: Minimum time per photo
        max_share: Maximum share of the segment covered by photos
        lead_in_seconds: Upper bound of the lead-in offset
        tail_seconds: Upper bound of the gap after a tail block

    Returns:
        Windows in photo order; empty when there are no photos
    """
    k = len(photos)
    if k == 0 or duration <= 0:
        return []

    total = min(duration * max_share, max(min_seconds * k, min_seconds))
    slot = total / k
    if anchor == SpotlightAnchor.TAIL:
        block_start = duration - total - min(tail_seconds, duration * ANCHOR_OFFSET_SHARE)
    else:
        block_start = min(min(lead_in_seconds, duration * ANCHOR_OFFSET_SHARE), duration - total)
    block_start = max(0.0, block_start)

    windows = []
    for i, photo in enumerate(photos):
        start = block_start + i * slot
        end = min(duration, start + slot)
        windows.append(SpotlightWindow(photo_path=photo, start=round(start, 3), end=round(end, 3)))
    return windows


class CompositionEngine:
    """Turns a media plan plus a voice track into the final video file."""

    def __init__(
        self,
        settings: Settings,
        logger: Any,
        engine: EncodingEngine,
        executor: Optional[ParallelExecutor] = None,
    ):
        """
        Initialize composition engine.

        Args:
            settings: Application settings
            logger: Logger instance
            engine: Encoding engine
            executor: Optional executor used to render segment clips concurrently
        """
        self.settings = settings
        self.logger = logger
        self.engine = engine
        self.executor = executor or ParallelExecutor(settings, logger)

    def build_segment_clip_spec(
        self, entry: MediaPlanEntry, timing: SegmentTiming, output_path: Path
    ) -> SegmentClipSpec:
        if entry.background_video_path is None:
            raise CompositionError(f"Segment {entry.index} has no background video", stage="segment_clip")

        duration = timing.clip_duration
        anchor = resolve_anchor(
            entry.intent.value, self.settings.spotlight_anchor, self.settings.spotlight_anchor_overrides
        )
        photos = select_spotlight_photos(
            entry.overlay_photo_paths, duration, self.settings.short_segment_seconds
        )
        spotlights = compute_spotlight_windows(
            photos,
            duration,
            anchor,
            min_seconds=self.settings.photo_min_seconds,
            max_share=self.settings.photo_max_segment_share,
            lead_in_seconds=self.settings.photo_lead_in_seconds,
            tail_seconds=self.settings.photo_tail_seconds,
        )
        return SegmentClipSpec(
            index=entry.index,
            background_video_path=entry.background_video_path,
            duration=duration,
            spotlights=spotlights,
            output_path=output_path,
        )

    def compose(
        self,
        plan: list[MediaPlanEntry],
        timings: list[SegmentTiming],
        voice_track: VoiceTrack,
        workspace: TempWorkspace,
        music_path: Optional[Path] = None,
        captions_path: Optional[Path] = None,
    ) -> Path:
        """
        Render every segment clip, join them and mux voice, music and captions.

        Args:
            plan: Media plan, one entry per segment
            timings: Segment timings, same order and length as the plan
            voice_track: Merged narration
            workspace: Render workspace
            music_path: Optional background music
            captions_path: Optional SRT file to burn in

        Returns:
            Path of the final video inside the workspace

        Raises:
            CompositionError: On invalid input or any encoder failure
        """
        if len(plan) != len(timings):
            raise CompositionError(
                f"Plan has {len(plan)} entries but there are {len(timings)} timings", stage="validation"
            )
        if not plan:
            raise CompositionError("Nothing to compose", stage="validation")

        specs = [
            self.build_segment_clip_spec(entry, timing, workspace.path(f"clip_{entry.index:02d}", ".mp4"))
            for entry, timing in zip(plan, timings)
        ]
        self.logger.info(
            f"Rendering {len(specs)} segment clips "
            f"({sum(len(s.spotlights) for s in specs)} spotlights, {sum(s.duration for s in specs):.2f}s)"
        )

        results = self.executor.execute_batch(
            [lambda spec=spec: self.engine.render_clip(spec) for spec in specs],
            [f"segment_clip_{spec.index}" for spec in specs],
            max_workers=self.settings.max_parallel_encodes,
        )
        for spec, (_, error) in zip(specs, results):
            if error is not None:
                if isinstance(error, CompositionError):
                    raise error
                raise CompositionError(f"Segment {spec.index} clip failed: {error}", stage="segment_clip") from error

        joined = self.engine.concat([spec.output_path for spec in specs], workspace.path("joined", ".mp4"))
        final_path = self.engine.mux(
            joined,
            voice_track.merged_audio_path,
            workspace.path("final", ".mp4"),
            music_path=music_path,
            captions_path=captions_path,
        )
        self.logger.info(f"Composition complete: {final_path.name}")
        return final_path
