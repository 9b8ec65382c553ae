"""Pydantic models and schemas for the promo video pipeline."""

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# Enums
# ============================================================================


class Intent(str, Enum):
    """Narrative role of a script segment."""

    HOOK = "hook"
    PROBLEM = "problem"
    SOLUTION = "solution"
    CTA = "cta"
    LEDE = "lede"
    CONTEXT = "context"
    DETAILS = "details"
    IMPACT = "impact"
    GENERAL = "general"


class SpotlightAnchor(str, Enum):
    """Where the block of photo spotlights sits inside a segment."""

    LEAD_IN = "lead_in"
    TAIL = "tail"


class BackgroundSource(str, Enum):
    """Origin of a segment's background video."""

    CALLER = "caller"
    STOCK = "stock"


# ============================================================================
# Script Models
# ============================================================================


class Brief(BaseModel):
    """Caller brief describing the video to produce."""

    title: str = Field(default="", description="Campaign title")
    description: str = Field(default="", description="Campaign description")
    context: str = Field(default="", description="Additional free-text context")
    category: Optional[str] = Field(default=None, description="Explicit category, if the caller chose one")
    tone: str = Field(default="friendly", description="Delivery tone label")
    voice: str = Field(default="Ava", description="Voice label or service voice id")

    @property
    def has_free_text(self) -> bool:
        return bool(self.description.strip() or self.context.strip())


class Segment(BaseModel):
    """One narrative beat of the script."""

    model_config = ConfigDict(frozen=True)

    index: int = Field(..., ge=0, description="Position in the script (0-indexed)")
    id: str = Field(..., description="Segment identifier")
    intent: Intent = Field(default=Intent.GENERAL, description="Normalized narrative intent")
    text: str = Field(..., min_length=1, description="Narration text")
    on_screen_text: str = Field(default="", description="Short on-screen text")


class Script(BaseModel):
    """Segmented script returned by the segmenter."""

    title: str = Field(default="", description="Script title")
    description: str = Field(default="", description="Short summary")
    template: str = Field(default="marketing", description="Template used to generate the script")
    segments: list[Segment] = Field(..., min_length=1, description="Ordered, non-empty segments")


class InferredContext(BaseModel):
    """Classification of the brief used to steer templates and stock search."""

    category: Optional[str] = Field(default=None, description="Business or story category")
    brand: Optional[str] = Field(default=None, description="Brand or company name")
    offer: Optional[str] = Field(default=None, description="Offer being promoted")
    audience: Optional[str] = Field(default=None, description="Target audience")
    location: Optional[str] = Field(default=None, description="Location, if any")
    keywords: list[str] = Field(default_factory=list, description="Visual search keywords")


# ============================================================================
# Voice Models
# ============================================================================


class SegmentTiming(BaseModel):
    """Measured narration duration of one segment."""

    model_config = ConfigDict(frozen=True)

    index: int = Field(..., ge=0, description="Index of the timed segment")
    segment_id: str = Field(..., description="Id of the timed segment")
    duration: float = Field(..., ge=0.0, description="Measured audio duration in seconds")
    min_clip_seconds: float = Field(default=0.8, description="Floor applied to the visual clip")

    @property
    def clip_duration(self) -> float:
        """Duration of the visual clip rendered for this segment."""
        return max(self.duration, self.min_clip_seconds)


class VoiceTrack(BaseModel):
    """Merged narration plus its per-segment parts."""

    merged_audio_path: Path
    segment_audio_paths: list[Path]
    timings: list[SegmentTiming]

    @property
    def durations(self) -> list[float]:
        return [timing.duration for timing in self.timings]

    @property
    def total_duration(self) -> float:
        return sum(self.durations)


# ============================================================================
# Media Models
# ============================================================================


class MediaItem(BaseModel):
    """Caller-supplied media reference (URL, storage key or local path)."""

    file_path: str = Field(..., description="URL, object key or local path")
    file_type: Optional[str] = Field(default=None, description="Optional MIME type hint")


class StockVideoFile(BaseModel):
    """One resolution variant of a stock video."""

    link: str
    width: int = 0
    height: int = 0
    quality: Optional[str] = None

    @property
    def is_portrait(self) -> bool:
        return self.height > self.width


class StockVideo(BaseModel):
    """A stock-footage search hit."""

    id: int
    duration: float = 0.0
    files: list[StockVideoFile] = Field(default_factory=list)


class MediaHints(BaseModel):
    """Topical hints that bias the stock-footage query."""

    category: str = Field(default="general", description="Normalized category slug")
    keywords: list[str] = Field(default_factory=list, description="Explicitly inferred keywords")
    title: str = Field(default="", description="Campaign title")
    description: str = Field(default="", description="Campaign description")
    context_text: str = Field(default="", description="Inferred context summary")


class MediaPlanEntry(BaseModel):
    """Background and overlay assignment for one segment."""

    index: int = Field(..., ge=0, description="Index of the planned segment")
    intent: Intent = Field(default=Intent.GENERAL)
    background_video_path: Optional[Path] = Field(default=None)
    background_source: Optional[BackgroundSource] = Field(default=None)
    overlay_photo_paths: list[Path] = Field(default_factory=list)
    on_screen_text: str = Field(default="")


# ============================================================================
# Composition Models
# ============================================================================


class SpotlightWindow(BaseModel):
    """Time window in which one photo covers the segment."""

    photo_path: Path
    start: float
    end: float

    @property
    def duration(self) -> float:
        return self.end - self.start


class SegmentClipSpec(BaseModel):
    """Everything the encoder needs to render one segment clip."""

    index: int
    background_video_path: Path
    duration: float
    spotlights: list[SpotlightWindow] = Field(default_factory=list)
    output_path: Path


class Caption(BaseModel):
    """One caption cue."""

    index: int
    start: float
    end: float
    text: str


# ============================================================================
# Job & Render Models
# ============================================================================


class JobMetadata(BaseModel):
    """Descriptive metadata stored with a job."""

    subtitle_location: Optional[str] = None
    script_snapshot: dict[str, Any] = Field(default_factory=dict)
    voice: str = ""
    tone: str = ""
    duration_seconds: float = 0.0


class Job(BaseModel):
    """Registry record pointing to a rendered artifact."""

    model_config = ConfigDict(frozen=True)

    id: str
    artifact_location: str
    subtitle_location: Optional[str] = None
    script_snapshot: dict[str, Any] = Field(default_factory=dict)
    voice: str = ""
    tone: str = ""
    duration_seconds: float = 0.0
    created_at: datetime
    expires_at: datetime


class RenderRequest(BaseModel):
    """Everything a caller can ask of one render."""

    brief: Brief = Field(default_factory=Brief)
    segments: Optional[list[dict[str, Any]]] = Field(
        default=None, description="Caller-supplied raw segments; skips script generation"
    )
    media: list[MediaItem] = Field(default_factory=list, description="Caller media in intended order")
    background_music: Optional[str] = Field(
        default=None, description="Music asset name; None picks a random asset"
    )
    subtitles: bool = Field(default=False, description="Burn captions and upload an SRT")
    account_id: Optional[str] = Field(default=None, description="Ledger account to charge")


class WalletOutcome(BaseModel):
    """Result of the post-render deduction."""

    units_deducted: int = 0
    remaining_units: Optional[int] = None


class ScriptResult(BaseModel):
    """Descriptor returned by the script-only operation."""

    script: Script
    category: str
    inferred_context: Optional[InferredContext] = None
    wallet: WalletOutcome = Field(default_factory=WalletOutcome)


class PlanSummaryEntry(BaseModel):
    index: int
    intent: Intent
    background_source: Optional[BackgroundSource]
    overlay_photos: int


class RenderResult(BaseModel):
    """JSON-shaped descriptor returned after a successful render."""

    job_id: str
    video_url: str
    subtitle_url: Optional[str] = None
    expires_at: datetime
    voice: str
    tone: str
    category: str
    inferred_context: Optional[InferredContext] = None
    script: Script
    duration_seconds: float
    background_music: str
    wallet: WalletOutcome
    user_videos: int = 0
    user_photos: int = 0
    plan: list[PlanSummaryEntry] = Field(default_factory=list)
