"""Application configuration using pydantic-settings."""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be configured via environment variables or a .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================================================
    # Application Settings
    # ========================================================================
    app_name: str = Field(default="Promo Video Factory", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    log_level: str = Field(default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR)")
    log_file: Optional[str] = Field(default=None, description="Optional log file path")

    # ========================================================================
    # Text Generation (OpenAI)
    # ========================================================================
    openai_api_key: Optional[str] = Field(default=None, description="OpenAI API key")
    script_model: str = Field(default="gpt-4o-mini", description="Model used for script generation")
    context_model: str = Field(default="gpt-4o-mini", description="Model used for context inference")
    script_temperature: float = Field(default=0.7, description="Sampling temperature for scripts")
    llm_timeout_seconds: float = Field(default=60.0, description="Timeout for text-generation calls")

    # ========================================================================
    # Speech Synthesis
    # ========================================================================
    tts_model: str = Field(default="gpt-4o-mini-tts", description="OpenAI speech model")
    default_tts_voice: str = Field(default="alloy", description="Voice used for unknown voice labels")

    # ========================================================================
    # Stock Footage Search (Pexels)
    # ========================================================================
    pexels_api_key: Optional[str] = Field(default=None, description="Pexels API key")
    pexels_api_url: str = Field(
        default="https://api.pexels.com/videos/search", description="Pexels video search endpoint"
    )
    stock_page_size: int = Field(default=15, description="Results requested per stock query")
    stock_cache_ttl_seconds: float = Field(
        default=900.0, description="How long stock search results are cached (default: 15 minutes)"
    )
    stock_default_term: str = Field(
        default="business", description="Last-resort term for the stock fallback query"
    )

    # ========================================================================
    # Video Rendering
    # ========================================================================
    video_width: int = Field(default=1080, description="Output width in pixels (vertical format)")
    video_height: int = Field(default=1920, description="Output height in pixels (vertical format)")
    video_fps: int = Field(default=30, description="Output frame rate")
    min_segment_seconds: float = Field(default=0.8, description="Floor applied to every segment clip")
    x264_preset: str = Field(default="ultrafast", description="libx264 preset")
    x264_crf: int = Field(default=30, description="libx264 constant rate factor")
    audio_bitrate: str = Field(default="128k", description="AAC bitrate of the final mix")
    background_music_volume: float = Field(
        default=0.15, description="Gain applied to background music under the voice"
    )
    subtitle_burn_in: bool = Field(default=True, description="Burn captions into frames when requested")
    ffmpeg_binary: Optional[str] = Field(
        default=None, description="Explicit ffmpeg path (defaults to the imageio-ffmpeg binary)"
    )
    max_parallel_encodes: int = Field(
        default=2, description="Maximum simultaneous encoder subprocesses in this process"
    )

    # ========================================================================
    # Photo Spotlights
    # ========================================================================
    photo_min_seconds: float = Field(default=5.0, description="Minimum spotlight time per photo")
    photo_max_segment_share: float = Field(
        default=0.98, description="Maximum share of a segment covered by spotlights"
    )
    photo_lead_in_seconds: float = Field(default=3.0, description="Lead-in before the first spotlight")
    photo_tail_seconds: float = Field(default=0.5, description="Gap after the last tail-anchored spotlight")
    short_segment_seconds: float = Field(
        default=3.8, description="Segments shorter than this show a single spotlight"
    )
    spotlight_anchor: str = Field(
        default="lead_in", description="Spotlight placement: 'lead_in' or 'tail'"
    )
    spotlight_anchor_overrides: dict[str, str] = Field(
        default_factory=dict,
        description="Per-intent placement overrides, e.g. {\"cta\": \"tail\"}",
    )

    # ========================================================================
    # Rate Limiting & Parallelism
    # ========================================================================
    enable_rate_limiting: bool = Field(default=True, description="Throttle external API calls")
    openai_rate_limit: int = Field(default=60, description="OpenAI API calls per minute")
    pexels_rate_limit: int = Field(default=100, description="Pexels API calls per minute")
    max_parallel_api_calls: int = Field(
        default=5, description="Maximum concurrent stock lookups within one render"
    )
    http_timeout_seconds: float = Field(default=45.0, description="Timeout for HTTP downloads")

    # ========================================================================
    # Object Storage
    # ========================================================================
    storage_backend: str = Field(default="local", description="Storage backend: 's3' or 'local'")
    local_storage_path: str = Field(default="storage", description="Root directory of the local backend")
    aws_region: Optional[str] = Field(default=None, description="AWS region for S3")
    output_bucket: str = Field(default="iendorse-audio-assets", description="Bucket for rendered videos")
    video_prefix: str = Field(default="ai-generated-videos/", description="Key prefix for rendered videos")
    audio_bucket: str = Field(default="iendorse-audio-assets", description="Bucket holding background music")
    music_prefix: str = Field(default="background-music/", description="Key prefix for background music")

    # ========================================================================
    # Jobs, Wallet & Temp Files
    # ========================================================================
    job_ttl_seconds: float = Field(default=3600.0, description="Job registry entry lifetime (default: 1 hour)")
    script_generation_cost: int = Field(default=2, description="Wallet units charged for a script")
    video_generation_cost: int = Field(default=5, description="Wallet units charged for a video")
    temp_dir: Optional[str] = Field(default=None, description="Parent directory for render workspaces")


# Global settings instance
settings = Settings()
