"""Shared pytest fixtures and configuration."""

from pathlib import Path
from typing import Optional

import pytest

from promo_video.core.config import Settings
from promo_video.core.logging_config import get_logger
from promo_video.models.schemas import Segment, SegmentClipSpec
from promo_video.services.ffmpeg_engine import EncodingEngine
from promo_video.utils.io_utils import TempWorkspace


class FakeEngine(EncodingEngine):
    """EncodingEngine that writes placeholder files and records every call."""

    def __init__(self):
        self.rendered: list[SegmentClipSpec] = []
        self.concatenated: list[list[Path]] = []
        self.audio_concatenated: list[list[Path]] = []
        self.muxed: list[dict] = []

    def render_clip(self, spec: SegmentClipSpec) -> Path:
        self.rendered.append(spec)
        spec.output_path.write_bytes(b"clip")
        return spec.output_path

    def concat(self, clip_paths: list[Path], output_path: Path) -> Path:
        self.concatenated.append(list(clip_paths))
        output_path.write_bytes(b"joined")
        return output_path

    def concat_audio(self, audio_paths: list[Path], output_path: Path) -> Path:
        self.audio_concatenated.append(list(audio_paths))
        output_path.write_bytes(b"voice")
        return output_path

    def mux(self, video_path, voice_path, output_path, music_path=None, captions_path=None) -> Path:
        self.muxed.append(
            {"video": video_path, "voice": voice_path, "music": music_path, "captions": captions_path}
        )
        output_path.write_bytes(b"final video")
        return output_path

    def probe_duration(self, media_path: Path) -> float:
        # FakeTTS writes the clip duration as the file body
        return float(Path(media_path).read_text())


class FakeTTS:
    """TTS client stand-in: 0.5 seconds of speech per word, optional failure at one call."""

    def __init__(self, fail_at: Optional[int] = None, seconds_per_word: float = 0.5):
        self.fail_at = fail_at
        self.seconds_per_word = seconds_per_word
        self.calls: list[dict] = []

    def synthesize(self, text, output_path, voice_id, instructions=None):
        position = len(self.calls)
        self.calls.append({"text": text, "voice": voice_id, "instructions": instructions})
        if self.fail_at is not None and position == self.fail_at:
            raise RuntimeError("speech service returned 500")
        output_path.write_text(str(len(text.split()) * self.seconds_per_word))
        return output_path


@pytest.fixture
def settings(tmp_path):
    """Create test settings instance."""
    return Settings(
        openai_api_key="test-key",
        pexels_api_key="test-pexels-key",
        enable_rate_limiting=False,
        storage_backend="local",
        local_storage_path=str(tmp_path / "storage"),
        temp_dir=str(tmp_path / "work"),
        spotlight_anchor="lead_in",
        spotlight_anchor_overrides={},
        subtitle_burn_in=True,
    )


@pytest.fixture
def logger():
    """Create test logger instance."""
    return get_logger(__name__)


@pytest.fixture
def fake_engine():
    return FakeEngine()


@pytest.fixture
def tts_factory():
    """FakeTTS constructor, e.g. ``tts_factory(fail_at=2)``."""
    return FakeTTS


@pytest.fixture
def workspace(tmp_path):
    """Open render workspace, removed after the test."""
    with TempWorkspace(str(tmp_path / "ws")) as ws:
        yield ws


@pytest.fixture
def marketing_segments():
    """Four-segment marketing script."""
    return [
        Segment(index=0, id="hook", intent="hook", text="Hungry for real wood fired pizza tonight?"),
        Segment(index=1, id="problem", intent="problem", text="Delivery pizza arrives cold and soggy every time."),
        Segment(index=2, id="solution", intent="solution", text="Luigi's bakes every pizza fresh in a stone oven."),
        Segment(index=3, id="cta", intent="cta", text="Order now and get free garlic knots."),
    ]
