"""Voice Synthesizer - per-segment narration, measured and joined into one track."""

from pathlib import Path
from typing import Any, Optional

from promo_video.core.config import Settings
from promo_video.core.exceptions import VoiceSynthesisError
from promo_video.models.schemas import Segment, SegmentTiming, VoiceTrack
from promo_video.services.ffmpeg_engine import EncodingEngine
from promo_video.services.tts_client import TTSClient
from promo_video.utils.io_utils import TempWorkspace

SERVICE_VOICES = frozenset({"alloy", "ash", "ballad", "coral", "echo", "fable", "onyx", "nova", "sage", "shimmer", "verse"})

VOICE_LABELS = {
    "ava": "alloy",
    "noah": "echo",
    "sofia": "shimmer",
    "mason": "onyx",
}

TONE_INSTRUCTIONS = {
    "friendly": "Warm, friendly, and welcoming. Natural pace.",
    "excited": "Upbeat, energetic, enthusiastic. Slightly faster pace.",
    "urgent": "Urgent, persuasive, faster pace, strong emphasis.",
    "professional": "Clear, confident, professional. Calm and steady.",
    "calm": "Soft, relaxed and reassuring. Unhurried pace.",
    "news": "Neutral newsreader delivery. Crisp and even pace.",
}


def resolve_voice(label: Optional[str], default: str = "alloy") -> str:
    """Map a UI voice label (or a raw service voice id) to a service voice id."""
    key = str(label or "").strip().lower()
    if key in SERVICE_VOICES:
        return key
    return VOICE_LABELS.get(key, default)


def tone_to_instructions(tone: Optional[str]) -> Optional[str]:
    """Delivery instruction for a tone label; None lets the service use its default."""
    return TONE_INSTRUCTIONS.get(str(tone or "").strip().lower())


class VoiceSynthesizer:
    """Builds the narration track and the per-segment timings."""

    def __init__(
        self,
        settings: Settings,
        logger: Any,
        engine: EncodingEngine,
        tts_client: Optional[TTSClient] = None,
    ):
        """
        Initialize voice synthesizer.

        Args:
            settings: Application settings
            logger: Logger instance
            engine: Encoding engine used to join clips and probe durations
            tts_client: Optional TTS client (created from settings otherwise)
        """
        self.settings = settings
        self.logger = logger
        self.engine = engine
        self.tts_client = tts_client or TTSClient(settings, logger)

    def synthesize(self, segments: list[Segment], voice: str, tone: str, workspace: TempWorkspace) -> VoiceTrack:
        """
        Synthesize every segment in order and join them.

        Calls are sequential so each clip stays aligned with its segment index.

        Args:
            segments: Ordered segments
            voice: Voice label or service voice id
            tone: Tone label
            workspace: Render workspace for the audio files

        Returns:
            VoiceTrack with merged audio, per-segment paths and timings

        Raises:
            VoiceSynthesisError: If any synthesis call fails (carries the segment index)
        """
        voice_id = resolve_voice(voice, self.settings.default_tts_voice)
        instructions = tone_to_instructions(tone)
        self.logger.info(f"Synthesizing {len(segments)} segments with voice={voice_id}, tone={tone or 'default'}")

        segment_paths: list[Path] = []
        for segment in segments:
            output_path = workspace.path(f"seg_{segment.index:02d}", ".mp3")
            try:
                self.tts_client.synthesize(segment.text, output_path, voice_id, instructions)
            except Exception as e:
                self.logger.error(f"Speech synthesis failed for segment {segment.index} ({segment.id}): {e}")
                raise VoiceSynthesisError(str(e), segment_index=segment.index) from e
            segment_paths.append(output_path)

        merged_path = self.engine.concat_audio(segment_paths, workspace.path("voice", ".mp3"))

        timings = [
            SegmentTiming(
                index=segment.index,
                segment_id=segment.id,
                duration=self.engine.probe_duration(path),
                min_clip_seconds=self.settings.min_segment_seconds,
            )
            for segment, path in zip(segments, segment_paths)
        ]
        total = sum(t.duration for t in timings)
        self.logger.info(f"Voice track ready: {total:.2f}s across {len(timings)} segments")
        return VoiceTrack(merged_audio_path=merged_path, segment_audio_paths=segment_paths, timings=timings)
