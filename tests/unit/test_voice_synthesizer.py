"""Tests for Voice Synthesizer service."""

from unittest.mock import MagicMock

import pytest

from promo_video.core.exceptions import VoiceSynthesisError
from promo_video.services.tts_client import TTSClient
from promo_video.services.voice_synthesizer import VoiceSynthesizer, resolve_voice, tone_to_instructions


@pytest.mark.parametrize(
    "label,expected",
    [
        ("Ava", "alloy"),
        ("noah", "echo"),
        ("SOFIA", "shimmer"),
        ("Mason", "onyx"),
        ("nova", "nova"),
        ("fable", "fable"),
        ("Bartholomew", "alloy"),
        (None, "alloy"),
    ],
)
def test_resolve_voice(label, expected):
    assert resolve_voice(label) == expected


def test_resolve_voice_custom_default():
    assert resolve_voice("unknown", default="echo") == "echo"


def test_tone_to_instructions():
    assert tone_to_instructions("friendly") == "Warm, friendly, and welcoming. Natural pace."
    assert tone_to_instructions("URGENT") == "Urgent, persuasive, faster pace, strong emphasis."
    assert tone_to_instructions("sarcastic") is None
    assert tone_to_instructions(None) is None


def test_synthesize_builds_track_in_order(settings, logger, fake_engine, tts_factory, workspace, marketing_segments):
    """Test every segment is synthesized in order and timed from its own clip."""
    tts = tts_factory()
    synthesizer = VoiceSynthesizer(settings, logger, fake_engine, tts_client=tts)

    track = synthesizer.synthesize(marketing_segments, "Noah", "excited", workspace)

    assert [call["text"] for call in tts.calls] == [s.text for s in marketing_segments]
    assert all(call["voice"] == "echo" for call in tts.calls)
    assert all(call["instructions"].startswith("Upbeat") for call in tts.calls)

    assert [t.index for t in track.timings] == [0, 1, 2, 3]
    assert [t.segment_id for t in track.timings] == ["hook", "problem", "solution", "cta"]
    expected = [len(s.text.split()) * 0.5 for s in marketing_segments]
    assert track.durations == pytest.approx(expected)
    assert track.total_duration == pytest.approx(sum(expected))

    assert fake_engine.audio_concatenated == [track.segment_audio_paths]
    assert track.merged_audio_path.exists()


def test_clip_duration_floor(settings, logger, fake_engine, tts_factory, workspace, marketing_segments):
    """Test very short narration keeps its measured duration but gets a clip floor."""
    tts = tts_factory(seconds_per_word=0.1)
    synthesizer = VoiceSynthesizer(settings, logger, fake_engine, tts_client=tts)

    track = synthesizer.synthesize(marketing_segments[:1], "Ava", "friendly", workspace)

    timing = track.timings[0]
    assert timing.duration == pytest.approx(0.7)
    assert timing.clip_duration == pytest.approx(0.8)


def test_failure_carries_segment_index(settings, logger, fake_engine, tts_factory, workspace, marketing_segments):
    """Test a failure at segment 2 aborts with that index and builds no track."""
    tts = tts_factory(fail_at=2)
    synthesizer = VoiceSynthesizer(settings, logger, fake_engine, tts_client=tts)

    with pytest.raises(VoiceSynthesisError) as exc_info:
        synthesizer.synthesize(marketing_segments, "Ava", "friendly", workspace)

    assert exc_info.value.segment_index == 2
    assert exc_info.value.stage == "voice"
    assert len(tts.calls) == 3
    assert fake_engine.audio_concatenated == []


def test_tts_client_request(settings, logger, tmp_path):
    """Test the speech request carries model, voice, input and instructions."""
    client = MagicMock()
    tts = TTSClient(settings, logger, client=client)
    output = tmp_path / "seg.mp3"

    tts.synthesize(" Hello there ", output, "alloy", "Calm and steady.")

    kwargs = client.audio.speech.create.call_args.kwargs
    assert kwargs == {
        "model": settings.tts_model,
        "voice": "alloy",
        "input": "Hello there",
        "response_format": "mp3",
        "instructions": "Calm and steady.",
    }
    client.audio.speech.create.return_value.write_to_file.assert_called_once_with(output)


def test_tts_client_omits_empty_instructions(settings, logger, tmp_path):
    client = MagicMock()
    TTSClient(settings, logger, client=client).synthesize("Hi", tmp_path / "a.mp3", "echo")

    assert "instructions" not in client.audio.speech.create.call_args.kwargs


def test_tts_client_rejects_empty_text(settings, logger, tmp_path):
    with pytest.raises(ValueError):
        TTSClient(settings, logger, client=MagicMock()).synthesize("  ", tmp_path / "a.mp3", "echo")
