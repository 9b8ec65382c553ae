"""Encoding engine - runs ffmpeg as a subprocess behind a narrow interface.

Pipeline code only talks to ``EncodingEngine``; every piece of ffmpeg
command-line and filter-graph syntax lives in this module.
"""

import subprocess
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional

from promo_video.core.config import Settings
from promo_video.core.exceptions import CompositionError
from promo_video.models.schemas import SegmentClipSpec

KEN_BURNS_STEP = 0.0012
KEN_BURNS_MAX_ZOOM = 1.12
MAX_FADE_SECONDS = 0.25


class EncodingEngine(ABC):
    """Operations the pipeline needs from a media encoder."""

    @abstractmethod
    def render_clip(self, spec: SegmentClipSpec) -> Path:
        """Render one muted segment clip of exactly ``spec.duration`` seconds."""

    @abstractmethod
    def concat(self, clip_paths: list[Path], output_path: Path) -> Path:
        """Join video clips in order without re-encoding."""

    @abstractmethod
    def concat_audio(self, audio_paths: list[Path], output_path: Path) -> Path:
        """Join audio clips in order at the container level."""

    @abstractmethod
    def mux(
        self,
        video_path: Path,
        voice_path: Path,
        output_path: Path,
        music_path: Optional[Path] = None,
        captions_path: Optional[Path] = None,
    ) -> Path:
        """Attach voice (plus optional music and burned captions) to the video."""

    @abstractmethod
    def probe_duration(self, media_path: Path) -> float:
        """Return the duration of a media file in seconds."""


def escape_filter_path(path: Path) -> str:
    """Escape a file path for use inside a quoted filter argument."""
    return str(path).replace("\\", "/").replace(":", "\\:").replace("'", "\\'")


def _concat_list_line(path: Path) -> str:
    return "file '" + str(Path(path).resolve()).replace("'", "'\\''") + "'"


def spotlight_fade(window_duration: float) -> float:
    return min(MAX_FADE_SECONDS, window_duration * 0.25)


def build_segment_filtergraph(spec: SegmentClipSpec, width: int, height: int, fps: int) -> str:
    """
    Build the filter graph for one segment clip.

    Input 0 is the (stream-looped) background video; inputs 1..n are the
    spotlight photos in window order. The graph ends in ``[vout]``.
    """
    duration = f"{spec.duration:.3f}"
    filters = [
        f"[0:v]scale={width}:{height}:force_original_aspect_ratio=increase,"
        f"crop={width}:{height},setsar=1,fps={fps},format=yuv420p,"
        f"trim=duration={duration},setpts=PTS-STARTPTS[base]"
    ]
    last = "base"

    for i, window in enumerate(spec.spotlights):
        frames = max(1, round(window.duration * fps))
        fade = spotlight_fade(window.duration)
        fade_out_start = max(0.0, window.duration - fade)
        filters.append(
            f"[{i + 1}:v]scale={width * 2}:{height * 2}:force_original_aspect_ratio=increase,"
            f"crop={width * 2}:{height * 2},"
            f"zoompan=z='min(zoom+{KEN_BURNS_STEP},{KEN_BURNS_MAX_ZOOM})':"
            f"x='iw/2-(iw/zoom/2)':y='ih/2-(ih/zoom/2)':d={frames}:s={width}x{height}:fps={fps},"
            f"format=rgba,"
            f"fade=t=in:st=0:d={fade:.3f}:alpha=1,"
            f"fade=t=out:st={fade_out_start:.3f}:d={fade:.3f}:alpha=1,"
            f"setpts=PTS-STARTPTS+{window.start:.3f}/TB[sp{i}]"
        )
        filters.append(
            f"[{last}][sp{i}]overlay=0:0:enable='gte(t,{window.start:.3f})*lt(t,{window.end:.3f})'[v{i}]"
        )
        last = f"v{i}"

    filters.append(f"[{last}]format=yuv420p[vout]")
    return ";".join(filters)


def build_mix_filtergraph(
    has_music: bool,
    captions_path: Optional[Path],
    music_volume: float,
) -> tuple[str, str, str]:
    """
    Build the final assembly filter graph.

    Returns:
        (filtergraph, video map, audio map); the graph is empty when neither
        captions nor music are present
    """
    filters = []
    video_map = "0:v"
    audio_map = "1:a"

    if captions_path is not None:
        filters.append(f"[0:v]subtitles=filename='{escape_filter_path(captions_path)}'[vsub]")
        video_map = "[vsub]"

    if has_music:
        filters.append("[1:a]volume=1.0[voice]")
        filters.append(f"[2:a]volume={music_volume:.3f},aloop=loop=-1:size=2e+09[bg]")
        filters.append("[voice][bg]amix=inputs=2:duration=shortest:dropout_transition=0[aout]")
        audio_map = "[aout]"

    return ";".join(filters), video_map, audio_map


class FFmpegEngine(EncodingEngine):
    """EncodingEngine implemented with ffmpeg subprocesses."""

    def __init__(self, settings: Settings, logger: Any):
        """
        Initialize the ffmpeg engine.

        One instance is shared by all renders in the process; its semaphore
        bounds the number of simultaneous encoder subprocesses.

        Args:
            settings: Application settings
            logger: Logger instance
        """
        self.settings = settings
        self.logger = logger
        self.width = settings.video_width
        self.height = settings.video_height
        self.fps = settings.video_fps
        self._binary = settings.ffmpeg_binary
        self._encode_slots = threading.BoundedSemaphore(max(1, settings.max_parallel_encodes))

    @property
    def binary(self) -> str:
        if not self._binary:
            import imageio_ffmpeg

            self._binary = imageio_ffmpeg.get_ffmpeg_exe()
        return self._binary

    def _video_codec_args(self) -> list[str]:
        return [
            "-c:v", "libx264",
            "-preset", self.settings.x264_preset,
            "-crf", str(self.settings.x264_crf),
            "-pix_fmt", "yuv420p",
        ]

    def _run(self, args: list[str], stage: str, bounded: bool = True) -> None:
        cmd = [self.binary, "-y", "-hide_banner", "-loglevel", "error", *args]
        self.logger.debug(f"ffmpeg [{stage}]: {' '.join(cmd)}")
        try:
            if bounded:
                with self._encode_slots:
                    subprocess.run(cmd, check=True, capture_output=True, text=True)
            else:
                subprocess.run(cmd, check=True, capture_output=True, text=True)
        except subprocess.CalledProcessError as e:
            stderr_tail = (e.stderr or "").strip()[-800:]
            raise CompositionError(f"ffmpeg {stage} exited with {e.returncode}: {stderr_tail}", stage=stage) from e
        except OSError as e:
            raise CompositionError(f"Could not run ffmpeg for {stage}: {e}", stage=stage) from e

    def render_clip(self, spec: SegmentClipSpec) -> Path:
        if not spec.background_video_path.exists():
            raise CompositionError(
                f"Missing background video for segment {spec.index}: {spec.background_video_path}",
                stage="segment_clip",
            )

        args = ["-stream_loop", "-1", "-i", str(spec.background_video_path)]
        for window in spec.spotlights:
            args += ["-i", str(window.photo_path)]
        args += [
            "-filter_complex", build_segment_filtergraph(spec, self.width, self.height, self.fps),
            "-map", "[vout]",
            "-t", f"{spec.duration:.3f}",
            "-r", str(self.fps),
            *self._video_codec_args(),
            "-an",
            "-movflags", "+faststart",
            str(spec.output_path),
        ]
        self._run(args, stage="segment_clip")
        self.logger.debug(
            f"Rendered segment {spec.index} clip ({spec.duration:.2f}s, {len(spec.spotlights)} spotlights)"
        )
        return spec.output_path

    def _concat_copy(self, paths: list[Path], output_path: Path, stage: str) -> Path:
        if not paths:
            raise CompositionError(f"Nothing to concatenate for {stage}", stage=stage)
        list_path = output_path.with_suffix(".txt")
        list_path.write_text("\n".join(_concat_list_line(p) for p in paths) + "\n", encoding="utf-8")
        self._run(
            ["-f", "concat", "-safe", "0", "-i", str(list_path), "-c", "copy", str(output_path)],
            stage=stage,
            bounded=False,
        )
        return output_path

    def concat(self, clip_paths: list[Path], output_path: Path) -> Path:
        return self._concat_copy(clip_paths, output_path, stage="concat")

    def concat_audio(self, audio_paths: list[Path], output_path: Path) -> Path:
        return self._concat_copy(audio_paths, output_path, stage="voice_concat")

    def mux(
        self,
        video_path: Path,
        voice_path: Path,
        output_path: Path,
        music_path: Optional[Path] = None,
        captions_path: Optional[Path] = None,
    ) -> Path:
        has_music = music_path is not None and music_path.exists()
        burn_captions = captions_path if captions_path is not None and self.settings.subtitle_burn_in else None

        args = ["-i", str(video_path), "-i", str(voice_path)]
        if has_music:
            args += ["-i", str(music_path)]

        filtergraph, video_map, audio_map = build_mix_filtergraph(
            has_music, burn_captions, self.settings.background_music_volume
        )
        if filtergraph:
            args += ["-filter_complex", filtergraph]
        args += [
            "-map", video_map,
            "-map", audio_map,
            *self._video_codec_args(),
            "-c:a", "aac",
            "-b:a", self.settings.audio_bitrate,
            "-shortest",
            "-movflags", "+faststart",
            str(output_path),
        ]
        self._run(args, stage="final_mux")
        return output_path

    def probe_duration(self, media_path: Path) -> float:
        from moviepy import AudioFileClip

        try:
            with AudioFileClip(str(media_path)) as clip:
                duration = float(clip.duration or 0.0)
        except Exception as e:
            raise CompositionError(f"Could not read duration of {media_path.name}: {e}", stage="probe") from e
        return duration
