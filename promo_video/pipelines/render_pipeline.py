"""Render pipeline orchestrator - brief → script → voice + media → video → upload."""

import argparse
import json
import sys
import time
import uuid
from pathlib import Path
from typing import Any, Optional

from promo_video.core.config import Settings, settings
from promo_video.core.exceptions import PipelineError, ScriptGenerationError, ServiceUnavailableError
from promo_video.core.logging_config import get_logger, setup_logging
from promo_video.models.schemas import (
    Brief,
    InferredContext,
    JobMetadata,
    MediaHints,
    MediaItem,
    MediaPlanEntry,
    PlanSummaryEntry,
    RenderRequest,
    RenderResult,
    Script,
    ScriptResult,
    VoiceTrack,
    WalletOutcome,
)
from promo_video.services.composition_engine import CompositionEngine
from promo_video.services.ffmpeg_engine import FFmpegEngine
from promo_video.services.job_registry import JobRegistry
from promo_video.services.ledger import InMemoryLedger, Ledger
from promo_video.services.media_planner import MediaPlanner
from promo_video.services.script_segmenter import ScriptSegmenter, should_infer_context
from promo_video.services.subtitle_builder import build_captions, to_srt
from promo_video.services.voice_synthesizer import VoiceSynthesizer
from promo_video.storage.object_storage import ObjectStorage, StoredObject, build_storage
from promo_video.utils.error_handler import format_error_message, get_failure_suggestion
from promo_video.utils.image_utils import normalize_photo
from promo_video.utils.io_utils import TempWorkspace, is_image_path, is_video_path, slugify
from promo_video.utils.parallel_executor import ParallelExecutor
from promo_video.utils.text_utils import normalize_category


class RenderPipeline:
    """Runs one render (or one script generation) end to end."""

    def __init__(
        self,
        settings: Settings,
        logger: Any,
        segmenter: ScriptSegmenter,
        voice_synthesizer: VoiceSynthesizer,
        media_planner: MediaPlanner,
        composition_engine: CompositionEngine,
        storage: ObjectStorage,
        job_registry: JobRegistry,
        ledger: Optional[Ledger] = None,
        executor: Optional[ParallelExecutor] = None,
    ):
        """
        Initialize the pipeline.

        Args:
            settings: Application settings
            logger: Logger instance
            segmenter: Script segmenter
            voice_synthesizer: Voice synthesizer
            media_planner: Media planner
            composition_engine: Composition engine
            storage: Object storage backend
            job_registry: Registry of finished renders
            ledger: Optional wallet ledger; without one nothing is charged
            executor: Optional executor for the voice/media fan-out
        """
        self.settings = settings
        self.logger = logger
        self.segmenter = segmenter
        self.voice_synthesizer = voice_synthesizer
        self.media_planner = media_planner
        self.composition_engine = composition_engine
        self.storage = storage
        self.job_registry = job_registry
        self.ledger = ledger
        self.executor = executor or ParallelExecutor(settings, logger)

    # ------------------------------------------------------------------
    # Wallet
    # ------------------------------------------------------------------

    def _preflight(self, account_id: Optional[str], cost: int) -> None:
        if self.ledger is None or account_id is None:
            return
        balance = self.ledger.ensure_sufficient(account_id, cost)
        self.logger.debug(f"Account {account_id} has {balance} units (needs {cost})")

    def _charge(self, account_id: Optional[str], cost: int) -> WalletOutcome:
        if self.ledger is None or account_id is None:
            return WalletOutcome()
        remaining = self.ledger.deduct_if_sufficient(account_id, cost)
        self.logger.info(f"Deducted {cost} units from account {account_id} ({remaining} remaining)")
        return WalletOutcome(units_deducted=cost, remaining_units=remaining)

    # ------------------------------------------------------------------
    # Script
    # ------------------------------------------------------------------

    def _infer_context(self, brief: Brief) -> Optional[InferredContext]:
        if not should_infer_context(brief):
            return None
        text = "\n".join(part for part in (brief.title, brief.description, brief.context) if part.strip())
        try:
            return self.segmenter.infer_context(text)
        except (ServiceUnavailableError, ScriptGenerationError) as e:
            self.logger.warning(f"Context inference failed, continuing without it: {e}")
            return None

    def _prepare_script(
        self, brief: Brief, raw_segments: Optional[list[dict[str, Any]]]
    ) -> tuple[Script, Optional[InferredContext]]:
        if raw_segments:
            self.logger.info(f"Using {len(raw_segments)} caller-supplied segments")
            return self.segmenter.script_from_segments(brief, raw_segments), None
        context = self._infer_context(brief)
        return self.segmenter.generate_script(brief, context), context

    def generate_script(self, brief: Brief, account_id: Optional[str] = None) -> ScriptResult:
        """
        Generate a segmented script without rendering, charging the script cost.

        Raises:
            InsufficientFundsError: Before any text-generation call, if the wallet is short
            ScriptGenerationError: If no usable script was produced
        """
        cost = self.settings.script_generation_cost
        self._preflight(account_id, cost)
        script, context = self._prepare_script(brief, None)
        wallet = self._charge(account_id, cost)
        return ScriptResult(
            script=script,
            category=normalize_category(brief.category or (context.category if context else None)),
            inferred_context=context,
            wallet=wallet,
        )

    # ------------------------------------------------------------------
    # Render
    # ------------------------------------------------------------------

    def _fetch_caller_media(
        self, media: list[MediaItem], workspace: TempWorkspace
    ) -> tuple[list[Path], list[Path]]:
        videos: list[Path] = []
        photos: list[Path] = []
        for item in media:
            local_path = self.storage.fetch_media(item, workspace)
            kind = (item.file_type or "").lower()
            if is_video_path(local_path) or kind.startswith("video/"):
                videos.append(local_path)
            elif is_image_path(local_path) or kind.startswith("image/"):
                try:
                    photos.append(normalize_photo(local_path, workspace.path("photo", ".jpg"), self.logger))
                except ValueError as e:
                    self.logger.warning(f"Skipping unreadable photo {item.file_path}: {e}")
            else:
                self.logger.warning(f"Ignoring media of unknown type: {item.file_path}")
        return videos, photos

    @staticmethod
    def _media_hints(brief: Brief, category: str, context: Optional[InferredContext]) -> MediaHints:
        context_text = ""
        if context:
            context_text = " ".join(v for v in (context.brand, context.offer, context.audience, context.location) if v)
        return MediaHints(
            category=category,
            keywords=context.keywords if context else [],
            title=brief.title,
            description=brief.description,
            context_text=" ".join(part for part in (brief.context, context_text) if part),
        )

    def _voice_and_media(
        self,
        request: RenderRequest,
        script: Script,
        hints: MediaHints,
        videos: list[Path],
        photos: list[Path],
        workspace: TempWorkspace,
    ) -> tuple[VoiceTrack, list[MediaPlanEntry]]:
        results = self.executor.execute_batch(
            [
                lambda: self.voice_synthesizer.synthesize(
                    script.segments, request.brief.voice, request.brief.tone, workspace
                ),
                lambda: self.media_planner.plan(script.segments, videos, photos, hints, workspace),
            ],
            task_names=["voice", "media_plan"],
            max_workers=2,
        )
        (voice_track, voice_error), (plan, media_error) = results
        # Voice failures are reported first
        if voice_error is not None:
            raise voice_error
        if media_error is not None:
            raise media_error
        return voice_track, plan

    def _discard_uploads(self, uploads: list[StoredObject]) -> None:
        for stored in uploads:
            try:
                self.storage.delete(stored.key)
            except PipelineError as e:
                self.logger.error(f"Could not remove unregistered upload {stored.key}: {e}")

    def render(self, request: RenderRequest) -> RenderResult:
        """
        Produce one finished video for a request.

        Args:
            request: Brief, optional caller segments, caller media and options

        Returns:
            RenderResult descriptor of the registered job

        Raises:
            PipelineError: Any stage failure, with the stage identified; nothing is
                registered or charged and temp files are removed
        """
        render_id = uuid.uuid4().hex
        cost = self.settings.video_generation_cost
        brief = request.brief
        log = self.logger.bind(render_id=render_id)
        start_time = time.time()

        self._preflight(request.account_id, cost)

        with TempWorkspace(self.settings.temp_dir, logger=log) as workspace:
            log.bind(stage="script").info("Step 1: Preparing script...")
            script, context = self._prepare_script(brief, request.segments)
            category = normalize_category(brief.category or (context.category if context else None))

            log.bind(stage="media_fetch").info("Step 2: Fetching caller media...")
            videos, photos = self._fetch_caller_media(request.media, workspace)
            hints = self._media_hints(brief, category, context)

            log.bind(stage="voice_and_media").info("Step 3: Synthesizing voice and planning media...")
            voice_track, plan = self._voice_and_media(request, script, hints, videos, photos, workspace)

            captions_path = None
            srt_text = None
            if request.subtitles:
                log.bind(stage="captions").info("Step 4: Building captions...")
                srt_text = to_srt(build_captions(script.segments, voice_track.timings))
                captions_path = workspace.path("captions", ".srt")
                captions_path.write_text(srt_text, encoding="utf-8")

            music = self.storage.fetch_background_music(request.background_music, workspace)
            music_name, music_path = music if music else ("", None)

            log.bind(stage="composition").info("Step 5: Composing video...")
            final_path = self.composition_engine.compose(
                plan,
                voice_track.timings,
                voice_track,
                workspace,
                music_path=music_path,
                captions_path=captions_path,
            )

            log.bind(stage="upload").info("Step 6: Uploading artifacts...")
            uploads: list[StoredObject] = []
            try:
                video = self.storage.upload_video(final_path, render_id)
                uploads.append(video)
                subtitles = self.storage.upload_text(srt_text, render_id) if srt_text else None
                if subtitles:
                    uploads.append(subtitles)
                wallet = self._charge(request.account_id, cost)
            except PipelineError:
                self._discard_uploads(uploads)
                raise

        duration = voice_track.total_duration
        job_id = self.job_registry.register(
            video.url,
            JobMetadata(
                subtitle_location=subtitles.url if subtitles else None,
                script_snapshot=script.model_dump(mode="json"),
                voice=brief.voice,
                tone=brief.tone,
                duration_seconds=duration,
            ),
        )
        job = self.job_registry.get(job_id)
        elapsed = time.time() - start_time
        log.bind(job_id=job_id).info(f"Render complete in {elapsed:.2f}s ({duration:.2f}s of video)")

        return RenderResult(
            job_id=job_id,
            video_url=video.url,
            subtitle_url=subtitles.url if subtitles else None,
            expires_at=job.expires_at,
            voice=brief.voice,
            tone=brief.tone,
            category=category,
            inferred_context=context,
            script=script,
            duration_seconds=duration,
            background_music=music_name,
            wallet=wallet,
            user_videos=len(videos),
            user_photos=len(photos),
            plan=[
                PlanSummaryEntry(
                    index=entry.index,
                    intent=entry.intent,
                    background_source=entry.background_source,
                    overlay_photos=len(entry.overlay_photo_paths),
                )
                for entry in plan
            ],
        )


def build_pipeline(settings: Settings, logger: Any, ledger: Optional[Ledger] = None) -> RenderPipeline:
    """Wire the production services together."""
    executor = ParallelExecutor(settings, logger)
    engine = FFmpegEngine(settings, logger)
    return RenderPipeline(
        settings,
        logger,
        segmenter=ScriptSegmenter(settings, logger),
        voice_synthesizer=VoiceSynthesizer(settings, logger, engine),
        media_planner=MediaPlanner(settings, logger, executor=executor),
        composition_engine=CompositionEngine(settings, logger, engine, executor=executor),
        storage=build_storage(settings, logger),
        job_registry=JobRegistry(ttl_seconds=settings.job_ttl_seconds),
        ledger=ledger,
        executor=executor,
    )


def main():
    """Main entrypoint for the render pipeline."""
    parser = argparse.ArgumentParser(
        description="Promo Video Factory - segmented vertical video renderer",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--title", type=str, default="", help="Campaign title")
    parser.add_argument("--description", type=str, default="", help="Campaign description")
    parser.add_argument("--context", type=str, default="", help="Additional free-text context")
    parser.add_argument("--category", type=str, default=None, help="Business category (e.g., restaurant)")
    parser.add_argument(
        "--tone",
        type=str,
        default="friendly",
        help="Delivery tone: friendly, excited, urgent, professional (default: friendly)",
    )
    parser.add_argument("--voice", type=str, default="Ava", help="Voice label or service voice id (default: Ava)")
    parser.add_argument(
        "--segments-file",
        type=str,
        default=None,
        help="JSON file with a list of segments ({id, intent, text, onScreenText}); skips script generation",
    )
    parser.add_argument(
        "--media",
        action="append",
        default=[],
        help="Caller media (URL, storage key or path) in intended order; repeat for several files",
    )
    parser.add_argument("--music", type=str, default=None, help="Background music asset name (default: random)")
    parser.add_argument("--subtitles", action="store_true", help="Burn captions and upload an SRT file")
    parser.add_argument("--script-only", action="store_true", help="Only generate the segmented script")
    parser.add_argument(
        "--wallet-units",
        type=int,
        default=None,
        help="Charge an in-memory wallet holding this many units (default: no wallet)",
    )
    parser.add_argument(
        "--output-dir",
        type=str,
        default="outputs",
        help="Directory for the JSON descriptor (default: outputs)",
    )

    args = parser.parse_args()

    if not (args.title or args.description or args.context or args.segments_file):
        parser.error("Provide --title/--description/--context or --segments-file")

    setup_logging(log_level=settings.log_level, log_file=Path(settings.log_file) if settings.log_file else None)
    logger = get_logger(__name__, title=args.title or "untitled")

    logger.info("=" * 60)
    logger.info("Promo Video Factory - Render Pipeline")
    logger.info(f"Mode: {'SCRIPT ONLY' if args.script_only else 'FULL RENDER'}")
    logger.info("=" * 60)

    account_id = "cli" if args.wallet_units is not None else None
    ledger = InMemoryLedger({"cli": args.wallet_units}) if account_id else None
    brief = Brief(
        title=args.title,
        description=args.description,
        context=args.context,
        category=args.category,
        tone=args.tone,
        voice=args.voice,
    )

    try:
        segments = None
        if args.segments_file:
            segments = json.loads(Path(args.segments_file).read_text(encoding="utf-8"))
            if isinstance(segments, dict):
                segments = segments.get("segments", [])

        pipeline = build_pipeline(settings, logger, ledger=ledger)
        if args.script_only:
            result = pipeline.generate_script(brief, account_id=account_id)
        else:
            result = pipeline.render(
                RenderRequest(
                    brief=brief,
                    segments=segments,
                    media=[MediaItem(file_path=m) for m in args.media],
                    background_music=args.music,
                    subtitles=args.subtitles,
                    account_id=account_id,
                )
            )

        output_dir = Path(args.output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        output_path = output_dir / f"{slugify(args.title) or 'promo'}_{uuid.uuid4().hex[:8]}.json"
        output_path.write_text(result.model_dump_json(indent=2), encoding="utf-8")

        logger.info("=" * 60)
        logger.info("COMPLETE!")
        logger.info(f"Descriptor: {output_path}")
        if isinstance(result, RenderResult):
            logger.info(f"Video: {result.video_url} ({result.duration_seconds:.2f}s)")
        logger.info("=" * 60)
        return 0

    except KeyboardInterrupt:
        logger.warning("Pipeline interrupted by user")
        return 1
    except PipelineError as e:
        operation = "Generating script" if args.script_only else "Rendering video"
        logger.error(format_error_message(operation, e, suggestion=get_failure_suggestion(e)))
        return 1
    except Exception as e:
        logger.exception(f"Pipeline failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
