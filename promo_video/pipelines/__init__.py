"""Pipeline orchestrators for Promo Video Factory."""

from promo_video.pipelines.render_pipeline import RenderPipeline, build_pipeline, main

__all__ = ["RenderPipeline", "build_pipeline", "main"]
