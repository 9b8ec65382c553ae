"""Utility functions for Promo Video Factory."""

from promo_video.utils.io_utils import TempWorkspace, slugify
from promo_video.utils.text_utils import extract_keywords, normalize_category

__all__ = [
    "TempWorkspace",
    "slugify",
    "extract_keywords",
    "normalize_category",
]
