"""Photo preparation for spotlight overlays."""

from pathlib import Path
from typing import Any

from PIL import Image, ImageOps, UnidentifiedImageError


def normalize_photo(input_path: Path, output_path: Path, logger: Any, max_side: int = 2400) -> Path:
    """
    Re-encode a caller photo so the encoder can always read it.

    Applies EXIF orientation, converts to RGB, caps the longest side and
    rounds both dimensions down to even numbers (yuv420p needs even sizes).

    Args:
        input_path: Downloaded photo
        output_path: Destination (written as JPEG)
        logger: Logger instance
        max_side: Longest side after downscaling

    Returns:
        Path to the normalized JPEG

    Raises:
        ValueError: If the file is not a readable image
    """
    try:
        with Image.open(input_path) as img:
            img = ImageOps.exif_transpose(img)
            img = img.convert("RGB")
            img.thumbnail((max_side, max_side))
            width = max(2, img.width - img.width % 2)
            height = max(2, img.height - img.height % 2)
            if (width, height) != img.size:
                img = img.crop((0, 0, width, height))
            output_path.parent.mkdir(parents=True, exist_ok=True)
            img.save(output_path, format="JPEG", quality=92)
    except (UnidentifiedImageError, OSError) as e:
        raise ValueError(f"Unreadable photo {input_path.name}: {e}") from e

    logger.debug(f"Normalized photo {input_path.name} -> {output_path.name} ({width}x{height})")
    return output_path
