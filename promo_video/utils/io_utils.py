"""I/O utility functions for file and directory operations."""

import re
import shutil
import tempfile
import uuid
from pathlib import Path
from typing import Any, Optional

VIDEO_EXTENSIONS = (".mp4", ".mov", ".mkv", ".avi", ".webm")
IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".webp")
AUDIO_EXTENSIONS = (".mp3", ".wav", ".m4a", ".aac")


def slugify(text: str) -> str:
    """
    Convert text to a filesystem-safe slug.

    Args:
        text: Input text to slugify.

    Returns:
        Filesystem-safe slug string.
    """
    text = text.lower()
    text = re.sub(r"[^\w\s-]", "", text)
    text = re.sub(r"[-\s]+", "-", text)
    text = text.strip("-")
    if len(text) > 100:
        text = text[:100].rstrip("-")
    return text


def safe_filename(name: str) -> str:
    """Replace everything except letters, digits, dot, dash and underscore."""
    return re.sub(r"[^a-zA-Z0-9.\-_]", "_", name) or "file"


def is_video_path(path: Any) -> bool:
    return str(path or "").lower().endswith(VIDEO_EXTENSIONS)


def is_image_path(path: Any) -> bool:
    return str(path or "").lower().endswith(IMAGE_EXTENSIONS)


class TempWorkspace:
    """
    Private scratch directory owned by one render.

    Every temp asset of a render is created inside the workspace, and the
    whole directory is removed when the ``with`` block exits, whether the
    render succeeded, failed or was interrupted.
    """

    def __init__(self, parent_dir: Optional[str] = None, prefix: str = "render_", logger: Any = None):
        self.parent_dir = parent_dir
        self.prefix = prefix
        self.logger = logger
        self.root: Optional[Path] = None

    def __enter__(self) -> "TempWorkspace":
        if self.parent_dir:
            Path(self.parent_dir).mkdir(parents=True, exist_ok=True)
        self.root = Path(tempfile.mkdtemp(prefix=self.prefix, dir=self.parent_dir))
        if self.logger:
            self.logger.debug(f"Created workspace {self.root}")
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()

    def path(self, stem: str, suffix: str = "") -> Path:
        """Return a unique path inside the workspace (the file is not created)."""
        if self.root is None:
            raise RuntimeError("Workspace is not open")
        return self.root / f"{safe_filename(stem)}_{uuid.uuid4().hex[:8]}{suffix}"

    def cleanup(self) -> None:
        if self.root is None:
            return
        shutil.rmtree(self.root, ignore_errors=True)
        if self.logger:
            self.logger.debug(f"Removed workspace {self.root}")
        self.root = None
