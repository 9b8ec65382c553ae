"""Object storage for caller media, background music and rendered artifacts."""

import random
import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional
from urllib.parse import unquote, urlparse

import requests
from boto3.exceptions import Boto3Error
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import BaseModel

from promo_video.core.config import Settings
from promo_video.core.exceptions import StorageError
from promo_video.models.schemas import MediaItem
from promo_video.utils.io_utils import AUDIO_EXTENSIONS, TempWorkspace, safe_filename

MIME_SUFFIXES = {
    "video/mp4": ".mp4",
    "video/quicktime": ".mov",
    "video/webm": ".webm",
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "audio/mpeg": ".mp3",
}

# upload_file and download_file wrap transfer failures in boto3 exceptions
S3_ERRORS = (Boto3Error, BotoCoreError, ClientError)


class StoredObject(BaseModel):
    """An uploaded object: its storage key and a location callers can fetch."""

    key: str
    url: str


def media_suffix(item: MediaItem) -> str:
    """File suffix for a media item, from its path or its MIME hint."""
    suffix = Path(urlparse(item.file_path).path).suffix.lower()
    if suffix:
        return suffix
    return MIME_SUFFIXES.get((item.file_type or "").lower(), "")


def music_key(prefix: str, name: str) -> str:
    name = name.strip().lstrip("/")
    if name.startswith(prefix):
        return name
    return f"{prefix}{name}"


def download_url(url: str, dest: Path, timeout: float) -> Path:
    """Stream an HTTP(S) resource to ``dest``."""
    try:
        with requests.get(url, stream=True, timeout=timeout) as response:
            response.raise_for_status()
            with open(dest, "wb") as f:
                for chunk in response.iter_content(chunk_size=1024 * 256):
                    if chunk:
                        f.write(chunk)
    except requests.RequestException as e:
        raise StorageError(f"Failed to download {url}: {e}") from e
    return dest


class ObjectStorage(ABC):
    """Storage operations the pipeline relies on."""

    def __init__(self, settings: Settings, logger: Any):
        self.settings = settings
        self.logger = logger

    def fetch_media(self, item: MediaItem, workspace: TempWorkspace) -> Path:
        """
        Copy one caller media item into the workspace.

        HTTP(S) URLs are downloaded directly; anything else is resolved by the backend.

        Raises:
            StorageError: If the item cannot be fetched
        """
        dest = workspace.path("media", media_suffix(item))
        if urlparse(item.file_path).scheme in ("http", "https"):
            return download_url(item.file_path, dest, self.settings.http_timeout_seconds)
        return self._fetch_key(item.file_path, dest)

    @abstractmethod
    def _fetch_key(self, key: str, dest: Path) -> Path:
        """Download a backend object to ``dest``."""

    @abstractmethod
    def list_music(self) -> list[str]:
        """Keys of all audio assets under the music prefix."""

    @abstractmethod
    def _fetch_music(self, key: str, dest: Path) -> Optional[Path]:
        """Download a music asset; None if it does not exist."""

    def fetch_background_music(
        self,
        name: Optional[str],
        workspace: TempWorkspace,
        rng: Optional[random.Random] = None,
    ) -> Optional[tuple[str, Path]]:
        """
        Fetch a named music asset, or a random one when no name is given.

        Missing music is not an error; the render simply has no music bed.

        Returns:
            (asset name, local path), or None when no music is available
        """
        prefix = self.settings.music_prefix
        if name:
            key = music_key(prefix, name)
        else:
            keys = [k for k in self.list_music() if k.lower().endswith(AUDIO_EXTENSIONS)]
            if not keys:
                self.logger.warning("No background music available")
                return None
            key = (rng or random).choice(sorted(keys))

        dest = workspace.path("music", Path(key).suffix or ".mp3")
        path = self._fetch_music(key, dest)
        if path is None:
            self.logger.warning(f"Background music '{key}' not found; rendering without music")
            return None
        return key[len(prefix):] if key.startswith(prefix) else key, path

    @abstractmethod
    def upload_video(self, path: Path, key_id: str) -> StoredObject:
        """Upload the final video."""

    @abstractmethod
    def upload_text(self, text: str, key_id: str, suffix: str = ".srt") -> StoredObject:
        """Upload a small text artifact such as captions."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove an uploaded object."""


class S3ObjectStorage(ObjectStorage):
    """ObjectStorage on Amazon S3."""

    def __init__(self, settings: Settings, logger: Any, client: Any = None):
        super().__init__(settings, logger)
        self._client = client

    def _get_client(self):
        """Get or create the S3 client."""
        if self._client is None:
            import boto3

            self._client = boto3.client("s3", region_name=self.settings.aws_region)
        return self._client

    def _fetch_key(self, key: str, dest: Path) -> Path:
        bucket = self.settings.output_bucket
        if key.startswith("s3://"):
            parsed = urlparse(key)
            bucket, key = parsed.netloc, parsed.path.lstrip("/")
        try:
            self._get_client().download_file(bucket, unquote(key), str(dest))
        except S3_ERRORS as e:
            raise StorageError(f"Failed to download s3://{bucket}/{key}: {e}") from e
        return dest

    def list_music(self) -> list[str]:
        keys = []
        try:
            paginator = self._get_client().get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.settings.audio_bucket, Prefix=self.settings.music_prefix):
                keys.extend(obj["Key"] for obj in page.get("Contents", []))
        except S3_ERRORS as e:
            raise StorageError(f"Failed to list background music: {e}") from e
        return keys

    def _fetch_music(self, key: str, dest: Path) -> Optional[Path]:
        try:
            self._get_client().download_file(self.settings.audio_bucket, key, str(dest))
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in ("404", "NoSuchKey"):
                return None
            raise StorageError(f"Failed to download music {key}: {e}") from e
        except (Boto3Error, BotoCoreError) as e:
            raise StorageError(f"Failed to download music {key}: {e}") from e
        return dest

    def _stored(self, key: str) -> StoredObject:
        url = self._get_client().generate_presigned_url(
            "get_object",
            Params={"Bucket": self.settings.output_bucket, "Key": key},
            ExpiresIn=int(self.settings.job_ttl_seconds),
        )
        return StoredObject(key=key, url=url)

    def upload_video(self, path: Path, key_id: str) -> StoredObject:
        key = f"{self.settings.video_prefix}{key_id}.mp4"
        try:
            self._get_client().upload_file(
                str(path), self.settings.output_bucket, key, ExtraArgs={"ContentType": "video/mp4"}
            )
            stored = self._stored(key)
        except S3_ERRORS as e:
            raise StorageError(f"Failed to upload video {key}: {e}") from e
        self.logger.info(f"Uploaded video to s3://{self.settings.output_bucket}/{key}")
        return stored

    def upload_text(self, text: str, key_id: str, suffix: str = ".srt") -> StoredObject:
        key = f"{self.settings.video_prefix}{key_id}{suffix}"
        try:
            self._get_client().put_object(
                Bucket=self.settings.output_bucket,
                Key=key,
                Body=text.encode("utf-8"),
                ContentType="text/plain; charset=utf-8",
            )
            stored = self._stored(key)
        except S3_ERRORS as e:
            raise StorageError(f"Failed to upload {key}: {e}") from e
        return stored

    def delete(self, key: str) -> None:
        try:
            self._get_client().delete_object(Bucket=self.settings.output_bucket, Key=key)
        except S3_ERRORS as e:
            raise StorageError(f"Failed to delete {key}: {e}") from e


class LocalObjectStorage(ObjectStorage):
    """ObjectStorage on the local filesystem, rooted at ``local_storage_path``."""

    def __init__(self, settings: Settings, logger: Any, root: Optional[Path] = None):
        super().__init__(settings, logger)
        self.root = Path(root or settings.local_storage_path)

    def _resolve(self, key: str) -> Path:
        path = Path(key)
        return path if path.is_absolute() else self.root / key

    def _fetch_key(self, key: str, dest: Path) -> Path:
        source = self._resolve(unquote(key))
        if not source.is_file():
            raise StorageError(f"Media not found: {source}")
        shutil.copyfile(source, dest)
        return dest

    def list_music(self) -> list[str]:
        music_dir = self.root / self.settings.music_prefix
        if not music_dir.is_dir():
            return []
        return [f"{self.settings.music_prefix}{p.name}" for p in music_dir.iterdir() if p.is_file()]

    def _fetch_music(self, key: str, dest: Path) -> Optional[Path]:
        source = self._resolve(key)
        if not source.is_file():
            return None
        shutil.copyfile(source, dest)
        return dest

    def _write_target(self, key: str) -> Path:
        target = self.root / key
        target.parent.mkdir(parents=True, exist_ok=True)
        return target

    def upload_video(self, path: Path, key_id: str) -> StoredObject:
        key = f"{self.settings.video_prefix}{safe_filename(key_id)}.mp4"
        target = self._write_target(key)
        try:
            shutil.copyfile(path, target)
        except OSError as e:
            raise StorageError(f"Failed to store video {key}: {e}") from e
        self.logger.info(f"Stored video at {target}")
        return StoredObject(key=key, url=target.resolve().as_uri())

    def upload_text(self, text: str, key_id: str, suffix: str = ".srt") -> StoredObject:
        key = f"{self.settings.video_prefix}{safe_filename(key_id)}{suffix}"
        target = self._write_target(key)
        try:
            target.write_text(text, encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Failed to store {key}: {e}") from e
        return StoredObject(key=key, url=target.resolve().as_uri())

    def delete(self, key: str) -> None:
        try:
            (self.root / key).unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to delete {key}: {e}") from e


def build_storage(settings: Settings, logger: Any) -> ObjectStorage:
    """Storage backend selected by ``storage_backend``."""
    if settings.storage_backend.lower() == "s3":
        return S3ObjectStorage(settings, logger)
    return LocalObjectStorage(settings, logger)
