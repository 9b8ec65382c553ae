"""Job Registry - in-memory, expiring map from job id to rendered artifact."""

import time
import uuid
from datetime import datetime, timezone
from typing import Callable, Optional

from promo_video.models.schemas import Job, JobMetadata
from promo_video.utils.ttl_cache import TTLCache


class JobRegistry:
    """
    Best-effort registry of finished renders.

    Entries expire ``ttl_seconds`` after registration and are evicted lazily
    on access. Nothing survives a process restart.
    """

    def __init__(self, ttl_seconds: float = 3600.0, clock: Callable[[], float] = time.time):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._jobs: TTLCache[Job] = TTLCache(ttl_seconds, clock=clock)

    def register(self, artifact_location: str, metadata: Optional[JobMetadata] = None) -> str:
        """
        Record a rendered artifact.

        Args:
            artifact_location: Where the final video lives
            metadata: Optional descriptive metadata

        Returns:
            New job id
        """
        metadata = metadata or JobMetadata()
        job_id = uuid.uuid4().hex
        created = self._clock()
        job = Job(
            id=job_id,
            artifact_location=artifact_location,
            subtitle_location=metadata.subtitle_location,
            script_snapshot=metadata.script_snapshot,
            voice=metadata.voice,
            tone=metadata.tone,
            duration_seconds=metadata.duration_seconds,
            created_at=datetime.fromtimestamp(created, tz=timezone.utc),
            expires_at=datetime.fromtimestamp(created + self.ttl_seconds, tz=timezone.utc),
        )
        self._jobs.set(job_id, job, inserted_at=created)
        return job_id

    def get(self, job_id: str) -> Optional[Job]:
        """Return the job, or None if it is unknown or expired."""
        return self._jobs.get(job_id)

    def delete(self, job_id: str) -> bool:
        return self._jobs.pop(job_id) is not None

    def purge_expired(self) -> int:
        return self._jobs.purge_expired()

    def __len__(self) -> int:
        return len(self._jobs)
