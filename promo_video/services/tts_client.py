"""TTS (Text-to-Speech) client for the OpenAI speech endpoint."""

from pathlib import Path
from typing import Any, Optional

from promo_video.core.config import Settings
from promo_video.utils.rate_limiter import RateLimiter


class TTSClient:
    """Thin wrapper over OpenAI speech synthesis."""

    def __init__(self, settings: Settings, logger: Any, client: Any = None):
        """
        Initialize TTS client.

        Args:
            settings: Application settings
            logger: Logger instance
            client: Optional pre-built OpenAI client
        """
        self.settings = settings
        self.logger = logger
        self._client = client
        self.rate_limiter = (
            RateLimiter(max_calls=settings.openai_rate_limit) if settings.enable_rate_limiting else None
        )

    def _get_client(self):
        """Get or create OpenAI client."""
        if self._client is None:
            from openai import OpenAI

            if not self.settings.openai_api_key:
                raise ValueError("OpenAI API key not configured for TTS")
            self._client = OpenAI(api_key=self.settings.openai_api_key)
        return self._client

    def synthesize(
        self,
        text: str,
        output_path: Path,
        voice_id: str,
        instructions: Optional[str] = None,
    ) -> Path:
        """
        Generate speech from text and save it as MP3.

        Args:
            text: Text to speak
            output_path: Destination file
            voice_id: Service voice identifier
            instructions: Optional delivery instruction (never spoken)

        Returns:
            Path to the written audio file

        Raises:
            Exception: If the service call fails
        """
        if not text or not text.strip():
            raise ValueError("Text cannot be empty")

        client = self._get_client()
        if self.rate_limiter:
            self.rate_limiter.wait_if_needed("speech")

        request: dict[str, Any] = {
            "model": self.settings.tts_model,
            "voice": voice_id,
            "input": text.strip(),
            "response_format": "mp3",
        }
        if instructions:
            request["instructions"] = instructions

        self.logger.debug(f"Synthesizing {len(text)} characters with voice {voice_id}")
        response = client.audio.speech.create(**request)

        output_path.parent.mkdir(parents=True, exist_ok=True)
        response.write_to_file(output_path)
        return output_path
