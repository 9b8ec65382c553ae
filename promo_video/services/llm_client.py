"""LLM Client - centralized OpenAI client for structured-data requests."""

import json
import re
from typing import Any, Optional

from pydantic import BaseModel, Field

from promo_video.core.config import Settings
from promo_video.core.exceptions import ServiceUnavailableError
from promo_video.utils.rate_limiter import RateLimiter

STRUCTURED_ONLY_INSTRUCTION = "Return JSON only. No markdown. No commentary."

_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)


class StructuredResult(BaseModel):
    """Outcome of parsing a text-generation response as structured data."""

    ok: bool
    data: dict[str, Any] = Field(default_factory=dict)
    error: Optional[str] = None
    raw: str = ""


def parse_structured_response(content: Optional[str]) -> StructuredResult:
    """
    Extract the first well-formed JSON object from free text.

    Surrounding prose and markdown fences are tolerated. Top-level arrays
    are not accepted: callers always ask for an object.

    Args:
        content: Raw model output

    Returns:
        StructuredResult with ok=False and an error message when nothing parses
    """
    raw = content or ""
    text = _FENCE_RE.sub("", raw)
    decoder = json.JSONDecoder()
    position = text.find("{")
    while position != -1:
        try:
            value, _ = decoder.raw_decode(text, position)
        except json.JSONDecodeError:
            position = text.find("{", position + 1)
            continue
        if isinstance(value, dict):
            return StructuredResult(ok=True, data=value, raw=raw)
        position = text.find("{", position + 1)
    if not raw.strip():
        return StructuredResult(ok=False, error="empty response", raw=raw)
    return StructuredResult(ok=False, error="no JSON object found in response", raw=raw)


class LLMClient:
    """Centralized LLM client for OpenAI operations."""

    def __init__(self, settings: Settings, logger: Any, client: Any = None):
        """
        Initialize LLM client.

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
                raise ServiceUnavailableError("OpenAI API key not configured")
            self._client = OpenAI(
                api_key=self.settings.openai_api_key,
                timeout=self.settings.llm_timeout_seconds,
            )
        return self._client

    def request_structured(
        self,
        prompt: str,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        system_instruction: str = STRUCTURED_ONLY_INSTRUCTION,
    ) -> StructuredResult:
        """
        Send one structured-data request.

        Args:
            prompt: User prompt
            model: Model override (defaults to script_model)
            temperature: Sampling temperature override
            system_instruction: System message demanding structured output

        Returns:
            StructuredResult describing the parsed response

        Raises:
            ServiceUnavailableError: If the service could not be reached
        """
        client = self._get_client()
        model = model or self.settings.script_model
        if self.rate_limiter:
            self.rate_limiter.wait_if_needed("chat")

        self.logger.debug(f"Requesting structured output from {model}")
        try:
            response = client.chat.completions.create(
                model=model,
                messages=[
                    {"role": "system", "content": system_instruction},
                    {"role": "user", "content": prompt},
                ],
                temperature=self.settings.script_temperature if temperature is None else temperature,
            )
        except Exception as e:
            self.logger.error(f"Text generation request failed: {e}")
            raise ServiceUnavailableError(f"Text generation request failed: {e}") from e

        content = response.choices[0].message.content if response.choices else None
        result = parse_structured_response(content)
        if not result.ok:
            self.logger.warning(f"Unusable structured response from {model}: {result.error}")
        return result
