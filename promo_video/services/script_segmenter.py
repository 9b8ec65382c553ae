"""Script Segmenter - turns a brief into ordered narrative segments via an LLM."""

from typing import Any, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from promo_video.core.config import Settings
from promo_video.core.exceptions import ScriptGenerationError, ServiceUnavailableError
from promo_video.models.schemas import Brief, InferredContext, Intent, Script, Segment
from promo_video.services.intent_normalizer import normalize_intent
from promo_video.services.llm_client import LLMClient
from promo_video.utils.text_utils import collapse_whitespace

MARKETING = "marketing"
NEWS = "news"

NEWS_KEYWORDS = (
    "news",
    "breaking",
    "headline",
    "report",
    "announce",
    "update",
    "election",
    "press release",
    "journalism",
)

DEFAULT_INTENTS = {
    MARKETING: (Intent.HOOK, Intent.PROBLEM, Intent.SOLUTION, Intent.CTA),
    NEWS: (Intent.LEDE, Intent.CONTEXT, Intent.DETAILS, Intent.IMPACT),
}

MARKETING_TEMPLATE = """You are a campaign copywriter for small and medium business owners.

Return JSON ONLY:
{{
  "title": "5-10 word title INCLUDING the company name",
  "description": "1-2 sentence summary (<= 200 chars)",
  "segments": [
    {{ "id": "hook", "intent": "hook", "text": "2-3 sentences", "onScreenText": "max 6 words" }},
    {{ "id": "problem", "intent": "problem", "text": "2-3 sentences", "onScreenText": "max 6 words" }},
    {{ "id": "solution", "intent": "solution", "text": "2-3 sentences", "onScreenText": "max 6 words" }},
    {{ "id": "cta", "intent": "cta", "text": "2-3 short sentences", "onScreenText": "max 6 words" }}
  ]
}}

Tone: {tone}
Voice Talent: {voice}
Category: {category}
{context_block}
Campaign Title: {title}
Campaign Description: {description}
Additional Context: {context}
"""

NEWS_TEMPLATE = """You are a news video producer writing a short vertical news explainer.

Return JSON ONLY:
{{
  "title": "5-10 word headline",
  "description": "1-2 sentence summary (<= 200 chars)",
  "segments": [
    {{ "id": "lede", "intent": "lede", "text": "1-2 sentences with the key fact", "onScreenText": "max 6 words" }},
    {{ "id": "context", "intent": "context", "text": "2 sentences of background", "onScreenText": "max 6 words" }},
    {{ "id": "details", "intent": "details", "text": "2-3 sentences of specifics", "onScreenText": "max 6 words" }},
    {{ "id": "impact", "intent": "impact", "text": "1-2 sentences on why it matters", "onScreenText": "max 6 words" }}
  ]
}}

Stay factual and neutral. Do not invent quotes or numbers.
Tone: {tone}
Category: {category}
{context_block}
Headline: {title}
Summary: {description}
Additional Context: {context}
"""

CONTEXT_PROMPT = """Classify the following promotional or news text.

Return JSON ONLY:
{{
  "category": "one or two word business or story category, e.g. restaurant, fitness, real estate",
  "brand": "brand or company name, or null",
  "offer": "the offer or key announcement, or null",
  "audience": "target audience, or null",
  "location": "city/region, or null",
  "keywords": ["3-6 concrete visual keywords for stock footage search"]
}}

Text:
{text}
"""


class RawSegment(BaseModel):
    """Segment as it arrives from the model or the caller, before normalization."""

    id: Optional[str] = None
    intent: Optional[str] = None
    text: str = ""
    on_screen_text: str = Field(default="", alias="onScreenText")

    model_config = {"populate_by_name": True, "extra": "ignore"}

    @field_validator("id", "intent", "text", "on_screen_text", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return value
        return str(value)


class RawScript(BaseModel):
    title: str = ""
    description: str = ""
    segments: list[RawSegment] = Field(default_factory=list)

    model_config = {"extra": "ignore"}


def classify_template(brief: Brief, context: Optional[InferredContext] = None) -> str:
    """Pick the news template when news keywords appear in title, category or description."""
    category = brief.category or (context.category if context else None) or ""
    haystack = " ".join([brief.title, category, brief.description]).lower()
    if any(keyword in haystack for keyword in NEWS_KEYWORDS):
        return NEWS
    return MARKETING


def should_infer_context(brief: Brief) -> bool:
    """Inference is skipped when the caller chose a category and gave no free-text brief."""
    if brief.category and not brief.has_free_text:
        return False
    return bool(brief.title.strip() or brief.has_free_text)


def normalize_segments(raw_segments: list[Any], template: str = MARKETING) -> list[Segment]:
    """
    Enforce the intent taxonomy and drop empty segments.

    A missing intent falls back to the template's positional default; indices
    are assigned after dropping, so they are always contiguous.

    Args:
        raw_segments: Dicts (or RawSegment objects) in script order
        template: Template whose default intent order applies

    Returns:
        Normalized segments, possibly empty
    """
    defaults = DEFAULT_INTENTS.get(template, DEFAULT_INTENTS[MARKETING])
    segments: list[Segment] = []
    for position, raw in enumerate(raw_segments or []):
        if not isinstance(raw, RawSegment):
            if not isinstance(raw, dict):
                continue
            raw = RawSegment.model_validate(raw)
        text = collapse_whitespace(raw.text)
        if not text:
            continue
        fallback = defaults[position] if position < len(defaults) else Intent.GENERAL
        intent = normalize_intent(raw.intent) if raw.intent else fallback
        segments.append(
            Segment(
                index=len(segments),
                id=(raw.id or raw.intent or f"seg{position + 1}").strip() or f"seg{position + 1}",
                intent=intent,
                text=text,
                on_screen_text=collapse_whitespace(raw.on_screen_text),
            )
        )
    return segments


class ScriptSegmenter:
    """Generates segmented scripts and infers brief context."""

    def __init__(self, settings: Settings, logger: Any, llm_client: Optional[LLMClient] = None):
        """
        Initialize script segmenter.

        Args:
            settings: Application settings
            logger: Logger instance
            llm_client: Optional LLM client (created from settings otherwise)
        """
        self.settings = settings
        self.logger = logger
        self.llm_client = llm_client or LLMClient(settings, logger)

    def build_prompt(self, brief: Brief, template: str, context: Optional[InferredContext] = None) -> str:
        context_block = ""
        if context:
            details = [
                f"{label}: {value}"
                for label, value in (
                    ("Brand", context.brand),
                    ("Offer", context.offer),
                    ("Audience", context.audience),
                    ("Location", context.location),
                )
                if value
            ]
            if details:
                context_block = "\n".join(details) + "\n"
        category = brief.category or (context.category if context else None) or "general"
        prompt_template = NEWS_TEMPLATE if template == NEWS else MARKETING_TEMPLATE
        return prompt_template.format(
            tone=brief.tone or "friendly",
            voice=brief.voice or "default",
            category=category,
            context_block=context_block,
            title=brief.title or "Untitled Campaign",
            description=brief.description or "N/A",
            context=brief.context or "N/A",
        )

    def generate_script(self, brief: Brief, context: Optional[InferredContext] = None) -> Script:
        """
        Generate an ordered list of segments for a brief.

        Args:
            brief: Caller brief
            context: Optional inferred context used to pick the template

        Returns:
            Script with at least one non-empty segment

        Raises:
            ScriptGenerationError: If the service is unreachable or its output is unusable
        """
        template = classify_template(brief, context)
        self.logger.info(f"Generating {template} script for '{brief.title or 'untitled'}'")

        try:
            result = self.llm_client.request_structured(self.build_prompt(brief, template, context))
        except ServiceUnavailableError as e:
            raise ScriptGenerationError(str(e), reason="service_unavailable") from e

        if not result.ok:
            raise ScriptGenerationError(f"Model did not return valid JSON for script: {result.error}")

        try:
            payload = RawScript.model_validate(result.data)
        except ValidationError as e:
            raise ScriptGenerationError(f"Script response failed validation: {e}") from e

        if not payload.segments:
            raise ScriptGenerationError("Script response contained no segments")

        segments = normalize_segments(payload.segments, template)
        if not segments:
            raise ScriptGenerationError("No usable segments returned")

        self.logger.info(f"Script has {len(segments)} segments: {[s.intent.value for s in segments]}")
        return Script(
            title=collapse_whitespace(payload.title) or brief.title,
            description=collapse_whitespace(payload.description),
            template=template,
            segments=segments,
        )

    def script_from_segments(self, brief: Brief, raw_segments: list[Any]) -> Script:
        """Build a script from caller-supplied segments without calling the model."""
        template = classify_template(brief)
        segments = normalize_segments(raw_segments, template)
        if not segments:
            raise ScriptGenerationError("No script segments available", reason="empty_segments")
        return Script(title=brief.title.strip(), description="", template=template, segments=segments)

    def infer_context(self, text: str) -> InferredContext:
        """
        Classify free text into category, brand, offer, audience, location and keywords.

        Args:
            text: Brief text

        Returns:
            InferredContext

        Raises:
            ServiceUnavailableError: If the service could not be reached
            ScriptGenerationError: If the response is not usable
        """
        result = self.llm_client.request_structured(
            CONTEXT_PROMPT.format(text=text.strip()[:4000]),
            model=self.settings.context_model,
            temperature=0.2,
        )
        if not result.ok:
            raise ScriptGenerationError(f"Context inference returned no JSON: {result.error}")

        data = dict(result.data)
        keywords = data.get("keywords") or []
        if isinstance(keywords, str):
            keywords = keywords.split(",")
        data["keywords"] = [collapse_whitespace(k).lower() for k in keywords if collapse_whitespace(k)]
        for field in ("category", "brand", "offer", "audience", "location"):
            value = data.get(field)
            data[field] = collapse_whitespace(value) or None if value is not None else None

        try:
            context = InferredContext.model_validate(data)
        except ValidationError as e:
            raise ScriptGenerationError(f"Context response failed validation: {e}") from e

        self.logger.info(f"Inferred context: category={context.category}, keywords={context.keywords}")
        return context
