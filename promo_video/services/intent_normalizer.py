"""Intent Normalizer - maps free-form segment labels onto the fixed intent taxonomy."""

from typing import Any

from promo_video.models.schemas import Intent

# Checked top to bottom; the first keyword found in the label wins.
INTENT_KEYWORDS: tuple[tuple[Intent, tuple[str, ...]], ...] = (
    (Intent.HOOK, ("hook", "attention")),
    (Intent.PROBLEM, ("problem", "pain")),
    (Intent.SOLUTION, ("solution", "product")),
    (Intent.CTA, ("cta", "action")),
    (Intent.LEDE, ("lede", "headline")),
    (Intent.CONTEXT, ("context", "background")),
    (Intent.DETAILS, ("detail",)),
    (Intent.IMPACT, ("impact", "matters", "consequence")),
)


def normalize_intent(label: Any) -> Intent:
    """
    Canonicalize a segment label.

    Args:
        label: Any value; non-strings are stringified, None is empty

    Returns:
        The matching Intent, or Intent.GENERAL when nothing matches
    """
    if isinstance(label, Intent):
        return label
    text = str(label or "").lower()
    for intent, keywords in INTENT_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return intent
    return Intent.GENERAL
