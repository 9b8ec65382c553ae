"""Tests for Intent Normalizer."""

import pytest

from promo_video.models.schemas import Intent
from promo_video.services.intent_normalizer import normalize_intent


@pytest.mark.parametrize(
    "label,expected",
    [
        ("hook", Intent.HOOK),
        ("Grab Attention", Intent.HOOK),
        ("PAIN POINT", Intent.PROBLEM),
        ("product showcase", Intent.SOLUTION),
        ("Call to Action", Intent.CTA),
        ("CTA", Intent.CTA),
        ("headline", Intent.LEDE),
        ("background", Intent.CONTEXT),
        ("key details", Intent.DETAILS),
        ("why it matters", Intent.IMPACT),
        ("consequences", Intent.IMPACT),
        ("outro", Intent.GENERAL),
        ("", Intent.GENERAL),
        (None, Intent.GENERAL),
        (42, Intent.GENERAL),
    ],
)
def test_normalize_intent(label, expected):
    """Test labels map onto the fixed taxonomy."""
    assert normalize_intent(label) == expected


def test_priority_order_first_match_wins():
    """Test a label matching several rows resolves to the earliest row."""
    assert normalize_intent("hook the problem") == Intent.HOOK
    assert normalize_intent("product in action") == Intent.SOLUTION


@pytest.mark.parametrize("intent", list(Intent))
def test_idempotent_on_canonical_labels(intent):
    """Test normalizing a canonical value (or its string form) is stable."""
    assert normalize_intent(intent) == intent
    assert normalize_intent(intent.value) == intent
    assert normalize_intent(normalize_intent(intent.value)) == intent
