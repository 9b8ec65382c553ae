"""Tests for Script Segmenter service."""

from unittest.mock import MagicMock

import pytest

from promo_video.core.exceptions import ScriptGenerationError, ServiceUnavailableError
from promo_video.models.schemas import Brief, InferredContext, Intent
from promo_video.services.llm_client import StructuredResult, parse_structured_response
from promo_video.services.script_segmenter import (
    MARKETING,
    NEWS,
    ScriptSegmenter,
    classify_template,
    normalize_segments,
    should_infer_context,
)


@pytest.fixture
def llm_client():
    return MagicMock()


@pytest.fixture
def segmenter(settings, logger, llm_client):
    """Create ScriptSegmenter with a mocked LLM client."""
    return ScriptSegmenter(settings, logger, llm_client=llm_client)


@pytest.fixture
def brief():
    return Brief(
        title="Luigi's Pizzeria Grand Opening",
        description="Wood fired pizza in downtown Austin, 20% off this week",
        category="restaurant",
        tone="excited",
        voice="Ava",
    )


def test_generate_script_returns_normalized_segments(segmenter, llm_client, brief):
    llm_client.request_structured.return_value = parse_structured_response(
        """```json
        {"title": "Luigi's Opens", "description": "Fresh pizza.",
         "segments": [
            {"id": "hook", "intent": "Hook", "text": "  Craving   pizza? ", "onScreenText": "Hungry?"},
            {"intent": "pain point", "text": "Cold delivery again."},
            {"id": "sol", "intent": "product", "text": "Wood fired, fresh."},
            {"id": "cta", "intent": "call to action", "text": "Visit today!"}
         ]}
        ```"""
    )

    script = segmenter.generate_script(brief)

    assert script.title == "Luigi's Opens"
    assert script.template == MARKETING
    assert [s.intent for s in script.segments] == [Intent.HOOK, Intent.PROBLEM, Intent.SOLUTION, Intent.CTA]
    assert [s.index for s in script.segments] == [0, 1, 2, 3]
    assert script.segments[0].text == "Craving pizza?"
    assert script.segments[0].on_screen_text == "Hungry?"
    assert script.segments[1].id == "pain point"
    llm_client.request_structured.assert_called_once()


def test_generate_script_drops_empty_segments(segmenter, llm_client, brief):
    llm_client.request_structured.return_value = StructuredResult(
        ok=True,
        data={"segments": [{"text": "First."}, {"text": "   "}, {"text": "Third."}]},
    )

    script = segmenter.generate_script(brief)

    assert [s.text for s in script.segments] == ["First.", "Third."]
    assert [s.index for s in script.segments] == [0, 1]
    # Missing intents fall back to the position in the raw list
    assert [s.intent for s in script.segments] == [Intent.HOOK, Intent.SOLUTION]
    assert [s.id for s in script.segments] == ["seg1", "seg3"]


@pytest.mark.parametrize(
    "result",
    [
        StructuredResult(ok=False, error="no JSON object found in response"),
        StructuredResult(ok=True, data={"title": "x"}),
        StructuredResult(ok=True, data={"segments": []}),
        StructuredResult(ok=True, data={"segments": [{"text": ""}, {"text": "  "}]}),
        StructuredResult(ok=True, data={"segments": "not a list"}),
    ],
)
def test_generate_script_rejects_unusable_output(segmenter, llm_client, brief, result):
    llm_client.request_structured.return_value = result

    with pytest.raises(ScriptGenerationError):
        segmenter.generate_script(brief)


def test_generate_script_wraps_service_unavailable(segmenter, llm_client, brief):
    llm_client.request_structured.side_effect = ServiceUnavailableError("timeout")

    with pytest.raises(ScriptGenerationError) as exc_info:
        segmenter.generate_script(brief)

    assert exc_info.value.reason == "service_unavailable"


def test_classify_template():
    assert classify_template(Brief(title="Breaking: council approves park")) == NEWS
    assert classify_template(Brief(title="Weekly update", category="fitness")) == NEWS
    assert classify_template(Brief(title="Yoga studio", category="fitness")) == MARKETING
    assert classify_template(Brief(title="x"), InferredContext(category="local news")) == NEWS


def test_news_template_uses_news_intents():
    segments = normalize_segments([{"text": "a"}, {"text": "b"}, {"text": "c"}, {"text": "d"}, {"text": "e"}], NEWS)
    assert [s.intent for s in segments] == [
        Intent.LEDE,
        Intent.CONTEXT,
        Intent.DETAILS,
        Intent.IMPACT,
        Intent.GENERAL,
    ]


def test_should_infer_context():
    assert should_infer_context(Brief(title="Pizza", description="Best in town"))
    assert should_infer_context(Brief(title="Pizza"))
    assert not should_infer_context(Brief(title="Pizza", category="restaurant"))
    assert should_infer_context(Brief(title="Pizza", category="restaurant", context="Opening Friday"))
    assert not should_infer_context(Brief())


def test_script_from_segments_skips_model(segmenter, llm_client, brief):
    script = segmenter.script_from_segments(
        brief, [{"id": "a", "intent": "hook", "text": "Hi"}, {"text": "Bye", "onScreenText": "Now"}]
    )

    assert len(script.segments) == 2
    assert script.segments[1].intent == Intent.PROBLEM
    assert script.segments[1].on_screen_text == "Now"
    llm_client.request_structured.assert_not_called()


def test_script_from_segments_all_empty(segmenter, brief):
    with pytest.raises(ScriptGenerationError):
        segmenter.script_from_segments(brief, [{"text": ""}])


def test_infer_context(segmenter, llm_client):
    llm_client.request_structured.return_value = StructuredResult(
        ok=True,
        data={
            "category": "Restaurant ",
            "brand": "Luigi's",
            "offer": "",
            "audience": None,
            "keywords": "Pizza, Wood Oven , ",
        },
    )

    context = segmenter.infer_context("Luigi's wood fired pizza")

    assert context.category == "Restaurant"
    assert context.brand == "Luigi's"
    assert context.offer is None
    assert context.audience is None
    assert context.keywords == ["pizza", "wood oven"]
    assert llm_client.request_structured.call_args.kwargs["model"] == segmenter.settings.context_model


def test_infer_context_invalid_response(segmenter, llm_client):
    llm_client.request_structured.return_value = StructuredResult(ok=False, error="empty response")

    with pytest.raises(ScriptGenerationError):
        segmenter.infer_context("text")


def test_build_prompt_includes_context(segmenter, brief):
    prompt = segmenter.build_prompt(brief, MARKETING, InferredContext(brand="Luigi's", location="Austin"))

    assert "Brand: Luigi's" in prompt
    assert "Location: Austin" in prompt
    assert "Category: restaurant" in prompt
    assert "Tone: excited" in prompt
