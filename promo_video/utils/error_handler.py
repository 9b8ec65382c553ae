"""Error Handler - provides user-friendly error messages for failed renders."""

from typing import Optional

from promo_video.core.exceptions import CompositionError, PipelineError


def format_error_message(
    operation: str,
    error: Exception,
    context: Optional[dict] = None,
    suggestion: Optional[str] = None,
) -> str:
    """
    Format a user-friendly error message.

    Args:
        operation: What operation was being performed (e.g., "Rendering video")
        error: The exception that occurred
        context: Additional context (e.g., {"render_id": "r_123", "account_id": "42"})
        suggestion: Optional suggestion for how to fix the issue

    Returns:
        Formatted error message
    """
    stage = getattr(error, "stage", None)
    context = dict(context or {})
    if stage and "stage" not in context:
        context["stage"] = stage

    context_str = ""
    if context:
        context_str = f" ({', '.join(f'{k}={v}' for k, v in context.items())})"

    message = f"{operation} failed{context_str}\n"
    message += f"   Error: {type(error).__name__}: {error}"
    if suggestion:
        message += f"\n   Suggestion: {suggestion}"
    return message


def get_failure_suggestion(error: Exception) -> Optional[str]:
    """
    Suggest a next step for a pipeline failure.

    Args:
        error: The exception raised by the pipeline

    Returns:
        Suggestion string or None
    """
    if not isinstance(error, PipelineError):
        return None

    error_msg = str(error).lower()

    if error.stage == "text_generation":
        if "api key" in error_msg or "not configured" in error_msg:
            return "Check OPENAI_API_KEY in your .env file."
        if "rate limit" in error_msg or "429" in error_msg:
            return "OpenAI rate limit exceeded. Wait a few minutes and try again."
        return "The text-generation service is unreachable. Retry later or pass segments explicitly."

    if error.stage == "script":
        return "The model returned an unusable script. Retry, or supply segments directly."

    if error.stage == "voice":
        segment_index = getattr(error, "segment_index", None)
        return f"Speech synthesis failed at segment {segment_index}. Shorten or rephrase that segment and retry."

    if error.stage == "media":
        if "api key" in error_msg or "not configured" in error_msg:
            return "Set PEXELS_API_KEY, or upload one background video per segment."
        return "No stock footage matched. Upload background videos or use a broader category."

    if isinstance(error, CompositionError):
        return "The encoder failed. Check that the uploaded media files are valid and not corrupted."

    if error.stage == "storage":
        if "access denied" in error_msg or "forbidden" in error_msg:
            return "Storage credentials lack permission for the configured bucket."
        return "Storage transfer failed. Check connectivity and bucket configuration."

    if error.stage == "wallet":
        if "insufficient" in error_msg:
            return "Top up the account wallet and try again."
        return "Check the account id."

    return None
