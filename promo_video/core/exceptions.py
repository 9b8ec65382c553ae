"""Error taxonomy for the render pipeline.

Every error carries the pipeline stage that raised it so callers can report
where a render stopped.
"""

from typing import Optional


class PipelineError(Exception):
    """Base class for all render pipeline failures."""

    stage = "pipeline"

    def __init__(self, message: str, stage: Optional[str] = None):
        super().__init__(message)
        if stage:
            self.stage = stage


class ServiceUnavailableError(PipelineError):
    """The text-generation service could not be reached or refused the call."""

    stage = "text_generation"


class ScriptGenerationError(PipelineError):
    """The text-generation service returned unusable structured output."""

    stage = "script"

    def __init__(self, message: str, reason: str = "invalid_response"):
        super().__init__(message)
        self.reason = reason


class VoiceSynthesisError(PipelineError):
    """A speech-synthesis call failed; no partial voice track is kept."""

    stage = "voice"

    def __init__(self, message: str, segment_index: int):
        super().__init__(f"Segment {segment_index}: {message}")
        self.segment_index = segment_index


class BackgroundMediaError(PipelineError):
    """A segment has no background video after every fallback."""

    stage = "media"

    def __init__(self, message: str, segment_index: Optional[int] = None):
        super().__init__(message)
        self.segment_index = segment_index


class CompositionError(PipelineError):
    """The encoding engine exited with an error."""

    stage = "composition"


class StorageError(PipelineError):
    """Object storage upload or download failed."""

    stage = "storage"


class InsufficientFundsError(PipelineError):
    """The account cannot cover the cost of the requested operation."""

    stage = "wallet"

    def __init__(self, balance: int, required: int):
        super().__init__(f"Insufficient wallet units. You have {balance} but need {required}.")
        self.balance = balance
        self.required = required


class AccountNotFoundError(PipelineError):
    """The ledger has no account with the given id."""

    stage = "wallet"
