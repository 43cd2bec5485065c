"""Exception types raised by the artifact pipeline.

Every upstream failure is converted into a ``PipelineError`` subclass at the
client boundary. Stages annotate failures with ``StageError`` so the outermost
handler can report which artifact could not be produced.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base class for failures while producing an artifact."""


class ConfigError(PipelineError):
    """Raised when an environment setting cannot be parsed."""


class ContentSourceError(PipelineError):
    """Raised when the paper listing cannot be fetched or decoded."""


class GenerationError(PipelineError):
    """Raised when the text-generation service fails or returns unusable text."""


class SynthesisError(PipelineError):
    """Raised when the speech-synthesis service fails."""


class MalformedArtifactError(PipelineError):
    """Raised when a cached or freshly built artifact cannot be parsed."""


class OperationCancelled(PipelineError):
    """Raised when the controlling cancellation event is set."""


class RetryExhaustedError(PipelineError):
    """Raised when every retry attempt failed; keeps the last failure."""

    def __init__(self, attempts: int, last_error: Exception):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"failed after {attempts} attempts: {last_error}")


class StageError(PipelineError):
    """Annotates a failure with the pipeline stage that raised it."""

    def __init__(self, stage: str, cause: Exception):
        self.stage = stage
        self.cause = cause
        super().__init__(f"{stage} stage failed: {cause}")


class RefreshError(PipelineError):
    """Raised by the full refresh; ``completed`` lists stages already cached."""

    def __init__(self, message: str, completed: list[str] | None = None):
        self.completed = list(completed or [])
        super().__init__(message)
