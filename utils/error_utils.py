"""
Error taxonomy for the processing pipeline.
"""

from enum import Enum


class ErrorScope(str, Enum):
    """Granularity at which a failure was caught."""
    CHANNEL = "channel"
    VIDEO = "video"
    RUN = "run"


class ErrorKind(str, Enum):
    """Failure kinds recorded in a processing result."""
    SOURCE = "source"
    TRANSCRIPT_UNAVAILABLE = "transcript_unavailable"
    TIMEOUT = "timeout"
    SUMMARIZATION = "summarization"
    PERSISTENCE = "persistence"
    PUBLISH = "publish"
    UNEXPECTED = "unexpected"


class PipelineError(Exception):
    """Base error for every failure the pipeline knows how to classify."""
    kind = ErrorKind.UNEXPECTED


class ConfigurationError(PipelineError):
    """Required configuration is missing or malformed."""
    pass


class TranscriptUnavailableError(PipelineError):
    """No transcript could be obtained for a video."""
    kind = ErrorKind.TRANSCRIPT_UNAVAILABLE


class OperationTimeoutError(PipelineError):
    """An external call did not finish within its time budget."""
    kind = ErrorKind.TIMEOUT

    def __init__(self, label: str, seconds: float):
        self.label = label
        self.seconds = seconds
        super().__init__(f"{label} timed out after {seconds:g}s")


def error_kind(error: BaseException) -> ErrorKind:
    """
    Classify an exception.

    Args:
        error: Exception raised during processing

    Returns:
        The error's kind, or ErrorKind.UNEXPECTED for foreign exceptions
    """
    if isinstance(error, PipelineError):
        return error.kind
    return ErrorKind.UNEXPECTED
