"""
Per-run processing result.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from utils.error_utils import ErrorKind, ErrorScope


class ProcessingError(BaseModel):
    """A failure recorded against a channel, a video or the run itself."""

    scope: ErrorScope
    kind: ErrorKind = ErrorKind.UNEXPECTED
    message: str
    channel_id: Optional[str] = None
    video_id: Optional[str] = None

    @property
    def subject(self) -> str:
        """Identifier the error is recorded against."""
        return self.video_id or self.channel_id or "Unknown"


class ProcessingResult(BaseModel):
    """Aggregate counts and errors for one pipeline run."""

    channels_processed: int = 0
    videos_processed: int = 0
    summaries_generated: int = 0
    errors: List[ProcessingError] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    def record_error(
        self,
        scope: ErrorScope,
        message: str,
        kind: ErrorKind = ErrorKind.UNEXPECTED,
        channel_id: Optional[str] = None,
        video_id: Optional[str] = None
    ) -> ProcessingError:
        error = ProcessingError(
            scope=scope,
            kind=kind,
            message=message,
            channel_id=channel_id,
            video_id=video_id
        )
        self.errors.append(error)
        return error

    def errors_for(self, scope: ErrorScope) -> List[ProcessingError]:
        return [error for error in self.errors if error.scope == scope]
