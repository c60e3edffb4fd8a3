"""
Pydantic models for data validation and structure.
"""

from .channel import ChannelConfig, ChannelMetadata
from .video import VideoMetadata, PodcastSummary, EpisodeRecord
from .records import ChannelRecord, VideoRecord, TranscriptRecord, SummaryRecord
from .result import ProcessingResult, ProcessingError

__all__ = [
    "ChannelConfig",
    "ChannelMetadata",
    "VideoMetadata",
    "PodcastSummary",
    "EpisodeRecord",
    "ChannelRecord",
    "VideoRecord",
    "TranscriptRecord",
    "SummaryRecord",
    "ProcessingResult",
    "ProcessingError"
]
