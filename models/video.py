"""
Video metadata and summarization models.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, validator

from utils.duration import parse_duration


def video_url(video_id: str) -> str:
    """Canonical watch URL for a video."""
    return f"https://youtube.com/watch?v={video_id}"


class VideoMetadata(BaseModel):
    """YouTube video metadata as returned by the item source."""

    video_id: str = Field(..., description="YouTube video ID")
    channel_id: str = Field(..., description="YouTube channel ID")
    channel_title: str = ""
    title: str = Field(..., description="Video title")
    description: str = ""
    published_at: datetime = Field(..., description="Video publication timestamp")
    thumbnail_url: str = ""
    duration: str = Field("", description="ISO 8601 duration token")

    @validator('video_id')
    def validate_video_id(cls, v):
        """Video IDs are opaque but never blank."""
        if not v.strip():
            raise ValueError('Video ID cannot be empty')
        return v

    @validator('title')
    def validate_title(cls, v):
        """Validate video title."""
        if not v.strip():
            raise ValueError('Video title cannot be empty')
        return v.strip()

    @validator('duration')
    def validate_duration(cls, v):
        """Validate ISO 8601 duration format."""
        if v and not v.startswith('P'):
            raise ValueError('Duration must be in ISO 8601 format (e.g., PT4M13S)')
        return v

    @property
    def url(self) -> str:
        """Get YouTube video URL."""
        return video_url(self.video_id)

    @property
    def duration_minutes(self) -> float:
        """Duration in minutes, 0 when unknown."""
        return parse_duration(self.duration)

    @property
    def duration_seconds(self) -> int:
        """Duration in whole seconds, 0 when unknown."""
        return round(self.duration_minutes * 60)


class PodcastSummary(BaseModel):
    """Structured summary produced by the summarizer."""

    summary: str = Field(..., description="2-3 sentence overview of the episode")
    key_topics: List[str] = Field(default_factory=list, description="3-5 key topics discussed in the episode")
    highlights: List[str] = Field(default_factory=list, description="Notable highlights, insights, or takeaways")
    duration: Optional[str] = Field(None, description='Optional human-friendly duration (e.g., "42m" or "1h 05m")')

    @validator('summary')
    def validate_summary(cls, v):
        """Validate summary content."""
        if not v.strip():
            raise ValueError('Summary cannot be empty')
        return v.strip()


class EpisodeRecord(BaseModel):
    """One summarized episode as handed to the publisher."""

    video_id: str
    title: str
    published_at: datetime
    duration: str = "Unknown"
    summary: str = ""
    key_topics: List[str] = Field(default_factory=list)
    highlights: List[str] = Field(default_factory=list)
    video_url: str
