"""
Persisted record shapes exchanged with the persistence gateway.
"""

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ChannelRecord(BaseModel):
    """Row of the channels table."""

    id: str
    title: str
    description: Optional[str] = None
    thumbnail_url: Optional[str] = None
    subscriber_count: Optional[str] = None
    channel_summary: Optional[str] = None

    class Config:
        from_attributes = True


class VideoRecord(BaseModel):
    """Row of the videos table."""

    id: str
    channel_id: str
    title: str
    description: Optional[str] = None
    published_at: datetime
    thumbnail_url: Optional[str] = None
    duration: Optional[str] = None
    duration_minutes: int = 0
    has_transcript: bool = False
    transcript_fetched_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TranscriptRecord(BaseModel):
    """Row of the transcripts table, keyed by video."""

    video_id: str
    content: str
    language: str = "en"

    class Config:
        from_attributes = True


class SummaryRecord(BaseModel):
    """Row of the summaries table, keyed by video."""

    video_id: str
    summary: str
    key_topics: List[str] = Field(default_factory=list)
    highlights: List[str] = Field(default_factory=list)
    model: str
    created_at: datetime = Field(default_factory=utcnow)

    class Config:
        from_attributes = True
