"""
Channel configuration and metadata models.
"""

from typing import Optional

from pydantic import BaseModel, Field, validator


class ChannelConfig(BaseModel):
    """A tracked channel as declared in the channel catalog."""

    id: str = Field(..., description="YouTube channel ID")
    name: str = Field(..., description="Human-readable channel name")
    enabled: bool = True

    @validator('id')
    def validate_channel_id(cls, v):
        """Channel IDs are opaque but never blank."""
        if not v.strip():
            raise ValueError('Channel ID cannot be empty')
        return v

    @validator('name')
    def validate_name(cls, v):
        """Validate channel name."""
        if not v.strip():
            raise ValueError('Channel name cannot be empty')
        return v.strip()

    class Config:
        frozen = True


class ChannelMetadata(BaseModel):
    """Channel details reported by the YouTube API."""

    id: str
    title: str = ""
    description: str = ""
    thumbnail_url: str = ""
    subscriber_count: Optional[str] = None
