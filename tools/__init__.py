"""
Clients for the external item and transcript sources.
"""

from .youtube_tools import YouTubeAPIClient, YouTubeVideoSource, YouTubeAPIError
from .transcript_tools import YouTubeTranscriptSource, FetchedTranscript

__all__ = [
    "YouTubeAPIClient",
    "YouTubeVideoSource",
    "YouTubeAPIError",
    "YouTubeTranscriptSource",
    "FetchedTranscript"
]
