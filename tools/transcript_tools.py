"""
Transcript fetching via youtube-transcript-api.
"""

import asyncio
import logging
from typing import NamedTuple, Optional, Sequence

import requests
from youtube_transcript_api import YouTubeTranscriptApi, CouldNotRetrieveTranscript

from utils.error_utils import TranscriptUnavailableError

logger = logging.getLogger(__name__)


class FetchedTranscript(NamedTuple):
    text: str
    language: str


class TimeoutSession(requests.Session):
    """requests session applying a default timeout to every call."""

    def __init__(self, timeout: float):
        super().__init__()
        self.timeout = timeout

    def request(self, method, url, **kwargs):
        kwargs.setdefault("timeout", self.timeout)
        return super().request(method, url, **kwargs)


class YouTubeTranscriptSource:
    """Fetches publicly available captions, preferring English."""

    def __init__(
        self,
        languages: Sequence[str] = ("en", "en-US", "en-GB"),
        api: YouTubeTranscriptApi = None,
        request_timeout: Optional[float] = None
    ):
        self.languages = tuple(languages)
        if api is None:
            # Bound every HTTP call the library makes
            http_client = TimeoutSession(request_timeout) if request_timeout else None
            api = YouTubeTranscriptApi(http_client=http_client)
        self.api = api

    def _fetch_sync(self, video_id: str) -> FetchedTranscript:
        try:
            fetched = self.api.fetch(video_id, languages=self.languages)
        except CouldNotRetrieveTranscript as e:
            raise TranscriptUnavailableError(
                f"Failed to fetch transcript for video {video_id}. "
                f"The video may not have captions available. ({type(e).__name__})"
            ) from e

        text = " ".join(snippet.text for snippet in fetched if snippet.text).strip()
        if not text:
            raise TranscriptUnavailableError(f"No captions available for video {video_id}")

        return FetchedTranscript(text=text, language=fetched.language_code or "en")

    async def fetch_transcript(self, video_id: str) -> FetchedTranscript:
        """
        Fetch the full transcript of a video.

        Args:
            video_id: YouTube video ID

        Returns:
            FetchedTranscript with the joined caption text and its language code
        """
        logger.debug(f"Fetching transcript for video {video_id}")
        return await asyncio.to_thread(self._fetch_sync, video_id)
