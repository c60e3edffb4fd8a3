"""
YouTube Data API v3 integration with quota accounting.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Dict, Any

import httpx

from models.channel import ChannelMetadata
from models.video import VideoMetadata
from utils.error_utils import ErrorKind, PipelineError

# Setup logging
logger = logging.getLogger(__name__)

# Videos this short or shorter are treated as Shorts and skipped
MIN_VIDEO_SECONDS = 180

# Custom exceptions
class YouTubeAPIError(PipelineError):
    """Base YouTube API error."""
    kind = ErrorKind.SOURCE

class YouTubeQuotaExceededError(YouTubeAPIError):
    """YouTube API quota exceeded."""
    pass

class YouTubeChannelNotFoundError(YouTubeAPIError):
    """YouTube channel not found."""
    pass


class YouTubeAPIClient:
    """Async YouTube Data API v3 client with quota management."""

    base_url = "https://www.googleapis.com/youtube/v3"

    def __init__(self, api_key: str, requests_per_minute: int = 50, max_retries: int = 3):
        self.api_key = api_key
        self.requests_per_minute = requests_per_minute
        self.max_retries = max_retries
        self.quota_used_today = 0
        self.last_request_time = None
        self.request_count = 0

    async def _pace(self) -> None:
        """Keep requests under the configured per-minute rate."""
        min_interval = timedelta(seconds=60 / self.requests_per_minute)
        if self.last_request_time:
            time_since_last = datetime.now(timezone.utc) - self.last_request_time
            if time_since_last < min_interval:
                await asyncio.sleep((min_interval - time_since_last).total_seconds())
        self.last_request_time = datetime.now(timezone.utc)

    async def _make_request(
        self,
        endpoint: str,
        params: Dict[str, Any],
        quota_cost: int = 1,
        attempt: int = 0
    ) -> Dict[str, Any]:
        """Make authenticated request to YouTube API with rate limiting."""
        await self._pace()

        async with httpx.AsyncClient(timeout=30.0) as client:
            try:
                response = await client.get(
                    f"{self.base_url}/{endpoint}",
                    params={**params, "key": self.api_key}
                )
            except httpx.RequestError as e:
                logger.error(f"HTTP request failed: {e}")
                raise YouTubeAPIError(f"Request failed: {e}")

        if response.status_code == 200:
            self.quota_used_today += quota_cost
            self.request_count += 1
            return response.json()

        retryable = False
        if response.status_code == 403:
            error_data = response.json()
            error_reason = error_data.get("error", {}).get("errors", [{}])[0].get("reason", "")

            if "quotaExceeded" in error_reason:
                logger.error(f"YouTube API quota exceeded. Used today: {self.quota_used_today}")
                raise YouTubeQuotaExceededError("Daily quota limit reached (10,000 units)")
            if "rateLimitExceeded" not in error_reason:
                raise YouTubeAPIError(f"API access forbidden: {error_reason}")
            retryable = True

        elif response.status_code == 404:
            raise YouTubeChannelNotFoundError("Channel or video not found")

        elif response.status_code == 429:
            retryable = True

        if retryable:
            if attempt >= self.max_retries:
                raise YouTubeAPIError(f"Rate limited on {endpoint} after {attempt + 1} attempts")
            delay = 2 ** attempt
            logger.warning(f"YouTube API rate limit hit on {endpoint}, retrying in {delay}s...")
            await asyncio.sleep(delay)
            return await self._make_request(endpoint, params, quota_cost, attempt + 1)

        raise YouTubeAPIError(f"Unexpected status {response.status_code} from {endpoint}: {response.text[:200]}")

    async def get_channel_info(self, channel_id: str, part: str = "snippet,contentDetails,statistics") -> Optional[Dict[str, Any]]:
        """Get channel information, None if the channel does not exist."""
        response = await self._make_request("channels", {"part": part, "id": channel_id})
        items = response.get("items") or []
        return items[0] if items else None

    async def get_uploads_playlist_id(self, channel_id: str) -> Optional[str]:
        """Get the uploads playlist ID for a channel."""
        channel_info = await self.get_channel_info(channel_id, part="contentDetails")
        if not channel_info:
            return None
        return channel_info.get("contentDetails", {}).get("relatedPlaylists", {}).get("uploads")

    async def get_playlist_video_ids(self, playlist_id: str, max_results: int = 10) -> List[str]:
        """Get video IDs from a playlist, newest first."""
        params = {
            "part": "snippet,contentDetails",
            "playlistId": playlist_id,
            "maxResults": min(max_results, 50),  # YouTube API limit
        }
        response = await self._make_request("playlistItems", params)

        video_ids = []
        for item in response.get("items", []):
            video_id = item.get("contentDetails", {}).get("videoId")
            if video_id:
                video_ids.append(video_id)
        return video_ids

    async def get_video_details(self, video_ids: List[str]) -> List[Dict[str, Any]]:
        """Get detailed information for specific videos."""

        # YouTube API allows up to 50 video IDs per request
        video_chunks = [video_ids[i:i+50] for i in range(0, len(video_ids), 50)]
        all_videos = []

        for chunk in video_chunks:
            params = {
                "part": "snippet,contentDetails",
                "id": ",".join(chunk)
            }
            response = await self._make_request("videos", params)
            all_videos.extend(response.get("items", []))

        return all_videos


def _thumbnail(snippet: Dict[str, Any], *sizes: str) -> str:
    thumbnails = snippet.get("thumbnails") or {}
    for size in sizes:
        url = (thumbnails.get(size) or {}).get("url")
        if url:
            return url
    return ""


def parse_video_item(item: Dict[str, Any]) -> VideoMetadata:
    """Convert a videos.list item into VideoMetadata."""
    snippet = item.get("snippet", {})
    return VideoMetadata(
        video_id=item["id"],
        channel_id=snippet.get("channelId", ""),
        channel_title=snippet.get("channelTitle", ""),
        title=snippet.get("title", ""),
        description=snippet.get("description", ""),
        published_at=datetime.fromisoformat(snippet["publishedAt"].replace("Z", "+00:00")),
        thumbnail_url=_thumbnail(snippet, "medium", "high", "default"),
        duration=item.get("contentDetails", {}).get("duration", "")
    )


def is_long_form(video: VideoMetadata) -> bool:
    """True for videos longer than the Shorts cutoff."""
    return video.duration_seconds > MIN_VIDEO_SECONDS


class YouTubeVideoSource:
    """Item source for the pipeline, backed by the YouTube Data API."""

    def __init__(self, client: YouTubeAPIClient):
        self.client = client

    async def list_recent_videos(self, channel_id: str, max_results: int = 10) -> List[VideoMetadata]:
        """
        Get the most recent long-form uploads of a channel.

        Args:
            channel_id: YouTube channel ID (starts with UC)
            max_results: Maximum number of uploads to inspect

        Returns:
            VideoMetadata objects in playlist order, Shorts excluded
        """
        logger.info(f"Fetching videos for channel {channel_id}, max_results={max_results}")

        uploads_playlist = await self.client.get_uploads_playlist_id(channel_id)
        if not uploads_playlist:
            logger.warning(f"No uploads playlist found for channel {channel_id}")
            return []

        video_ids = await self.client.get_playlist_video_ids(uploads_playlist, max_results)
        if not video_ids:
            logger.info(f"No videos found for channel {channel_id}")
            return []

        detailed_videos = await self.client.get_video_details(video_ids)

        videos = []
        for item in detailed_videos:
            try:
                video = parse_video_item(item)
            except (KeyError, ValueError) as e:
                logger.warning(f"Failed to create VideoMetadata for {item.get('id')}: {e}")
                continue
            if is_long_form(video):
                videos.append(video)
            else:
                logger.debug(f"Skipping short video {video.video_id} ({video.duration})")

        logger.info(f"Fetched {len(videos)} long-form videos for channel {channel_id}")
        return videos

    async def get_channel_metadata(self, channel_id: str) -> Optional[ChannelMetadata]:
        """Get channel details for the channels table, None if unknown."""
        channel = await self.client.get_channel_info(channel_id, part="snippet,statistics")
        if not channel:
            return None

        snippet = channel.get("snippet", {})
        return ChannelMetadata(
            id=channel.get("id") or channel_id,
            title=snippet.get("title", ""),
            description=snippet.get("description", ""),
            thumbnail_url=_thumbnail(snippet, "high", "medium", "default"),
            subscriber_count=channel.get("statistics", {}).get("subscriberCount")
        )

    def get_quota_usage(self) -> Dict[str, int]:
        """Get current quota usage statistics."""
        return {
            "quota_used_today": self.client.quota_used_today,
            "requests_made": self.client.request_count,
            "quota_remaining": 10000 - self.client.quota_used_today
        }
